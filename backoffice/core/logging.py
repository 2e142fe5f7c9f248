"""
Back-office logging setup.

``backoffice.app`` calls ``configure_logging()`` on import; every other module
just does ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging
import sys
from typing import Optional

from backoffice import config

DEFAULT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DEFAULT_DATEFMT = "%Y-%m-%d %H:%M:%S"

_CONFIGURED = False

# Held at WARNING so request logs and SQL do not drown payroll and import messages
_QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "multipart")


def resolve_level(level: Optional[str] = None) -> int:
    """Level name to a ``logging`` constant.

    Unknown names fall back to INFO rather than failing startup.
    """
    name = (level or config.LOG_LEVEL or "INFO").strip().upper()
    resolved = logging.getLevelName(name)
    return resolved if isinstance(resolved, int) else logging.INFO


def configure_logging(
    level: Optional[str] = None,
    fmt: str = DEFAULT_FORMAT,
    datefmt: str = DEFAULT_DATEFMT,
) -> None:
    """Install a stdout handler on the root logger, once per process.

    Parameters
    ----------
    level:
        Level name; ``config.LOG_LEVEL`` when omitted.
    fmt, datefmt:
        Passed to ``logging.Formatter``.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    root = logging.getLogger()
    root.setLevel(resolve_level(level))
    # uvicorn installs its own handlers when it starts the app
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(fmt=fmt, datefmt=datefmt))
        root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    # DATABASE_ECHO already routes SQL through this logger
    if not config.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _CONFIGURED = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
