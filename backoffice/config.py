"""
Centralized configuration for the restaurant back-office backend.
All settings come from environment variables for 12-factor deployment.
"""

import os


def _env_bool(name: str, default: bool = False) -> bool:
    val = os.environ.get(name)
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: str = "") -> list:
    return [s.strip() for s in os.environ.get(name, default).split(",") if s.strip()]


BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
DATABASE_URL = os.environ.get(
    "DATABASE_URL",
    f"sqlite:///{os.path.join(BASE_DIR, 'backoffice.db')}",
)
DATABASE_ECHO = _env_bool("DATABASE_ECHO", False)

# ---------------------------------------------------------------------------
# Server
# ---------------------------------------------------------------------------
PORT = int(os.environ.get("PORT", "8001"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper()
# Tracebacks are only returned to clients when explicitly enabled.
EXPOSE_TRACEBACKS = _env_bool("EXPOSE_TRACEBACKS", False)

# ---------------------------------------------------------------------------
# CORS
# ---------------------------------------------------------------------------
CORS_ORIGINS = _env_list("CORS_ORIGINS", "*")

# ---------------------------------------------------------------------------
# Labor rules
# ---------------------------------------------------------------------------
# 0 = Sunday ... 6 = Saturday
DEFAULT_WORK_WEEK_START = int(os.environ.get("DEFAULT_WORK_WEEK_START", "0"))
OVERTIME_WEEKLY_HOURS = float(os.environ.get("OVERTIME_WEEKLY_HOURS", "40"))
OVERTIME_MULTIPLIER = float(os.environ.get("OVERTIME_MULTIPLIER", "1.5"))
DAILY_OVERTIME_HOURS = float(os.environ.get("DAILY_OVERTIME_HOURS", "8"))
PUNCH_DUPLICATE_WINDOW_SECONDS = int(os.environ.get("PUNCH_DUPLICATE_WINDOW_SECONDS", "300"))
SHIFT_MAX_HOURS = float(os.environ.get("SHIFT_MAX_HOURS", "16"))

# ---------------------------------------------------------------------------
# Inventory valuation
# ---------------------------------------------------------------------------
DEFAULT_MARKUP_MULTIPLIER = float(os.environ.get("DEFAULT_MARKUP_MULTIPLIER", "3.0"))
