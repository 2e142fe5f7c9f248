"""
Exception hierarchy shared by the calculators, persistence and API layers.

Calculators raise these (or plain ``ValueError`` subclasses of them) for
inputs that cannot produce a meaningful number.  The FastAPI app maps each
class to an HTTP status via ``status_code``.
"""

from __future__ import annotations

from typing import List, Optional


class BackOfficeError(Exception):
    """Base class for every error raised deliberately by this package."""

    status_code = 500

    def __init__(self, message: str, *, details: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = list(details or [])

    def to_dict(self) -> dict:
        payload = {"detail": self.message, "type": type(self).__name__}
        if self.details:
            payload["errors"] = self.details
        return payload


class ValidationError(BackOfficeError, ValueError):
    """Business input is incomplete or contradictory."""

    status_code = 422


class NotFoundError(BackOfficeError, LookupError):
    status_code = 404
