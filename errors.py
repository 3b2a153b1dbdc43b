"""Error taxonomy shared by the service layer and the HTTP handlers.

Service functions raise these; ``main.py`` registers a handler that renders
them as ``{"error": ..., "message": ..., "details": ...}`` with the matching
status code. Messages are user-facing and written in French.
"""
from __future__ import annotations

from typing import Any, Optional


class ApiError(Exception):
    status_code: int = 500

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        details: Optional[Any] = None,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message or error)
        self.error = error
        self.message = message
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        body: dict = {"error": self.error}
        if self.message:
            body["message"] = self.message
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationFailed(ApiError):
    status_code = 400


class Conflict(ApiError):
    """Duplicate resource; ``error`` carries a machine-readable code."""

    status_code = 400


class Unauthorized(ApiError):
    status_code = 401


class Forbidden(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class AlreadyApplied(ApiError):
    status_code = 409


class Gone(ApiError):
    status_code = 410


class EmailDeliveryError(ApiError):
    status_code = 500

    def __init__(self, message: str = "Erreur lors de l'envoi de l'email") -> None:
        super().__init__(message)
