"""Error kinds raised by the insights services.

Every error carries the HTTP status it maps to and renders as a
``{"message": ...}`` body; the API layer installs one handler for the
whole hierarchy.
"""

from typing import Any


class InsightsError(Exception):
    """Base error for dashboard, tracking and registry operations."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message}


class ValidationError(InsightsError):
    """Input rejected outright (most inputs are defaulted instead)."""

    status_code = 400


class NotFoundError(InsightsError):
    status_code = 404


class AlreadyAppliedError(InsightsError):
    """Business rule: the user already has an application."""

    status_code = 400


class DeliveryError(InsightsError):
    """Email collaborator reported a failure."""

    status_code = 500

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason

    def to_dict(self) -> dict[str, Any]:
        return {"message": self.message, "error": self.reason}


class StoreError(InsightsError):
    """Underlying persistence or query failure."""

    status_code = 500


class CodeCreationError(InsightsError):
    """A unique referral/promo code could not be persisted."""

    status_code = 500
