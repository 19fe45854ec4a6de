"""
Exception hierarchy for the pit moderation engine.

Every error raised by the engine derives from :class:`PitbotError` so the
command layer can catch the whole family at the operation boundary. None of
them is fatal to the bot process.
"""

from typing import Any, Dict


class PitbotError(Exception):
    """Base exception carrying a machine readable code and optional details."""

    def __init__(self, message: str, error_code: str | None = None, details: Dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a dictionary for structured logging."""
        return {
            "error": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PitbotError):
    """Bad input, rejected before any ledger mutation."""


class NotFoundError(PitbotError):
    """Unknown or unusable ledger row id on edit/remove."""


class NotificationDeliveryError(PitbotError):
    """A DM or log-channel message could not be delivered."""


class ExternalStateError(PitbotError):
    """The pit role could not be added or removed (usually missing permission)."""
