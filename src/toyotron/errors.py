"""Exception types raised by collaborators and converted at the core boundary."""

from __future__ import annotations


class ToyotronError(Exception):
    """Base class for all application errors."""


class ConfigurationError(ToyotronError):
    """A collaborator was used without the settings it needs."""


class LLMError(ToyotronError):
    """The remote model endpoint failed or returned something unusable."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class StoreError(ToyotronError):
    """A query against the relational store failed."""


class BookingError(ToyotronError):
    """Booking creation failed; ``status`` mirrors the HTTP contract (400/401/404/500)."""

    def __init__(self, message: str, status: int = 500):
        super().__init__(message)
        self.message = message
        self.status = status


class MailerError(ToyotronError):
    """The email provider rejected or failed to deliver a message."""
