"""Custom exceptions for the booking engine."""

from typing import Optional


class BookingEngineError(Exception):
    """Base exception for booking engine errors."""


class OwnerNotFoundError(BookingEngineError):
    """Raised when the referenced owner does not exist."""


class BookingNotFoundError(BookingEngineError):
    """Raised when a booking is absent or belongs to another owner."""


class InvalidIntervalError(BookingEngineError):
    """Raised when a booking does not end after it starts."""


class PastIntervalError(BookingEngineError):
    """Raised when a booking would start in the past."""


class InvalidTitleError(BookingEngineError):
    """Raised when a booking title is empty."""


class ConflictError(BookingEngineError):
    """Base exception for overlapping bookings."""


class LocalConflictError(ConflictError):
    """Raised when the interval overlaps other bookings of the same owner."""

    def __init__(self, message: str, conflicts: Optional[list] = None):
        super().__init__(message)
        self.conflicts = conflicts or []


class ExternalConflictError(ConflictError):
    """Raised when the interval overlaps an event in the external calendar."""


class MissingEmailError(BookingEngineError):
    """Raised when an owner is resolved without an email."""


class ExternalCalendarError(BookingEngineError):
    """Base exception for external calendar failures."""


class ExternalSyncError(ExternalCalendarError):
    """Raised when mirroring a booking to the external calendar fails."""


class ExternalCredentialError(ExternalCalendarError):
    """Raised when the external calendar credential is rejected."""


class CalendarReadError(ExternalCalendarError):
    """Raised when listing external events fails."""


class ConfigurationError(BookingEngineError):
    """Raised when configuration is invalid."""
