"""Best-effort mirroring of bookings into an owner's external calendar."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..calendars.base import CalendarPort
from ..models.booking import Booking
from ..models.event import EventDraft
from ..models.owner import Owner
from ..utils.exceptions import ConfigurationError, ExternalCalendarError

logger = logging.getLogger(__name__)


class SyncStatus(str, Enum):
    """Outcome of one mirror call."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass
class SyncOutcome:
    """Result of a mirror operation.

    A failed outcome never aborts the local mutation that triggered it.
    """

    status: SyncStatus
    action: str
    event_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status == SyncStatus.SUCCEEDED

    @property
    def failed(self) -> bool:
        return self.status == SyncStatus.FAILED

    @classmethod
    def skipped(cls, action: str) -> "SyncOutcome":
        return cls(status=SyncStatus.SKIPPED, action=action)


class CalendarMirror:
    """Keep external events in step with local bookings."""

    def __init__(
        self,
        calendar: CalendarPort,
        default_calendar_id: str = "primary",
        description: Optional[str] = None,
    ):
        """
        Initialize the mirror.

        Args:
            calendar: External calendar collaborator
            default_calendar_id: Calendar used when the owner has none stored
            description: Description written on mirrored events
        """
        self.calendar = calendar
        self.default_calendar_id = default_calendar_id
        self.description = description

    def _calendar_id(self, owner: Owner) -> str:
        return owner.external_calendar_id or self.default_calendar_id

    def _draft(self, booking: Booking) -> EventDraft:
        return EventDraft(
            summary=booking.title,
            start=booking.start_time,
            end=booking.end_time,
            description=self.description,
        )

    def _failure(self, action: str, booking: Booking, error: Exception) -> SyncOutcome:
        logger.error(f"Failed to {action} external event for booking {booking.id}: {error}")
        return SyncOutcome(
            status=SyncStatus.FAILED,
            action=action,
            event_id=booking.external_event_id,
            error=str(error),
        )

    def create(self, owner: Owner, booking: Booking) -> SyncOutcome:
        """Create the external event for a new booking."""
        if not owner.external_calendar_credential:
            return SyncOutcome.skipped("create")
        try:
            event_id = self.calendar.insert_event(
                owner.external_calendar_credential,
                self._calendar_id(owner),
                self._draft(booking),
            )
        except (ExternalCalendarError, ConfigurationError) as e:
            return self._failure("create", booking, e)

        logger.info(f"Mirrored booking {booking.id} as external event {event_id}")
        return SyncOutcome(status=SyncStatus.SUCCEEDED, action="create", event_id=event_id)

    def update(self, owner: Owner, booking: Booking) -> SyncOutcome:
        """Bring the booking's external event in line with its local state."""
        if not owner.external_calendar_credential or not booking.external_event_id:
            return SyncOutcome.skipped("update")
        try:
            event_id = self.calendar.update_event(
                owner.external_calendar_credential,
                self._calendar_id(owner),
                booking.external_event_id,
                self._draft(booking),
            )
        except (ExternalCalendarError, ConfigurationError) as e:
            return self._failure("update", booking, e)

        return SyncOutcome(status=SyncStatus.SUCCEEDED, action="update", event_id=event_id)

    def delete(self, owner: Owner, booking: Booking) -> SyncOutcome:
        """Remove the booking's external event."""
        if not owner.external_calendar_credential or not booking.external_event_id:
            return SyncOutcome.skipped("delete")
        try:
            self.calendar.delete_event(
                owner.external_calendar_credential,
                self._calendar_id(owner),
                booking.external_event_id,
            )
        except (ExternalCalendarError, ConfigurationError) as e:
            return self._failure("delete", booking, e)

        return SyncOutcome(
            status=SyncStatus.SUCCEEDED, action="delete", event_id=booking.external_event_id
        )
