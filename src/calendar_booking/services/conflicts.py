"""Booking conflict detection against local and external calendars."""

import logging
from datetime import datetime
from typing import Optional

from ..calendars.base import CalendarPort
from ..models.booking import Booking
from ..models.conflict import ConflictReport
from ..models.owner import Owner
from ..store.base import BookingFilter, BookingStore
from ..utils.exceptions import ConfigurationError, ExternalCalendarError
from ..utils.intervals import overlaps

logger = logging.getLogger(__name__)


class ConflictResolver:
    """Decide whether a candidate interval is free for an owner."""

    def __init__(
        self,
        store: BookingStore,
        calendar: Optional[CalendarPort] = None,
        default_calendar_id: str = "primary",
    ):
        self.store = store
        self.calendar = calendar
        self.default_calendar_id = default_calendar_id

    def local_conflicts(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> list[Booking]:
        """Return the owner's bookings overlapping ``[start, end)``."""
        candidates = self.store.find_bookings(
            owner_id,
            BookingFilter(exclude_id=exclude_booking_id, overlap_start=start, overlap_end=end),
        )
        # Stores filter already; the predicate is the single source of truth
        return [
            b
            for b in candidates
            if b.id != exclude_booking_id and overlaps(start, end, b.start_time, b.end_time)
        ]

    def external_conflict(
        self,
        owner: Owner,
        start: datetime,
        end: datetime,
        exclude_external_event_id: Optional[str] = None,
    ) -> Optional[bool]:
        """
        Check the owner's external calendar for overlapping events.

        Returns:
            True or False when the calendar was consulted, None when the owner
            has no connected calendar or the lookup failed
        """
        if self.calendar is None or not owner.external_calendar_credential:
            return None

        try:
            events = self.calendar.list_events(
                owner.external_calendar_credential,
                owner.external_calendar_id or self.default_calendar_id,
                start,
                end,
            )
        except (ExternalCalendarError, ConfigurationError) as e:
            logger.warning(
                f"External conflict check failed for owner {owner.id}, "
                f"treating as no external conflicts: {e}"
            )
            return None

        for event in events:
            if exclude_external_event_id and event.id == exclude_external_event_id:
                continue
            # All-day events and events without timestamps never conflict
            if not event.is_timed:
                continue
            if overlaps(start, end, event.start, event.end):
                logger.debug(f"Interval overlaps external event {event.id}")
                return True
        return False

    def check(
        self,
        owner: Owner,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
        exclude_external_event_id: Optional[str] = None,
        include_external: bool = True,
    ) -> ConflictReport:
        """Run the local and (optionally) external checks and report both."""
        conflicts = self.local_conflicts(owner.id, start, end, exclude_booking_id)

        external = None
        if include_external:
            external = self.external_conflict(owner, start, end, exclude_external_event_id)

        return ConflictReport(
            conflicts=conflicts,
            external_conflict=bool(external),
            external_checked=external is not None,
        )
