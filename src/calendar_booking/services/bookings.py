"""Booking lifecycle: validation, conflict checks, persistence and mirroring."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

import pytz

from ..models.booking import Booking, BookingCreate, BookingUpdate
from ..models.conflict import ConflictReport
from ..models.owner import Owner
from ..store.base import BookingFilter, BookingStore
from ..sync.mirror import CalendarMirror, SyncOutcome
from ..utils.exceptions import (
    BookingNotFoundError,
    ExternalConflictError,
    InvalidIntervalError,
    InvalidTitleError,
    LocalConflictError,
    OwnerNotFoundError,
    PastIntervalError,
)
from ..utils.intervals import ensure_utc
from .conflicts import ConflictResolver

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


@dataclass
class BookingChange:
    """A booking after a mutation, with the outcome of its external mirror step."""

    booking: Booking
    sync: SyncOutcome


class BookingManager:
    """Create, read, update and delete bookings for an owner."""

    def __init__(
        self,
        store: BookingStore,
        resolver: ConflictResolver,
        mirror: Optional[CalendarMirror] = None,
        clock: Callable[[], datetime] = utc_now,
        upcoming_limit: int = 5,
    ):
        """
        Initialize the booking manager.

        Args:
            store: Persistence collaborator
            resolver: Conflict resolver sharing the same store
            mirror: External calendar mirror (None disables mirroring)
            clock: Returns the current time; injected for tests
            upcoming_limit: Maximum number of upcoming bookings returned
        """
        self.store = store
        self.resolver = resolver
        self.mirror = mirror
        self.clock = clock
        self.upcoming_limit = upcoming_limit

    def _now(self) -> datetime:
        return ensure_utc(self.clock())

    def _owner(self, owner_id: str) -> Owner:
        # Fetched once per operation; the credential is not re-read mid-operation
        owner = self.store.get_owner(owner_id)
        if owner is None:
            raise OwnerNotFoundError(f"Owner {owner_id} not found")
        return owner

    @staticmethod
    def _validate_interval(start: datetime, end: datetime) -> None:
        if start >= end:
            raise InvalidIntervalError("End time must be after start time")

    @staticmethod
    def _validate_title(title: str) -> str:
        title = title.strip()
        if not title:
            raise InvalidTitleError("Title must not be empty")
        return title

    def _ensure_no_local_conflict(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        exclude_booking_id: Optional[str] = None,
    ) -> None:
        conflicts = self.resolver.local_conflicts(owner_id, start, end, exclude_booking_id)
        if conflicts:
            raise LocalConflictError(
                "Time slot conflicts with existing booking", conflicts=conflicts
            )

    def _ensure_no_external_conflict(
        self,
        owner: Owner,
        start: datetime,
        end: datetime,
        exclude_external_event_id: Optional[str] = None,
    ) -> None:
        if self.resolver.external_conflict(owner, start, end, exclude_external_event_id):
            raise ExternalConflictError("Time slot conflicts with your external calendar")

    def create(self, owner_id: str, data: BookingCreate) -> BookingChange:
        """
        Create a booking after validating it against local and external calendars.

        Raises:
            OwnerNotFoundError, InvalidIntervalError, PastIntervalError,
            InvalidTitleError, LocalConflictError, ExternalConflictError
        """
        owner = self._owner(owner_id)
        start, end = ensure_utc(data.start_time), ensure_utc(data.end_time)

        self._validate_interval(start, end)
        now = self._now()
        if start < now:
            raise PastIntervalError("Cannot create bookings in the past")
        title = self._validate_title(data.title)

        with self.store.owner_lock(owner.id):
            self._ensure_no_local_conflict(owner.id, start, end)
            self._ensure_no_external_conflict(owner, start, end)

            booking = self.store.create_booking(
                {
                    "owner_id": owner.id,
                    "title": title,
                    "start_time": start,
                    "end_time": end,
                    "created_at": now,
                    "updated_at": now,
                }
            )
        logger.info(f"Created booking {booking.id} for owner {owner.id}")

        if self.mirror is None:
            return BookingChange(booking, SyncOutcome.skipped("create"))

        sync = self.mirror.create(owner, booking)
        if sync.succeeded:
            booking = self.store.update_booking(
                booking.id, {"external_event_id": sync.event_id}
            )
        return BookingChange(booking, sync)

    def find_all(self, owner_id: str) -> list[Booking]:
        """All of the owner's bookings by ascending start time."""
        return self.store.find_bookings(owner_id)

    def find_one(self, booking_id: str, owner_id: str) -> Booking:
        """
        Return one of the owner's bookings.

        Raises:
            BookingNotFoundError: If the booking does not exist or belongs to
                another owner (the two cases are indistinguishable)
        """
        booking = self.store.get_booking(booking_id)
        if booking is None or booking.owner_id != owner_id:
            raise BookingNotFoundError("Booking not found")
        return booking

    def upcoming(self, owner_id: str) -> list[Booking]:
        """The soonest bookings starting from now."""
        return self.store.find_bookings(
            owner_id, BookingFilter(start_from=self._now(), limit=self.upcoming_limit)
        )

    def update(self, booking_id: str, owner_id: str, changes: BookingUpdate) -> BookingChange:
        """
        Apply a partial update, re-validating the resulting interval.

        The external calendar is only consulted when the interval moves.

        Raises:
            OwnerNotFoundError, BookingNotFoundError, InvalidIntervalError,
            InvalidTitleError, LocalConflictError, ExternalConflictError
        """
        owner = self._owner(owner_id)

        with self.store.owner_lock(owner.id):
            existing = self.find_one(booking_id, owner.id)

            title = existing.title
            if changes.title is not None:
                title = self._validate_title(changes.title)
            start = changes.start_time or existing.start_time
            end = changes.end_time or existing.end_time

            self._validate_interval(start, end)
            self._ensure_no_local_conflict(owner.id, start, end, exclude_booking_id=existing.id)
            if start != existing.start_time or end != existing.end_time:
                self._ensure_no_external_conflict(
                    owner, start, end, exclude_external_event_id=existing.external_event_id
                )

            booking = self.store.update_booking(
                existing.id,
                {
                    "title": title,
                    "start_time": start,
                    "end_time": end,
                    "updated_at": self._now(),
                },
            )
        logger.info(f"Updated booking {booking.id}")

        if self.mirror is None:
            return BookingChange(booking, SyncOutcome.skipped("update"))
        return BookingChange(booking, self.mirror.update(owner, booking))

    def delete(self, booking_id: str, owner_id: str) -> BookingChange:
        """
        Delete a booking, removing its external event first when there is one.

        Returns:
            The booking as it was before deletion
        """
        owner = self._owner(owner_id)
        existing = self.find_one(booking_id, owner.id)

        if self.mirror is None:
            sync = SyncOutcome.skipped("delete")
        else:
            sync = self.mirror.delete(owner, existing)

        deleted = self.store.delete_booking(existing.id)
        logger.info(f"Deleted booking {deleted.id}")
        return BookingChange(deleted, sync)

    def check_conflicts(
        self,
        owner_id: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> ConflictReport:
        """
        Report conflicts for a candidate interval without changing anything.

        ``exclude_id`` skips that booking and, if it is the owner's, its
        mirrored external event.
        """
        owner = self._owner(owner_id)
        start, end = ensure_utc(start), ensure_utc(end)
        self._validate_interval(start, end)

        exclude_event_id = None
        if exclude_id:
            excluded = self.store.get_booking(exclude_id)
            if excluded is not None and excluded.owner_id == owner.id:
                exclude_event_id = excluded.external_event_id

        return self.resolver.check(
            owner,
            start,
            end,
            exclude_booking_id=exclude_id,
            exclude_external_event_id=exclude_event_id,
        )
