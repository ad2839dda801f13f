"""Abstract base class for booking persistence."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..models.booking import Booking
from ..models.owner import Owner
from ..utils.intervals import overlaps


@dataclass
class BookingFilter:
    """Criteria for :meth:`BookingStore.find_bookings`.

    Results are always ordered by ascending start time.
    """

    exclude_id: Optional[str] = None
    # Candidate interval; only bookings overlapping it match
    overlap_start: Optional[datetime] = None
    overlap_end: Optional[datetime] = None
    start_from: Optional[datetime] = None
    limit: Optional[int] = None

    def matches(self, booking: Booking) -> bool:
        if self.exclude_id is not None and booking.id == self.exclude_id:
            return False
        if self.overlap_start is not None and self.overlap_end is not None:
            if not overlaps(
                self.overlap_start, self.overlap_end, booking.start_time, booking.end_time
            ):
                return False
        if self.start_from is not None and booking.start_time < self.start_from:
            return False
        return True


class BookingStore(ABC):
    """Stores owners and their bookings."""

    @abstractmethod
    def find_owner_by_external_identity(self, external_identity_id: str) -> Optional[Owner]:
        """Return the owner for an identity provider subject, if any."""

    @abstractmethod
    def get_owner(self, owner_id: str) -> Optional[Owner]:
        """Return the owner with the given internal id, if any."""

    @abstractmethod
    def create_owner(self, fields: dict[str, Any]) -> Owner:
        """Create an owner; an ``id`` is assigned by the store."""

    @abstractmethod
    def update_owner(self, owner_id: str, fields: dict[str, Any]) -> Owner:
        """Update owner fields and return the stored owner."""

    @abstractmethod
    def create_booking(self, fields: dict[str, Any]) -> Booking:
        """Create a booking; an ``id`` is assigned by the store."""

    @abstractmethod
    def get_booking(self, booking_id: str) -> Optional[Booking]:
        """Return a booking by id regardless of owner, if any."""

    @abstractmethod
    def update_booking(self, booking_id: str, fields: dict[str, Any]) -> Booking:
        """Update booking fields and return the stored booking."""

    @abstractmethod
    def delete_booking(self, booking_id: str) -> Booking:
        """Delete a booking and return its last stored state."""

    @abstractmethod
    def find_bookings(
        self, owner_id: str, booking_filter: Optional[BookingFilter] = None
    ) -> list[Booking]:
        """Return an owner's bookings matching the filter, by ascending start time."""

    @abstractmethod
    def clear_external_event_ids(self, owner_id: str) -> int:
        """Detach all of an owner's bookings from their external events."""

    @abstractmethod
    def owner_lock(self, owner_id: str) -> AbstractContextManager[None]:
        """
        Serialize check-then-write sequences for one owner.

        Two create/update operations for the same owner never run their
        conflict check and write concurrently while both hold this lock.
        """
