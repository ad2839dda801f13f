"""Thread-safe in-memory booking store."""

import threading
import uuid
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from ..models.booking import Booking
from ..models.owner import Owner
from ..utils.exceptions import BookingNotFoundError, OwnerNotFoundError
from .base import BookingFilter, BookingStore


class InMemoryBookingStore(BookingStore):
    """Dictionary-backed store for tests and single-process use."""

    def __init__(self) -> None:
        self._owners: dict[str, Owner] = {}
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()
        self._owner_locks: defaultdict[str, threading.RLock] = defaultdict(threading.RLock)

    def find_owner_by_external_identity(self, external_identity_id: str) -> Optional[Owner]:
        with self._lock:
            for owner in self._owners.values():
                if owner.external_identity_id == external_identity_id:
                    return owner.model_copy()
        return None

    def get_owner(self, owner_id: str) -> Optional[Owner]:
        with self._lock:
            owner = self._owners.get(owner_id)
            return owner.model_copy() if owner else None

    def create_owner(self, fields: dict[str, Any]) -> Owner:
        owner = Owner(id=str(uuid.uuid4()), **fields)
        with self._lock:
            self._owners[owner.id] = owner
        return owner.model_copy()

    def update_owner(self, owner_id: str, fields: dict[str, Any]) -> Owner:
        with self._lock:
            if owner_id not in self._owners:
                raise OwnerNotFoundError(f"Owner {owner_id} not found")
            owner = self._owners[owner_id].model_copy(update=fields)
            self._owners[owner_id] = owner
            return owner.model_copy()

    def create_booking(self, fields: dict[str, Any]) -> Booking:
        booking = Booking(id=str(uuid.uuid4()), **fields)
        with self._lock:
            self._bookings[booking.id] = booking
        return booking.model_copy()

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            return booking.model_copy() if booking else None

    def update_booking(self, booking_id: str, fields: dict[str, Any]) -> Booking:
        with self._lock:
            if booking_id not in self._bookings:
                raise BookingNotFoundError(f"Booking {booking_id} not found")
            booking = Booking.model_validate(
                {**self._bookings[booking_id].model_dump(), **fields}
            )
            self._bookings[booking_id] = booking
            return booking.model_copy()

    def delete_booking(self, booking_id: str) -> Booking:
        with self._lock:
            booking = self._bookings.pop(booking_id, None)
        if booking is None:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return booking

    def find_bookings(
        self, owner_id: str, booking_filter: Optional[BookingFilter] = None
    ) -> list[Booking]:
        booking_filter = booking_filter or BookingFilter()
        with self._lock:
            result = [
                b.model_copy()
                for b in self._bookings.values()
                if b.owner_id == owner_id and booking_filter.matches(b)
            ]
        result.sort(key=lambda b: b.start_time)
        if booking_filter.limit is not None:
            result = result[: booking_filter.limit]
        return result

    def clear_external_event_ids(self, owner_id: str) -> int:
        cleared = 0
        with self._lock:
            for booking_id, booking in self._bookings.items():
                if booking.owner_id == owner_id and booking.external_event_id:
                    self._bookings[booking_id] = booking.model_copy(
                        update={"external_event_id": None}
                    )
                    cleared += 1
        return cleared

    @contextmanager
    def owner_lock(self, owner_id: str) -> Iterator[None]:
        with self._lock:
            lock = self._owner_locks[owner_id]
        with lock:
            yield
