"""Operation surface of the booking engine, keyed by external identity."""

import logging
from datetime import datetime
from typing import Any, Callable, Optional

from .calendars.base import CalendarPort
from .config import AppConfig
from .models.booking import Booking, BookingCreate, BookingUpdate
from .models.conflict import ConflictReport
from .models.event import ExternalEvent
from .models.owner import Owner
from .services.bookings import BookingManager, utc_now
from .services.conflicts import ConflictResolver
from .services.owners import OwnerService
from .store.base import BookingStore
from .sync.mirror import CalendarMirror

logger = logging.getLogger(__name__)


class SchedulingService:
    """One method per public operation; callers pass the identity subject."""

    def __init__(self, owners: OwnerService, bookings: BookingManager):
        self.owners = owners
        self.bookings = bookings

    def resolve_owner(
        self,
        external_identity_id: str,
        email: Optional[str],
        name: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> Owner:
        return self.owners.resolve_or_create(external_identity_id, email, name, picture)

    def create_booking(self, identity: str, data: BookingCreate) -> Booking:
        owner = self.owners.get(identity)
        return self.bookings.create(owner.id, data).booking

    def list_bookings(self, identity: str) -> list[Booking]:
        owner = self.owners.find(identity)
        if owner is None:
            return []
        return self.bookings.find_all(owner.id)

    def get_upcoming_bookings(self, identity: str) -> list[Booking]:
        owner = self.owners.find(identity)
        if owner is None:
            return []
        return self.bookings.upcoming(owner.id)

    def get_booking(self, identity: str, booking_id: str) -> Booking:
        owner = self.owners.get(identity)
        return self.bookings.find_one(booking_id, owner.id)

    def update_booking(self, identity: str, booking_id: str, changes: BookingUpdate) -> Booking:
        owner = self.owners.get(identity)
        return self.bookings.update(booking_id, owner.id, changes).booking

    def delete_booking(self, identity: str, booking_id: str) -> Booking:
        owner = self.owners.get(identity)
        return self.bookings.delete(booking_id, owner.id).booking

    def check_conflicts(
        self,
        identity: str,
        start: datetime,
        end: datetime,
        exclude_id: Optional[str] = None,
    ) -> ConflictReport:
        owner = self.owners.get(identity)
        return self.bookings.check_conflicts(owner.id, start, end, exclude_id)

    def get_authorization_url(self, identity: str) -> str:
        return self.owners.authorization_url(identity)

    def connect_external_calendar(self, identity: str, code: str) -> Owner:
        return self.owners.connect_calendar(identity, code)

    def disconnect_external_calendar(self, identity: str) -> Owner:
        return self.owners.disconnect_calendar(identity)

    def calendar_status(self, identity: str) -> dict[str, Any]:
        owner = self.owners.get(identity)
        return {
            "connected": owner.calendar_connected,
            "calendar_id": owner.external_calendar_id,
        }

    def list_external_events(
        self, identity: str, start: datetime, end: datetime
    ) -> list[ExternalEvent]:
        return self.owners.list_external_events(identity, start, end)


def build_service(
    config: AppConfig,
    store: BookingStore,
    calendar: Optional[CalendarPort] = None,
    clock: Callable[[], datetime] = utc_now,
) -> SchedulingService:
    """
    Wire the engine from explicit configuration and collaborators.

    Args:
        config: Application configuration
        store: Persistence collaborator
        calendar: External calendar collaborator (None disables external checks)
        clock: Returns the current time

    Returns:
        Ready SchedulingService
    """
    calendar_id = config.google.default_calendar_id
    resolver = ConflictResolver(store, calendar, default_calendar_id=calendar_id)
    mirror = None
    if calendar is not None:
        mirror = CalendarMirror(
            calendar,
            default_calendar_id=calendar_id,
            description=config.google.event_description,
        )
    bookings = BookingManager(
        store,
        resolver,
        mirror=mirror,
        clock=clock,
        upcoming_limit=config.upcoming_limit,
    )
    owners = OwnerService(
        store,
        calendar,
        default_calendar_id=calendar_id,
        default_name=config.default_owner_name,
    )
    return SchedulingService(owners, bookings)
