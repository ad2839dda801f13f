"""Pytest fixtures for booking engine tests."""

from datetime import datetime
from typing import Optional

import pytest
import pytz

from calendar_booking.calendars.base import CalendarPort
from calendar_booking.config import AppConfig, GoogleCalendarConfig
from calendar_booking.models.booking import BookingCreate
from calendar_booking.models.event import EventDraft, ExternalEvent, OAuthTokens
from calendar_booking.services.bookings import BookingManager
from calendar_booking.services.conflicts import ConflictResolver
from calendar_booking.services.owners import OwnerService
from calendar_booking.store.memory import InMemoryBookingStore
from calendar_booking.sync.mirror import CalendarMirror
from calendar_booking.utils.exceptions import (
    CalendarReadError,
    ExternalCredentialError,
    ExternalSyncError,
)

NOW = datetime(2030, 6, 3, 8, 0, tzinfo=pytz.utc)


def at(hour: int, minute: int = 0, day: int = 3) -> datetime:
    """A UTC timestamp on the test day, after NOW unless hour < 8."""
    return datetime(2030, 6, day, hour, minute, tzinfo=pytz.utc)


class FakeCalendar(CalendarPort):
    """In-memory calendar collaborator that records every call."""

    def __init__(self) -> None:
        self.events: dict[str, ExternalEvent] = {}
        self.calls: list[tuple] = []
        self.fail_list = False
        self.fail_insert = False
        self.fail_update = False
        self.fail_delete = False
        self.reject_credential = False
        self.refresh_token: Optional[str] = "refresh-from-code"
        self._next_id = 0

    def add_event(self, start: Optional[datetime], end: Optional[datetime], event_id: str = "") -> str:
        self._next_id += 1
        event_id = event_id or f"ext-{self._next_id}"
        self.events[event_id] = ExternalEvent(id=event_id, summary="busy", start=start, end=end)
        return event_id

    def list_events(self, credential, calendar_id, time_min, time_max):
        self.calls.append(("list", credential, calendar_id, time_min, time_max))
        if self.reject_credential:
            raise ExternalCredentialError("invalid_grant")
        if self.fail_list:
            raise CalendarReadError("provider unavailable")
        return list(self.events.values())

    def insert_event(self, credential, calendar_id, event: EventDraft):
        self.calls.append(("insert", credential, calendar_id, event))
        if self.fail_insert:
            raise ExternalSyncError("insert failed")
        return self.add_event(event.start, event.end)

    def update_event(self, credential, calendar_id, event_id, event: EventDraft):
        self.calls.append(("update", credential, calendar_id, event_id, event))
        if self.fail_update:
            raise ExternalSyncError("update failed")
        self.events[event_id] = ExternalEvent(
            id=event_id, summary=event.summary, start=event.start, end=event.end
        )
        return event_id

    def delete_event(self, credential, calendar_id, event_id):
        self.calls.append(("delete", credential, calendar_id, event_id))
        if self.fail_delete:
            raise ExternalSyncError("delete failed")
        self.events.pop(event_id, None)

    def exchange_authorization_code(self, code):
        self.calls.append(("exchange", code))
        if self.reject_credential:
            raise ExternalCredentialError("invalid code")
        return OAuthTokens(access_token="access", refresh_token=self.refresh_token)

    def get_authorization_url(self, state):
        return f"https://consent.example/?state={state}"

    def actions(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture
def app_config():
    return AppConfig(google=GoogleCalendarConfig(client_id="cid", client_secret="secret"))


@pytest.fixture
def store():
    return InMemoryBookingStore()


@pytest.fixture
def calendar():
    return FakeCalendar()


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def resolver(store, calendar):
    return ConflictResolver(store, calendar)


@pytest.fixture
def manager(store, resolver, calendar, clock):
    mirror = CalendarMirror(calendar, description="Created by Booking System")
    return BookingManager(store, resolver, mirror=mirror, clock=clock)


@pytest.fixture
def owners(store, calendar):
    return OwnerService(store, calendar)


@pytest.fixture
def owner(owners):
    return owners.resolve_or_create("auth0|alice", "alice@example.com", "Alice")


@pytest.fixture
def connected_owner(owners, owner):
    return owners.connect_calendar(owner.external_identity_id, "consent-code")


@pytest.fixture
def make_booking(manager):
    def _make(owner_id: str, start: datetime, end: datetime, title: str = "Meeting"):
        return manager.create(
            owner_id, BookingCreate(title=title, start_time=start, end_time=end)
        ).booking

    return _make
