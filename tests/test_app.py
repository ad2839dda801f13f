"""Tests for the identity-keyed operation surface."""

import pytest

from calendar_booking.app import build_service
from calendar_booking.models.booking import BookingCreate, BookingUpdate
from calendar_booking.utils.exceptions import BookingNotFoundError, OwnerNotFoundError

from conftest import at


@pytest.fixture
def service(app_config, store, calendar, clock):
    return build_service(app_config, store, calendar, clock=clock)


@pytest.fixture
def alice(service):
    return service.resolve_owner("auth0|alice", "alice@example.com", "Alice")


def test_full_lifecycle(service, alice, calendar):
    service.connect_external_calendar("auth0|alice", "code")
    assert service.calendar_status("auth0|alice") == {"connected": True, "calendar_id": "primary"}

    booking = service.create_booking(
        "auth0|alice", BookingCreate(title="Demo", start_time=at(10), end_time=at(11))
    )
    assert booking.external_event_id in calendar.events
    assert service.get_booking("auth0|alice", booking.id).id == booking.id

    updated = service.update_booking("auth0|alice", booking.id, BookingUpdate(title="Demo 2"))
    assert updated.title == "Demo 2"
    assert calendar.events[booking.external_event_id].summary == "Demo 2"

    deleted = service.delete_booking("auth0|alice", booking.id)
    assert deleted.id == booking.id
    assert service.list_bookings("auth0|alice") == []
    assert calendar.events == {}


def test_unknown_identity_lists_are_empty(service):
    assert service.list_bookings("auth0|nobody") == []
    assert service.get_upcoming_bookings("auth0|nobody") == []


def test_unknown_identity_mutations_fail(service):
    with pytest.raises(OwnerNotFoundError):
        service.create_booking(
            "auth0|nobody", BookingCreate(title="x", start_time=at(10), end_time=at(11))
        )
    with pytest.raises(OwnerNotFoundError):
        service.check_conflicts("auth0|nobody", at(10), at(11))


def test_booking_isolation_between_identities(service, alice):
    booking = service.create_booking(
        "auth0|alice", BookingCreate(title="Private", start_time=at(10), end_time=at(11))
    )
    service.resolve_owner("auth0|bob", "bob@example.com")
    with pytest.raises(BookingNotFoundError):
        service.get_booking("auth0|bob", booking.id)
    assert service.list_bookings("auth0|bob") == []
    # Bob's calendar is independent of Alice's
    service.create_booking(
        "auth0|bob", BookingCreate(title="Same slot", start_time=at(10), end_time=at(11))
    )


def test_check_conflicts_and_disconnect(service, alice, calendar):
    service.connect_external_calendar("auth0|alice", "code")
    calendar.add_event(at(13), at(14))
    report = service.check_conflicts("auth0|alice", at(13, 30), at(14, 30))
    assert report.external_conflict

    service.disconnect_external_calendar("auth0|alice")
    report = service.check_conflicts("auth0|alice", at(13, 30), at(14, 30))
    assert not report.has_conflicts
    assert service.calendar_status("auth0|alice")["connected"] is False


def test_authorization_url(service, alice):
    assert "state=auth0|alice" in service.get_authorization_url("auth0|alice")
