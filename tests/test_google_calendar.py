"""Unit tests for the Google Calendar REST client."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from calendar_booking.auth.google_auth import GoogleAuthProvider
from calendar_booking.calendars.google_calendar import GoogleCalendarClient
from calendar_booking.config import GoogleCalendarConfig
from calendar_booking.models.event import EventDraft
from calendar_booking.utils.exceptions import (
    CalendarReadError,
    ConfigurationError,
    ExternalCredentialError,
    ExternalSyncError,
)

from conftest import at

API = "https://www.googleapis.com/calendar/v3"


def response(status_code=200, payload=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = payload or {}
    resp.text = text
    return resp


def not_json(status_code=200):
    resp = response(status_code, text="<html>Service Unavailable</html>")
    resp.json.side_effect = requests.exceptions.JSONDecodeError("Expecting value", "<html>", 0)
    return resp


@pytest.fixture
def google_config():
    return GoogleCalendarConfig(
        client_id="cid",
        client_secret="secret",
        redirect_uri="https://app.example/callback",
        event_timezone="Europe/Zurich",
    )


@pytest.fixture
def auth_provider():
    provider = MagicMock(spec=GoogleAuthProvider)
    provider.get_access_token.return_value = "access-token"
    return provider


@pytest.fixture
def client(google_config, auth_provider):
    return GoogleCalendarClient(google_config, auth_provider)


def test_list_events_pages_and_parses(client):
    pages = [
        response(
            payload={
                "items": [
                    {
                        "id": "evt1",
                        "summary": "Meeting 1",
                        "start": {"dateTime": "2030-06-03T10:00:00Z"},
                        "end": {"dateTime": "2030-06-03T11:00:00Z"},
                    }
                ],
                "nextPageToken": "page-2",
            }
        ),
        response(
            payload={
                "items": [
                    {"id": "evt2", "start": {"date": "2030-06-03"}, "end": {"date": "2030-06-04"}}
                ]
            }
        ),
    ]
    with patch("calendar_booking.calendars.google_calendar.requests.get", side_effect=pages) as get:
        events = client.list_events("refresh", "primary", at(9), at(12))

    assert [e.id for e in events] == ["evt1", "evt2"]
    assert events[0].start == at(10)
    assert not events[1].is_timed

    first_call = get.call_args_list[0]
    assert first_call.args[0] == f"{API}/calendars/primary/events"
    assert first_call.kwargs["headers"]["Authorization"] == "Bearer access-token"
    assert first_call.kwargs["params"]["singleEvents"] == "true"
    assert first_call.kwargs["params"]["orderBy"] == "startTime"
    assert get.call_args_list[1].kwargs["params"]["pageToken"] == "page-2"


def test_list_events_rejected_credential(client, auth_provider):
    with patch(
        "calendar_booking.calendars.google_calendar.requests.get",
        return_value=response(401),
    ):
        with pytest.raises(ExternalCredentialError):
            client.list_events("refresh", "primary", at(9), at(12))
    auth_provider.forget.assert_called_once_with("refresh")


def test_list_events_network_error(client):
    with patch(
        "calendar_booking.calendars.google_calendar.requests.get",
        side_effect=requests.ConnectionError("down"),
    ):
        with pytest.raises(CalendarReadError):
            client.list_events("refresh", "primary", at(9), at(12))


def test_list_events_malformed_datetime(client):
    payload = {
        "items": [
            {"id": "evt1", "start": {"dateTime": "tomorrow"}, "end": {"dateTime": "later"}}
        ]
    }
    with patch(
        "calendar_booking.calendars.google_calendar.requests.get",
        return_value=response(payload=payload),
    ):
        with pytest.raises(CalendarReadError):
            client.list_events("refresh", "primary", at(9), at(12))


def test_list_events_non_json_body(client):
    with patch(
        "calendar_booking.calendars.google_calendar.requests.get",
        return_value=not_json(),
    ):
        with pytest.raises(CalendarReadError):
            client.list_events("refresh", "primary", at(9), at(12))


def test_insert_event(client):
    draft = EventDraft(summary="Review", start=at(10), end=at(11), description="Created")
    with patch(
        "calendar_booking.calendars.google_calendar.requests.post",
        return_value=response(200, {"id": "new-id"}),
    ) as post:
        event_id = client.insert_event("refresh", "primary", draft)

    assert event_id == "new-id"
    body = post.call_args.kwargs["json"]
    assert body["summary"] == "Review"
    assert body["description"] == "Created"
    assert body["start"] == {"dateTime": "2030-06-03T10:00:00+00:00", "timeZone": "Europe/Zurich"}


def test_insert_event_failure(client):
    draft = EventDraft(summary="Review", start=at(10), end=at(11))
    with patch(
        "calendar_booking.calendars.google_calendar.requests.post",
        return_value=response(500, text="boom"),
    ):
        with pytest.raises(ExternalSyncError):
            client.insert_event("refresh", "primary", draft)


def test_insert_event_non_json_body(client):
    draft = EventDraft(summary="Review", start=at(10), end=at(11))
    with patch(
        "calendar_booking.calendars.google_calendar.requests.post",
        return_value=not_json(),
    ):
        with pytest.raises(ExternalSyncError):
            client.insert_event("refresh", "primary", draft)


def test_insert_event_without_id(client):
    draft = EventDraft(summary="Review", start=at(10), end=at(11))
    with patch(
        "calendar_booking.calendars.google_calendar.requests.post",
        return_value=response(200, {"kind": "calendar#event"}),
    ):
        with pytest.raises(ExternalSyncError):
            client.insert_event("refresh", "primary", draft)


def test_update_event_uses_patch(client):
    draft = EventDraft(summary="Moved", start=at(12), end=at(13))
    with patch(
        "calendar_booking.calendars.google_calendar.requests.patch",
        return_value=response(200, {"id": "evt1"}),
    ) as patch_call:
        assert client.update_event("refresh", "team@group", "evt1", draft) == "evt1"
    assert patch_call.call_args.args[0] == f"{API}/calendars/team%40group/events/evt1"


def test_update_event_non_json_body(client):
    draft = EventDraft(summary="Moved", start=at(12), end=at(13))
    with patch(
        "calendar_booking.calendars.google_calendar.requests.patch",
        return_value=not_json(),
    ):
        with pytest.raises(ExternalSyncError):
            client.update_event("refresh", "primary", "evt1", draft)


def test_delete_event_tolerates_gone(client):
    with patch(
        "calendar_booking.calendars.google_calendar.requests.delete",
        return_value=response(410),
    ):
        client.delete_event("refresh", "primary", "evt1")


def test_delete_event_failure(client):
    with patch(
        "calendar_booking.calendars.google_calendar.requests.delete",
        return_value=response(404),
    ):
        with pytest.raises(ExternalSyncError):
            client.delete_event("refresh", "primary", "evt1")


class TestGoogleAuthProvider:
    def test_authorization_url(self, google_config):
        url = GoogleAuthProvider(google_config).get_authorization_url("auth0|alice")
        assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
        assert "access_type=offline" in url
        assert "prompt=consent" in url
        assert "state=auth0%7Calice" in url
        assert "calendar.events" in url

    def test_missing_client_configuration(self):
        provider = GoogleAuthProvider(GoogleCalendarConfig(client_id=None, client_secret=None))
        with pytest.raises(ConfigurationError):
            provider.get_access_token("refresh")

    def test_exchange_code(self, google_config):
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=response(
                200, {"access_token": "a", "refresh_token": "r", "expires_in": 120}
            ),
        ) as post:
            tokens = GoogleAuthProvider(google_config).exchange_code("code-1")

        assert tokens.refresh_token == "r"
        data = post.call_args.kwargs["data"]
        assert data["grant_type"] == "authorization_code"
        assert data["code"] == "code-1"

    def test_exchange_code_rejected(self, google_config):
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=response(400, text="invalid_grant"),
        ):
            with pytest.raises(ExternalCredentialError):
                GoogleAuthProvider(google_config).exchange_code("bad")

    def test_token_response_not_json(self, google_config):
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=not_json(),
        ):
            with pytest.raises(ExternalCredentialError):
                GoogleAuthProvider(google_config).exchange_code("code-1")

    def test_access_token_is_cached(self, google_config):
        provider = GoogleAuthProvider(google_config)
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=response(200, {"access_token": "a1", "expires_in": 3600}),
        ) as post:
            assert provider.get_access_token("refresh") == "a1"
            assert provider.get_access_token("refresh") == "a1"
        assert post.call_count == 1

    def test_forget_forces_refresh(self, google_config):
        provider = GoogleAuthProvider(google_config)
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=response(200, {"access_token": "a1", "expires_in": 3600}),
        ) as post:
            provider.get_access_token("refresh")
            provider.forget("refresh")
            provider.get_access_token("refresh")
        assert post.call_count == 2

    def test_short_lived_token_not_reused(self, google_config):
        provider = GoogleAuthProvider(google_config)
        with patch(
            "calendar_booking.auth.google_auth.requests.post",
            return_value=response(200, {"access_token": "a1", "expires_in": 60}),
        ) as post:
            provider.get_access_token("refresh")
            provider.get_access_token("refresh")
        assert post.call_count == 2
