"""Google Calendar collaborator using the REST API directly."""

import logging
from datetime import datetime
from typing import Any, Optional
from urllib.parse import quote

import requests

from ..auth.google_auth import GoogleAuthProvider
from ..config import GoogleCalendarConfig
from ..models.event import EventDraft, ExternalEvent, OAuthTokens
from ..utils.exceptions import (
    CalendarReadError,
    ExternalCredentialError,
    ExternalSyncError,
)
from ..utils.intervals import to_iso
from .base import CalendarPort

logger = logging.getLogger(__name__)


class GoogleCalendarClient(CalendarPort):
    """Read and write events in Google Calendar."""

    def __init__(
        self,
        config: GoogleCalendarConfig,
        auth_provider: Optional[GoogleAuthProvider] = None,
    ):
        self.config = config
        self.auth_provider = auth_provider or GoogleAuthProvider(config)

    def _headers(self, credential: str) -> dict[str, str]:
        token = self.auth_provider.get_access_token(credential)
        return {
            "Authorization": f"Bearer {token}",
            "Content-Type": "application/json",
        }

    def _events_url(self, calendar_id: str, event_id: Optional[str] = None) -> str:
        url = f"{self.config.api_base}/calendars/{quote(calendar_id, safe='')}/events"
        if event_id:
            url = f"{url}/{quote(event_id, safe='')}"
        return url

    def _check_auth(self, resp: requests.Response, credential: str) -> None:
        if resp.status_code in (401, 403):
            self.auth_provider.forget(credential)
            raise ExternalCredentialError(
                f"Google Calendar rejected credential ({resp.status_code})"
            )

    def list_events(
        self,
        credential: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
    ) -> list[ExternalEvent]:
        url = self._events_url(calendar_id)
        params: dict[str, Any] = {
            "timeMin": to_iso(time_min),
            "timeMax": to_iso(time_max),
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        events: list[ExternalEvent] = []
        try:
            while True:
                resp = requests.get(
                    url,
                    headers=self._headers(credential),
                    params=params,
                    timeout=self.config.request_timeout,
                )
                self._check_auth(resp, credential)
                if resp.status_code != 200:
                    raise CalendarReadError(
                        f"Failed to list Google events ({resp.status_code}): {resp.text[:200]}"
                    )
                data = resp.json()
                events.extend(ExternalEvent.from_api(item) for item in data.get("items", []))

                page_token = data.get("nextPageToken")
                if not page_token:
                    break
                params["pageToken"] = page_token

        except (requests.RequestException, ValueError) as e:
            # ValueError: non-JSON body or unparseable event time
            raise CalendarReadError(f"Failed to list Google events: {e}") from e

        logger.debug(f"Read {len(events)} events from calendar {calendar_id}")
        return events

    def insert_event(self, credential: str, calendar_id: str, event: EventDraft) -> str:
        try:
            resp = requests.post(
                self._events_url(calendar_id),
                headers=self._headers(credential),
                json=event.to_api(self.config.event_timezone),
                timeout=self.config.request_timeout,
            )
            self._check_auth(resp, credential)
            if resp.status_code not in (200, 201):
                raise ExternalSyncError(
                    f"Failed to create Google event ({resp.status_code}): {resp.text[:200]}"
                )
            event_id = resp.json().get("id", "")
        except (requests.RequestException, ValueError) as e:
            raise ExternalSyncError(f"Failed to create Google event: {e}") from e

        if not event_id:
            raise ExternalSyncError("Google did not return an event id")
        logger.info(f"Created event: {event.summary}")
        return event_id

    def update_event(
        self,
        credential: str,
        calendar_id: str,
        event_id: str,
        event: EventDraft,
    ) -> str:
        try:
            resp = requests.patch(
                self._events_url(calendar_id, event_id),
                headers=self._headers(credential),
                json=event.to_api(self.config.event_timezone),
                timeout=self.config.request_timeout,
            )
            self._check_auth(resp, credential)
            if resp.status_code != 200:
                raise ExternalSyncError(
                    f"Failed to update Google event {event_id} ({resp.status_code})"
                )
            updated_id = resp.json().get("id", event_id)
        except (requests.RequestException, ValueError) as e:
            raise ExternalSyncError(f"Failed to update Google event {event_id}: {e}") from e

        logger.info(f"Updated event: {event_id}")
        return updated_id

    def delete_event(self, credential: str, calendar_id: str, event_id: str) -> None:
        try:
            resp = requests.delete(
                self._events_url(calendar_id, event_id),
                headers=self._headers(credential),
                timeout=self.config.request_timeout,
            )
            self._check_auth(resp, credential)
            # 410 Gone: already deleted on the Google side
            if resp.status_code not in (200, 204, 410):
                raise ExternalSyncError(
                    f"Failed to delete Google event {event_id} ({resp.status_code})"
                )
        except requests.RequestException as e:
            raise ExternalSyncError(f"Failed to delete Google event {event_id}: {e}") from e

        logger.info(f"Deleted event: {event_id}")

    def exchange_authorization_code(self, code: str) -> OAuthTokens:
        return self.auth_provider.exchange_code(code)

    def get_authorization_url(self, state: str) -> str:
        return self.auth_provider.get_authorization_url(state)
