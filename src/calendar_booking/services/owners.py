"""Owner resolution and external calendar connection."""

import logging
from datetime import datetime
from typing import Any, Optional

from ..calendars.base import CalendarPort
from ..models.event import ExternalEvent
from ..models.owner import Owner
from ..store.base import BookingStore
from ..utils.exceptions import (
    ConfigurationError,
    ExternalCalendarError,
    ExternalCredentialError,
    MissingEmailError,
    OwnerNotFoundError,
)

logger = logging.getLogger(__name__)


class OwnerService:
    """Map identity provider subjects to owners and manage their calendar link."""

    def __init__(
        self,
        store: BookingStore,
        calendar: Optional[CalendarPort] = None,
        default_calendar_id: str = "primary",
        default_name: str = "User",
    ):
        self.store = store
        self.calendar = calendar
        self.default_calendar_id = default_calendar_id
        self.default_name = default_name

    def _require_calendar(self) -> CalendarPort:
        if self.calendar is None:
            raise ConfigurationError("No external calendar is configured")
        return self.calendar

    def find(self, external_identity_id: str) -> Optional[Owner]:
        return self.store.find_owner_by_external_identity(external_identity_id)

    def get(self, external_identity_id: str) -> Owner:
        owner = self.find(external_identity_id)
        if owner is None:
            raise OwnerNotFoundError("Owner not found")
        return owner

    def resolve_or_create(
        self,
        external_identity_id: str,
        email: Optional[str],
        name: Optional[str] = None,
        picture: Optional[str] = None,
    ) -> Owner:
        """
        Return the owner for an identity, creating or refreshing it.

        Profile fields of an existing owner are only overwritten by non-empty
        values.

        Raises:
            MissingEmailError: If no email is supplied
        """
        if not email or not email.strip():
            raise MissingEmailError("An email is required to resolve an owner")

        existing = self.find(external_identity_id)
        if existing is None:
            owner = self.store.create_owner(
                {
                    "external_identity_id": external_identity_id,
                    "email": email.strip(),
                    "name": name or self.default_name,
                    "picture": picture or None,
                }
            )
            logger.info(f"Created owner {owner.id}")
            return owner

        updates: dict[str, Any] = {}
        for field_name, value in (("email", email.strip()), ("name", name), ("picture", picture)):
            if value and value != getattr(existing, field_name):
                updates[field_name] = value
        if not updates:
            return existing
        return self.store.update_owner(existing.id, updates)

    def authorization_url(self, external_identity_id: str) -> str:
        """Consent URL whose state carries the identity being connected."""
        return self._require_calendar().get_authorization_url(external_identity_id)

    def connect_calendar(self, external_identity_id: str, code: str) -> Owner:
        """
        Exchange a consent code and store the resulting refresh credential.

        Raises:
            OwnerNotFoundError: If the identity is unknown
            ExternalCredentialError: If the exchange fails or yields no refresh credential
        """
        owner = self.get(external_identity_id)
        tokens = self._require_calendar().exchange_authorization_code(code)
        if not tokens.refresh_token:
            raise ExternalCredentialError(
                "Authorization did not return a refresh token; re-consent is required"
            )

        owner = self.store.update_owner(
            owner.id,
            {
                "external_calendar_credential": tokens.refresh_token,
                "external_calendar_id": self.default_calendar_id,
            },
        )
        logger.info(f"External calendar connected for owner {owner.id}")
        return owner

    def disconnect_calendar(self, external_identity_id: str) -> Owner:
        """Forget the owner's credential and detach bookings from mirrored events."""
        owner = self.get(external_identity_id)
        owner = self.store.update_owner(
            owner.id,
            {"external_calendar_credential": None, "external_calendar_id": None},
        )
        cleared = self.store.clear_external_event_ids(owner.id)
        logger.info(
            f"External calendar disconnected for owner {owner.id} ({cleared} bookings detached)"
        )
        return owner

    def list_external_events(
        self, external_identity_id: str, start: datetime, end: datetime
    ) -> list[ExternalEvent]:
        """The owner's external events in a window; empty when unavailable."""
        owner = self.get(external_identity_id)
        if self.calendar is None or not owner.external_calendar_credential:
            return []
        try:
            return self.calendar.list_events(
                owner.external_calendar_credential,
                owner.external_calendar_id or self.default_calendar_id,
                start,
                end,
            )
        except (ExternalCalendarError, ConfigurationError) as e:
            logger.warning(f"Could not list external events for owner {owner.id}: {e}")
            return []
