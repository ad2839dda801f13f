"""Abstract base class for external calendar collaborators."""

from abc import ABC, abstractmethod
from datetime import datetime

from ..models.event import EventDraft, ExternalEvent, OAuthTokens


class CalendarPort(ABC):
    """Operations the booking engine needs from an owner's external calendar.

    Every call receives the owner's stored refresh credential; implementations
    never look the owner up themselves.
    """

    @abstractmethod
    def list_events(
        self,
        credential: str,
        calendar_id: str,
        time_min: datetime,
        time_max: datetime,
    ) -> list[ExternalEvent]:
        """
        List events intersecting a time window.

        Raises:
            ExternalCredentialError: If the credential is rejected
            CalendarReadError: If listing events fails
        """

    @abstractmethod
    def insert_event(self, credential: str, calendar_id: str, event: EventDraft) -> str:
        """
        Create a new event.

        Returns:
            Created event ID

        Raises:
            ExternalSyncError: If event creation fails
        """

    @abstractmethod
    def update_event(
        self,
        credential: str,
        calendar_id: str,
        event_id: str,
        event: EventDraft,
    ) -> str:
        """
        Update an existing event.

        Raises:
            ExternalSyncError: If event update fails
        """

    @abstractmethod
    def delete_event(self, credential: str, calendar_id: str, event_id: str) -> None:
        """
        Delete an event.

        Raises:
            ExternalSyncError: If event deletion fails
        """

    @abstractmethod
    def exchange_authorization_code(self, code: str) -> OAuthTokens:
        """
        Exchange a consent code for access and refresh credentials.

        Raises:
            ExternalCredentialError: If the exchange fails
        """

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """Build the consent URL for connecting a calendar."""
