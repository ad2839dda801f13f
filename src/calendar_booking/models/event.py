"""External calendar event models."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel

from ..utils.intervals import event_time, to_iso


class ExternalEvent(BaseModel):
    """Event as listed by the external calendar.

    ``start``/``end`` are None for all-day events or events without explicit
    timestamps.
    """

    id: str
    summary: Optional[str] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None

    @classmethod
    def from_api(cls, item: dict[str, Any]) -> "ExternalEvent":
        return cls(
            id=item.get("id", ""),
            summary=item.get("summary"),
            start=event_time(item.get("start")),
            end=event_time(item.get("end")),
        )

    @property
    def is_timed(self) -> bool:
        return self.start is not None and self.end is not None


class EventDraft(BaseModel):
    """Event body written to the external calendar for a booking."""

    summary: str
    start: datetime
    end: datetime
    description: Optional[str] = None

    def to_api(self, timezone: str = "UTC") -> dict[str, Any]:
        data: dict[str, Any] = {
            "summary": self.summary,
            "start": {"dateTime": to_iso(self.start), "timeZone": timezone},
            "end": {"dateTime": to_iso(self.end), "timeZone": timezone},
        }
        if self.description:
            data["description"] = self.description
        return data


class OAuthTokens(BaseModel):
    """Tokens returned by an authorization code exchange."""

    access_token: str
    refresh_token: Optional[str] = None
    expires_in: int = 3600
