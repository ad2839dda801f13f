"""Booking data models."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from ..utils.intervals import ensure_utc


class Booking(BaseModel):
    """A confirmed, time-boxed booking owned by a single owner."""

    id: str
    owner_id: str
    title: str

    # Half-open interval [start_time, end_time), always UTC
    start_time: datetime
    end_time: datetime

    # Mirrored event in the owner's external calendar
    external_event_id: Optional[str] = None

    created_at: datetime
    updated_at: datetime

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class BookingCreate(BaseModel):
    """Fields supplied when creating a booking."""

    title: str
    start_time: datetime
    end_time: datetime

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class BookingUpdate(BaseModel):
    """Partial update of a booking; unset fields keep their stored value."""

    title: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_validator("start_time", "end_time")
    @classmethod
    def _normalize(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None
