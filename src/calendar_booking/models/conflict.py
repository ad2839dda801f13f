"""Conflict check result model."""

from pydantic import BaseModel, Field

from .booking import Booking


class ConflictReport(BaseModel):
    """Outcome of checking a candidate interval for one owner."""

    conflicts: list[Booking] = Field(default_factory=list)
    external_conflict: bool = False
    # False when no calendar is connected or the external lookup failed
    external_checked: bool = False

    @property
    def local_conflict(self) -> bool:
        return len(self.conflicts) > 0

    @property
    def has_conflicts(self) -> bool:
        return self.local_conflict or self.external_conflict
