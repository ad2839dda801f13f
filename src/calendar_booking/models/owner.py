"""Owner data models."""

from typing import Optional

from pydantic import BaseModel, Field


class Owner(BaseModel):
    """Internal owner record resolved from an identity provider subject."""

    id: str
    external_identity_id: str
    email: str
    name: Optional[str] = None
    picture: Optional[str] = None

    # External calendar connection (refresh credential + calendar reference)
    external_calendar_credential: Optional[str] = Field(default=None, exclude=True, repr=False)
    external_calendar_id: Optional[str] = None

    @property
    def calendar_connected(self) -> bool:
        return bool(self.external_calendar_credential)

