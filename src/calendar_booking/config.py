"""Configuration management for the booking engine."""

from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .utils.exceptions import ConfigurationError


class GoogleCalendarConfig(BaseSettings):
    """Google Calendar configuration."""

    client_id: Optional[str] = Field(None, validation_alias="GOOGLE_CLIENT_ID")
    client_secret: Optional[str] = Field(None, validation_alias="GOOGLE_CLIENT_SECRET")
    redirect_uri: Optional[str] = Field(None, validation_alias="GOOGLE_REDIRECT_URI")

    api_base: str = Field(
        default="https://www.googleapis.com/calendar/v3",
        validation_alias="GOOGLE_CALENDAR_API",
    )
    token_url: str = Field(
        default="https://oauth2.googleapis.com/token",
        validation_alias="GOOGLE_TOKEN_URL",
    )
    auth_url: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        validation_alias="GOOGLE_AUTH_URL",
    )
    scopes: list[str] = Field(
        default=[
            "https://www.googleapis.com/auth/calendar.readonly",
            "https://www.googleapis.com/auth/calendar.events",
        ]
    )

    # Calendar reference stored on an owner when they connect
    default_calendar_id: str = Field(default="primary", validation_alias="GOOGLE_CALENDAR_ID")
    event_timezone: str = Field(default="UTC", validation_alias="GOOGLE_EVENT_TIMEZONE")
    event_description: str = Field(
        default="Created by Booking System", validation_alias="GOOGLE_EVENT_DESCRIPTION"
    )
    request_timeout: float = Field(default=10.0, validation_alias="GOOGLE_REQUEST_TIMEOUT")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        env_parse_none_str="",  # Treat empty string as None
        populate_by_name=True,
    )


class AppConfig(BaseSettings):
    """Application configuration."""

    google: GoogleCalendarConfig = Field(default_factory=GoogleCalendarConfig)

    database_url: Optional[str] = Field(
        default="sqlite:///bookings.db", validation_alias="DATABASE_URL"
    )

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: Optional[Path] = Field(default=None, validation_alias="LOG_FILE")

    # Booking settings
    upcoming_limit: int = Field(default=5, validation_alias="UPCOMING_LIMIT")
    default_owner_name: str = Field(default="User", validation_alias="DEFAULT_OWNER_NAME")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )


def load_config(config_path: Path = Path("booking_config.yaml")) -> AppConfig:
    """
    Build the application configuration.

    Values come from the environment (and ``.env``), then any keys present in
    the YAML file override them.

    Args:
        config_path: Optional YAML override file

    Returns:
        AppConfig instance

    Raises:
        ConfigurationError: If the YAML file cannot be parsed
    """
    load_dotenv()

    if not config_path.exists():
        return AppConfig()

    try:
        with open(config_path) as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e

    # Keyword arguments take precedence over environment values
    google = GoogleCalendarConfig(**(data.pop("google", None) or {}))
    return AppConfig(google=google, **data)
