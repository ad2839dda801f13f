"""OAuth2 authentication for Google Calendar."""

import logging
import threading
from datetime import datetime, timedelta
from typing import Optional
from urllib.parse import urlencode

import pytz
import requests

from ..config import GoogleCalendarConfig
from ..models.event import OAuthTokens
from ..utils.exceptions import ConfigurationError, ExternalCredentialError
from .base import AuthProvider

logger = logging.getLogger(__name__)

# Refresh access tokens this long before Google expires them
EXPIRY_MARGIN = timedelta(minutes=5)


class GoogleAuthProvider(AuthProvider):
    """Google OAuth2 provider using the token endpoint directly."""

    def __init__(self, config: GoogleCalendarConfig):
        """
        Initialize Google authentication provider.

        Args:
            config: Google Calendar configuration
        """
        self.config = config
        self._lock = threading.Lock()
        # refresh token -> (access token, expiry)
        self._access_tokens: dict[str, tuple[str, datetime]] = {}

    def _require_client(self) -> None:
        if not self.config.client_id or not self.config.client_secret:
            raise ConfigurationError(
                "GOOGLE_CLIENT_ID and GOOGLE_CLIENT_SECRET are required for Google Calendar"
            )

    def get_authorization_url(self, state: str) -> str:
        self._require_client()
        params = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri or "",
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "access_type": "offline",
            "prompt": "consent",
            "state": state,
        }
        return f"{self.config.auth_url}?{urlencode(params)}"

    def _token_request(self, data: dict[str, str]) -> dict:
        self._require_client()
        payload = {
            "client_id": self.config.client_id or "",
            "client_secret": self.config.client_secret or "",
            **data,
        }
        try:
            resp = requests.post(
                self.config.token_url, data=payload, timeout=self.config.request_timeout
            )
        except requests.RequestException as e:
            raise ExternalCredentialError(f"Token request failed: {e}") from e

        if resp.status_code != 200:
            raise ExternalCredentialError(
                f"Token request rejected ({resp.status_code}): {resp.text[:200]}"
            )
        try:
            return resp.json()
        except ValueError as e:
            raise ExternalCredentialError(f"Token response was not JSON: {e}") from e

    def exchange_code(self, code: str) -> OAuthTokens:
        tokens = self._token_request(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": self.config.redirect_uri or "",
            }
        )
        if not tokens.get("access_token"):
            raise ExternalCredentialError("No access token in authorization response")

        logger.info(
            f"Authorization code exchanged (refresh token: {'yes' if tokens.get('refresh_token') else 'no'})"
        )
        return OAuthTokens(
            access_token=tokens["access_token"],
            refresh_token=tokens.get("refresh_token"),
            expires_in=tokens.get("expires_in", 3600),
        )

    def _cached(self, refresh_token: str) -> Optional[str]:
        with self._lock:
            entry = self._access_tokens.get(refresh_token)
        if entry and entry[1] > datetime.now(pytz.utc) + EXPIRY_MARGIN:
            return entry[0]
        return None

    def get_access_token(self, refresh_token: str) -> str:
        token = self._cached(refresh_token)
        if token:
            logger.debug("Access token served from cache")
            return token

        logger.info("Refreshing Google Calendar access token")
        tokens = self._token_request(
            {"refresh_token": refresh_token, "grant_type": "refresh_token"}
        )
        access_token = tokens.get("access_token")
        if not access_token:
            raise ExternalCredentialError("No access token in refresh response")

        expires_at = datetime.now(pytz.utc) + timedelta(seconds=tokens.get("expires_in", 3600))
        with self._lock:
            self._access_tokens[refresh_token] = (access_token, expires_at)
        return access_token

    def forget(self, refresh_token: str) -> None:
        with self._lock:
            self._access_tokens.pop(refresh_token, None)
