"""Abstract base class for authentication providers."""

from abc import ABC, abstractmethod

from ..models.event import OAuthTokens


class AuthProvider(ABC):
    """Abstract base class for external calendar authentication providers."""

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """
        Build the consent URL an owner visits to connect their calendar.

        Args:
            state: Opaque value echoed back to the callback

        Returns:
            Authorization URL
        """

    @abstractmethod
    def exchange_code(self, code: str) -> OAuthTokens:
        """
        Exchange an authorization code for tokens.

        Raises:
            ExternalCredentialError: If the exchange is rejected
        """

    @abstractmethod
    def get_access_token(self, refresh_token: str) -> str:
        """
        Get a valid access token for a stored refresh credential.

        Raises:
            ExternalCredentialError: If the credential is invalid or expired
        """

    @abstractmethod
    def forget(self, refresh_token: str) -> None:
        """Drop any cached access token for a credential the provider rejected."""
