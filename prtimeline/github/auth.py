"""Credentials attached to GitHub requests."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from .exceptions import GitHubAuthenticationError


@dataclass(frozen=True)
class AuthToken:
    """A credential and the scheme it is presented with."""

    token: str
    scheme: str = "Bearer"

    @property
    def is_anonymous(self) -> bool:
        """Check whether this token carries no credential."""
        return not self.token

    def to_header(self) -> dict[str, str]:
        """Build the ``Authorization`` header, empty for anonymous access."""
        if self.is_anonymous:
            return {}
        return {"Authorization": f"{self.scheme} {self.token}"}


ANONYMOUS_TOKEN = AuthToken(token="")


class AuthProvider(ABC):
    """Source of the credential sent with every request."""

    @abstractmethod
    async def get_token(self) -> AuthToken:
        """Return the credential for the next request."""
        pass


class PersonalAccessTokenAuth(AuthProvider):
    """Fixed personal access token, classic or fine-grained."""

    def __init__(self, token: str):
        """Initialize token authentication.

        Raises:
            GitHubAuthenticationError: If the token is blank
        """
        token = token.strip()
        if not token:
            raise GitHubAuthenticationError("Personal access token must not be empty")
        self._token = AuthToken(token=token)

    async def get_token(self) -> AuthToken:
        return self._token


class AnonymousAuth(AuthProvider):
    """No credentials. Public repositories only, with a much lower rate limit."""

    async def get_token(self) -> AuthToken:
        return ANONYMOUS_TOKEN
