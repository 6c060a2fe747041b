"""
Identity provider interface.

Sign-in itself happens outside this package. The core only asks who the
uploader is and, for the drive copy, for an HTTP client that carries the
user's drive credential.
"""

from abc import ABC, abstractmethod

import httpx

from study_buddy.core.models import Identity


class BaseIdentityProvider(ABC):
    """Interface that every identity provider must implement."""

    @abstractmethod
    async def current_identity(self) -> Identity | None:
        """Return the signed-in uploader, or None when signed out."""

    @abstractmethod
    async def authenticated_client(self) -> httpx.AsyncClient | None:
        """Return a drive-authorized client.

        None is a legitimate answer (silent sign-in declined) and means the
        drive copy is skipped, not that the upload failed.
        """


class StaticIdentityProvider(BaseIdentityProvider):
    """Identity handed in by the host app after it completed sign-in.

    Args:
        identity: The signed-in user, or None.
        drive_token: OAuth access token with the ``drive.file`` scope.
        timeout: Timeout applied to the drive client.
    """

    def __init__(
        self,
        identity: Identity | None = None,
        drive_token: str | None = None,
        timeout: float = 60.0,
    ) -> None:
        self._identity = identity
        self._drive_token = drive_token
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def current_identity(self) -> Identity | None:
        return self._identity

    async def authenticated_client(self) -> httpx.AsyncClient | None:
        if self._identity is None or not self._drive_token:
            return None
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers={"Authorization": f"Bearer {self._drive_token}"},
                timeout=self._timeout,
            )
        return self._client

    async def aclose(self) -> None:
        """Close the drive client. A later call builds a fresh one."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def sign_out(self) -> None:
        """Forget the user and revoke access to the drive client."""
        self._identity = None
        self._drive_token = None
        await self.aclose()
