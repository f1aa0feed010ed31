"""
Central authentication module.

Identity is always derived server-side: the bearer credential is exchanged
with the identity provider and the provider's answer is the only source of
the user id. Anything the client sends about who it is gets ignored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

import httpx
from fastapi import Header

from .config import get_settings
from .exceptions import AuthenticationError, ConfigurationError
from .security import extract_token_from_header, read_token_expiry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerifiedIdentity:
    """Caller identity, verified by the identity provider for one request."""

    user_id: str
    token_expiry: datetime | None = None
    email: str | None = None


class IdentityResolver:
    """Exchanges a bearer credential for a VerifiedIdentity."""

    USER_PATH = "/auth/v1/user"

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def resolve(self, credential: str | None) -> VerifiedIdentity:
        """
        Verify a raw credential with the identity provider.

        Raises:
            AuthenticationError: If the credential is missing, malformed,
                expired or rejected by the provider
        """
        if not credential:
            raise AuthenticationError(message="Missing authorization credential")

        expiry = read_token_expiry(credential)

        headers = {"Authorization": f"Bearer {credential}"}
        if self._api_key:
            headers["apikey"] = self._api_key

        client = await self._get_client()
        try:
            response = await client.get(self.USER_PATH, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Identity provider unreachable: {e}")
            raise AuthenticationError(message="Unable to verify credential")

        if response.status_code != 200:
            raise AuthenticationError(message="Invalid or expired credential")

        try:
            payload = response.json()
        except ValueError:
            raise AuthenticationError(message="Unable to verify credential")

        user_id = payload.get("id") if isinstance(payload, dict) else None
        if not user_id:
            raise AuthenticationError(message="Unable to verify credential")

        return VerifiedIdentity(
            user_id=str(user_id),
            token_expiry=expiry,
            email=payload.get("email"),
        )


# ============ Singleton IdentityResolver ============

_resolver: IdentityResolver | None = None


def get_identity_resolver() -> IdentityResolver:
    """Get or create the IdentityResolver singleton."""
    global _resolver
    if _resolver is None:
        settings = get_settings()
        if not settings.identity_url:
            raise ConfigurationError(message="Identity provider is not configured")
        _resolver = IdentityResolver(
            base_url=settings.identity_url,
            api_key=settings.identity_anon_key,
            timeout=settings.identity_timeout,
        )
    return _resolver


async def close_identity_resolver() -> None:
    """Release the resolver's HTTP client (application shutdown)."""
    global _resolver
    if _resolver is not None:
        await _resolver.close()
        _resolver = None


# ============ FastAPI Dependencies ============


async def require_identity(authorization: str | None = Header(None)) -> VerifiedIdentity:
    """
    Require an authenticated caller.

    Raises 401 if the Authorization header is missing, not a Bearer
    credential, or rejected by the identity provider.
    """
    token = extract_token_from_header(authorization)
    if not token:
        raise AuthenticationError(message="Authentication required")
    return await get_identity_resolver().resolve(token)
