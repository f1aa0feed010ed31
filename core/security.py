"""
Security utilities for bearer credential handling.

Signature verification belongs to the identity provider; the helpers here
only parse what the caller sent so that obviously bad credentials are
rejected before any network call.
"""

from datetime import datetime, timezone
from typing import Optional

from jose import jwt, JWTError

from .exceptions import AuthenticationError


def extract_token_from_header(authorization: Optional[str]) -> Optional[str]:
    """
    Extract the token from an Authorization header.

    Supports "Bearer <token>" format.

    Args:
        authorization: Authorization header value

    Returns:
        Token string or None if not present/invalid format
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def read_token_expiry(
    token: str,
    now: Optional[datetime] = None,
) -> Optional[datetime]:
    """
    Read the ``exp`` claim of a JWT credential without trusting it.

    Opaque (non-JWT) credentials have no readable expiry and return None;
    the identity provider decides whether they are valid.

    Raises:
        AuthenticationError: If the token looks like a JWT but cannot be
            decoded, or if it has already expired
    """
    if token.count(".") != 2:
        return None

    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as e:
        raise AuthenticationError(
            message="Malformed credential",
            details={"error": str(e)},
        )

    exp = claims.get("exp")
    if exp is None:
        return None

    try:
        expiry = datetime.fromtimestamp(int(exp), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError):
        raise AuthenticationError(message="Malformed credential expiry")

    if expiry <= (now or datetime.now(timezone.utc)):
        raise AuthenticationError(message="Credential has expired")

    return expiry
