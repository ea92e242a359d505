"""JWT service-token creation and validation.

Publishing clients authenticate with bearer tokens signed by this service;
the token's ``role`` claim decides whether the caller is privileged.
"""

import enum
from datetime import UTC, datetime, timedelta

import jwt


class CallerRole(enum.StrEnum):
    """Roles recognised in service tokens."""

    ADMIN = "admin"
    PUBLISHER = "publisher"
    VIEWER = "viewer"


PRIVILEGED_ROLES: frozenset[str] = frozenset({CallerRole.ADMIN, CallerRole.PUBLISHER})


def create_access_token(
    subject: str,
    role: str,
    secret_key: str,
    algorithm: str = "HS256",
    expires_minutes: int = 60,
) -> str:
    """Create a JWT access token.

    Args:
        subject: The token subject (service or user name).
        role: The caller's role.
        secret_key: Secret key for signing.
        algorithm: JWT signing algorithm.
        expires_minutes: Token expiration in minutes.

    Returns:
        The encoded JWT string.
    """
    expire = datetime.now(UTC) + timedelta(minutes=expires_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "exp": expire,
        "type": "access",
    }
    return jwt.encode(payload, secret_key, algorithm=algorithm)


def decode_token(
    token: str,
    secret_key: str,
    algorithm: str = "HS256",
) -> dict:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If the token has expired.
        jwt.InvalidTokenError: If the token is invalid.
    """
    return jwt.decode(token, secret_key, algorithms=[algorithm])


def is_privileged(payload: dict) -> bool:
    """Return True when a decoded token grants access to unpublished documents."""
    return payload.get("type") == "access" and payload.get("role") in PRIVILEGED_ROLES
