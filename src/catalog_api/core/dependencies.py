"""FastAPI dependency injection for database sessions, caller privilege and collaborators.

Provides get_async_session, caller classification from an optional bearer
token, the privileged-caller guard for writes, and accessors for the link
rewriter and downstream notifier built by the app factory.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from catalog_api.core.config import Settings, get_settings
from catalog_api.core.database import get_session_factory
from catalog_api.core.errors import ValidationFailedError
from catalog_api.core.security import decode_token, is_privileged
from catalog_api.lib.downstream import DownstreamNotifier
from catalog_api.lib.links import LinkRewriter

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_caller(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict | None:
    """Decode the caller's bearer token, if one was presented.

    Returns:
        The token claims, or None for an anonymous caller.

    Raises:
        HTTPException: If a token was presented but is invalid or expired.
    """
    if token is None:
        return None
    try:
        return decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
    except jwt.InvalidTokenError as exc:
        logger.info("Rejected bearer token: {}", exc)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from exc


async def get_privileged(caller: Annotated[dict | None, Depends(get_caller)]) -> bool:
    """Whether the caller may see unpublished documents."""
    return caller is not None and is_privileged(caller)


async def require_privileged(caller: Annotated[dict | None, Depends(get_caller)]) -> dict:
    """Guard for write endpoints: a publisher or admin token is required.

    Raises:
        HTTPException: 401 without a token, 403 for a non-privileged role.
    """
    if caller is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not is_privileged(caller):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Role '{caller.get('role')}' does not have access to this resource",
        )
    return caller


def require_if_match(if_match: Annotated[str | None, Header(alias="If-Match")] = None) -> str:
    """Concurrency token required on draft edits.

    Raises:
        ValidationFailedError: If the header is missing.
    """
    if not if_match:
        raise ValidationFailedError("required header If-Match missing")
    return if_match


def optional_if_match(if_match: Annotated[str | None, Header(alias="If-Match")] = None) -> str | None:
    return if_match or None


def get_link_rewriter(request: Request) -> LinkRewriter:
    """Link rewriter built by the app factory."""
    rewriter: LinkRewriter = request.app.state.link_rewriter
    return rewriter


def get_notifier(request: Request) -> DownstreamNotifier | None:
    """Downstream notifier started by the lifespan, if any."""
    return getattr(request.app.state, "notifier", None)
