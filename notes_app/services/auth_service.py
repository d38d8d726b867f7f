"""JWT session tokens for the Notes App.

The backend's own tokens never leave the server.  The browser gets a
short-lived access token that names the user (``sub``) and the server
side session (``sid``); :func:`get_current_session` resolves it back to
the :class:`~notes_app.services.session_registry.UserSession`.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from notes_app.config import Settings, get_settings
from notes_app.services.session_registry import SessionRegistry, UserSession, get_session_registry

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=True)


def create_access_token(
    data: dict,
    expires_delta: timedelta | None = None,
    *,
    settings: Settings | None = None,
) -> str:
    """Create a JWT access token.

    Args:
        data: Claims to encode (``sub`` and ``sid``).
        expires_delta: Custom expiration timedelta. Falls back to config default.
        settings: Optional settings override (useful for testing).

    Returns:
        Encoded JWT string.
    """
    if settings is None:
        settings = get_settings()

    to_encode = data.copy()
    expire = datetime.now(UTC) + (
        expires_delta
        if expires_delta is not None
        else timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})

    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(
    token: str,
    *,
    settings: Settings | None = None,
) -> dict:
    """Decode and verify a JWT token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered with.
    """
    if settings is None:
        settings = get_settings()

    return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])


async def get_current_session(
    token: str = Depends(oauth2_scheme),
    registry: SessionRegistry = Depends(get_session_registry),  # noqa: B008
) -> UserSession:
    """FastAPI dependency that resolves the bearer token to a live session."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = verify_token(token)
    except JWTError:
        raise credentials_exception from None

    if payload.get("type") != "access":
        raise credentials_exception

    session_id = payload.get("sid")
    if not session_id:
        raise credentials_exception

    session = registry.get(session_id)
    if session is None:
        logger.info("Token for unknown or closed session (sub=%s)", payload.get("sub"))
        raise credentials_exception

    return session
