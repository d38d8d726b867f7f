"""Authentication API endpoints.

- POST /auth/login   -- Sign in against the backend, returns a session JWT
- POST /auth/logout  -- Sign out and drop the server-side session
- GET  /auth/me      -- Current-session query (requires auth)
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from pydantic import BaseModel

from notes_app.backend_gateway.client import BackendApiError, BackendAuthError
from notes_app.services.auth_service import create_access_token, get_current_session
from notes_app.services.session_registry import SessionRegistry, UserSession, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Request / Response schemas
# ---------------------------------------------------------------------------


class LoginRequest(BaseModel):
    username: str
    password: str


class UserResponse(BaseModel):
    user_id: str
    username: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    registry: SessionRegistry = Depends(get_session_registry),  # noqa: B008
) -> TokenResponse:
    """Sign in with the backend's Auth API and open a session."""
    try:
        session = await registry.open(request.username, request.password)
    except BackendAuthError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except BackendApiError as exc:
        logger.error("Backend sign-in error: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Backend error: {exc.message}",
        ) from None

    access_token = create_access_token(data={"sub": session.user.username, "sid": session.session_id})
    return TokenResponse(
        access_token=access_token,
        user=UserResponse(user_id=session.user.user_id, username=session.user.username),
    )


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    session: UserSession = Depends(get_current_session),  # noqa: B008
    registry: SessionRegistry = Depends(get_session_registry),  # noqa: B008
) -> Response:
    await registry.close(session.session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserResponse)
async def me(
    session: UserSession = Depends(get_current_session),  # noqa: B008
) -> UserResponse:
    """Ask the backend who is signed in on this session."""
    user = await session.auth.current_session()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return UserResponse(user_id=user.user_id, username=user.username)
