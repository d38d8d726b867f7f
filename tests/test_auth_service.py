"""Tests for JWT session tokens and the current-session dependency."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException
from jose import JWTError

from notes_app.config import Settings
from notes_app.services.auth_service import create_access_token, get_current_session, verify_token
from notes_app.services.session_registry import SessionRegistry


@pytest.fixture
def registry() -> MagicMock:
    registry = MagicMock(spec=SessionRegistry)
    registry.get.return_value = None
    return registry


class TestTokens:
    def test_round_trip(self):
        token = create_access_token({"sub": "alice", "sid": "s-1"})

        payload = verify_token(token)

        assert payload["sub"] == "alice"
        assert payload["sid"] == "s-1"
        assert payload["type"] == "access"
        assert "exp" in payload

    def test_expired_token_rejected(self):
        token = create_access_token({"sub": "alice", "sid": "s-1"}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(JWTError):
            verify_token(token)

    def test_wrong_secret_rejected(self):
        other = Settings(JWT_SECRET="another-secret")
        token = create_access_token({"sub": "alice", "sid": "s-1"}, settings=other)

        with pytest.raises(JWTError):
            verify_token(token)


class TestGetCurrentSession:
    @pytest.mark.asyncio
    async def test_resolves_live_session(self, registry):
        session = MagicMock()
        registry.get.return_value = session
        token = create_access_token({"sub": "alice", "sid": "s-1"})

        result = await get_current_session(token=token, registry=registry)

        assert result is session
        registry.get.assert_called_once_with("s-1")

    @pytest.mark.asyncio
    async def test_unknown_session_is_401(self, registry):
        token = create_access_token({"sub": "alice", "sid": "closed"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_session(token=token, registry=registry)

        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_token_without_sid_is_401(self, registry):
        token = create_access_token({"sub": "alice"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_session(token=token, registry=registry)

        assert exc_info.value.status_code == 401
        registry.get.assert_not_called()

    @pytest.mark.asyncio
    async def test_garbage_token_is_401(self, registry):
        with pytest.raises(HTTPException) as exc_info:
            await get_current_session(token="not-a-jwt", registry=registry)

        assert exc_info.value.status_code == 401
