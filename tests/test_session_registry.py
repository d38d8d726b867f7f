"""Tests for the in-memory session registry."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from notes_app.backend_gateway.client import BackendAuthError, BackendClient, SessionUser
from notes_app.services.note_list_controller import NoteListController
from notes_app.services.session_registry import SessionRegistry, get_session_registry


@pytest.fixture
def fake_client() -> AsyncMock:
    client = AsyncMock(spec=BackendClient)
    client.sign_in.return_value = SessionUser(user_id="u-1", username="alice")
    return client


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


class TestOpen:
    @pytest.mark.asyncio
    async def test_open_signs_in_and_registers(self, registry, fake_client):
        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            session = await registry.open("alice", "pw")

        fake_client.sign_in.assert_awaited_once_with("alice", "pw")
        assert session.user.username == "alice"
        assert isinstance(session.controller, NoteListController)
        assert session.controller.mounted is False
        assert registry.get(session.session_id) is session
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_session_ids_are_unique(self, registry, fake_client):
        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            first = await registry.open("alice", "pw")
            second = await registry.open("alice", "pw")

        assert first.session_id != second.session_id
        assert first.controller is not second.controller

    @pytest.mark.asyncio
    async def test_failed_sign_in_closes_client(self, registry, fake_client):
        fake_client.sign_in.side_effect = BackendAuthError("NotAuthorized")

        with (
            patch("notes_app.services.session_registry.create_client", return_value=fake_client),
            pytest.raises(BackendAuthError),
        ):
            await registry.open("alice", "bad")

        fake_client.close.assert_awaited_once()
        assert len(registry) == 0


class TestClose:
    @pytest.mark.asyncio
    async def test_close_signs_out_and_forgets(self, registry, fake_client):
        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            session = await registry.open("alice", "pw")

        await registry.close(session.session_id)

        fake_client.sign_out.assert_awaited_once()
        fake_client.close.assert_awaited_once()
        assert registry.get(session.session_id) is None

    @pytest.mark.asyncio
    async def test_close_unknown_is_noop(self, registry):
        await registry.close("nope")

    @pytest.mark.asyncio
    async def test_close_all_survives_sign_out_errors(self, registry, fake_client):
        fake_client.sign_out.side_effect = RuntimeError("network down")

        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            await registry.open("alice", "pw")
            await registry.open("bob", "pw")

        await registry.close_all()

        assert len(registry) == 0
        assert fake_client.close.await_count == 2


class TestExpiry:
    @pytest.mark.asyncio
    async def test_session_expires_with_token_lifetime(self, registry, fake_client):
        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            session = await registry.open("alice", "pw")

        assert session.expires_at is not None
        assert session.expires_at > datetime.now(UTC)

    @pytest.mark.asyncio
    async def test_expired_session_is_not_returned(self, registry, fake_client):
        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            session = await registry.open("alice", "pw")

        session.expires_at = datetime.now(UTC) - timedelta(seconds=1)

        assert registry.get(session.session_id) is None

    @pytest.mark.asyncio
    async def test_next_sign_in_closes_expired_sessions(self, registry):
        stale_client = AsyncMock(spec=BackendClient)
        stale_client.sign_in.return_value = SessionUser(user_id="u-1", username="alice")
        live_client = AsyncMock(spec=BackendClient)
        live_client.sign_in.return_value = SessionUser(user_id="u-2", username="bob")

        with patch(
            "notes_app.services.session_registry.create_client",
            side_effect=[stale_client, live_client],
        ):
            stale = await registry.open("alice", "pw")
            stale.expires_at = datetime.now(UTC) - timedelta(seconds=1)
            live = await registry.open("bob", "pw")

        stale_client.sign_out.assert_awaited_once()
        stale_client.close.assert_awaited_once()
        live_client.close.assert_not_called()
        assert len(registry) == 1
        assert registry.get(live.session_id) is live

    @pytest.mark.asyncio
    async def test_evict_expired_with_zero_ttl(self, fake_client):
        registry = SessionRegistry(ttl=timedelta(0))

        with patch("notes_app.services.session_registry.create_client", return_value=fake_client):
            await registry.open("alice", "pw")

        assert await registry.evict_expired() == 1
        assert len(registry) == 0
        fake_client.close.assert_awaited_once()


def test_registry_is_process_singleton():
    assert get_session_registry() is get_session_registry()
