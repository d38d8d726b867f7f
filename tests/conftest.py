import os
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment variables before importing app modules
os.environ.setdefault("JWT_SECRET", "test-secret-key-for-testing-only")
os.environ.setdefault("BACKEND_URL", "http://localhost:4000")
os.environ.setdefault("BACKEND_API_KEY", "test-api-key")
os.environ.setdefault("BACKEND_OUTPUTS_PATH", "does-not-exist.json")

from notes_app.backend_gateway.client import BackendClient, SessionUser  # noqa: E402
from notes_app.backend_gateway.data import DataService  # noqa: E402
from notes_app.backend_gateway.storage import StorageService  # noqa: E402
from notes_app.services.note_list_controller import NoteListController  # noqa: E402


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
def backend_client() -> BackendClient:
    """Provide a signed-out BackendClient pointed at a fake backend."""
    return BackendClient(url="http://localhost:4000", api_key="test-api-key")


@pytest.fixture
def mock_client() -> AsyncMock:
    """Provide a mocked BackendClient whose ``.request()`` is an AsyncMock."""
    client = AsyncMock(spec=BackendClient)
    client.is_authenticated = True
    return client


@pytest.fixture
def data_service() -> AsyncMock:
    data = AsyncMock(spec=DataService)
    data.list_notes.return_value = []
    return data


@pytest.fixture
def storage_service() -> AsyncMock:
    storage = AsyncMock(spec=StorageService)
    storage.build_key = MagicMock(return_value="notes/1111-cat.png")
    storage.get_url.side_effect = lambda key: f"https://cdn.test/{key}?sig=abc"
    return storage


@pytest.fixture
def controller(data_service: AsyncMock, storage_service: AsyncMock) -> NoteListController:
    return NoteListController(data_service, storage_service)


@pytest.fixture
def session_user() -> SessionUser:
    return SessionUser(user_id="u-1", username="alice")
