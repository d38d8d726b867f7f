"""Process-wide backend configuration.

The managed backend's tooling generates an outputs file describing the
deployed project (API URL, API key, region, storage bucket).  It is
loaded once at startup with :func:`configure`; every per-user
:class:`~notes_app.backend_gateway.client.BackendClient` is then built
from that shared configuration.  There is no teardown.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from notes_app.backend_gateway.client import BackendClient
from notes_app.config import Settings

logger = logging.getLogger(__name__)


class BackendNotConfiguredError(RuntimeError):
    """Raised when the backend is used before :func:`configure`."""

    def __init__(self) -> None:
        super().__init__("Backend outputs have not been configured")


@dataclass(frozen=True)
class BackendOutputs:
    url: str
    api_key: str
    region: str = ""
    storage_bucket: str = ""
    timeout: float = 30.0


_outputs: BackendOutputs | None = None


def load_outputs(settings: Settings) -> BackendOutputs:
    """Build :class:`BackendOutputs` from the outputs file or settings.

    The JSON outputs file (``BACKEND_OUTPUTS_PATH``) wins when it exists;
    otherwise ``BACKEND_URL`` / ``BACKEND_API_KEY`` are used.
    """
    path = Path(settings.BACKEND_OUTPUTS_PATH)
    if path.is_file():
        raw = json.loads(path.read_text(encoding="utf-8"))
        storage = raw.get("storage") or {}
        logger.info("Loaded backend outputs from %s", path)
        return BackendOutputs(
            url=raw.get("url", settings.BACKEND_URL),
            api_key=raw.get("api_key", settings.BACKEND_API_KEY),
            region=raw.get("region", ""),
            storage_bucket=storage.get("bucket", ""),
            timeout=settings.BACKEND_TIMEOUT,
        )

    return BackendOutputs(
        url=settings.BACKEND_URL,
        api_key=settings.BACKEND_API_KEY,
        timeout=settings.BACKEND_TIMEOUT,
    )


def configure(outputs: BackendOutputs, *, force: bool = False) -> BackendOutputs:
    """Install the process-wide backend configuration.

    Only the first call takes effect unless ``force`` is set.
    """
    global _outputs
    if _outputs is not None and not force:
        logger.debug("Backend already configured; ignoring reconfiguration")
        return _outputs
    _outputs = outputs
    logger.info("Backend configured (url=%s, region=%s)", outputs.url, outputs.region or "-")
    return _outputs


def get_outputs() -> BackendOutputs:
    if _outputs is None:
        raise BackendNotConfiguredError()
    return _outputs


def create_client() -> BackendClient:
    """Create a fresh, signed-out client from the configured outputs."""
    outputs = get_outputs()
    return BackendClient(outputs.url, outputs.api_key, timeout=outputs.timeout)
