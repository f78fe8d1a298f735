"""Integration test fixtures for Voice Notes.

Provides an async HTTP client that uses an in-memory SQLite database with
real repository operations, and a batch orchestrator wired to mocked
speech-to-text and annotation providers.
"""

import pytest
from httpx import ASGITransport, AsyncClient

from voicenotes.api.app import create_app
from voicenotes.services import orchestrator
from voicenotes.services.auth import CredentialStore
from voicenotes.services.events import ProgressBroadcaster
from voicenotes.services.orchestrator import BatchOrchestrator


@pytest.fixture
def app():
    """Create a fresh FastAPI application instance."""
    return create_app()


@pytest.fixture
async def async_client(app, test_db):
    """AsyncClient backed by the in-memory test engine."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def broadcaster():
    return ProgressBroadcaster()


@pytest.fixture(autouse=True)
async def batch_runner(test_settings, mock_stt, mock_publisher, broadcaster):
    """Install a process-wide orchestrator that uses the mocked providers."""
    runner = BatchOrchestrator(
        stt=mock_stt,
        publisher=mock_publisher,
        credentials=CredentialStore(provider="osm"),
        broadcaster=broadcaster,
        settings=test_settings,
    )
    orchestrator._orchestrator = runner
    orchestrator._active_task = None
    orchestrator._active_recording_id = None
    yield runner
    await orchestrator.cancel_batch()
    orchestrator._orchestrator = None
    orchestrator._active_task = None
    orchestrator._active_recording_id = None
