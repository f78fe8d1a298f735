"""Shared pytest fixtures for the Voice Notes test suite.

Provides common test fixtures used across unit and integration tests,
including mock STT / annotation providers and database setup helpers.
"""

from unittest.mock import AsyncMock

import pytest

from voicenotes.core.config import Settings
from voicenotes.core.models import TranscriptionResult

# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture
def test_settings():
    """Settings with annotation enabled and a short transcription ceiling."""
    return Settings(
        _env_file=None,
        annotation_enabled=True,
        transcription_timeout_seconds=1.0,
        annotation_timeout_seconds=1.0,
    )


# ---------------------------------------------------------------------------
# Provider Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_stt():
    """Create a mock STT provider for unit testing.

    Returns:
        AsyncMock: A mock implementing the BaseSTT interface with a
        default transcribe response.
    """
    from voicenotes.services.transcription.base import BaseSTT

    stt = AsyncMock(spec=BaseSTT)
    stt.transcribe.return_value = TranscriptionResult(
        text="This is a test transcription.",
        language="en",
        confidence=0.95,
    )
    return stt


@pytest.fixture
def mock_publisher():
    """Create a mock annotation publisher that always succeeds."""
    from voicenotes.services.annotation.base import BaseAnnotationPublisher

    publisher = AsyncMock(spec=BaseAnnotationPublisher)
    publisher.publish.return_value = "Note created at 48.8566,2.3522"
    publisher.fetch_display_name.return_value = "mapper"
    return publisher


# ---------------------------------------------------------------------------
# Audio Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def audio_dir(tmp_path):
    """Directory holding fake recording files."""
    directory = tmp_path / "recordings"
    directory.mkdir()
    return directory


@pytest.fixture
def make_audio_file(audio_dir):
    """Factory writing a small fake audio file and returning its path."""

    def _make(name: str = "note.m4a", content: bytes = b"fake-audio") -> str:
        path = audio_dir / name
        path.write_bytes(content)
        return str(path)

    return _make


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite async engine with tables, dispose after test."""
    from sqlalchemy.ext.asyncio import create_async_engine

    from voicenotes.services.storage import models_db  # noqa: F401
    from voicenotes.services.storage.database import Base

    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Yield an AsyncSession bound to the test engine; rolls back after test."""
    from sqlalchemy.ext.asyncio import async_sessionmaker

    factory = async_sessionmaker(db_engine, expire_on_commit=False)
    async with factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def repository(db_session):
    """Return a RecordingRepository bound to the test session."""
    from voicenotes.services.storage.repository import RecordingRepository

    return RecordingRepository(db_session)


@pytest.fixture
def test_db(db_engine):
    """Point ``get_session()`` at the in-memory test engine.

    Code under test that opens its own sessions (orchestrator, credential
    store, routes) then shares the tables created by ``db_engine``.
    """
    from voicenotes.services.storage import database

    database._engine = db_engine
    database._session_factory = None
    yield db_engine
    database.reset_engine()
