"""Tests for the RecordingRepository and CredentialRepository data layer.

Exercises recording registration, lookup, listing, the pending queue,
status updates, re-queueing and deletion, plus the provider-scoped
credential key/value rows. All tests use an in-memory SQLite database
provided by the ``repository`` fixture.
"""

from datetime import UTC, datetime, timedelta

import pytest

from voicenotes.core.exceptions import RecordingNotFoundError
from voicenotes.core.models import AnnotationStatus, TranscriptionStatus
from voicenotes.services.storage.models_db import Recording
from voicenotes.services.storage.repository import CredentialRepository, RecordingRepository

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)


async def _make_recording(
    repo: RecordingRepository,
    filename: str = "note.m4a",
    minutes: int = 0,
) -> Recording:
    """Shortcut to register a recording captured *minutes* after the base time."""
    return await repo.create_recording(
        filename=filename,
        filepath=f"/data/recordings/{filename}",
        latitude=48.8566,
        longitude=2.3522,
        timestamp=_BASE_TIME + timedelta(minutes=minutes),
    )


# ===================================================================
# Recordings
# ===================================================================


class TestCreateRecording:
    """Verify recording registration defaults."""

    async def test_defaults(self, repository: RecordingRepository) -> None:
        """A new recording starts untouched by the pipeline."""
        rec = await _make_recording(repository)
        assert rec.id is not None
        assert rec.transcription_status == TranscriptionStatus.NOT_STARTED
        assert rec.transcription_result == ""
        assert rec.used_fallback is False
        assert rec.error_message is None
        assert rec.annotation_status == AnnotationStatus.NOT_ATTEMPTED
        assert rec.annotation_result is None
        assert rec.created_at is not None

    async def test_location_stored(self, repository: RecordingRepository) -> None:
        """Coordinates and file details are persisted as given."""
        rec = await _make_recording(repository, filename="walk.m4a")
        assert rec.filename == "walk.m4a"
        assert rec.filepath == "/data/recordings/walk.m4a"
        assert rec.latitude == pytest.approx(48.8566)
        assert rec.longitude == pytest.approx(2.3522)

    async def test_timestamp_defaults_to_now(self, repository: RecordingRepository) -> None:
        """Omitting the capture timestamp fills in the current time."""
        rec = await repository.create_recording(
            filename="a.m4a", filepath="/tmp/a.m4a", latitude=0.0, longitude=0.0
        )
        assert rec.timestamp is not None


class TestGetRecording:
    """Verify single-recording retrieval and error handling."""

    async def test_existing(self, repository: RecordingRepository) -> None:
        """Fetching an existing recording returns the correct row."""
        created = await _make_recording(repository)
        fetched = await repository.get_recording(created.id)
        assert fetched.id == created.id

    async def test_not_found_raises(self, repository: RecordingRepository) -> None:
        """Fetching a non-existent ID raises RecordingNotFoundError."""
        with pytest.raises(RecordingNotFoundError):
            await repository.get_recording(9999)

    async def test_find_returns_none(self, repository: RecordingRepository) -> None:
        """find_recording is the non-raising variant."""
        assert await repository.find_recording(9999) is None


class TestListRecordings:
    """Verify listing recordings with filters, limit, and offset."""

    async def test_empty(self, repository: RecordingRepository) -> None:
        """Empty database returns an empty list."""
        assert await repository.list_recordings() == []

    async def test_newest_first(self, repository: RecordingRepository) -> None:
        """Recordings are listed by capture time, newest first."""
        await _make_recording(repository, "old.m4a", minutes=0)
        await _make_recording(repository, "new.m4a", minutes=10)
        result = await repository.list_recordings()
        assert [r.filename for r in result] == ["new.m4a", "old.m4a"]

    async def test_filter_by_status(self, repository: RecordingRepository) -> None:
        """Status filter separates pending and completed recordings."""
        rec = await _make_recording(repository, "done.m4a")
        await repository.update_recording(
            rec.id, transcription_status=TranscriptionStatus.COMPLETED.value
        )
        await _make_recording(repository, "pending.m4a")

        pending = await repository.list_recordings(status=TranscriptionStatus.NOT_STARTED)
        completed = await repository.list_recordings(status="COMPLETED")
        assert [r.filename for r in pending] == ["pending.m4a"]
        assert [r.filename for r in completed] == ["done.m4a"]

    async def test_limit_and_offset(self, repository: RecordingRepository) -> None:
        """Limit caps the page and offset skips rows."""
        for i in range(5):
            await _make_recording(repository, f"{i}.m4a", minutes=i)
        assert len(await repository.list_recordings(limit=3)) == 3
        assert len(await repository.list_recordings(offset=3)) == 2

    async def test_count(self, repository: RecordingRepository) -> None:
        """count_recordings honours the optional status filter."""
        await _make_recording(repository, "a.m4a")
        rec = await _make_recording(repository, "b.m4a")
        await repository.update_recording(rec.id, transcription_status="ERROR")
        assert await repository.count_recordings() == 2
        assert await repository.count_recordings(TranscriptionStatus.ERROR) == 1


class TestListPending:
    """Verify the batch work queue."""

    async def test_only_not_started(self, repository: RecordingRepository) -> None:
        """Recordings in any other state are not selected."""
        pending = await _make_recording(repository, "pending.m4a")
        for status in ("PROCESSING", "COMPLETED", "ERROR", "FALLBACK", "DISABLED"):
            rec = await _make_recording(repository, f"{status}.m4a")
            await repository.update_recording(rec.id, transcription_status=status)

        result = await repository.list_pending()
        assert [r.id for r in result] == [pending.id]

    async def test_oldest_first(self, repository: RecordingRepository) -> None:
        """Pending recordings come back in capture order."""
        await _make_recording(repository, "third.m4a", minutes=30)
        await _make_recording(repository, "first.m4a", minutes=0)
        await _make_recording(repository, "second.m4a", minutes=15)

        result = await repository.list_pending()
        assert [r.filename for r in result] == ["first.m4a", "second.m4a", "third.m4a"]

    async def test_same_timestamp_ordered_by_id(self, repository: RecordingRepository) -> None:
        """Ties on capture time fall back to registration order."""
        a = await _make_recording(repository, "a.m4a")
        b = await _make_recording(repository, "b.m4a")
        result = await repository.list_pending()
        assert [r.id for r in result] == [a.id, b.id]


class TestUpdateRecording:
    """Verify pipeline status updates."""

    async def test_updates_fields(self, repository: RecordingRepository) -> None:
        """Processing fields are written and returned."""
        rec = await _make_recording(repository)
        updated = await repository.update_recording(
            rec.id,
            transcription_status=TranscriptionStatus.COMPLETED.value,
            transcription_result="hello",
            used_fallback=False,
        )
        assert updated.transcription_status == "COMPLETED"
        assert updated.transcription_result == "hello"

    async def test_updated_at_advances(self, repository: RecordingRepository) -> None:
        """Every update moves updated_at forward."""
        rec = await _make_recording(repository)
        first = (await repository.update_recording(rec.id, error_message="a")).updated_at
        second = (await repository.update_recording(rec.id, error_message="b")).updated_at
        assert second > first

    async def test_rejects_identity_fields(self, repository: RecordingRepository) -> None:
        """Location and file fields are immutable to the pipeline."""
        rec = await _make_recording(repository)
        with pytest.raises(ValueError, match="latitude"):
            await repository.update_recording(rec.id, latitude=1.0)

    async def test_not_found_raises(self, repository: RecordingRepository) -> None:
        """Updating a missing recording raises RecordingNotFoundError."""
        with pytest.raises(RecordingNotFoundError):
            await repository.update_recording(9999, error_message="x")


class TestRequeueRecording:
    """Verify resetting a processed recording for another batch."""

    async def test_resets_state(self, repository: RecordingRepository) -> None:
        """All processing fields return to their initial values."""
        rec = await _make_recording(repository)
        await repository.update_recording(
            rec.id,
            transcription_status="ERROR",
            error_message="boom",
            annotation_status="ERROR",
            annotation_result="x",
            used_fallback=True,
        )

        requeued = await repository.requeue_recording(rec.id)
        assert requeued.transcription_status == TranscriptionStatus.NOT_STARTED
        assert requeued.transcription_result == ""
        assert requeued.used_fallback is False
        assert requeued.error_message is None
        assert requeued.annotation_status == AnnotationStatus.NOT_ATTEMPTED
        assert requeued.annotation_result is None
        assert [r.id for r in await repository.list_pending()] == [rec.id]


class TestDeleteRecording:
    """Verify recording deletion."""

    async def test_delete(self, repository: RecordingRepository) -> None:
        """Deleted recordings can no longer be fetched."""
        rec = await _make_recording(repository)
        await repository.delete_recording(rec.id)
        assert await repository.find_recording(rec.id) is None

    async def test_not_found_raises(self, repository: RecordingRepository) -> None:
        """Deleting a non-existent recording raises RecordingNotFoundError."""
        with pytest.raises(RecordingNotFoundError):
            await repository.delete_recording(9999)


# ===================================================================
# Credentials
# ===================================================================


class TestCredentialRepository:
    """Verify provider-scoped credential rows."""

    async def test_empty(self, db_session) -> None:
        """Nothing stored yields an empty mapping and None lookups."""
        repo = CredentialRepository(db_session, "osm")
        assert await repo.get_all() == {}
        assert await repo.get("access_token") is None

    async def test_replace_skips_none(self, db_session) -> None:
        """None values are not stored."""
        repo = CredentialRepository(db_session, "osm")
        await repo.replace({"access_token": "tok", "refresh_token": None})
        assert await repo.get_all() == {"access_token": "tok"}

    async def test_providers_isolated(self, db_session) -> None:
        """Rows of one provider are invisible to another."""
        await CredentialRepository(db_session, "osm").replace({"access_token": "a"})
        other = CredentialRepository(db_session, "other")
        assert await other.get_all() == {}

    async def test_clear(self, db_session) -> None:
        """clear removes every field for the provider."""
        repo = CredentialRepository(db_session, "osm")
        await repo.replace({"access_token": "tok", "display_name": "me"})
        await repo.clear()
        assert await repo.get_all() == {}
