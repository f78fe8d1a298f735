"""
Data-access layer for recordings and stored credentials.

``RecordingRepository`` and ``CredentialRepository`` receive an
``AsyncSession``. They call ``flush()`` rather than ``commit()`` so that
transaction boundaries are controlled by the caller (typically
:func:`get_session`). SQLAlchemy failures surface as :class:`StorageError`.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from voicenotes.core.exceptions import RecordingNotFoundError, StorageError
from voicenotes.core.models import AnnotationStatus, TranscriptionStatus
from voicenotes.services.storage.models_db import CredentialEntry, Recording

logger = logging.getLogger(__name__)

# Columns the processing pipeline is allowed to mutate.
_MUTABLE_FIELDS = frozenset(
    {
        "transcription_status",
        "transcription_result",
        "used_fallback",
        "error_message",
        "annotation_status",
        "annotation_result",
    }
)


@contextmanager
def _storage_errors(action: str) -> Iterator[None]:
    """Translate SQLAlchemy failures into :class:`StorageError`."""
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error("Storage failure while trying to %s: %s", action, exc)
        raise StorageError(f"Failed to {action}: {exc}") from exc


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


def _touch(recording: Recording) -> None:
    """Advance ``updated_at``; it never moves backwards."""
    now = datetime.now(UTC)
    if recording.updated_at is not None:
        previous = _as_utc(recording.updated_at)
        if now <= previous:
            now = previous + timedelta(microseconds=1)
    recording.updated_at = now


class RecordingRepository:
    """Data-access layer for the ``recordings`` table.

    All methods use ``flush()`` instead of ``commit()`` so transaction
    boundaries are controlled by the caller (typically ``get_session()``
    context manager which commits on clean exit).

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create_recording(
        self,
        filename: str,
        filepath: str,
        latitude: float,
        longitude: float,
        timestamp: datetime | None = None,
    ) -> Recording:
        """Register a captured recording with status *NOT_STARTED*."""
        recording = Recording(
            filename=filename,
            filepath=filepath,
            latitude=latitude,
            longitude=longitude,
        )
        if timestamp is not None:
            recording.timestamp = timestamp
        with _storage_errors("create recording"):
            self._session.add(recording)
            await self._session.flush()
        return recording

    async def find_recording(self, recording_id: int) -> Recording | None:
        """Return a recording by ID, or ``None`` if it does not exist."""
        with _storage_errors(f"load recording {recording_id}"):
            return await self._session.get(Recording, recording_id)

    async def get_recording(self, recording_id: int) -> Recording:
        """Return a recording by ID or raise :class:`RecordingNotFoundError`."""
        recording = await self.find_recording(recording_id)
        if recording is None:
            raise RecordingNotFoundError(recording_id)
        return recording

    async def list_recordings(
        self,
        status: TranscriptionStatus | str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Recording]:
        """Return recordings newest first, optionally filtered by transcription *status*."""
        stmt = (
            select(Recording)
            .order_by(Recording.timestamp.desc(), Recording.id.desc())
            .limit(limit)
            .offset(offset)
        )
        if status is not None:
            stmt = stmt.where(Recording.transcription_status == str(status))
        with _storage_errors("list recordings"):
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

    async def list_pending(self) -> list[Recording]:
        """Return every *NOT_STARTED* recording, oldest capture first."""
        stmt = (
            select(Recording)
            .where(Recording.transcription_status == TranscriptionStatus.NOT_STARTED.value)
            .order_by(Recording.timestamp.asc(), Recording.id.asc())
        )
        with _storage_errors("list pending recordings"):
            result = await self._session.execute(stmt)
            return list(result.scalars().all())

    async def count_recordings(self, status: TranscriptionStatus | str | None = None) -> int:
        """Return the number of recordings, optionally filtered by *status*."""
        stmt = select(func.count()).select_from(Recording)
        if status is not None:
            stmt = stmt.where(Recording.transcription_status == str(status))
        with _storage_errors("count recordings"):
            result = await self._session.execute(stmt)
            return int(result.scalar_one())

    async def update_recording(self, recording_id: int, **fields) -> Recording:
        """Apply *fields* to one recording and bump ``updated_at``.

        Raises:
            ValueError: If a field is not part of the processing state.
            RecordingNotFoundError: If the recording does not exist.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update recording fields: {sorted(unknown)}")

        recording = await self.get_recording(recording_id)
        for name, value in fields.items():
            setattr(recording, name, value)
        _touch(recording)
        with _storage_errors(f"update recording {recording_id}"):
            await self._session.flush()
        return recording

    async def requeue_recording(self, recording_id: int) -> Recording:
        """Reset a recording to its initial state so the next batch picks it up."""
        return await self.update_recording(
            recording_id,
            transcription_status=TranscriptionStatus.NOT_STARTED.value,
            transcription_result="",
            used_fallback=False,
            error_message=None,
            annotation_status=AnnotationStatus.NOT_ATTEMPTED.value,
            annotation_result=None,
        )

    async def delete_recording(self, recording_id: int) -> None:
        """Delete a recording row (the audio file is left in place)."""
        recording = await self.get_recording(recording_id)
        with _storage_errors(f"delete recording {recording_id}"):
            await self._session.delete(recording)
            await self._session.flush()


class CredentialRepository:
    """Key/value access to ``credential_entries`` scoped to one *provider*.

    Args:
        session: An active SQLAlchemy ``AsyncSession``.
        provider: Scope key, e.g. ``"osm"``.
    """

    def __init__(self, session: AsyncSession, provider: str) -> None:
        self._session = session
        self._provider = provider

    async def get_all(self) -> dict[str, str]:
        """Return every stored field for the provider."""
        stmt = select(CredentialEntry).where(CredentialEntry.provider == self._provider)
        with _storage_errors("read credential"):
            result = await self._session.execute(stmt)
            return {entry.key: entry.value for entry in result.scalars().all()}

    async def get(self, key: str) -> str | None:
        """Return a single field, or ``None`` when absent."""
        with _storage_errors("read credential"):
            entry = await self._session.get(CredentialEntry, (self._provider, key))
        return entry.value if entry is not None else None

    async def replace(self, values: dict[str, str | None]) -> None:
        """Overwrite all stored fields; ``None`` values are not stored."""
        now = datetime.now(UTC)
        with _storage_errors("save credential"):
            await self._session.execute(
                delete(CredentialEntry).where(CredentialEntry.provider == self._provider)
            )
            for key, value in values.items():
                if value is None:
                    continue
                self._session.add(
                    CredentialEntry(provider=self._provider, key=key, value=value, updated_at=now)
                )
            await self._session.flush()

    async def clear(self) -> None:
        """Remove every stored field for the provider."""
        with _storage_errors("clear credential"):
            await self._session.execute(
                delete(CredentialEntry).where(CredentialEntry.provider == self._provider)
            )
            await self._session.flush()
