"""Batch orchestrator for transcribing and annotating captured recordings.

Walks the pending recordings strictly one at a time. Each recording goes
through transcription (bounded by a per-item timeout) and, when enabled,
publication as a map note. Every transition is persisted in its own
transaction and followed by a progress event. Failures are converted into
persisted status at the per-item boundary, so one bad recording never
stops the batch.

Usage::

    from voicenotes.services.orchestrator import start_batch, cancel_batch

    task = start_batch()            # all NOT_STARTED recordings
    task = start_batch(42)          # a single recording
    await cancel_batch()
"""

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from voicenotes.core.config import Settings, get_settings
from voicenotes.core.exceptions import (
    AnnotationError,
    BatchAlreadyRunningError,
    RecordingNotFoundError,
    StorageError,
    TranscriptionError,
    TranscriptionTimeoutError,
)
from voicenotes.core.models import (
    AnnotationOutcome,
    AnnotationStatus,
    BatchCompleteEvent,
    ProgressEvent,
    ProgressStatus,
    TranscriptionOutcome,
    TranscriptionOutcomeKind,
    TranscriptionStatus,
)
from voicenotes.core.utils import compose_note_text, truncate_note_text
from voicenotes.services.annotation import BaseAnnotationPublisher, create_publisher
from voicenotes.services.auth import CredentialStore
from voicenotes.services.events import ProgressBroadcaster, get_broadcaster
from voicenotes.services.storage.database import get_session
from voicenotes.services.storage.models_db import Recording
from voicenotes.services.storage.repository import RecordingRepository
from voicenotes.services.transcription import BaseSTT, create_stt

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkItem:
    """Immutable snapshot of the recording fields the pipeline reads."""

    recording_id: int
    filename: str
    filepath: str
    latitude: float
    longitude: float

    @classmethod
    def from_recording(cls, recording: Recording) -> "WorkItem":
        return cls(
            recording_id=recording.id,
            filename=recording.filename or str(recording.id),
            filepath=recording.filepath,
            latitude=recording.latitude,
            longitude=recording.longitude,
        )


class BatchOrchestrator:
    """Drives recordings through transcription and optional annotation.

    Only one run (``process_one`` or ``process_all``) may be active per
    orchestrator; a second concurrent call raises
    :class:`BatchAlreadyRunningError`.

    Args:
        stt: Speech-to-text provider (defaults to the configured one).
        publisher: Annotation publisher (defaults to OSM notes).
        credentials: Authentication state provider.
        broadcaster: Progress event channel.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        stt: BaseSTT | None = None,
        publisher: BaseAnnotationPublisher | None = None,
        credentials: CredentialStore | None = None,
        broadcaster: ProgressBroadcaster | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._stt = stt or create_stt(provider=self._settings.stt_provider)
        self._publisher = publisher or create_publisher()
        self._credentials = credentials or CredentialStore()
        self._broadcaster = broadcaster or get_broadcaster()
        self._run_lock = asyncio.Lock()

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def close(self) -> None:
        """Shut down the STT worker without waiting for a leftover call."""
        self._stt.close()

    @asynccontextmanager
    async def _exclusive_run(self) -> AsyncIterator[None]:
        if self._run_lock.locked():
            raise BatchAlreadyRunningError()
        async with self._run_lock:
            yield

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_one(self, recording_id: int) -> int:
        """Run the pipeline for a single recording.

        Returns:
            The number of recordings processed (always 1).

        Raises:
            RecordingNotFoundError: If the recording does not exist. No
                events are emitted in that case.
            BatchAlreadyRunningError: If another run is active.
        """
        async with self._exclusive_run():
            async with get_session() as session:
                recording = await RecordingRepository(session).find_recording(recording_id)
            if recording is None:
                logger.error("Recording not found: %s", recording_id)
                raise RecordingNotFoundError(recording_id)

            item = WorkItem.from_recording(recording)
            logger.info("Processing single recording: %s", item.filename)
            await self._process_item(item, position=1, total=1)
            self._broadcaster.publish(BatchCompleteEvent(total=1))
            return 1

    async def process_all(self) -> int:
        """Run the pipeline for every *NOT_STARTED* recording, oldest first.

        Returns:
            The number of recordings visited.

        Raises:
            BatchAlreadyRunningError: If another run is active.
            StorageError: If the pending recordings cannot be loaded.
        """
        async with self._exclusive_run():
            async with get_session() as session:
                pending = await RecordingRepository(session).list_pending()
            items = [WorkItem.from_recording(r) for r in pending]
            total = len(items)
            logger.info("Found %d recordings to process", total)

            for position, item in enumerate(items, start=1):
                logger.info("Processing recording %d/%d: %s", position, total, item.filename)
                await self._process_item(item, position, total)

            logger.info("Batch processing complete. Processed %d recordings.", total)
            self._broadcaster.publish(BatchCompleteEvent(total=total))
            return total

    # ------------------------------------------------------------------
    # Per-item pipeline
    # ------------------------------------------------------------------

    async def _process_item(self, item: WorkItem, position: int, total: int) -> None:
        """Process one recording; nothing but cancellation escapes this method."""
        stage = "transcription"
        try:
            outcome = await self._transcribe_step(item, position, total)
            if not outcome.succeeded:
                return

            if self._settings.annotation_enabled:
                stage = "annotation"
                await self._annotate_step(item, outcome.text, position, total)

            self._emit(item, ProgressStatus.complete, position, total)

        except asyncio.CancelledError:
            logger.warning("Processing cancelled during %s: %s", stage, item.filename)
            await asyncio.shield(self._record_failure(item, stage, "Processing cancelled"))
            raise
        except Exception as exc:
            logger.exception("Error processing recording: %s", item.filename)
            await self._record_failure(item, stage, str(exc) or type(exc).__name__)
            self._emit(item, ProgressStatus.error, position, total)

    async def _transcribe_step(
        self, item: WorkItem, position: int, total: int
    ) -> TranscriptionOutcome:
        # A fresh attempt starts from a clean slate, even on a re-run.
        await self._update(
            item,
            transcription_status=TranscriptionStatus.PROCESSING.value,
            transcription_result="",
            used_fallback=False,
            error_message=None,
            annotation_status=AnnotationStatus.NOT_ATTEMPTED.value,
            annotation_result=None,
        )
        self._emit(item, ProgressStatus.transcribing, position, total)

        outcome = await self._run_transcription(item)

        if outcome.succeeded:
            logger.info("Transcription successful for %s: %r", item.filename, outcome.text)
            await self._update(
                item,
                transcription_status=TranscriptionStatus.COMPLETED.value,
                transcription_result=outcome.text,
                used_fallback=outcome.kind is TranscriptionOutcomeKind.fallback,
            )
        else:
            logger.error("Failed to transcribe %s: %s", item.filename, outcome.error)
            await self._update(
                item,
                transcription_status=TranscriptionStatus.ERROR.value,
                error_message=outcome.error,
            )
            status = (
                ProgressStatus.timeout
                if outcome.kind is TranscriptionOutcomeKind.timeout
                else ProgressStatus.error
            )
            self._emit(item, status, position, total)
        return outcome

    async def _run_transcription(self, item: WorkItem) -> TranscriptionOutcome:
        """Read the audio and call the provider under the per-item ceiling."""
        timeout = self._settings.transcription_timeout_seconds

        async def _read_and_transcribe() -> str:
            path = self._audio_path(item)
            try:
                audio = await asyncio.to_thread(path.read_bytes)
            except FileNotFoundError as exc:
                raise TranscriptionError(f"Audio file not found: {path}") from exc
            except OSError as exc:
                raise TranscriptionError(f"Cannot read audio file {path}: {exc}") from exc
            result = await self._stt.transcribe(audio, timeout=timeout)
            return result.text

        try:
            text = await asyncio.wait_for(_read_and_transcribe(), timeout=timeout)
        except TimeoutError:
            return TranscriptionOutcome.timed_out(TranscriptionTimeoutError(timeout).detail)
        except TranscriptionError as exc:
            return TranscriptionOutcome.failed(exc.detail)
        except Exception as exc:
            return TranscriptionOutcome.failed(str(exc) or type(exc).__name__)
        return TranscriptionOutcome.from_text(text)

    def _audio_path(self, item: WorkItem) -> Path:
        """Relative file paths are stored relative to the recordings directory."""
        path = Path(item.filepath)
        if path.is_absolute():
            return path
        return Path(self._settings.recordings_dir) / path

    async def _annotate_step(self, item: WorkItem, transcript: str, position: int, total: int) -> None:
        await self._update(item, annotation_status=AnnotationStatus.IN_PROGRESS.value)
        self._emit(item, ProgressStatus.creating_annotation, position, total)

        outcome = await self._publish_annotation(item, transcript)

        fields: dict = {
            "annotation_status": outcome.status.value,
            "annotation_result": outcome.result,
        }
        if outcome.error is not None:
            fields["error_message"] = outcome.error
        await self._update(item, **fields)

    async def _publish_annotation(self, item: WorkItem, transcript: str) -> AnnotationOutcome:
        """Check credentials and publish; failures become an ERROR outcome."""
        try:
            authenticated = await self._credentials.is_authenticated()
            token = await self._credentials.get_access_token() if authenticated else None
        except StorageError as exc:
            logger.error("Cannot read credential for %s: %s", item.filename, exc.detail)
            return AnnotationOutcome(status=AnnotationStatus.ERROR, error=f"annotation: {exc.detail}")

        if not token:
            logger.info("Not authenticated; annotation disabled for %s", item.filename)
            return AnnotationOutcome(status=AnnotationStatus.DISABLED)

        text = truncate_note_text(
            compose_note_text(transcript, item.latitude, item.longitude),
            self._settings.annotation_text_max_length,
        )
        timeout = self._settings.annotation_timeout_seconds
        try:
            confirmation = await asyncio.wait_for(
                self._publisher.publish(item.latitude, item.longitude, text, token),
                timeout=timeout,
            )
        except TimeoutError:
            cause = f"timed out after {timeout:g}s"
        except AnnotationError as exc:
            cause = exc.detail
        except Exception as exc:
            cause = str(exc) or type(exc).__name__
        else:
            return AnnotationOutcome(status=AnnotationStatus.COMPLETED, result=confirmation)

        logger.error("Failed to create annotation for %s: %s", item.filename, cause)
        return AnnotationOutcome(status=AnnotationStatus.ERROR, error=f"annotation: {cause}")

    # ------------------------------------------------------------------
    # Persistence and events
    # ------------------------------------------------------------------

    async def _update(self, item: WorkItem, **fields) -> None:
        async with get_session() as session:
            await RecordingRepository(session).update_recording(item.recording_id, **fields)

    async def _record_failure(self, item: WorkItem, stage: str, cause: str) -> None:
        """Best-effort write of an ERROR status after an unexpected failure."""
        if stage == "annotation":
            fields = {
                "annotation_status": AnnotationStatus.ERROR.value,
                "error_message": f"annotation: {cause}",
            }
        else:
            fields = {
                "transcription_status": TranscriptionStatus.ERROR.value,
                "error_message": cause,
            }
        try:
            await self._update(item, **fields)
        except Exception:
            logger.exception("Failed to persist error status for %s", item.filename)

    def _emit(self, item: WorkItem, status: ProgressStatus, position: int, total: int) -> None:
        self._broadcaster.publish(
            ProgressEvent(
                recording_id=item.recording_id,
                filename=item.filename,
                status=status,
                current=position,
                total=total,
            )
        )


# ---------------------------------------------------------------------------
# Module-level singleton management
# ---------------------------------------------------------------------------

_orchestrator: BatchOrchestrator | None = None
_active_task: asyncio.Task | None = None
_active_recording_id: int | None = None


def resolve_recording_id(value: int | str | None) -> int | None:
    """Normalize a trigger identifier; absent or invalid means "process all"."""
    if value is None or isinstance(value, bool):
        return None
    try:
        recording_id = int(value)
    except (TypeError, ValueError):
        return None
    return recording_id if recording_id > 0 else None


def get_orchestrator() -> BatchOrchestrator:
    """Return the process-wide orchestrator, creating it on first call."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = BatchOrchestrator()
    return _orchestrator


def get_active_batch() -> asyncio.Task | None:
    """Return the running batch task, or None."""
    if _active_task is not None and not _active_task.done():
        return _active_task
    return None


def get_active_recording_id() -> int | None:
    """Return the id targeted by the running batch (None for "all")."""
    return _active_recording_id if get_active_batch() is not None else None


def _on_batch_done(task: asyncio.Task) -> None:
    global _active_task, _active_recording_id
    if _active_task is task:
        _active_task = None
        _active_recording_id = None
    if task.cancelled():
        logger.info("Batch task cancelled")
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Batch task failed: %s", exc, exc_info=exc)


def start_batch(
    recording_id: int | str | None = None,
    orchestrator: BatchOrchestrator | None = None,
) -> asyncio.Task:
    """Launch a batch as a background task.

    Raises:
        BatchAlreadyRunningError: If a batch task is already running.
    """
    global _active_task, _active_recording_id
    if get_active_batch() is not None:
        raise BatchAlreadyRunningError()

    target = resolve_recording_id(recording_id)
    runner = orchestrator or get_orchestrator()
    coro = runner.process_one(target) if target is not None else runner.process_all()

    task = asyncio.create_task(coro, name="voicenotes-batch")
    task.add_done_callback(_on_batch_done)
    _active_task = task
    _active_recording_id = target
    logger.info("Started batch task (recording_id=%s)", target if target is not None else "all")
    return task


async def cancel_batch() -> bool:
    """Cancel the running batch and wait for it to unwind.

    Returns:
        True if a batch was running.
    """
    task = get_active_batch()
    if task is None:
        return False
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception:
        logger.exception("Batch task failed while being cancelled")
    return True


async def cleanup() -> None:
    """Force-stop the active batch and release provider workers (app shutdown)."""
    await cancel_batch()
    if _orchestrator is not None:
        _orchestrator.close()
