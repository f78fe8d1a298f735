"""
Batch processing endpoints.

``POST /processing`` schedules a batch on the event loop and returns
immediately; progress is observable on ``/ws/progress``.
"""

import logging

from fastapi import APIRouter

from voicenotes.core.exceptions import RecordingNotFoundError
from voicenotes.core.models import ProcessingStatusResponse, ProcessRequest, ProcessResponse
from voicenotes.services import orchestrator
from voicenotes.services.storage.database import get_session
from voicenotes.services.storage.repository import RecordingRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/processing", tags=["processing"])


@router.post("", response_model=ProcessResponse, status_code=202)
async def start_processing(body: ProcessRequest | None = None):
    """Start processing one recording, or every pending one when no id is given.

    Raises:
        RecordingNotFoundError: If a positive id does not exist (404).
        BatchAlreadyRunningError: If a batch is already active (409).
    """
    recording_id = orchestrator.resolve_recording_id(body.recording_id if body else None)

    # Validate up front so the caller gets a 404 instead of a silent no-op.
    if recording_id is not None:
        async with get_session() as session:
            recording = await RecordingRepository(session).find_recording(recording_id)
        if recording is None:
            raise RecordingNotFoundError(recording_id)

    orchestrator.start_batch(recording_id)
    return ProcessResponse(started=True, recording_id=recording_id)


@router.get("", response_model=ProcessingStatusResponse)
async def processing_status():
    """Report whether a batch is currently running."""
    active = orchestrator.get_active_batch() is not None
    return ProcessingStatusResponse(
        active=active,
        recording_id=orchestrator.get_active_recording_id(),
    )


@router.delete("", response_model=ProcessingStatusResponse)
async def cancel_processing():
    """Cancel the running batch; the in-flight recording is marked ERROR."""
    cancelled = await orchestrator.cancel_batch()
    if cancelled:
        logger.info("Batch cancelled via API")
    return ProcessingStatusResponse(active=False, recording_id=None)
