"""
Recording REST endpoints.

Registration of captured recordings (the hand-off from the capture flow),
listing, inspection, deletion and re-queueing for another batch.
All endpoints delegate to ``RecordingRepository``; no business logic here.
"""

import logging

from fastapi import APIRouter, Query, Response

from voicenotes.core.models import (
    AnnotationStatus,
    RecordingCreate,
    RecordingResponse,
    TranscriptionStatus,
)
from voicenotes.services.storage.database import get_session
from voicenotes.services.storage.models_db import Recording
from voicenotes.services.storage.repository import RecordingRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recordings", tags=["recordings"])


def _to_response(recording: Recording) -> RecordingResponse:
    """Convert an ORM Recording object to its API response model."""
    return RecordingResponse(
        id=recording.id,
        filename=recording.filename,
        filepath=recording.filepath,
        timestamp=recording.timestamp,
        latitude=recording.latitude,
        longitude=recording.longitude,
        transcription_status=TranscriptionStatus(recording.transcription_status),
        transcription_result=recording.transcription_result or "",
        used_fallback=bool(recording.used_fallback),
        error_message=recording.error_message,
        annotation_status=AnnotationStatus(recording.annotation_status),
        annotation_result=recording.annotation_result,
        created_at=recording.created_at,
        updated_at=recording.updated_at,
    )


@router.post("", response_model=RecordingResponse, status_code=201)
async def create_recording(body: RecordingCreate):
    """Register a captured recording; it starts as NOT_STARTED."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        recording = await repo.create_recording(
            filename=body.filename,
            filepath=body.filepath,
            latitude=body.latitude,
            longitude=body.longitude,
            timestamp=body.timestamp,
        )
    logger.info("Registered recording %s (%s)", recording.id, recording.filename)
    return _to_response(recording)


@router.get("", response_model=list[RecordingResponse])
async def list_recordings(
    status: TranscriptionStatus | None = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
):
    """List recordings newest first, optionally filtered by transcription status."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        recordings = await repo.list_recordings(status=status, limit=limit, offset=offset)
    return [_to_response(r) for r in recordings]


@router.get("/{recording_id}", response_model=RecordingResponse)
async def get_recording(recording_id: int):
    """Get details for a single recording."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        recording = await repo.get_recording(recording_id)
    return _to_response(recording)


@router.delete("/{recording_id}", status_code=204)
async def delete_recording(recording_id: int):
    """Delete a recording row; the audio file stays on disk."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        await repo.delete_recording(recording_id)
    return Response(status_code=204)


@router.post("/{recording_id}/requeue", response_model=RecordingResponse)
async def requeue_recording(recording_id: int):
    """Reset a recording to NOT_STARTED so the next batch processes it again."""
    async with get_session() as session:
        repo = RecordingRepository(session)
        recording = await repo.requeue_recording(recording_id)
    logger.info("Re-queued recording %s", recording_id)
    return _to_response(recording)
