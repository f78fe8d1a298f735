"""
Voice Notes exception hierarchy.

All application-specific exceptions inherit from VoiceNotesError,
enabling centralized error handling in the API middleware layer.
"""

from datetime import UTC, datetime


class VoiceNotesError(Exception):
    """Base exception for all Voice Notes errors."""

    def __init__(
        self,
        detail: str = "An unexpected error occurred",
        code: str = "VOICENOTES_ERROR",
        status_code: int = 500,
    ) -> None:
        self.detail = detail
        self.code = code
        self.status_code = status_code
        self.timestamp = datetime.now(UTC).isoformat()
        super().__init__(detail)


class RecordingNotFoundError(VoiceNotesError):
    """Raised when a recording ID does not exist."""

    def __init__(self, recording_id: int | str) -> None:
        super().__init__(
            detail=f"Recording not found: {recording_id}",
            code="RECORDING_NOT_FOUND",
            status_code=404,
        )


class BatchAlreadyRunningError(VoiceNotesError):
    """Raised when trying to start a batch while one is already active."""

    def __init__(self) -> None:
        super().__init__(
            detail="A batch is already running",
            code="BATCH_ALREADY_RUNNING",
            status_code=409,
        )


class TranscriptionError(VoiceNotesError):
    """Raised when STT processing fails."""

    def __init__(
        self,
        detail: str = "Transcription failed",
        code: str = "TRANSCRIPTION_ERROR",
        status_code: int = 500,
    ) -> None:
        super().__init__(detail=detail, code=code, status_code=status_code)


class TranscriptionTimeoutError(TranscriptionError):
    """Raised when STT processing exceeds the per-recording ceiling."""

    def __init__(self, timeout: float) -> None:
        super().__init__(
            detail=f"Transcription timed out after {timeout:g}s",
            code="TRANSCRIPTION_TIMEOUT",
            status_code=504,
        )


class AnnotationError(VoiceNotesError):
    """Raised when the map annotation service rejects or fails a request."""

    def __init__(self, detail: str = "Annotation failed") -> None:
        super().__init__(detail=detail, code="ANNOTATION_ERROR", status_code=502)


class StorageError(VoiceNotesError):
    """Raised when the persistence layer cannot read or write."""

    def __init__(self, detail: str = "Storage operation failed") -> None:
        super().__init__(detail=detail, code="STORAGE_ERROR", status_code=500)
