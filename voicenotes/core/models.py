"""
Pydantic v2 models shared by the service and API layers.

Status enums, batch progress events, tagged per-step outcomes used by the
orchestrator, and the REST request / response bodies.
"""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    """GET /health response."""

    status: str = "ok"
    version: str = "0.1.0"
    timestamp: datetime


# ---------------------------------------------------------------------------
# Status model
# ---------------------------------------------------------------------------


class TranscriptionStatus(StrEnum):
    """Speech-to-text state of a recording.

    ``FALLBACK`` and ``DISABLED`` are parallel terminal variants that some
    deployments write instead of ``COMPLETED``; they are only reachable from
    ``PROCESSING``.
    """

    NOT_STARTED = "NOT_STARTED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FALLBACK = "FALLBACK"
    ERROR = "ERROR"
    DISABLED = "DISABLED"

    @property
    def is_terminal(self) -> bool:
        return self not in (TranscriptionStatus.NOT_STARTED, TranscriptionStatus.PROCESSING)

    @property
    def is_processing(self) -> bool:
        return self is TranscriptionStatus.PROCESSING

    @property
    def is_complete(self) -> bool:
        return self in (TranscriptionStatus.COMPLETED, TranscriptionStatus.FALLBACK)

    @property
    def is_error(self) -> bool:
        return self is TranscriptionStatus.ERROR


class AnnotationStatus(StrEnum):
    """Map-annotation state of a recording."""

    NOT_ATTEMPTED = "NOT_ATTEMPTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ERROR = "ERROR"
    DISABLED = "DISABLED"

    @property
    def is_terminal(self) -> bool:
        return self in (
            AnnotationStatus.COMPLETED,
            AnnotationStatus.ERROR,
            AnnotationStatus.DISABLED,
        )


# ---------------------------------------------------------------------------
# Progress events
# ---------------------------------------------------------------------------


class ProgressStatus(StrEnum):
    """Per-item status carried by a progress event."""

    transcribing = "transcribing"
    creating_annotation = "creating annotation"
    complete = "complete"
    timeout = "timeout"
    error = "error"


class ProgressEvent(BaseModel):
    """Emitted after every per-item step of a batch."""

    type: str = "progress"
    recording_id: int
    filename: str
    status: ProgressStatus
    current: int
    total: int


class BatchCompleteEvent(BaseModel):
    """Emitted exactly once when a batch run ends."""

    type: str = "complete"
    total: int


BatchEvent = ProgressEvent | BatchCompleteEvent


# ---------------------------------------------------------------------------
# Transcription
# ---------------------------------------------------------------------------


class TranscriptionResult(BaseModel):
    """Provider output for one audio file."""

    text: str
    language: str = "unknown"
    confidence: float = 0.0
    duration: float = 0.0


# ---------------------------------------------------------------------------
# Step outcomes
# ---------------------------------------------------------------------------


class TranscriptionOutcomeKind(StrEnum):
    """Discriminator for :class:`TranscriptionOutcome`."""

    success = "success"
    fallback = "fallback"
    timeout = "timeout"
    error = "error"


class TranscriptionOutcome(BaseModel):
    """Result of the transcription step for one recording."""

    kind: TranscriptionOutcomeKind
    text: str = ""
    error: str | None = None

    @classmethod
    def from_text(cls, text: str) -> "TranscriptionOutcome":
        """Classify provider output; blank text is a fallback success."""
        if not text or not text.strip():
            return cls(kind=TranscriptionOutcomeKind.fallback, text="")
        return cls(kind=TranscriptionOutcomeKind.success, text=text)

    @classmethod
    def timed_out(cls, detail: str) -> "TranscriptionOutcome":
        return cls(kind=TranscriptionOutcomeKind.timeout, error=detail)

    @classmethod
    def failed(cls, detail: str) -> "TranscriptionOutcome":
        return cls(kind=TranscriptionOutcomeKind.error, error=detail)

    @property
    def succeeded(self) -> bool:
        return self.kind in (TranscriptionOutcomeKind.success, TranscriptionOutcomeKind.fallback)


class AnnotationOutcome(BaseModel):
    """Result of the annotation step for one recording."""

    status: AnnotationStatus
    result: str | None = None
    error: str | None = None


# ---------------------------------------------------------------------------
# Recording
# ---------------------------------------------------------------------------


class RecordingCreate(BaseModel):
    """POST /recordings request body (hand-off from the capture flow)."""

    filename: str
    filepath: str
    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    timestamp: datetime | None = None


class RecordingResponse(BaseModel):
    """Standard recording representation returned by the API."""

    id: int
    filename: str
    filepath: str
    timestamp: datetime
    latitude: float
    longitude: float
    transcription_status: TranscriptionStatus
    transcription_result: str = ""
    used_fallback: bool = False
    error_message: str | None = None
    annotation_status: AnnotationStatus
    annotation_result: str | None = None
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


class ProcessRequest(BaseModel):
    """POST /processing request body; no id (or a non-positive one) means all."""

    recording_id: int | None = None


class ProcessResponse(BaseModel):
    """Acknowledgement that a batch has been scheduled."""

    started: bool = True
    recording_id: int | None = None


class ProcessingStatusResponse(BaseModel):
    """GET /processing response."""

    active: bool
    recording_id: int | None = None


# ---------------------------------------------------------------------------
# Authentication state
# ---------------------------------------------------------------------------


class Credential(BaseModel):
    """Credential material for the annotation service."""

    access_token: str
    refresh_token: str | None = None
    display_name: str | None = None


class CredentialUpdate(BaseModel):
    """PUT /auth/credential request body."""

    access_token: str = Field(min_length=1)
    refresh_token: str | None = None
    display_name: str | None = None


class AuthStatusResponse(BaseModel):
    """GET /auth/status response."""

    authenticated: bool
    display_name: str | None = None
    can_refresh: bool = False


# ---------------------------------------------------------------------------
# Error
# ---------------------------------------------------------------------------


class ErrorResponse(BaseModel):
    """Standard error envelope returned by the API."""

    detail: str
    code: str
    timestamp: str
