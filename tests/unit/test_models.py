"""Tests for shared Pydantic models and status enums."""

import pytest
from pydantic import ValidationError

from voicenotes.core.models import (
    AnnotationStatus,
    BatchCompleteEvent,
    ProgressEvent,
    ProgressStatus,
    RecordingCreate,
    TranscriptionOutcome,
    TranscriptionOutcomeKind,
    TranscriptionStatus,
)


class TestTranscriptionStatus:
    """Verify status predicates."""

    def test_terminal_states(self):
        terminal = {s for s in TranscriptionStatus if s.is_terminal}
        assert terminal == {
            TranscriptionStatus.COMPLETED,
            TranscriptionStatus.FALLBACK,
            TranscriptionStatus.ERROR,
            TranscriptionStatus.DISABLED,
        }

    def test_fallback_counts_as_complete(self):
        assert TranscriptionStatus.FALLBACK.is_complete
        assert TranscriptionStatus.COMPLETED.is_complete
        assert not TranscriptionStatus.ERROR.is_complete

    def test_processing_and_error(self):
        assert TranscriptionStatus.PROCESSING.is_processing
        assert TranscriptionStatus.ERROR.is_error

    def test_string_values(self):
        assert TranscriptionStatus("NOT_STARTED") is TranscriptionStatus.NOT_STARTED


class TestAnnotationStatus:
    def test_terminal_states(self):
        assert not AnnotationStatus.NOT_ATTEMPTED.is_terminal
        assert not AnnotationStatus.IN_PROGRESS.is_terminal
        assert AnnotationStatus.DISABLED.is_terminal


class TestTranscriptionOutcome:
    """Verify classification of provider output."""

    def test_text_is_success(self):
        outcome = TranscriptionOutcome.from_text("hello")
        assert outcome.kind is TranscriptionOutcomeKind.success
        assert outcome.text == "hello"
        assert outcome.succeeded

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_is_fallback(self, text):
        outcome = TranscriptionOutcome.from_text(text)
        assert outcome.kind is TranscriptionOutcomeKind.fallback
        assert outcome.text == ""
        assert outcome.succeeded

    def test_timeout_and_failure_do_not_succeed(self):
        assert not TranscriptionOutcome.timed_out("slow").succeeded
        failed = TranscriptionOutcome.failed("boom")
        assert not failed.succeeded
        assert failed.error == "boom"


class TestEvents:
    """Verify the JSON shape of progress events."""

    def test_progress_event_dump(self):
        event = ProgressEvent(
            recording_id=3,
            filename="a.m4a",
            status=ProgressStatus.creating_annotation,
            current=1,
            total=2,
        )
        assert event.model_dump(mode="json") == {
            "type": "progress",
            "recording_id": 3,
            "filename": "a.m4a",
            "status": "creating annotation",
            "current": 1,
            "total": 2,
        }

    def test_complete_event_dump(self):
        assert BatchCompleteEvent(total=4).model_dump(mode="json") == {
            "type": "complete",
            "total": 4,
        }


class TestRecordingCreate:
    """Verify coordinate validation."""

    def test_valid(self):
        body = RecordingCreate(filename="a.m4a", filepath="/a.m4a", latitude=90, longitude=-180)
        assert body.latitude == 90

    @pytest.mark.parametrize(("lat", "lon"), [(90.1, 0), (-91, 0), (0, 180.5), (0, -181)])
    def test_out_of_range(self, lat, lon):
        with pytest.raises(ValidationError):
            RecordingCreate(filename="a.m4a", filepath="/a.m4a", latitude=lat, longitude=lon)
