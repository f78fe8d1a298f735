"""Local speech-to-text for voice notes using faster-whisper.

A voice note is short, so the whole file is decoded in one pass. The
WhisperModel is loaded lazily and shared by every WhisperSTT instance;
decoding runs on the instance's single worker thread.

Segments the model itself flags as probable silence are dropped, which
lets an empty recording come back as an empty transcript instead of
hallucinated filler.
"""

import io
import logging
import math

from faster_whisper import WhisperModel

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import TranscriptionError
from voicenotes.core.models import TranscriptionResult
from voicenotes.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)

# Segments above this no-speech probability are treated as silence.
NO_SPEECH_THRESHOLD = 0.6

_model_cache: WhisperModel | None = None


class WhisperSTT(BaseSTT):
    """In-process faster-whisper provider.

    Args:
        model_size: Whisper model size (tiny, base, small, medium, large-v3).
        device: Computation device ("cpu" or "cuda").
        compute_type: CTranslate2 compute type ("int8", "float16", etc.).
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        model_size: str | None = None,
        device: str = "cpu",
        compute_type: str = "int8",
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._model_size = model_size or self._settings.whisper_model
        self._device = device
        self._compute_type = compute_type

    def _get_model(self) -> WhisperModel:
        global _model_cache  # noqa: PLW0603
        if _model_cache is None:
            logger.info("Loading Whisper model %s on %s", self._model_size, self._device)
            _model_cache = WhisperModel(
                self._model_size,
                device=self._device,
                compute_type=self._compute_type,
            )
        return _model_cache

    def _decode(self, audio: bytes, language: str | None) -> tuple[list, object]:
        """Decode a whole file; blocking.

        The lazy segment generator is drained here, in the worker thread.
        """
        segments, info = self._get_model().transcribe(
            io.BytesIO(audio),
            language=language,
            beam_size=5,
            vad_filter=True,
        )
        return list(segments), info

    @staticmethod
    def _logprob_to_confidence(avg_logprob: float) -> float:
        """Convert average log probability to a 0-1 confidence score."""
        return max(0.0, min(1.0, math.exp(avg_logprob)))

    @staticmethod
    def _spoken(segments: list) -> list:
        return [
            seg
            for seg in segments
            if seg.text.strip() and seg.no_speech_prob <= NO_SPEECH_THRESHOLD
        ]

    async def transcribe(self, audio: bytes, **kwargs) -> TranscriptionResult:
        """Transcribe one recording.

        Args:
            audio: Encoded audio (any container PyAV can decode, e.g. m4a).
            **kwargs: Optional key: language (ISO 639-1).
        """
        language = kwargs.get("language") or self._settings.whisper_default_language or None
        try:
            segments, info = await self._run_blocking(self._decode, audio, language)
        except Exception as exc:
            raise TranscriptionError(detail=f"Whisper transcription failed: {exc}") from exc

        spoken = self._spoken(segments)
        confidence = 0.0
        if spoken:
            avg_logprob = sum(seg.avg_logprob for seg in spoken) / len(spoken)
            confidence = self._logprob_to_confidence(avg_logprob)
        logger.debug("Whisper kept %d of %d segments", len(spoken), len(segments))

        return TranscriptionResult(
            text=" ".join(seg.text.strip() for seg in spoken),
            language=info.language or "unknown",
            confidence=confidence,
            duration=info.duration,
        )
