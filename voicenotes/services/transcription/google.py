"""Google Cloud Speech-to-Text provider.

Sends the whole audio file in a single synchronous ``recognize`` call with
automatic punctuation and lets the API detect the encoding. The blocking
client runs on the instance's single worker thread and each call carries
the per-item deadline, so an abandoned request ends on the server side too.
"""

import logging

from google.api_core import exceptions as gax_exceptions
from google.cloud import speech
from google.oauth2 import service_account

from voicenotes.core.config import get_settings
from voicenotes.core.exceptions import TranscriptionError
from voicenotes.core.models import TranscriptionResult
from voicenotes.services.transcription.base import BaseSTT

logger = logging.getLogger(__name__)


class GoogleSTT(BaseSTT):
    """Speech-to-text provider backed by Google Cloud Speech-to-Text.

    Args:
        credentials_path: Service-account JSON file. Empty uses application
            default credentials.
        language_code: BCP-47 language, e.g. "en-US".
        sample_rate_hertz: Sample rate of the recorded audio.
        settings: Optional Settings instance (defaults to get_settings()).
    """

    def __init__(
        self,
        credentials_path: str | None = None,
        language_code: str | None = None,
        sample_rate_hertz: int | None = None,
        settings=None,
    ) -> None:
        self._settings = settings or get_settings()
        self._credentials_path = credentials_path or self._settings.google_credentials_path
        self._language_code = language_code or self._settings.google_language_code
        self._sample_rate_hertz = sample_rate_hertz or self._settings.google_sample_rate_hertz
        self._client: speech.SpeechClient | None = None

    def _get_client(self) -> speech.SpeechClient:
        """Return the cached client, creating it on first use."""
        if self._client is None:
            if self._credentials_path:
                credentials = service_account.Credentials.from_service_account_file(
                    self._credentials_path
                )
                self._client = speech.SpeechClient(credentials=credentials)
            else:
                self._client = speech.SpeechClient()
        return self._client

    def _recognize(
        self, audio: bytes, language_code: str, timeout: float | None
    ) -> speech.RecognizeResponse:
        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.ENCODING_UNSPECIFIED,
            sample_rate_hertz=self._sample_rate_hertz,
            language_code=language_code,
            enable_automatic_punctuation=True,
            model="default",
        )
        return self._get_client().recognize(
            config=config,
            audio=speech.RecognitionAudio(content=audio),
            timeout=timeout,
        )

    async def transcribe(self, audio: bytes, **kwargs) -> TranscriptionResult:
        """Transcribe audio file bytes.

        Args:
            audio: Encoded audio file contents.
            **kwargs: Optional keys: language, timeout (seconds; defaults to
                the transcription timeout setting).
        """
        language_code = kwargs.get("language") or self._language_code
        timeout = kwargs.get("timeout") or self._settings.transcription_timeout_seconds
        try:
            response = await self._run_blocking(
                self._recognize, audio, language_code, timeout
            )
        except gax_exceptions.GoogleAPICallError as exc:
            raise TranscriptionError(detail=f"Google Speech API error: {exc}") from exc
        except Exception as exc:
            raise TranscriptionError(detail=f"Google transcription failed: {exc}") from exc

        best = [result.alternatives[0] for result in response.results if result.alternatives]
        text = " ".join(alt.transcript.strip() for alt in best if alt.transcript.strip())
        confidence = sum(alt.confidence for alt in best) / len(best) if best else 0.0
        logger.debug("Google transcription result: %r", text)

        return TranscriptionResult(
            text=text,
            language=language_code,
            confidence=confidence,
        )
