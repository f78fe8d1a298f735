"""
Abstract base class for Speech-to-Text providers.

All STT implementations (faster-whisper, Google Cloud, etc.) must implement
this interface, enabling provider-agnostic transcription in the service layer.

Blocking provider work goes through :meth:`BaseSTT._run_blocking`, which
uses a single worker thread per instance. A call abandoned by a timeout
therefore finishes before the next one starts, so at most one provider
call is ever outstanding.
"""

import asyncio
import functools
from abc import ABC, abstractmethod
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from voicenotes.core.models import TranscriptionResult


class BaseSTT(ABC):
    """Interface that every STT provider must implement."""

    _executor: ThreadPoolExecutor | None = None

    @abstractmethod
    async def transcribe(self, audio: bytes, **kwargs) -> TranscriptionResult:
        """Transcribe raw audio file bytes to text.

        Args:
            audio: Complete contents of the audio file.
            **kwargs: Provider-specific options (language, timeout, etc.).

        Returns:
            TranscriptionResult whose ``text`` may be empty when no speech
            was recognised.

        Raises:
            TranscriptionError: If the provider fails.
        """

    async def _run_blocking(self, func: Callable[..., Any], *args: Any) -> Any:
        """Run *func* on this provider's single worker thread."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix=type(self).__name__
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(func, *args))

    def close(self, wait: bool = False) -> None:
        """Release the worker thread; *wait* blocks until a leftover call ends."""
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None
