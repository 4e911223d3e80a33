from __future__ import annotations

import time
import uuid
from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import Callable, ClassVar, Optional, TypeVar

from loguru import logger

from .errors import BackendValidationError, TranscriptionTimeoutError
from .models import AudioFile, BackendDescriptor, BackendFeatures, TranscriptionResult, TranscriptionSettings

ProgressCallback = Callable[[float], None]

T = TypeVar("T")


class ProgressReporter:
    """
    Best-effort progress channel threaded through a transcription call.

    Values are clamped to [0, 100] and never move backwards. Observer failures are
    logged and dropped so they cannot abort the transcription itself.
    """

    def __init__(self, callback: Optional[ProgressCallback] = None) -> None:
        self._callback = callback
        self._last = 0.0

    @property
    def last(self) -> float:
        return self._last

    def report(self, value: float) -> None:
        value = max(self._last, min(100.0, float(value)))
        self._last = value
        if self._callback is None:
            return
        try:
            self._callback(value)
        except Exception as exc:  # noqa: BLE001 - observers must never fail the caller
            logger.warning("Progress observer raised at {}%: {}", value, exc)


class TranscriptionBackend(ABC):
    """
    Contract shared by every transcription provider.

    Subclasses declare their capability descriptor as class attributes and turn the
    provider's native response into a canonical TranscriptionResult so downstream
    consumers never touch vendor-specific schemas.
    """

    id: ClassVar[str]
    name: ClassVar[str]
    description: ClassVar[str]
    max_file_size: ClassVar[int]
    max_duration: ClassVar[int]
    supported_formats: ClassVar[tuple[str, ...]]
    features: ClassVar[BackendFeatures]

    def __init__(self, *, sleep: Callable[[float], None] = time.sleep) -> None:
        self._sleep = sleep

    @abstractmethod
    def transcribe(
        self,
        audio: AudioFile,
        settings: TranscriptionSettings,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptionResult:
        """Transcribe ``audio`` and return the normalised result."""

        raise NotImplementedError

    def descriptor(self) -> BackendDescriptor:
        return BackendDescriptor(
            id=self.id,
            name=self.name,
            description=self.description,
            max_file_size=self.max_file_size,
            max_duration=self.max_duration,
            supported_formats=list(self.supported_formats),
            features=self.features,
        )

    def validate_file(self, audio: AudioFile) -> None:
        """Fail fast when the file is outside this backend's limits."""
        if audio.size > self.max_file_size:
            raise BackendValidationError(
                f"File size exceeds maximum limit of {self.max_file_size / (1024 * 1024):g}MB"
            )

        content_type = (audio.content_type or "").lower()
        extension = PurePosixPath(audio.filename or "").suffix.lower().lstrip(".")
        supported = any(
            fmt in content_type or fmt == extension
            for fmt in (fmt.lower() for fmt in self.supported_formats)
        )
        if not supported:
            raise BackendValidationError(
                f"File type {content_type or 'unknown'} is not supported. "
                f"Supported formats: {', '.join(self.supported_formats)}"
            )

    def _poll(
        self,
        fetch: Callable[[], T],
        is_pending: Callable[[T], bool],
        *,
        max_attempts: int,
        interval: float,
        on_tick: Optional[Callable[[int, T], None]] = None,
    ) -> T:
        """
        Poll ``fetch`` until ``is_pending`` turns false.

        Exceeding ``max_attempts`` raises TranscriptionTimeoutError rather than
        returning a still-pending payload.
        """
        current = fetch()
        attempts = 0
        while is_pending(current):
            if attempts >= max_attempts:
                raise TranscriptionTimeoutError(attempts, interval)
            self._sleep(interval)
            current = fetch()
            attempts += 1
            logger.debug("{} poll attempt {}/{}", self.id, attempts, max_attempts)
            if on_tick is not None:
                on_tick(attempts, current)
        return current

    @staticmethod
    def _generate_id() -> str:
        return uuid.uuid4().hex

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)
