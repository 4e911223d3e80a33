from __future__ import annotations

import time
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional

import requests
from loguru import logger

from .backend import ProgressCallback, ProgressReporter, TranscriptionBackend
from .errors import BackendConfigurationError, ProviderError
from .models import (
    AudioFile,
    BackendFeatures,
    ResultMetadata,
    TranscriptionResult,
    TranscriptionSegment,
    TranscriptionSettings,
    WordTimestamp,
)


@dataclass(frozen=True)
class WhisperConfig:
    """Configuration required to call the OpenAI audio API."""

    api_key: str = ""
    base_url: str = "https://api.openai.com/v1"
    model: str = "whisper-1"
    request_timeout: float = 300.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "WhisperConfig":
        if data is None:
            data = {}
        allowed = {field.name for field in fields(cls)}
        kwargs = {key: data[key] for key in allowed & data.keys()}
        return cls(**kwargs)

    def build_url(self, endpoint: str) -> str:
        return f"{self.base_url.rstrip('/')}/audio/{endpoint}"


class WhisperBackend(TranscriptionBackend):
    """
    Backend for the hosted OpenAI Whisper API.

    Whisper returns segment structure directly, so segments are mapped field by field
    and never re-grouped.
    """

    id = "whisper"
    name = "OpenAI Whisper"
    description = "High-quality transcription using OpenAI Whisper API"
    max_file_size = 25 * 1024 * 1024
    max_duration = 30 * 60
    supported_formats = ("mp3", "mp4", "m4a", "wav", "webm", "flac", "ogg")
    features = BackendFeatures(
        word_timestamps=True,
        diarization=False,
        translation=True,
        language_detection=True,
    )

    def __init__(
        self,
        config: WhisperConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not config.api_key:
            raise BackendConfigurationError("OpenAI")
        super().__init__(sleep=sleep)
        self._config = config
        self._session = session or requests.Session()

    def transcribe(
        self,
        audio: AudioFile,
        settings: TranscriptionSettings,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptionResult:
        self.validate_file(audio)

        started = time.monotonic()
        progress = ProgressReporter(on_progress)
        progress.report(10)

        translate = settings.enable_translation and settings.language != "en"
        endpoint = "translations" if translate else "transcriptions"
        form = self._build_form(settings, translate=translate)
        progress.report(30)

        try:
            response = self._session.post(
                self._config.build_url(endpoint),
                headers={"Authorization": f"Bearer {self._config.api_key}"},
                data=form,
                files={"file": (audio.filename or "audio.wav", audio.data, audio.content_type)},
                timeout=self._config.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("Whisper request failed for {}: {}", audio.filename, exc)
            raise ProviderError(f"Transcription failed: {exc}") from exc
        progress.report(80)

        if response.status_code != 200:
            raise ProviderError(
                f"Transcription failed: OpenAI returned HTTP {response.status_code}: "
                f"{self._error_message(response)}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError("Transcription failed: OpenAI returned a malformed response") from exc

        result = self.build_result(
            payload,
            audio=audio,
            settings=settings,
            processing_time=self._elapsed_ms(started),
            translated=translate,
        )
        progress.report(100)
        logger.info("Whisper transcription completed for {} ({} segments)", audio.filename, len(result.segments))
        return result

    def build_result(
        self,
        payload: Mapping[str, Any],
        *,
        audio: AudioFile,
        settings: TranscriptionSettings,
        processing_time: int = 0,
        translated: bool = False,
    ) -> TranscriptionResult:
        """Translate a ``verbose_json`` response into the canonical result."""
        loose_words = payload.get("words") or []
        segments: list[TranscriptionSegment] = []
        for index, item in enumerate(payload.get("segments") or []):
            try:
                start = float(item["start"])
                end = float(item["end"])
            except (KeyError, TypeError, ValueError) as exc:
                raise ProviderError(f"Transcription failed: malformed segment {index}: {exc}") from exc

            words: Optional[list[WordTimestamp]] = None
            if settings.enable_word_timestamps:
                raw_words = item.get("words") or self._words_within(loose_words, start, end)
                words = [self._map_word(word) for word in raw_words]

            segments.append(
                TranscriptionSegment(
                    id=f"segment-{index}",
                    text=(item.get("text") or "").strip(),
                    start_time=start,
                    end_time=end,
                    # Whisper does not report confidence.
                    confidence=1.0,
                    words=words,
                )
            )

        features = ["transcription"]
        if settings.enable_word_timestamps:
            features.append("word-timestamps")
        if translated:
            features.append("translation")

        return TranscriptionResult(
            id=self._generate_id(),
            text=(payload.get("text") or "").strip(),
            segments=segments,
            language=payload.get("language") or settings.language or "en",
            confidence=1.0,
            duration=float(payload.get("duration") or 0.0),
            metadata=ResultMetadata(
                filename=audio.filename,
                file_size=audio.size,
                processing_time=processing_time,
                backend=self.id,
                features=features,
            ),
        )

    def _build_form(self, settings: TranscriptionSettings, *, translate: bool) -> list[tuple[str, str]]:
        form = [("model", self._config.model), ("response_format", "verbose_json")]
        if translate:
            return form
        if settings.language and settings.language != "auto":
            form.append(("language", settings.language))
        if settings.enable_word_timestamps:
            form.append(("timestamp_granularities[]", "word"))
            form.append(("timestamp_granularities[]", "segment"))
        return form

    @staticmethod
    def _words_within(words: list[Mapping[str, Any]], start: float, end: float) -> list[Mapping[str, Any]]:
        """Loose words whose whole span lies inside ``[start, end]``."""
        selected = []
        for word in words:
            try:
                word_start = float(word["start"])
                word_end = float(word["end"])
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping Whisper word with invalid timing: {}", word)
                continue
            if start <= word_start and word_end <= end:
                selected.append(word)
        return selected

    @staticmethod
    def _map_word(item: Mapping[str, Any]) -> WordTimestamp:
        try:
            return WordTimestamp(
                word=str(item["word"]).strip(),
                start_time=float(item["start"]),
                end_time=float(item["end"]),
                confidence=1.0,
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderError(f"Transcription failed: malformed word timing: {exc}") from exc

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "unknown error"
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return str(error.get("message") or "unknown error")
        return str(error or "unknown error")
