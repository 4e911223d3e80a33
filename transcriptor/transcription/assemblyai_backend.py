from __future__ import annotations

import time
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping, Optional

import requests
from loguru import logger
from pydantic import ValidationError

from .backend import ProgressCallback, ProgressReporter, TranscriptionBackend
from .errors import BackendConfigurationError, ProviderError
from .grouping import DetectedWord, group_words_into_segments
from .models import (
    AudioFile,
    BackendFeatures,
    ResultMetadata,
    TranscriptionResult,
    TranscriptionSettings,
)

_PENDING_STATUSES = {"queued", "processing"}

_LANGUAGE_CODES = {
    "en": "en_us",
    "es": "es",
    "fr": "fr",
    "de": "de",
    "it": "it",
    "pt": "pt",
    "ru": "ru",
    "ja": "ja",
    "ko": "ko",
    "zh": "zh",
}


@dataclass(frozen=True)
class AssemblyAIConfig:
    """Configuration required to call the AssemblyAI v2 API."""

    api_key: str = ""
    base_url: str = "https://api.assemblyai.com/v2"
    request_timeout: float = 120.0
    poll_interval: float = 5.0
    max_poll_attempts: int = 120

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AssemblyAIConfig":
        if data is None:
            data = {}
        allowed = {field.name for field in fields(cls)}
        kwargs = {key: data[key] for key in allowed & data.keys()}
        return cls(**kwargs)

    def build_url(self, path: str) -> str:
        return f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"


def map_language_code(language: str) -> str:
    return _LANGUAGE_CODES.get(language, "en_us")


class AssemblyAIBackend(TranscriptionBackend):
    """
    Backend for AssemblyAI's asynchronous transcription API.

    The provider only reports word-level timing, so its words are grouped into
    segments by speaker changes and pauses.
    """

    id = "assemblyai"
    name = "AssemblyAI"
    description = "Advanced AI transcription with speaker diarization and analysis"
    max_file_size = 100 * 1024 * 1024
    max_duration = 4 * 60 * 60
    supported_formats = ("mp3", "mp4", "m4a", "wav", "webm", "flac", "aac")
    features = BackendFeatures(
        word_timestamps=True,
        diarization=True,
        translation=False,
        language_detection=True,
    )

    def __init__(
        self,
        config: AssemblyAIConfig,
        *,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not config.api_key:
            raise BackendConfigurationError("AssemblyAI")
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
        progress.report(5)

        upload = self._request("POST", "upload", data=audio.data, content_type="application/octet-stream")
        upload_url = upload.get("upload_url")
        if not upload_url:
            raise ProviderError("Transcription failed: AssemblyAI upload returned no upload_url")
        progress.report(20)

        params = self._build_params(upload_url, settings)
        progress.report(30)

        submitted = self._request("POST", "transcript", json=params)
        transcript_id = submitted.get("id")
        if not transcript_id:
            raise ProviderError("Transcription failed: AssemblyAI did not return a transcript id")
        logger.info("AssemblyAI transcript {} submitted for {}", transcript_id, audio.filename)
        progress.report(40)

        max_attempts = self._config.max_poll_attempts

        def _on_tick(attempt: int, current: dict[str, Any]) -> None:
            if current.get("status") == "processing":
                progress.report(min(40 + (attempt / max_attempts) * 50, 90))

        payload = self._poll(
            lambda: self._request("GET", f"transcript/{transcript_id}"),
            lambda current: current.get("status") in _PENDING_STATUSES,
            max_attempts=max_attempts,
            interval=self._config.poll_interval,
            on_tick=_on_tick,
        )

        if payload.get("status") == "error":
            raise ProviderError(f"Transcription failed: {payload.get('error') or 'Transcription failed'}")
        if payload.get("status") != "completed":
            raise ProviderError(f"Transcription failed: unexpected status {payload.get('status')!r}")
        progress.report(95)

        result = self.build_result(
            payload,
            audio=audio,
            settings=settings,
            processing_time=self._elapsed_ms(started),
        )
        progress.report(100)
        return result

    def build_result(
        self,
        payload: Mapping[str, Any],
        *,
        audio: AudioFile,
        settings: TranscriptionSettings,
        processing_time: int = 0,
    ) -> TranscriptionResult:
        """Translate a completed transcript payload into the canonical result."""
        words: list[DetectedWord] = []
        for item in payload.get("words") or []:
            try:
                words.append(
                    DetectedWord(
                        word=str(item["text"]),
                        start_time=float(item["start"]) / 1000,
                        end_time=float(item["end"]) / 1000,
                        confidence=item.get("confidence"),
                        speaker=f"Speaker {item['speaker']}" if item.get("speaker") else None,
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                logger.debug("Skipping AssemblyAI word with invalid timing: {}", exc)

        try:
            segments = group_words_into_segments(words)
        except ValidationError as exc:
            raise ProviderError(f"Transcription failed: malformed word data: {exc}") from exc

        features = ["transcription", "word-timestamps"]
        if settings.enable_diarization:
            features.append("speaker-diarization")

        return TranscriptionResult(
            id=self._generate_id(),
            text=payload.get("text") or "",
            segments=segments,
            language=payload.get("language_code") or settings.language or "en",
            confidence=float(payload.get("confidence") or 0.0),
            duration=float(payload.get("audio_duration") or 0.0),
            metadata=ResultMetadata(
                filename=audio.filename,
                file_size=audio.size,
                processing_time=processing_time,
                backend=self.id,
                features=features,
            ),
        )

    def _build_params(self, upload_url: str, settings: TranscriptionSettings) -> dict[str, Any]:
        params: dict[str, Any] = {
            "audio_url": upload_url,
            "language_detection": settings.language == "auto",
        }
        if settings.language and settings.language != "auto":
            params["language_code"] = map_language_code(settings.language)
        if settings.enable_diarization and self.features.diarization:
            params["speaker_labels"] = True
        return params

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[dict[str, Any]] = None,
        data: Optional[bytes] = None,
        content_type: str = "application/json",
    ) -> dict[str, Any]:
        headers = {"Authorization": self._config.api_key, "Content-Type": content_type}
        try:
            response = self._session.request(
                method,
                self._config.build_url(path),
                headers=headers,
                json=json,
                data=data,
                timeout=self._config.request_timeout,
            )
        except requests.RequestException as exc:
            logger.error("AssemblyAI {} {} failed: {}", method, path, exc)
            raise ProviderError(f"Transcription failed: {exc}") from exc

        if response.status_code >= 400:
            raise ProviderError(
                f"Transcription failed: AssemblyAI returned HTTP {response.status_code}: "
                f"{self._error_message(response)}"
            )
        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderError("Transcription failed: AssemblyAI returned a malformed response") from exc
        if not isinstance(body, dict):
            raise ProviderError("Transcription failed: AssemblyAI returned a malformed response")
        return body

    @staticmethod
    def _error_message(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or "unknown error"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return "unknown error"
