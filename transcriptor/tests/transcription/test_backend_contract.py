from __future__ import annotations

from typing import Optional

import pytest

from transcriptor.transcription.backend import ProgressCallback, ProgressReporter, TranscriptionBackend
from transcriptor.transcription.errors import BackendValidationError, TranscriptionTimeoutError
from transcriptor.transcription.models import (
    AudioFile,
    BackendFeatures,
    TranscriptionResult,
    TranscriptionSettings,
)


class _StubBackend(TranscriptionBackend):
    id = "stub"
    name = "Stub"
    description = "Backend used to exercise the shared contract"
    max_file_size = 10
    max_duration = 60
    supported_formats = ("mp3", "wav")
    features = BackendFeatures(word_timestamps=True)

    def transcribe(
        self,
        audio: AudioFile,
        settings: TranscriptionSettings,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptionResult:
        raise NotImplementedError


def test_progress_reporter_clamps_and_never_moves_backwards() -> None:
    seen: list[float] = []
    reporter = ProgressReporter(seen.append)

    reporter.report(-5)
    reporter.report(40)
    reporter.report(25)
    reporter.report(250)

    assert seen == [0.0, 40.0, 40.0, 100.0]
    assert reporter.last == 100.0


def test_progress_reporter_swallows_observer_failures() -> None:
    def _explode(value: float) -> None:
        raise RuntimeError("observer broke")

    reporter = ProgressReporter(_explode)
    reporter.report(50)

    assert reporter.last == 50.0


def test_progress_reporter_without_callback() -> None:
    reporter = ProgressReporter()
    reporter.report(10)
    assert reporter.last == 10.0


def test_descriptor_serialises_with_camel_case_keys() -> None:
    descriptor = _StubBackend().descriptor().model_dump(by_alias=True)

    assert descriptor["id"] == "stub"
    assert descriptor["maxFileSize"] == 10
    assert descriptor["maxDuration"] == 60
    assert descriptor["supportedFormats"] == ["mp3", "wav"]
    assert descriptor["features"]["wordTimestamps"] is True


def test_validate_file_rejects_oversized_audio() -> None:
    with pytest.raises(BackendValidationError, match="exceeds maximum limit"):
        _StubBackend().validate_file(AudioFile(data=b"x" * 11, filename="big.mp3", content_type="audio/mpeg"))


@pytest.mark.parametrize(
    ("filename", "content_type"),
    [
        ("clip.mp3", "audio/mpeg"),  # matched by extension
        ("recording", "audio/wav"),  # matched by MIME subtype
    ],
)
def test_validate_file_accepts_extension_or_mime_match(filename: str, content_type: str) -> None:
    _StubBackend().validate_file(AudioFile(data=b"abc", filename=filename, content_type=content_type))


def test_validate_file_rejects_unsupported_format() -> None:
    with pytest.raises(BackendValidationError) as excinfo:
        _StubBackend().validate_file(AudioFile(data=b"abc", filename="clip.ogg", content_type="audio/ogg"))

    assert "audio/ogg is not supported" in str(excinfo.value)
    assert "mp3, wav" in str(excinfo.value)


def test_poll_returns_first_settled_value() -> None:
    sleeps: list[float] = []
    backend = _StubBackend(sleep=sleeps.append)
    responses = iter(["pending", "pending", "done"])
    ticks: list[tuple[int, str]] = []

    value = backend._poll(
        lambda: next(responses),
        lambda current: current == "pending",
        max_attempts=5,
        interval=0.25,
        on_tick=lambda attempt, current: ticks.append((attempt, current)),
    )

    assert value == "done"
    assert sleeps == [0.25, 0.25]
    assert ticks == [(1, "pending"), (2, "done")]


def test_poll_times_out_after_max_attempts() -> None:
    sleeps: list[float] = []
    backend = _StubBackend(sleep=sleeps.append)

    with pytest.raises(TranscriptionTimeoutError) as excinfo:
        backend._poll(lambda: "pending", lambda current: True, max_attempts=3, interval=5.0)

    assert excinfo.value.attempts == 3
    assert len(sleeps) == 3
    assert "timed out after 3 polling attempts (15s)" in str(excinfo.value)
