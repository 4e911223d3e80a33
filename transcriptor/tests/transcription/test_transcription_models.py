from __future__ import annotations

import json

import pytest
from pydantic import ValidationError

from transcriptor.transcription.models import (
    ResultMetadata,
    TranscriptionResult,
    TranscriptionSegment,
    TranscriptionSettings,
    WordTimestamp,
)


def _result() -> TranscriptionResult:
    return TranscriptionResult(
        id="result-1",
        text="Hello there. General Kenobi.",
        segments=[
            TranscriptionSegment(id="segment-0", text="Hello there.", start_time=0.0, end_time=1.5),
            TranscriptionSegment(id="segment-1", text="General Kenobi.", start_time=2.0, end_time=3.5),
        ],
        language="en",
        confidence=0.92,
        duration=3.5,
        metadata=ResultMetadata(
            filename="clip.mp3",
            file_size=1024,
            processing_time=250,
            backend="whisper",
            features=["transcription"],
        ),
    )


def test_camel_case_payload_is_accepted() -> None:
    segment = TranscriptionSegment.model_validate(
        {
            "id": "segment-0",
            "text": "hi",
            "startTime": 1.0,
            "endTime": 2.0,
            "words": [{"word": "hi", "startTime": 1.0, "endTime": 2.0}],
        }
    )

    assert segment.start_time == 1.0
    assert segment.words == [WordTimestamp(word="hi", start_time=1.0, end_time=2.0)]


def test_end_before_start_is_rejected() -> None:
    with pytest.raises(ValidationError):
        TranscriptionSegment(id="s", text="x", start_time=2.0, end_time=1.0)
    with pytest.raises(ValidationError):
        WordTimestamp(word="x", start_time=2.0, end_time=1.0)


def test_confidence_outside_unit_interval_is_rejected() -> None:
    with pytest.raises(ValidationError):
        WordTimestamp(word="x", start_time=0.0, end_time=1.0, confidence=1.5)


def test_settings_defaults_and_aliases() -> None:
    defaults = TranscriptionSettings()
    assert defaults.language == "auto"
    assert defaults.backend == "whisper"
    assert defaults.enable_word_timestamps is True

    parsed = TranscriptionSettings.model_validate({"backend": "assemblyai", "enableDiarization": True})
    assert parsed.enable_diarization is True
    assert parsed.enable_translation is False


def test_with_segment_text_rebuilds_full_text() -> None:
    original = _result()

    edited = original.with_segment_text("segment-1", "  General Grievous.  ")

    assert edited.segments[1].text == "  General Grievous.  "
    assert edited.text == "Hello there. General Grievous."
    assert edited.segments[1].start_time == 2.0
    # The source result is untouched.
    assert original.text == "Hello there. General Kenobi."
    assert original.segments[1].text == "General Kenobi."


def test_with_segment_text_unknown_segment() -> None:
    with pytest.raises(KeyError):
        _result().with_segment_text("segment-9", "nope")


def test_to_json_uses_camel_case_and_drops_missing_values() -> None:
    payload = json.loads(_result().to_json())

    assert payload["metadata"]["fileSize"] == 1024
    assert payload["segments"][0]["startTime"] == 0.0
    assert "speaker" not in payload["segments"][0]
    assert TranscriptionResult.model_validate(payload) == _result()
