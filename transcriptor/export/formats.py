from __future__ import annotations

"""
Serialisers turning a canonical TranscriptionResult into timed-text formats.

Every time component is derived by truncation, never rounding: whole hours,
minutes and seconds via floor division and milliseconds as
``floor((seconds mod 1) * 1000)``.
"""

import json
from datetime import datetime
from typing import Any, Optional

from transcriptor.transcription.models import TranscriptionResult, TranscriptionSegment

from .models import ExportFormat, ExportOptions


def _split(seconds: float) -> tuple[int, int, int]:
    whole_seconds = int(seconds // 1)
    millis = int((seconds % 1) * 1000)
    return whole_seconds // 60, whole_seconds % 60, millis


def format_srt_time(seconds: float) -> str:
    """``HH:MM:SS,mmm``"""
    total_minutes, secs, millis = _split(seconds)
    hours, minutes = divmod(total_minutes, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d},{millis:03d}"


def format_vtt_time(seconds: float) -> str:
    """``MM:SS.mmm``; minutes keep counting past 59."""
    minutes, secs, millis = _split(seconds)
    return f"{minutes:02d}:{secs:02d}.{millis:03d}"


def format_timestamp(seconds: float) -> str:
    """``MM:SS`` used as the plain-text line prefix."""
    minutes, secs, _ = _split(seconds)
    return f"{minutes:02d}:{secs:02d}"


def _speaker_text(segment: TranscriptionSegment, options: ExportOptions) -> str:
    if options.include_speakers and segment.speaker:
        return f"{segment.speaker}: {segment.text}"
    return segment.text


def generate_txt(result: TranscriptionResult, options: ExportOptions) -> str:
    if not options.include_timestamps and not options.include_speakers:
        return result.text
    if not result.segments:
        return result.text

    lines: list[str] = []
    for segment in result.segments:
        line = ""
        if options.include_timestamps:
            line += f"[{format_timestamp(segment.start_time)}] "
        line += _speaker_text(segment, options)
        lines.append(line)
    return "\n".join(lines)


def generate_srt(result: TranscriptionResult, options: ExportOptions) -> str:
    if not result.segments:
        return result.text

    cues = [
        f"{index}\n"
        f"{format_srt_time(segment.start_time)} --> {format_srt_time(segment.end_time)}\n"
        f"{_speaker_text(segment, options)}\n"
        for index, segment in enumerate(result.segments, start=1)
    ]
    return "\n".join(cues)


def generate_vtt(result: TranscriptionResult, options: ExportOptions) -> str:
    header = "WEBVTT\n\n"
    if not result.segments:
        return header + f"{format_vtt_time(0)} --> {format_vtt_time(result.duration or 0)}\n{result.text}\n"

    cues: list[str] = []
    for segment in result.segments:
        text = segment.text
        if options.include_speakers and segment.speaker:
            text = f"<v {segment.speaker}>{text}"
        cues.append(f"{format_vtt_time(segment.start_time)} --> {format_vtt_time(segment.end_time)}\n{text}\n")
    return header + "\n".join(cues)


def generate_json(
    result: TranscriptionResult,
    options: ExportOptions,
    *,
    exported_at: Optional[datetime] = None,
) -> str:
    """Structured export; optional per-segment keys are omitted rather than nulled."""
    segments: list[dict[str, Any]] = []
    for segment in result.segments:
        entry: dict[str, Any] = {
            "id": segment.id,
            "text": segment.text,
            "startTime": segment.start_time,
            "endTime": segment.end_time,
        }
        if options.include_speakers and segment.speaker:
            entry["speaker"] = segment.speaker
        if options.include_confidence and segment.confidence is not None:
            entry["confidence"] = segment.confidence
        if segment.words:
            entry["words"] = [word.model_dump(by_alias=True, exclude_none=True) for word in segment.words]
        segments.append(entry)

    metadata = result.metadata.model_dump(by_alias=True)
    metadata["exportOptions"] = {"format": ExportFormat.JSON.value, **options.model_dump(by_alias=True)}
    if exported_at is not None:
        metadata["exportedAt"] = exported_at.isoformat()

    payload = {
        "text": result.text,
        "language": result.language,
        "duration": result.duration,
        "segments": segments,
        "metadata": metadata,
    }
    return json.dumps(payload, indent=2, ensure_ascii=False)
