from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _CanonicalModel(BaseModel):
    """Base for the canonical shapes; accepts both snake_case and camelCase keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class WordTimestamp(_CanonicalModel):
    """A single recognised word with its timing."""

    word: str
    start_time: float = Field(..., ge=0, alias="startTime", description="Word start in seconds.")
    end_time: float = Field(..., ge=0, alias="endTime", description="Word end in seconds.")
    confidence: Optional[float] = Field(None, ge=0, le=1)

    @model_validator(mode="after")
    def validate_range(self) -> "WordTimestamp":
        if self.end_time < self.start_time:
            raise ValueError("endTime must be >= startTime")
        return self


class TranscriptionSegment(_CanonicalModel):
    """
    Contiguous, time-bounded span of transcript text.

    Ordering and non-overlap across segments are the producer's responsibility;
    the model only checks its own range.
    """

    id: str
    text: str
    start_time: float = Field(..., ge=0, alias="startTime")
    end_time: float = Field(..., ge=0, alias="endTime")
    confidence: Optional[float] = Field(None, ge=0, le=1)
    speaker: Optional[str] = None
    words: Optional[list[WordTimestamp]] = None

    @model_validator(mode="after")
    def validate_range(self) -> "TranscriptionSegment":
        if self.end_time < self.start_time:
            raise ValueError("endTime must be >= startTime")
        return self


class ResultMetadata(_CanonicalModel):
    filename: str
    file_size: int = Field(..., ge=0, alias="fileSize", description="Size of the source audio in bytes.")
    processing_time: int = Field(..., ge=0, alias="processingTime", description="Wall time in milliseconds.")
    backend: str
    features: list[str] = Field(default_factory=list)


class TranscriptionResult(_CanonicalModel):
    """The canonical result every backend converges to before export."""

    id: str
    text: str
    segments: list[TranscriptionSegment] = Field(default_factory=list)
    language: str
    confidence: float = Field(..., ge=0, le=1)
    duration: float = Field(..., ge=0, description="Audio duration in seconds.")
    metadata: ResultMetadata

    def with_segment_text(self, segment_id: str, text: str) -> "TranscriptionResult":
        """Return a copy with one segment's text replaced and the full text rebuilt."""
        segments: list[TranscriptionSegment] = []
        found = False
        for segment in self.segments:
            if segment.id == segment_id:
                segment = segment.model_copy(update={"text": text})
                found = True
            segments.append(segment)
        if not found:
            raise KeyError(segment_id)

        full_text = " ".join(segment.text.strip() for segment in segments if segment.text.strip())
        return self.model_copy(update={"segments": segments, "text": full_text})

    def to_json(self) -> str:
        return self.model_dump_json(indent=2, by_alias=True, exclude_none=True)


class TranscriptionSettings(_CanonicalModel):
    """Per-request options chosen by the caller."""

    language: str = "auto"
    backend: str = "whisper"
    enable_translation: bool = Field(False, alias="enableTranslation")
    enable_diarization: bool = Field(False, alias="enableDiarization")
    enable_word_timestamps: bool = Field(True, alias="enableWordTimestamps")


class BackendFeatures(_CanonicalModel):
    word_timestamps: bool = Field(False, alias="wordTimestamps")
    diarization: bool = False
    translation: bool = False
    language_detection: bool = Field(False, alias="languageDetection")


class BackendDescriptor(_CanonicalModel):
    """JSON-serialisable capability descriptor used to populate selection UIs."""

    id: str
    name: str
    description: str
    max_file_size: int = Field(..., gt=0, alias="maxFileSize", description="Bytes.")
    max_duration: int = Field(..., gt=0, alias="maxDuration", description="Seconds.")
    supported_formats: list[str] = Field(default_factory=list, alias="supportedFormats")
    features: BackendFeatures


@dataclass(frozen=True)
class AudioFile:
    """Raw audio handed to a backend; the file-like shape the validation layer inspects."""

    data: bytes
    filename: str
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)
