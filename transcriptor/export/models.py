from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ExportFormat(str, Enum):
    """Timed-text formats the export engine can produce."""

    TXT = "txt"
    SRT = "srt"
    VTT = "vtt"
    JSON = "json"


class ExportOptions(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    include_timestamps: bool = Field(False, alias="includeTimestamps")
    include_speakers: bool = Field(False, alias="includeSpeakers")
    include_confidence: bool = Field(False, alias="includeConfidence")


@dataclass(frozen=True)
class ExportedDocument:
    content: str
    mime_type: str
    extension: str
    filename: str
