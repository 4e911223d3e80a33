from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from transcriptor.transcription.models import TranscriptionResult, TranscriptionSettings


class JobStatus(str, Enum):
    """Lifecycle states for a transcription job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED)


class TranscriptionJob(BaseModel):
    """
    Unit of work and unit of persistence for a single transcription request.

    ``result`` is present only once completed and ``error`` only once failed.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    filename: str = Field(..., description="Sanitised filename.")
    file_size: int = Field(..., ge=0, alias="fileSize")
    status: JobStatus = JobStatus.QUEUED
    progress: float = Field(0, ge=0, le=100)
    result: Optional[TranscriptionResult] = None
    error: Optional[str] = None
    created_at: int = Field(..., alias="createdAt", description="Epoch milliseconds.")
    updated_at: int = Field(..., alias="updatedAt", description="Epoch milliseconds.")
    settings: TranscriptionSettings

    @model_validator(mode="after")
    def validate_outcome(self) -> "TranscriptionJob":
        if (self.result is not None) != (self.status is JobStatus.COMPLETED):
            raise ValueError("result must be present iff status is completed")
        if (self.error is not None) != (self.status is JobStatus.FAILED):
            raise ValueError("error must be present iff status is failed")
        return self

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True)
