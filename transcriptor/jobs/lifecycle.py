from __future__ import annotations

import math
import time
import uuid
from typing import Any, Optional

from transcriptor.transcription.models import TranscriptionResult, TranscriptionSettings
from transcriptor.validation import sanitize_filename

from .errors import InvalidJobTransitionError
from .models import JobStatus, TranscriptionJob

_STATUS_TEXT = {
    JobStatus.QUEUED: "Queued",
    JobStatus.PROCESSING: "Processing",
    JobStatus.COMPLETED: "Completed",
    JobStatus.FAILED: "Failed",
    JobStatus.CANCELLED: "Cancelled",
}


def now_ms() -> int:
    return int(time.time() * 1000)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def generate_transcription_job(
    audio: Any,
    filename: str,
    settings: TranscriptionSettings,
    *,
    timestamp: Optional[int] = None,
) -> TranscriptionJob:
    """Create a queued job for ``audio``; only its ``size`` attribute is read."""
    created = timestamp if timestamp is not None else now_ms()
    return TranscriptionJob(
        id=str(uuid.uuid4()),
        filename=sanitize_filename(filename),
        file_size=audio.size,
        status=JobStatus.QUEUED,
        progress=0,
        created_at=created,
        updated_at=created,
        settings=settings.model_copy(),
    )


def _transition(job: TranscriptionJob, target: JobStatus, allowed: tuple[JobStatus, ...], **changes: Any) -> TranscriptionJob:
    if job.status not in allowed:
        raise InvalidJobTransitionError(job.id, job.status, target)
    return job.model_copy(update={"status": target, "updated_at": now_ms(), **changes})


def start_job(job: TranscriptionJob) -> TranscriptionJob:
    return _transition(job, JobStatus.PROCESSING, (JobStatus.QUEUED,))


def update_job_progress(job: TranscriptionJob, progress: float) -> TranscriptionJob:
    """Advance progress of a processing job; values never move backwards."""
    if job.status is not JobStatus.PROCESSING:
        raise InvalidJobTransitionError(job.id, job.status, JobStatus.PROCESSING)
    value = max(job.progress, min(100.0, max(0.0, float(progress))))
    if value == job.progress:
        return job
    return job.model_copy(update={"progress": value, "updated_at": now_ms()})


def complete_job(job: TranscriptionJob, result: TranscriptionResult) -> TranscriptionJob:
    return _transition(
        job,
        JobStatus.COMPLETED,
        (JobStatus.QUEUED, JobStatus.PROCESSING),
        result=result,
        progress=100.0,
    )


def fail_job(job: TranscriptionJob, error: str) -> TranscriptionJob:
    return _transition(job, JobStatus.FAILED, (JobStatus.QUEUED, JobStatus.PROCESSING), error=error)


def cancel_job(job: TranscriptionJob) -> TranscriptionJob:
    return _transition(job, JobStatus.CANCELLED, (JobStatus.QUEUED, JobStatus.PROCESSING))


def replace_result(job: TranscriptionJob, result: TranscriptionResult) -> TranscriptionJob:
    """Swap the result of a completed job, e.g. after a segment edit."""
    if job.status is not JobStatus.COMPLETED:
        raise InvalidJobTransitionError(job.id, job.status, JobStatus.COMPLETED)
    return job.model_copy(update={"result": result, "updated_at": now_ms()})


def is_job_processing(job: TranscriptionJob) -> bool:
    return job.status in (JobStatus.QUEUED, JobStatus.PROCESSING)


def is_job_completed(job: TranscriptionJob) -> bool:
    return job.status is JobStatus.COMPLETED


def is_job_failed(job: TranscriptionJob) -> bool:
    return job.status is JobStatus.FAILED


def job_status_text(status: JobStatus | str) -> str:
    try:
        return _STATUS_TEXT[JobStatus(status)]
    except ValueError:
        return "Unknown"


def format_file_size(num_bytes: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    size = float(num_bytes)
    unit_index = 0
    while size >= 1024 and unit_index < len(units) - 1:
        size /= 1024
        unit_index += 1
    if unit_index == 0:
        return f"{_round_half_up(size)} {units[0]}"
    return f"{size:.1f} {units[unit_index]}"


def format_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{_round_half_up(seconds)}s"

    minutes = int(seconds // 60)
    remaining_seconds = _round_half_up(seconds % 60)
    if minutes < 60:
        return f"{minutes}m {remaining_seconds}s"

    hours, remaining_minutes = divmod(minutes, 60)
    return f"{hours}h {remaining_minutes}m {remaining_seconds}s"


def calculate_eta(progress: float, start_ms: int, *, current_ms: Optional[int] = None) -> str:
    """Estimate time remaining from a progress fraction in [0, 1]."""
    if progress <= 0:
        return "Calculating..."

    elapsed = (current_ms if current_ms is not None else now_ms()) - start_ms
    if elapsed <= 0:
        return "Calculating..."

    rate = progress / elapsed
    remaining = (1 - progress) / rate

    if remaining < 60_000:
        return f"{_round_half_up(remaining / 1000)}s remaining"
    if remaining < 3_600_000:
        return f"{_round_half_up(remaining / 60_000)}m remaining"
    return f"{_round_half_up(remaining / 3_600_000)}h remaining"
