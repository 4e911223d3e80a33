from .errors import InvalidJobTransitionError, JobNotFoundError
from .lifecycle import (
    calculate_eta,
    cancel_job,
    complete_job,
    fail_job,
    format_duration,
    format_file_size,
    generate_transcription_job,
    is_job_completed,
    is_job_failed,
    is_job_processing,
    job_status_text,
    start_job,
    update_job_progress,
)
from .models import JobStatus, TranscriptionJob
from .repository import JobRepository
from .service import BackendUnavailableError, JobService, UnsupportedCapabilityError

__all__ = [
    "BackendUnavailableError",
    "InvalidJobTransitionError",
    "JobNotFoundError",
    "JobRepository",
    "JobService",
    "JobStatus",
    "TranscriptionJob",
    "UnsupportedCapabilityError",
    "calculate_eta",
    "cancel_job",
    "complete_job",
    "fail_job",
    "format_duration",
    "format_file_size",
    "generate_transcription_job",
    "is_job_completed",
    "is_job_failed",
    "is_job_processing",
    "job_status_text",
    "start_job",
    "update_job_progress",
]
