from __future__ import annotations

import uuid
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from transcriptor.jobs import (
    InvalidJobTransitionError,
    JobStatus,
    TranscriptionJob,
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
from transcriptor.transcription.models import ResultMetadata, TranscriptionResult, TranscriptionSettings


def _result() -> TranscriptionResult:
    return TranscriptionResult(
        id="result-1",
        text="done",
        language="en",
        confidence=1.0,
        duration=1.0,
        metadata=ResultMetadata(filename="clip.mp3", file_size=3, processing_time=1, backend="whisper"),
    )


def _job() -> TranscriptionJob:
    return generate_transcription_job(
        SimpleNamespace(size=2048),
        "my recording?.mp3",
        TranscriptionSettings(language="de"),
        timestamp=1_700_000_000_000,
    )


def test_generated_job_is_queued_with_sanitised_filename() -> None:
    job = _job()

    assert uuid.UUID(job.id)
    assert job.status is JobStatus.QUEUED
    assert job.progress == 0
    assert job.filename == "my_recording_.mp3"
    assert job.file_size == 2048
    assert job.created_at == job.updated_at == 1_700_000_000_000
    assert job.settings.language == "de"
    assert job.result is None
    assert job.error is None


def test_full_success_path() -> None:
    job = start_job(_job())
    assert job.status is JobStatus.PROCESSING
    assert job.updated_at > job.created_at

    job = update_job_progress(job, 40)
    job = update_job_progress(job, 25)
    assert job.progress == 40

    job = update_job_progress(job, 180)
    assert job.progress == 100

    done = complete_job(job, _result())
    assert done.status is JobStatus.COMPLETED
    assert done.progress == 100
    assert done.result == _result()
    assert is_job_completed(done)
    assert not is_job_processing(done)


def test_failure_attaches_error() -> None:
    failed = fail_job(start_job(_job()), "Transcription failed: boom")

    assert failed.status is JobStatus.FAILED
    assert failed.error == "Transcription failed: boom"
    assert failed.result is None
    assert is_job_failed(failed)


def test_cancel_from_queued_and_processing() -> None:
    assert cancel_job(_job()).status is JobStatus.CANCELLED
    assert cancel_job(start_job(_job())).status is JobStatus.CANCELLED


@pytest.mark.parametrize(
    "terminal",
    [
        lambda job: complete_job(job, _result()),
        lambda job: fail_job(job, "nope"),
        cancel_job,
    ],
)
def test_no_transition_out_of_terminal_states(terminal) -> None:
    job = terminal(start_job(_job()))
    assert job.status.is_terminal

    with pytest.raises(InvalidJobTransitionError):
        start_job(job)
    with pytest.raises(InvalidJobTransitionError):
        cancel_job(job)
    with pytest.raises(InvalidJobTransitionError):
        fail_job(job, "again")
    with pytest.raises(InvalidJobTransitionError):
        update_job_progress(job, 50)


def test_cannot_start_twice() -> None:
    with pytest.raises(InvalidJobTransitionError, match="processing to processing"):
        start_job(start_job(_job()))


def test_outcome_fields_are_tied_to_status() -> None:
    job = _job()
    payload = job.model_dump()

    with pytest.raises(ValidationError):
        TranscriptionJob.model_validate({**payload, "status": "completed"})
    with pytest.raises(ValidationError):
        TranscriptionJob.model_validate({**payload, "status": "failed"})
    with pytest.raises(ValidationError):
        TranscriptionJob.model_validate({**payload, "error": "stray error"})


def test_status_predicates_and_text() -> None:
    assert is_job_processing(_job())
    assert is_job_processing(start_job(_job()))
    assert job_status_text(JobStatus.PROCESSING) == "Processing"
    assert job_status_text("cancelled") == "Cancelled"
    assert job_status_text("mystery") == "Unknown"


@pytest.mark.parametrize(
    ("size", "expected"),
    [
        (0, "0 B"),
        (512, "512 B"),
        (1024, "1.0 KB"),
        (1536, "1.5 KB"),
        (1024 * 1024, "1.0 MB"),
        (1024 * 1024 * 1024, "1.0 GB"),
    ],
)
def test_format_file_size(size: int, expected: str) -> None:
    assert format_file_size(size) == expected


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [(30, "30s"), (44.5, "45s"), (90, "1m 30s"), (3661, "1h 1m 1s"), (7200, "2h 0m 0s")],
)
def test_format_duration(seconds: float, expected: str) -> None:
    assert format_duration(seconds) == expected


def test_calculate_eta() -> None:
    assert calculate_eta(0, 0, current_ms=5000) == "Calculating..."
    assert calculate_eta(0.5, 1000, current_ms=1000) == "Calculating..."
    assert calculate_eta(0.5, 0, current_ms=10_000) == "10s remaining"
    assert calculate_eta(0.25, 0, current_ms=60_000) == "3m remaining"
    assert calculate_eta(0.1, 0, current_ms=3_600_000) == "9h remaining"
