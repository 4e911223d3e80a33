from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

from transcriptor.jobs import (
    JobRepository,
    JobStatus,
    TranscriptionJob,
    complete_job,
    fail_job,
    generate_transcription_job,
    start_job,
)
from transcriptor.transcription.models import (
    ResultMetadata,
    TranscriptionResult,
    TranscriptionSegment,
    TranscriptionSettings,
    WordTimestamp,
)


def _job(name: str, *, created: int) -> TranscriptionJob:
    return generate_transcription_job(
        SimpleNamespace(size=100),
        name,
        TranscriptionSettings(backend="assemblyai", enable_diarization=True),
        timestamp=created,
    )


def _result() -> TranscriptionResult:
    return TranscriptionResult(
        id="result-1",
        text="hi there",
        segments=[
            TranscriptionSegment(
                id="segment-0",
                text="hi there",
                start_time=0.0,
                end_time=1.0,
                confidence=0.5,
                speaker="Speaker A",
                words=[
                    WordTimestamp(word="hi", start_time=0.0, end_time=0.4, confidence=1.0),
                    WordTimestamp(word="there", start_time=0.5, end_time=1.0),
                ],
            )
        ],
        language="en_us",
        confidence=0.5,
        duration=1.0,
        metadata=ResultMetadata(
            filename="a.mp3",
            file_size=100,
            processing_time=10,
            backend="assemblyai",
            features=["transcription"],
        ),
    )


def test_queued_job_round_trips(tmp_path: Path) -> None:
    repository = JobRepository(tmp_path / "jobs.db")
    job = _job("a.mp3", created=1)

    assert repository.save(job) is True
    assert repository.get(job.id) == job
    repository.close()


def test_processing_jobs_are_never_persisted(tmp_path: Path) -> None:
    repository = JobRepository(tmp_path / "jobs.db")
    processing = start_job(_job("a.mp3", created=1))

    assert repository.save(processing) is False
    assert repository.get(processing.id) is None
    repository.close()


def test_starting_a_queued_job_removes_its_stored_row(tmp_path: Path) -> None:
    repository = JobRepository(tmp_path / "jobs.db")
    queued = _job("a.mp3", created=1)
    repository.save(queued)

    assert repository.save(start_job(queued)) is False
    assert repository.get(queued.id) is None
    assert list(repository.list()) == []
    repository.close()


def test_save_all_skips_in_flight_jobs(tmp_path: Path) -> None:
    repository = JobRepository(tmp_path / "jobs.db")
    queued = _job("a.mp3", created=1)
    processing = start_job(_job("b.mp3", created=2))
    failed = fail_job(start_job(_job("c.mp3", created=3)), "boom")

    assert repository.save_all([queued, processing, failed]) == 2
    assert {job.id for job in repository.list()} == {queued.id, failed.id}
    repository.close()


def test_completed_job_keeps_result_after_reopen(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "jobs.db"
    repository = JobRepository(db_path)
    job = _job("a.mp3", created=1)
    repository.save(job)
    completed = complete_job(start_job(job), _result())
    repository.save(completed)
    repository.close()

    reopened = JobRepository(db_path)
    loaded = reopened.get(job.id)

    assert loaded == completed
    assert loaded is not None
    assert loaded.status is JobStatus.COMPLETED
    assert loaded.result is not None
    assert loaded.result.segments[0].words is not None
    assert loaded.result.segments[0].words[1].confidence is None
    reopened.close()


def test_list_orders_newest_first_and_delete(tmp_path: Path) -> None:
    repository = JobRepository(tmp_path / "jobs.db")
    older = _job("old.mp3", created=1_000)
    newer = _job("new.mp3", created=2_000)
    repository.save(older)
    repository.save(newer)

    assert [job.filename for job in repository.list()] == ["new.mp3", "old.mp3"]
    assert repository.delete(older.id) is True
    assert repository.delete(older.id) is False
    assert [job.id for job in repository.list()] == [newer.id]
    repository.close()
