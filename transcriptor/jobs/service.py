from __future__ import annotations

"""
Synchronous orchestration of transcription jobs.

The service owns the in-memory view of every job (including in-flight ones that the
repository refuses to persist) and drives a job through its backend, mapping any
failure onto the job before re-raising it to the caller.
"""

import threading
from typing import Iterable, Optional

from loguru import logger

from transcriptor.config import AppConfig
from transcriptor.transcription.backend import TranscriptionBackend
from transcriptor.transcription.models import AudioFile, TranscriptionSettings
from transcriptor.transcription.registry import BackendRegistry
from transcriptor.validation import validate_audio_file, validate_upload_request

from .errors import InvalidJobTransitionError, JobNotFoundError
from .lifecycle import (
    cancel_job,
    complete_job,
    fail_job,
    generate_transcription_job,
    replace_result,
    start_job,
    update_job_progress,
)
from .models import JobStatus, TranscriptionJob
from .repository import JobRepository


class BackendUnavailableError(LookupError):
    """Raised when the requested backend is not registered or cannot be constructed."""

    def __init__(self, backend_id: str) -> None:
        super().__init__(f"Backend '{backend_id}' is not available")
        self.backend_id = backend_id

    def __str__(self) -> str:
        return self.args[0]


class UnsupportedCapabilityError(ValueError):
    """Raised when settings request a capability the backend or deployment lacks."""


class JobService:
    """Create, run, cancel and edit transcription jobs."""

    def __init__(
        self,
        registry: BackendRegistry,
        *,
        config: Optional[AppConfig] = None,
        repository: Optional[JobRepository] = None,
    ) -> None:
        self._registry = registry
        self._config = config or AppConfig()
        self._repository = repository
        self._jobs: dict[str, TranscriptionJob] = {}
        self._lock = threading.RLock()

    def submit(self, audio: AudioFile, settings: TranscriptionSettings) -> TranscriptionJob:
        """Validate ``audio`` and register a queued job for it."""
        limits = self._config.upload_limits
        validate_upload_request(audio, audio.filename, limits.max_size_bytes).raise_if_invalid()
        validate_audio_file(
            audio,
            max_size=limits.max_size_bytes,
            allowed_types=limits.allowed_types,
        ).raise_if_invalid()

        job = generate_transcription_job(audio, audio.filename, settings)
        self._store(job)
        logger.info("Queued transcription job {} for {} via {}", job.id, job.filename, settings.backend)
        return job

    def run(self, job_id: str, audio: AudioFile) -> TranscriptionJob:
        """
        Execute a queued job to completion.

        Any failure (unavailable backend, missing capability, provider error, timeout)
        marks the job failed with the error message and is re-raised.
        """
        job = self.get(job_id)
        try:
            backend = self.resolve_backend(job.settings)
        except (BackendUnavailableError, UnsupportedCapabilityError) as exc:
            self._store(fail_job(job, str(exc)))
            raise

        job = self._store(start_job(job))
        logger.info("Transcription job {} started on {}", job_id, backend.id)

        try:
            result = backend.transcribe(audio, job.settings, lambda value: self._advance(job_id, value))
        except Exception as exc:
            logger.exception("Transcription job {} failed: {}", job_id, exc)
            with self._lock:
                current = self.get(job_id)
                if current.status is JobStatus.PROCESSING:
                    self._store(fail_job(current, str(exc) or exc.__class__.__name__))
            raise

        with self._lock:
            current = self.get(job_id)
            if current.status is JobStatus.CANCELLED:
                logger.info("Discarding result for cancelled job {}", job_id)
                return current
            completed = self._store(complete_job(current, result))
        logger.info("Transcription job {} completed ({} segments)", job_id, len(result.segments))
        return completed

    def transcribe(self, audio: AudioFile, settings: TranscriptionSettings) -> TranscriptionJob:
        job = self.submit(audio, settings)
        return self.run(job.id, audio)

    def resolve_backend(self, settings: TranscriptionSettings) -> TranscriptionBackend:
        if not self._registry.is_backend_available(settings.backend):
            raise BackendUnavailableError(settings.backend)
        backend = self._registry.get_backend(settings.backend)
        if backend is None:
            raise BackendUnavailableError(settings.backend)

        features = self._config.features
        if settings.enable_diarization:
            if not backend.features.diarization:
                raise UnsupportedCapabilityError("Selected backend does not support speaker diarization")
            if not features.enable_diarization:
                raise UnsupportedCapabilityError("Speaker diarization is disabled")
        if settings.enable_translation:
            if not backend.features.translation:
                raise UnsupportedCapabilityError("Selected backend does not support translation")
            if not features.enable_translation:
                raise UnsupportedCapabilityError("Translation is disabled")
        return backend

    def cancel(self, job_id: str) -> TranscriptionJob:
        with self._lock:
            job = self._store(cancel_job(self.get(job_id)))
        logger.info("Transcription job {} cancelled", job_id)
        return job

    def edit_segment(self, job_id: str, segment_id: str, text: str) -> TranscriptionJob:
        """Replace one segment's text on a completed job."""
        with self._lock:
            job = self.get(job_id)
            if job.result is None:
                raise InvalidJobTransitionError(job.id, job.status, JobStatus.COMPLETED)
            return self._store(replace_result(job, job.result.with_segment_text(segment_id, text)))

    def get(self, job_id: str) -> TranscriptionJob:
        with self._lock:
            job = self._jobs.get(job_id)
        if job is None and self._repository is not None:
            job = self._repository.get(job_id)
            if job is not None:
                with self._lock:
                    self._jobs.setdefault(job_id, job)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list(self) -> Iterable[TranscriptionJob]:
        with self._lock:
            jobs = dict(self._jobs)
        if self._repository is not None:
            for stored in self._repository.list():
                jobs.setdefault(stored.id, stored)
        return sorted(jobs.values(), key=lambda job: job.created_at, reverse=True)

    def _advance(self, job_id: str, progress: float) -> None:
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None or current.status is not JobStatus.PROCESSING:
                return
            self._jobs[job_id] = update_job_progress(current, progress)

    def _store(self, job: TranscriptionJob) -> TranscriptionJob:
        with self._lock:
            self._jobs[job.id] = job
            if self._repository is not None:
                self._repository.save(job)
        return job
