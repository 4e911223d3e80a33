from __future__ import annotations

from .models import JobStatus


class JobNotFoundError(KeyError):
    """Raised when a job id is unknown."""

    def __init__(self, job_id: str) -> None:
        super().__init__(job_id)
        self.job_id = job_id

    def __str__(self) -> str:
        return f"job not found: {self.job_id}"


class InvalidJobTransitionError(RuntimeError):
    """Raised when a transition is attempted from a state that does not allow it."""

    def __init__(self, job_id: str, current: JobStatus, target: JobStatus) -> None:
        super().__init__(f"job {job_id} cannot move from {current.value} to {target.value}")
        self.job_id = job_id
        self.current = current
        self.target = target
