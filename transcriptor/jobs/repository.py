from __future__ import annotations

import sqlite3
import threading
from pathlib import Path
from typing import Iterable, Optional

from loguru import logger

from .models import JobStatus, TranscriptionJob


class JobRepository:
    """
    SQLite-backed persistence for transcription jobs.

    Jobs in ``processing`` are never written: in-flight work is not resumable across
    restarts, so only queued and terminal jobs are stored. Saving a processing job
    drops any row left over from its queued state.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = sqlite3.connect(db_path, check_same_thread=False)
        self._connection.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._migrate()

    def close(self) -> None:
        with self._lock:
            self._connection.close()

    def save(self, job: TranscriptionJob) -> bool:
        """Upsert ``job``; returns False when it was skipped for being in flight."""
        if job.status is JobStatus.PROCESSING:
            logger.debug("Skipping persistence of processing job {}", job.id)
            self.delete(job.id)
            return False
        with self._lock:
            self._connection.execute(
                """
                INSERT INTO transcription_jobs (id, status, payload, created_at, updated_at)
                VALUES (:id, :status, :payload, :created_at, :updated_at)
                ON CONFLICT(id) DO UPDATE SET
                    status = excluded.status,
                    payload = excluded.payload,
                    updated_at = excluded.updated_at
                """,
                self._serialize(job),
            )
            self._connection.commit()
        return True

    def save_all(self, jobs: Iterable[TranscriptionJob]) -> int:
        return sum(1 for job in jobs if self.save(job))

    def get(self, job_id: str) -> Optional[TranscriptionJob]:
        with self._lock:
            cursor = self._connection.execute(
                "SELECT payload FROM transcription_jobs WHERE id = ?",
                (job_id,),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return self._deserialize(row)

    def list(self) -> Iterable[TranscriptionJob]:
        with self._lock:
            cursor = self._connection.execute(
                "SELECT payload FROM transcription_jobs ORDER BY created_at DESC"
            )
            rows = cursor.fetchall()
        for row in rows:
            yield self._deserialize(row)

    def delete(self, job_id: str) -> bool:
        with self._lock:
            cursor = self._connection.execute("DELETE FROM transcription_jobs WHERE id = ?", (job_id,))
            self._connection.commit()
        return cursor.rowcount > 0

    def _migrate(self) -> None:
        with self._lock:
            self._connection.execute("PRAGMA journal_mode=WAL;")
            self._connection.execute(
                """
                CREATE TABLE IF NOT EXISTS transcription_jobs (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    created_at INTEGER NOT NULL,
                    updated_at INTEGER NOT NULL
                )
                """
            )
            self._connection.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_transcription_jobs_status
                ON transcription_jobs(status)
                """
            )
            self._connection.commit()

    @staticmethod
    def _serialize(job: TranscriptionJob) -> dict[str, object]:
        return {
            "id": job.id,
            "status": job.status.value,
            "payload": job.to_json(),
            "created_at": job.created_at,
            "updated_at": job.updated_at,
        }

    @staticmethod
    def _deserialize(row: sqlite3.Row) -> TranscriptionJob:
        return TranscriptionJob.model_validate_json(row["payload"])
