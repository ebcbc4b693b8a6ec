"""
Repository for contact import job lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.orm import Session

from db.models.import_job import ImportJob, ImportJobStatus


class ImportJobRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def create_job(
        self,
        *,
        session_id: str,
        business_type: str,
        file_name: str | None,
        total_contacts: int,
    ) -> ImportJob:
        job = ImportJob(
            session_id=session_id,
            business_type=business_type,
            file_name=file_name,
            total_contacts=total_contacts,
            status=ImportJobStatus.PENDING,
        )
        self._session.add(job)
        self._session.flush()
        self._session.refresh(job)
        return job

    def get_job(self, job_id: uuid.UUID) -> ImportJob | None:
        return self._session.get(ImportJob, job_id)

    def mark_running(self, *, job_id: uuid.UUID) -> ImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ImportJobStatus.RUNNING
        job.started_at = datetime.now(timezone.utc)
        job.completed_at = None
        job.error_message = None
        return job

    def update_progress(
        self,
        *,
        job_id: uuid.UUID,
        phase: str,
        result_payload: dict[str, Any],
    ) -> ImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.phase = phase
        job.result_payload = result_payload
        return job

    def mark_completed(
        self,
        *,
        job_id: uuid.UUID,
        phase: str,
        result_payload: dict[str, Any],
    ) -> ImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ImportJobStatus.COMPLETED
        job.phase = phase
        job.completed_at = datetime.now(timezone.utc)
        job.result_payload = result_payload
        job.error_message = None
        return job

    def mark_failed(
        self,
        *,
        job_id: uuid.UUID,
        error_message: str,
        result_payload: dict[str, Any] | None = None,
    ) -> ImportJob | None:
        job = self.get_job(job_id)
        if job is None:
            return None
        job.status = ImportJobStatus.FAILED
        job.completed_at = datetime.now(timezone.utc)
        job.error_message = error_message
        if result_payload is not None:
            job.result_payload = result_payload
        return job
