"""
Import job service: schedules background contact imports and tracks their progress.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable, Sequence
from functools import lru_cache
from typing import Any, Protocol

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session, sessionmaker

from app.config import ImportSettings, get_import_settings
from app.connectors.contact_api_client import get_contact_import_api_client
from app.domain.contact_import import ContactRecord, ImportProgress
from app.services.import_orchestrator import ImportBackend, ImportOrchestrator
from db.models.import_job import ImportJob
from db.repositories.import_job_repository import ImportJobRepository

logger = logging.getLogger(__name__)


class ImportTaskExecutor(Protocol):
    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        ...


class FastAPIBackgroundTaskExecutor:
    def __init__(self, background_tasks: BackgroundTasks) -> None:
        self._background_tasks = background_tasks

    def submit(self, task: Callable[..., None], *args: Any, **kwargs: Any) -> None:
        self._background_tasks.add_task(task, *args, **kwargs)


class ImportJobService:
    """
    Creates import job rows, runs the orchestrator in the background and
    persists each phase transition.
    """

    def __init__(
        self,
        *,
        session_factory: sessionmaker[Session] | None = None,
        backend: ImportBackend | None = None,
        settings: ImportSettings | None = None,
    ) -> None:
        if session_factory is None:
            from db.session import SessionLocal

            self._session_factory = SessionLocal
        else:
            self._session_factory = session_factory

        self._backend = backend or get_contact_import_api_client()
        self._settings = settings or get_import_settings()

    def start_import(
        self,
        *,
        db: Session,
        executor: ImportTaskExecutor,
        session_id: str,
        business_type: str,
        file_name: str | None,
        records: Sequence[ContactRecord],
    ) -> ImportJob:
        repository = ImportJobRepository(db)
        with db.begin():
            job = repository.create_job(
                session_id=session_id,
                business_type=business_type,
                file_name=file_name,
                total_contacts=len(records),
            )

        try:
            executor.submit(self._run_import_job, job.id, list(records))
        except Exception:
            with db.begin():
                repository.mark_failed(
                    job_id=job.id,
                    error_message="Failed to schedule contact import job.",
                )
            raise

        logger.info(
            "Scheduled contact import job id=%s session=%s contacts=%s",
            job.id,
            session_id,
            len(records),
        )
        return job

    def get_job_status(self, *, db: Session, job_id: uuid.UUID) -> ImportJob | None:
        repository = ImportJobRepository(db)
        return repository.get_job(job_id)

    def build_orchestrator(self, on_progress: Callable[[ImportProgress], None] | None = None) -> ImportOrchestrator:
        return ImportOrchestrator(
            backend=self._backend,
            reminder_lead_minutes=self._settings.reminder_lead_minutes,
            phase_delay_seconds=self._settings.phase_delay_seconds,
            on_progress=on_progress,
        )

    def _run_import_job(self, job_id: uuid.UUID, records: list[ContactRecord]) -> None:
        with self._session_factory() as db:
            repository = ImportJobRepository(db)
            try:
                running_job = repository.mark_running(job_id=job_id)
                if running_job is None:
                    raise RuntimeError(f"Import job not found: {job_id}")
                db.commit()

                def record_progress(progress: ImportProgress) -> None:
                    repository.update_progress(
                        job_id=job_id,
                        phase=progress.phase,
                        result_payload=progress.to_dict(),
                    )
                    db.commit()

                final = self.build_orchestrator(on_progress=record_progress).run(records)
                completed_job = repository.mark_completed(
                    job_id=job_id,
                    phase=final.phase,
                    result_payload=final.to_dict(),
                )
                if completed_job is None:
                    raise RuntimeError(f"Import job not found: {job_id}")
                db.commit()
            except Exception as exc:
                self._mark_job_failed(db=db, job_id=job_id, exc=exc)

    def _mark_job_failed(self, *, db: Session, job_id: uuid.UUID, exc: Exception) -> None:
        repository = ImportJobRepository(db)
        error_message = f"{type(exc).__name__}: {exc}"
        logger.exception("Import job failed id=%s error=%s", job_id, error_message)
        try:
            db.rollback()
            failed_job = repository.mark_failed(
                job_id=job_id,
                error_message=error_message[:2000],
            )
            if failed_job is None:
                logger.error("Unable to mark import job as failed because it was not found id=%s", job_id)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("Failed to persist failed import job state id=%s", job_id)


@lru_cache(maxsize=1)
def get_import_job_service() -> ImportJobService:
    return ImportJobService()
