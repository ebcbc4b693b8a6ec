"""
Contact import job status endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.schemas.import_wizard import ImportJobStatusResponse
from app.services.import_job_service import ImportJobService, get_import_job_service
from db.models.import_job import ImportJob
from db.session import get_db

router = APIRouter(tags=["contact-import-jobs"])


@router.get("/imports/jobs/{job_id}", response_model=ImportJobStatusResponse)
def get_import_job_status(
    job_id: UUID,
    db: Session = Depends(get_db),
    job_service: ImportJobService = Depends(get_import_job_service),
) -> ImportJobStatusResponse:
    job = job_service.get_job_status(db=db, job_id=job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return _to_status_response(job)


def _to_status_response(job: ImportJob) -> ImportJobStatusResponse:
    return ImportJobStatusResponse(
        job_id=job.id,
        session_id=job.session_id,
        business_type=job.business_type,
        file_name=job.file_name,
        status=job.status,
        phase=job.phase,
        total_contacts=job.total_contacts,
        created_at=job.created_at,
        updated_at=job.updated_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        result_payload=job.result_payload,
        error_message=job.error_message,
    )
