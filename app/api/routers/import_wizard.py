"""
app/api/routers/import_wizard.py

Contact CSV import wizard HTTP endpoints.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import APIRouter, BackgroundTasks, Depends, Form, HTTPException, Response, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_csv_upload
from app.config import CSVUploadSettings, ImportSettings, get_csv_upload_settings, get_import_settings
from app.connectors.base import BackendRequestError
from app.connectors.contact_api_client import ContactImportAPIClient, get_contact_import_api_client
from app.domain.business_schema import UnknownBusinessTypeError, build_template_csv
from app.domain.contact_import import GroupAction
from app.mappers.field_mapper import FieldMappingError
from app.mappers.group_mapper import GroupAssignmentError
from app.parsers.csv_file_parser import CSVFileValidationError, parse_csv_bytes
from app.repositories.wizard_session_repository import (
    WizardSessionNotFoundError,
    WizardSessionRepository,
    get_wizard_session_repository,
)
from app.schemas.import_wizard import (
    BusinessTypeUpdateRequest,
    ContactPreviewResponse,
    ExistingGroupResponse,
    FieldMappingResponse,
    FieldMappingUpdateRequest,
    FieldSuggestionResponse,
    GroupAssignmentUpdateRequest,
    GroupColumnUpdateRequest,
    GroupValueResponse,
    ImportJobAcceptedResponse,
    ImportPreviewResponse,
    ValidationErrorResponse,
    ValidationSummaryResponse,
    WizardSessionResponse,
)
from app.services.import_job_service import (
    FastAPIBackgroundTaskExecutor,
    ImportJobService,
    get_import_job_service,
)
from app.services.wizard_state import (
    ImportWizard,
    WizardState,
    WizardStep,
    WizardStepError,
    get_import_wizard,
)
from db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contact-import"])

PREVIEW_SAMPLE_SIZE = 10


@contextmanager
def _translate_errors() -> Iterator[None]:
    try:
        yield
    except WizardSessionNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import session not found: {exc.args[0]}",
        ) from exc
    except WizardStepError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        ) from exc
    except (
        CSVFileValidationError,
        UnknownBusinessTypeError,
        FieldMappingError,
        GroupAssignmentError,
    ) as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except BackendRequestError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc


def _to_session_response(
    session_id: str,
    state: WizardState,
    settings: ImportSettings,
) -> WizardSessionResponse:
    csv_file = state.csv_file
    return WizardSessionResponse(
        session_id=session_id,
        step=state.step,
        business_type=state.business_type,
        file_name=csv_file.file_name if csv_file else None,
        row_count=csv_file.row_count if csv_file else 0,
        headers=list(csv_file.headers) if csv_file else [],
        field_mappings=[
            FieldMappingResponse(
                csv_column=mapping.csv_column,
                contact_field=mapping.contact_field,
                confidence=mapping.confidence,
                required=mapping.required,
                data_type=mapping.data_type,
                sample_values=list(mapping.sample_values),
                suggestions=[
                    FieldSuggestionResponse(field=item.field, score=item.score)
                    for item in mapping.suggestions
                ],
            )
            for mapping in state.field_mappings
        ],
        required_fields_count=state.required_fields_count,
        total_required_fields=state.total_required_fields,
        validated=state.validated,
        can_proceed=state.can_proceed,
        validation_error_count=len(state.validation_errors),
        validation_errors=[
            ValidationErrorResponse(**error.to_dict())
            for error in state.validation_errors[: settings.max_validation_errors]
        ],
        group_columns=list(state.group_columns),
        selected_group_column=state.selected_group_column,
        group_values=[
            GroupValueResponse(
                original_value=value.original_value,
                normalized_value=value.normalized_value,
                count=value.count,
                rows=list(value.rows),
                action=value.action,
                target_group_id=value.target_group_id,
            )
            for value in state.group_values
        ],
    )


@router.post(
    "/imports/sessions",
    status_code=status.HTTP_201_CREATED,
    response_model=WizardSessionResponse,
)
def create_import_session(
    file: UploadFile = Depends(get_csv_upload),
    business_type: str | None = Form(default=None),
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
    upload_settings: CSVUploadSettings = Depends(get_csv_upload_settings),
) -> WizardSessionResponse:
    """
    Upload a CSV file and start a new import wizard session.
    """

    try:
        data = file.file.read(upload_settings.max_file_bytes + 1)
    finally:
        file.file.close()

    with _translate_errors():
        csv_file = parse_csv_bytes(data, file_name=file.filename or "upload.csv", settings=upload_settings)
        state = wizard.load_csv(wizard.start(business_type or settings.default_business_type), csv_file)
    session_id = repository.create(state)
    return _to_session_response(session_id, state, settings)


@router.get("/imports/sessions/{session_id}", response_model=WizardSessionResponse)
def get_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.get(session_id)
    return _to_session_response(session_id, state, settings)


@router.put("/imports/sessions/{session_id}/business-type", response_model=WizardSessionResponse)
def update_business_type(
    session_id: str,
    payload: BusinessTypeUpdateRequest,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(
            session_id,
            lambda current: wizard.change_business_type(current, payload.business_type),
        )
    return _to_session_response(session_id, state, settings)


@router.put("/imports/sessions/{session_id}/mappings", response_model=WizardSessionResponse)
def update_field_mapping(
    session_id: str,
    payload: FieldMappingUpdateRequest,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    """
    Manually reassign one CSV column. Previous validation results are discarded.
    """

    with _translate_errors():
        state = repository.update(
            session_id,
            lambda current: wizard.reassign_field(
                current,
                csv_column=payload.csv_column,
                contact_field=payload.contact_field,
            ),
        )
    return _to_session_response(session_id, state, settings)


@router.post("/imports/sessions/{session_id}/validate", response_model=WizardSessionResponse)
def validate_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(session_id, wizard.enter_validation)
    return _to_session_response(session_id, state, settings)


@router.put("/imports/sessions/{session_id}/group-column", response_model=WizardSessionResponse)
def update_group_column(
    session_id: str,
    payload: GroupColumnUpdateRequest,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(
            session_id,
            lambda current: wizard.select_group_column(current, payload.column),
        )
    return _to_session_response(session_id, state, settings)


@router.put("/imports/sessions/{session_id}/groups", response_model=WizardSessionResponse)
def update_group_assignment(
    session_id: str,
    payload: GroupAssignmentUpdateRequest,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(
            session_id,
            lambda current: wizard.update_group_assignment(
                current,
                normalized_value=payload.normalized_value,
                action=payload.action,
                target_group_id=payload.target_group_id,
            ),
        )
    return _to_session_response(session_id, state, settings)


@router.post("/imports/sessions/{session_id}/advance", response_model=WizardSessionResponse)
def advance_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    backend: ContactImportAPIClient = Depends(get_contact_import_api_client),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    """
    Move to the next wizard step once the current step's gate is satisfied.
    """

    with _translate_errors():
        current = repository.get(session_id)
        if current.step == WizardStep.PREVIEW:
            raise WizardStepError("Start the import from the import endpoint.")

        existing_groups = None
        if current.step == WizardStep.GROUPS and any(
            value.action == GroupAction.ASSIGN for value in current.group_values
        ):
            existing_groups = backend.list_groups()

        state = repository.update(
            session_id,
            lambda latest: wizard.advance(latest, existing_groups=existing_groups),
        )
    return _to_session_response(session_id, state, settings)


@router.post("/imports/sessions/{session_id}/back", response_model=WizardSessionResponse)
def go_back_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(session_id, wizard.go_back)
    return _to_session_response(session_id, state, settings)


@router.post("/imports/sessions/{session_id}/reset", response_model=WizardSessionResponse)
def reset_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    settings: ImportSettings = Depends(get_import_settings),
) -> WizardSessionResponse:
    with _translate_errors():
        state = repository.update(session_id, wizard.reset)
    return _to_session_response(session_id, state, settings)


@router.get("/imports/sessions/{session_id}/preview", response_model=ImportPreviewResponse)
def preview_import_session(
    session_id: str,
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
) -> ImportPreviewResponse:
    with _translate_errors():
        preview = wizard.preview(repository.get(session_id))

    summary = preview.validation_summary
    return ImportPreviewResponse(
        contacts_to_create=len(preview.contacts_to_create),
        groups_to_create=list(preview.groups_to_create),
        appointments_to_schedule=len(preview.appointments_to_schedule),
        validation_summary=ValidationSummaryResponse(
            total=summary.total,
            valid=summary.valid,
            errors=summary.errors,
            warnings=summary.warnings,
        ),
        sample_contacts=[
            ContactPreviewResponse(
                row_number=record.row_number,
                name=record.name,
                phone=record.phone,
                email=record.email,
                appointment_time=record.appointment_at,
                appointment_type=record.appointment_type,
                group_ids=list(record.group_ids),
                new_group_names=list(record.new_group_names),
            )
            for record in preview.contacts_to_create[:PREVIEW_SAMPLE_SIZE]
        ],
    )


def _begin_import(wizard: ImportWizard, state: WizardState) -> WizardState:
    if state.step != WizardStep.PREVIEW:
        raise WizardStepError("Review the import preview before starting the import.")
    return wizard.advance(state)


@router.post(
    "/imports/sessions/{session_id}/import",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=ImportJobAcceptedResponse,
)
def start_import(
    session_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    repository: WizardSessionRepository = Depends(get_wizard_session_repository),
    wizard: ImportWizard = Depends(get_import_wizard),
    job_service: ImportJobService = Depends(get_import_job_service),
) -> ImportJobAcceptedResponse:
    """
    Queue the three-phase import of the session's contacts.
    """

    with _translate_errors():
        state = repository.update(session_id, lambda current: _begin_import(wizard, current))

    records = wizard.contact_records(state)
    try:
        job = job_service.start_import(
            db=db,
            executor=FastAPIBackgroundTaskExecutor(background_tasks),
            session_id=session_id,
            business_type=state.business_type,
            file_name=state.csv_file.file_name if state.csv_file else None,
            records=records,
        )
    except Exception as exc:
        logger.exception("Failed to queue contact import session=%s", session_id)
        repository.update(session_id, wizard.cancel_import)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Unable to queue the contact import. Please try again.",
        ) from exc

    repository.update(session_id, wizard.release_upload)
    return ImportJobAcceptedResponse(
        job_id=job.id,
        session_id=session_id,
        status=job.status,
        total_contacts=job.total_contacts,
        created_at=job.created_at,
    )


@router.get("/imports/groups", response_model=list[ExistingGroupResponse])
def list_existing_groups(
    backend: ContactImportAPIClient = Depends(get_contact_import_api_client),
) -> list[ExistingGroupResponse]:
    with _translate_errors():
        groups = backend.list_groups()
    return [
        ExistingGroupResponse(id=group.id, name=group.name, contact_count=group.contact_count)
        for group in groups
    ]


@router.get("/imports/templates/{business_type}")
def download_template(business_type: str) -> Response:
    with _translate_errors():
        content = build_template_csv(business_type)
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{business_type.lower()}_contacts_template.csv"'},
    )
