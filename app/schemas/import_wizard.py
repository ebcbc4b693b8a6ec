"""
Schemas for the contact import wizard and import job endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class FieldSuggestionResponse(BaseModel):
    field: str
    score: int


class FieldMappingResponse(BaseModel):
    csv_column: str
    contact_field: str
    confidence: int = Field(ge=0, le=100)
    required: bool
    data_type: str
    sample_values: list[str] = Field(default_factory=list)
    suggestions: list[FieldSuggestionResponse] = Field(default_factory=list)


class ValidationErrorResponse(BaseModel):
    row: int
    column: str
    value: str
    error: str
    severity: str
    suggestion: str | None = None
    hipaa_violation: bool = False
    phi_type: str | None = None


class GroupValueResponse(BaseModel):
    original_value: str
    normalized_value: str
    count: int
    rows: list[int] = Field(default_factory=list)
    action: str
    target_group_id: str | None = None


class WizardSessionResponse(BaseModel):
    session_id: str
    step: str
    business_type: str
    file_name: str | None = None
    row_count: int = 0
    headers: list[str] = Field(default_factory=list)
    field_mappings: list[FieldMappingResponse] = Field(default_factory=list)
    required_fields_count: int = 0
    total_required_fields: int = 0
    validated: bool = False
    can_proceed: bool = False
    validation_error_count: int = 0
    validation_errors: list[ValidationErrorResponse] = Field(
        default_factory=list,
        description="First findings of the last validation run, capped by IMPORT_MAX_VALIDATION_ERRORS",
    )
    group_columns: list[str] = Field(default_factory=list)
    selected_group_column: str | None = None
    group_values: list[GroupValueResponse] = Field(default_factory=list)


class BusinessTypeUpdateRequest(BaseModel):
    business_type: str = Field(min_length=1)


class FieldMappingUpdateRequest(BaseModel):
    csv_column: str = Field(min_length=1)
    contact_field: str = Field(default="", description="Empty string leaves the column unmapped")


class GroupColumnUpdateRequest(BaseModel):
    column: str | None = Field(default=None, description="Null disables group assignment")


class GroupAssignmentUpdateRequest(BaseModel):
    normalized_value: str = Field(min_length=1)
    action: str
    target_group_id: str | None = None


class ExistingGroupResponse(BaseModel):
    id: str
    name: str
    contact_count: int = 0


class ContactPreviewResponse(BaseModel):
    row_number: int
    name: str
    phone: str
    email: str | None = None
    appointment_time: datetime | None = None
    appointment_type: str | None = None
    group_ids: list[str] = Field(default_factory=list)
    new_group_names: list[str] = Field(default_factory=list)


class ValidationSummaryResponse(BaseModel):
    total: int
    valid: int
    errors: int
    warnings: int


class ImportPreviewResponse(BaseModel):
    contacts_to_create: int
    groups_to_create: list[str] = Field(default_factory=list)
    appointments_to_schedule: int
    validation_summary: ValidationSummaryResponse
    sample_contacts: list[ContactPreviewResponse] = Field(default_factory=list)


class ImportJobAcceptedResponse(BaseModel):
    job_id: UUID
    session_id: str
    status: str
    total_contacts: int
    created_at: datetime


class ImportJobStatusResponse(BaseModel):
    job_id: UUID
    session_id: str
    business_type: str
    file_name: str | None = None
    status: str
    phase: str | None = None
    total_contacts: int
    created_at: datetime
    updated_at: datetime
    started_at: datetime | None = None
    completed_at: datetime | None = None
    result_payload: dict[str, Any] | None = None
    error_message: str | None = None
