"""
app/domain/contact_import.py

Domain models used by the contact CSV import wizard.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


class Severity:
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class PHIType:
    DIRECT = "direct"
    QUASI = "quasi"
    POTENTIAL = "potential"


class DataType:
    TEXT = "text"
    PHONE = "phone"
    EMAIL = "email"
    DATE = "date"
    TIME = "time"
    NUMBER = "number"


class GroupAction:
    CREATE = "create"
    ASSIGN = "assign"
    SKIP = "skip"

    ALL = (CREATE, ASSIGN, SKIP)


class ImportPhase:
    CONTACTS = "contacts"
    APPOINTMENTS = "appointments"
    REMINDERS = "reminders"
    COMPLETE = "complete"


@dataclass(frozen=True)
class CSVFile:
    """
    Immutable snapshot of one uploaded CSV file.

    Every row carries exactly ``len(headers)`` cells.
    """

    file_name: str
    headers: tuple[str, ...]
    rows: tuple[tuple[str, ...], ...]
    file_size: int
    delimiter: str
    encoding: str = "utf-8"

    @property
    def row_count(self) -> int:
        return len(self.rows)

    def column_index(self, column: str) -> int | None:
        try:
            return self.headers.index(column)
        except ValueError:
            return None


@dataclass(frozen=True)
class FieldSuggestion:
    field: str
    score: int


@dataclass(frozen=True)
class FieldMapping:
    """
    Proposed mapping of one CSV column onto a canonical contact field.

    An empty ``contact_field`` means the column is left unmapped.
    """

    csv_column: str
    contact_field: str
    confidence: int
    required: bool
    data_type: str
    sample_values: tuple[str, ...] = ()
    suggestions: tuple[FieldSuggestion, ...] = ()

    @property
    def is_mapped(self) -> bool:
        return bool(self.contact_field)


@dataclass(frozen=True)
class ValidationError:
    """
    One (row, column, rule) violation found while validating mapped cells.
    """

    row: int
    column: str
    value: str
    error: str
    severity: str
    suggestion: str | None = None
    hipaa_violation: bool = False
    phi_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "column": self.column,
            "value": self.value,
            "error": self.error,
            "severity": self.severity,
            "suggestion": self.suggestion,
            "hipaa_violation": self.hipaa_violation,
            "phi_type": self.phi_type,
        }


@dataclass(frozen=True)
class GroupValue:
    """
    Aggregated occurrences of one distinct group token.
    """

    original_value: str
    normalized_value: str
    count: int
    rows: tuple[int, ...]
    action: str = GroupAction.CREATE
    target_group_id: str | None = None


@dataclass(frozen=True)
class ExistingGroup:
    id: str
    name: str
    contact_count: int = 0


@dataclass(frozen=True)
class ContactRecord:
    """
    Contact creation record built from one CSV data row.
    """

    row_number: int
    name: str
    phone: str
    email: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    appointment_at: datetime | None = None
    appointment_type: str | None = None
    duration: int | None = None
    provider: str | None = None
    special_instructions: str | None = None
    notes: str | None = None
    custom_fields: dict[str, str] = field(default_factory=dict)
    group_ids: tuple[str, ...] = ()
    new_group_names: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "appointmentTime": self.appointment_at.isoformat() if self.appointment_at else None,
            "appointmentType": self.appointment_type,
            "appointmentDuration": self.duration,
            "ownerName": self.provider,
            "specialInstructions": self.special_instructions,
            "notes": self.notes,
            "customFields": dict(self.custom_fields),
            "groupIds": list(self.group_ids),
            "newGroupNames": list(self.new_group_names),
        }


@dataclass(frozen=True)
class AppointmentRequest:
    """
    Appointment to create for an already-imported contact.
    """

    contact_id: str
    appointment_at: datetime
    appointment_type: str | None = None
    duration: int | None = None
    provider: str | None = None
    special_instructions: str | None = None

    @classmethod
    def from_record(cls, *, contact_id: str, record: ContactRecord) -> AppointmentRequest:
        if record.appointment_at is None:
            raise ValueError(f"Row {record.row_number} has no appointment date and time.")
        return cls(
            contact_id=contact_id,
            appointment_at=record.appointment_at,
            appointment_type=record.appointment_type,
            duration=record.duration,
            provider=record.provider,
            special_instructions=record.special_instructions,
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "contactId": self.contact_id,
            "appointmentTime": self.appointment_at.isoformat(),
            "appointmentType": self.appointment_type,
            "appointmentDuration": self.duration,
            "ownerName": self.provider,
            "specialInstructions": self.special_instructions,
        }


@dataclass(frozen=True)
class ReminderRequest:
    contact_id: str
    appointment_at: datetime
    reminder_at: datetime

    def to_payload(self) -> dict[str, Any]:
        return {
            "contactId": self.contact_id,
            "appointmentTime": self.appointment_at.isoformat(),
            "reminderTime": self.reminder_at.isoformat(),
        }


@dataclass(frozen=True)
class PhaseError:
    """
    One error reported by an import phase, either per item or for the whole batch.
    """

    phase: str
    message: str
    index: int | None = None

    def describe(self) -> str:
        if self.index is None:
            return f"{self.phase}: {self.message}"
        return f"{self.phase} #{self.index + 1}: {self.message}"


@dataclass(frozen=True)
class ImportPhaseResult:
    """
    Outcome of one backend batch call.

    ``ids`` is order-aligned with the submitted batch; failed slots are ``None``.
    """

    created: int
    ids: tuple[str | None, ...] = ()
    errors: tuple[PhaseError, ...] = ()

    def failed_indexes(self) -> set[int]:
        return {error.index for error in self.errors if error.index is not None}


@dataclass(frozen=True)
class ImportProgress:
    """
    Snapshot of the import orchestrator after each phase transition.
    """

    phase: str = ImportPhase.CONTACTS
    contacts_imported: int = 0
    appointments_scheduled: int = 0
    reminders_scheduled: int = 0
    errors: tuple[PhaseError, ...] = ()

    @property
    def is_complete(self) -> bool:
        return self.phase == ImportPhase.COMPLETE

    @property
    def progress_percent(self) -> int:
        return {
            ImportPhase.CONTACTS: 10,
            ImportPhase.APPOINTMENTS: 40,
            ImportPhase.REMINDERS: 70,
            ImportPhase.COMPLETE: 100,
        }[self.phase]

    def to_dict(self) -> dict[str, Any]:
        return {
            "phase": self.phase,
            "progress_percent": self.progress_percent,
            "contacts_imported": self.contacts_imported,
            "appointments_scheduled": self.appointments_scheduled,
            "reminders_scheduled": self.reminders_scheduled,
            "errors": [error.describe() for error in self.errors],
        }


@dataclass(frozen=True)
class ValidationSummary:
    total: int
    valid: int
    errors: int
    warnings: int


@dataclass(frozen=True)
class ImportPreview:
    contacts_to_create: tuple[ContactRecord, ...]
    groups_to_create: tuple[str, ...]
    appointments_to_schedule: tuple[ContactRecord, ...]
    validation_summary: ValidationSummary
