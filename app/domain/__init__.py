"""
app/domain package marker.
"""

from app.domain.contact_import import (
    AppointmentRequest,
    ContactRecord,
    CSVFile,
    DataType,
    ExistingGroup,
    FieldMapping,
    FieldSuggestion,
    GroupAction,
    GroupValue,
    ImportPhase,
    ImportPhaseResult,
    ImportPreview,
    ImportProgress,
    PhaseError,
    PHIType,
    ReminderRequest,
    Severity,
    ValidationError,
    ValidationSummary,
)

__all__ = [
    "AppointmentRequest",
    "CSVFile",
    "ContactRecord",
    "DataType",
    "ExistingGroup",
    "FieldMapping",
    "FieldSuggestion",
    "GroupAction",
    "GroupValue",
    "ImportPhase",
    "ImportPhaseResult",
    "ImportPreview",
    "ImportProgress",
    "PHIType",
    "PhaseError",
    "ReminderRequest",
    "Severity",
    "ValidationError",
    "ValidationSummary",
]
