"""
app/services package marker.
"""

from app.services.import_job_service import ImportJobService, get_import_job_service
from app.services.import_orchestrator import ImportBackend, ImportOrchestrator
from app.services.import_preview_service import build_contact_records, build_import_preview
from app.services.wizard_state import (
    ImportWizard,
    WizardState,
    WizardStep,
    WizardStepError,
    get_import_wizard,
)

__all__ = [
    "ImportBackend",
    "ImportJobService",
    "ImportOrchestrator",
    "ImportWizard",
    "WizardState",
    "WizardStep",
    "WizardStepError",
    "build_contact_records",
    "build_import_preview",
    "get_import_job_service",
    "get_import_wizard",
]
