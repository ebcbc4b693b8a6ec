"""
app/schemas package marker.
"""

from app.schemas.import_wizard import (
    ImportJobAcceptedResponse,
    ImportJobStatusResponse,
    ImportPreviewResponse,
    WizardSessionResponse,
)

__all__ = [
    "ImportJobAcceptedResponse",
    "ImportJobStatusResponse",
    "ImportPreviewResponse",
    "WizardSessionResponse",
]
