"""
app/repositories package marker.
"""

from app.repositories.wizard_session_repository import (
    WizardSessionNotFoundError,
    WizardSessionRepository,
    get_wizard_session_repository,
)

__all__ = [
    "WizardSessionNotFoundError",
    "WizardSessionRepository",
    "get_wizard_session_repository",
]
