"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.import_job import ImportJob, ImportJobStatus

__all__ = [
    "ImportJob",
    "ImportJobStatus",
]
