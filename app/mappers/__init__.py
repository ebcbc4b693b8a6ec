"""
app/mappers package marker.
"""

from app.mappers.field_mapper import FieldMapper, FieldMappingError, required_fields_coverage
from app.mappers.group_mapper import (
    GroupAssignmentError,
    detect_group_columns,
    extract_group_values,
    update_group_assignment,
)

__all__ = [
    "FieldMapper",
    "FieldMappingError",
    "GroupAssignmentError",
    "detect_group_columns",
    "extract_group_values",
    "required_fields_coverage",
    "update_group_assignment",
]
