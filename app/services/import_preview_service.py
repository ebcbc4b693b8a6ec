"""
app/services/import_preview_service.py

Builds contact creation records and the pre-import preview from wizard data.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from app.domain.contact_import import (
    CSVFile,
    ContactRecord,
    FieldMapping,
    GroupAction,
    GroupValue,
    ImportPreview,
    ValidationError,
)
from app.mappers.group_mapper import normalize_group_value, split_group_cell
from app.validators.patterns import combine_appointment, parse_int
from app.validators.row_validator import summarize

CUSTOM_FIELDS: tuple[str, ...] = ("service_type", "party_size", "occasion", "consultation_type")


def _first_values(row: Sequence[str], mappings: Sequence[FieldMapping]) -> dict[str, str]:
    """
    Collect one value per mapped field; the first non-empty column wins.
    """

    values: dict[str, str] = {}
    for column_index, mapping in enumerate(mappings):
        if not mapping.is_mapped or mapping.contact_field in values:
            continue
        cell = row[column_index].strip() if column_index < len(row) else ""
        if cell:
            values[mapping.contact_field] = cell
    return values


def _resolve_groups(
    cell: str,
    group_lookup: dict[str, GroupValue],
) -> tuple[tuple[str, ...], tuple[str, ...]]:
    group_ids: list[str] = []
    new_group_names: list[str] = []
    for token in split_group_cell(cell):
        value = group_lookup.get(normalize_group_value(token))
        if value is None:
            continue
        if value.action == GroupAction.ASSIGN and value.target_group_id:
            if value.target_group_id not in group_ids:
                group_ids.append(value.target_group_id)
        elif value.action == GroupAction.CREATE:
            if value.original_value not in new_group_names:
                new_group_names.append(value.original_value)
    return tuple(group_ids), tuple(new_group_names)


def build_contact_records(
    *,
    csv_file: CSVFile,
    mappings: Sequence[FieldMapping],
    group_column: str | None = None,
    group_values: Sequence[GroupValue] = (),
) -> list[ContactRecord]:
    """
    Build one creation record per data row, in file order, without filtering.
    """

    group_index = csv_file.column_index(group_column) if group_column else None
    group_lookup = {value.normalized_value: value for value in group_values}

    records: list[ContactRecord] = []
    for row_index, row in enumerate(csv_file.rows):
        values = _first_values(row, mappings)
        group_ids: tuple[str, ...] = ()
        new_group_names: tuple[str, ...] = ()
        if group_index is not None:
            group_ids, new_group_names = _resolve_groups(row[group_index], group_lookup)

        duration_raw = values.get("duration")
        records.append(
            ContactRecord(
                row_number=row_index + 1,
                name=values.get("name", ""),
                phone=values.get("phone", ""),
                email=values.get("email"),
                appointment_date=values.get("appointment_date"),
                appointment_time=values.get("appointment_time"),
                appointment_at=combine_appointment(
                    values.get("appointment_date"),
                    values.get("appointment_time"),
                ),
                appointment_type=(
                    values.get("appointment_type")
                    or values.get("service_type")
                    or values.get("consultation_type")
                ),
                duration=parse_int(duration_raw) if duration_raw else None,
                provider=values.get("provider"),
                special_instructions=values.get("special_instructions"),
                notes=values.get("notes"),
                custom_fields={name: values[name] for name in CUSTOM_FIELDS if name in values},
                group_ids=group_ids,
                new_group_names=new_group_names,
            )
        )
    return records


def select_upcoming_appointments(
    records: Sequence[ContactRecord],
    *,
    now: datetime,
) -> list[tuple[int, ContactRecord]]:
    """
    Return (record index, record) pairs whose appointment is strictly after ``now``.
    """

    return [
        (index, record)
        for index, record in enumerate(records)
        if record.appointment_at is not None and record.appointment_at > now
    ]


def build_import_preview(
    *,
    csv_file: CSVFile,
    mappings: Sequence[FieldMapping],
    validation_errors: Sequence[ValidationError],
    group_column: str | None,
    group_values: Sequence[GroupValue],
    now: datetime | None = None,
) -> ImportPreview:
    records = build_contact_records(
        csv_file=csv_file,
        mappings=mappings,
        group_column=group_column,
        group_values=group_values,
    )
    upcoming = select_upcoming_appointments(records, now=now or datetime.now())
    return ImportPreview(
        contacts_to_create=tuple(records),
        groups_to_create=tuple(
            value.original_value for value in group_values if value.action == GroupAction.CREATE
        ),
        appointments_to_schedule=tuple(record for _, record in upcoming),
        validation_summary=summarize(validation_errors, csv_file.row_count),
    )
