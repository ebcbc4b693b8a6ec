"""
app/mappers/field_mapper.py

Heuristic mapping of CSV headers onto canonical contact fields.

Each column is scored in isolation against per-field synonym lists, so two
columns may map to the same field. Sample values then nudge the confidence
of the top-ranked field up or down without re-ranking.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

from app.domain.business_schema import CANONICAL_FIELDS, BusinessConfig, data_type_for
from app.domain.contact_import import DataType, FieldMapping, FieldSuggestion
from app.validators.patterns import is_valid_email, is_valid_phone, parse_date, parse_int, parse_time

EXACT_MATCH_SCORE = 100
HEADER_CONTAINS_SYNONYM_SCORE = 85
APPT_ABBREVIATION_SCORE = 80
SYNONYM_CONTAINS_HEADER_SCORE = 70
MANUAL_OVERRIDE_CONFIDENCE = 85
SNIFF_BONUS = 10
SNIFF_PENALTY = 20
MAX_SUGGESTIONS = 3
SAMPLE_ROW_LIMIT = 5
SAMPLE_VALUE_LIMIT = 3

FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "name": (
        "name",
        "full name",
        "fullname",
        "contact name",
        "customer",
        "customer name",
        "client",
        "client name",
        "patient",
        "patient name",
        "guest name",
    ),
    "phone": (
        "phone",
        "phone number",
        "telephone",
        "mobile",
        "cell",
        "cell phone",
        "contact number",
    ),
    "email": ("email", "e-mail", "email address"),
    "appointment_date": (
        "appointment date",
        "date",
        "appt date",
        "booking date",
        "reservation date",
        "visit date",
        "scheduled date",
    ),
    "appointment_time": (
        "appointment time",
        "time",
        "appt time",
        "booking time",
        "reservation time",
        "visit time",
        "scheduled time",
        "slot",
    ),
    "appointment_type": ("appointment type", "visit type", "type", "reason for visit", "purpose"),
    "duration": ("duration", "appointment length", "length", "minutes", "mins"),
    "provider": ("provider", "doctor", "physician", "practitioner", "stylist", "consultant", "staff member"),
    "special_instructions": (
        "special instructions",
        "instructions",
        "special requests",
        "requests",
        "preparation",
        "comments",
    ),
    "notes": ("notes", "note", "remarks", "memo"),
    "service_type": ("service type", "service", "services", "treatment"),
    "party_size": ("party size", "party", "covers", "number of guests", "guests"),
    "occasion": ("occasion", "celebration"),
    "consultation_type": ("consultation type", "consultation", "session type"),
    "groups": ("group", "groups", "category", "categories", "tag", "tags", "segment"),
}


def normalize_header(header: str) -> str:
    """
    Lower-case and trim a header for synonym matching.
    """

    return header.strip().lower()


def score_synonym(header: str, synonym: str) -> int:
    """
    Score one normalized header against one synonym.
    """

    if header == synonym:
        return EXACT_MATCH_SCORE
    if synonym in header:
        return HEADER_CONTAINS_SYNONYM_SCORE
    if len(header) > 2 and header in synonym:
        return SYNONYM_CONTAINS_HEADER_SCORE
    if "appt" in header and "appointment" in synonym:
        return APPT_ABBREVIATION_SCORE
    return 0


_SNIFFERS: dict[str, Callable[[str], bool]] = {
    DataType.PHONE: is_valid_phone,
    DataType.EMAIL: is_valid_email,
    DataType.DATE: lambda value: parse_date(value) is not None,
    DataType.TIME: lambda value: parse_time(value) is not None,
    DataType.NUMBER: lambda value: parse_int(value) is not None,
}


class FieldMappingError(ValueError):
    """
    Raised when a manual field reassignment references an unknown column or field.
    """


class FieldMapper:
    """
    Builds and edits per-column field mappings.
    """

    def __init__(self, *, synonyms: Mapping[str, Sequence[str]] | None = None) -> None:
        self._synonyms: dict[str, tuple[str, ...]] = {
            contact_field: tuple(normalize_header(value) for value in values)
            for contact_field, values in (synonyms or FIELD_SYNONYMS).items()
        }

    def generate_field_mappings(
        self,
        headers: Sequence[str],
        rows: Sequence[Sequence[str]],
        config: BusinessConfig,
    ) -> list[FieldMapping]:
        """
        Propose one mapping per header. An empty header list yields an empty list.
        """

        return [
            self._map_column(
                header=header,
                column_index=column_index,
                rows=rows,
                config=config,
            )
            for column_index, header in enumerate(headers)
        ]

    def score_fields(self, header: str) -> list[FieldSuggestion]:
        """
        Rank every canonical field for one header, best first.
        """

        normalized = normalize_header(header)
        scored = [
            FieldSuggestion(
                field=contact_field,
                score=max((score_synonym(normalized, synonym) for synonym in synonyms), default=0),
            )
            for contact_field, synonyms in self._synonyms.items()
        ]
        # sorted() is stable, so ties keep synonym-table order.
        return sorted(scored, key=lambda item: item.score, reverse=True)

    def reassign(
        self,
        mappings: Sequence[FieldMapping],
        *,
        csv_column: str,
        contact_field: str,
        config: BusinessConfig,
    ) -> list[FieldMapping]:
        """
        Apply a manual column reassignment. An empty field unmaps the column.
        """

        target_field = contact_field.strip()
        if target_field and target_field not in CANONICAL_FIELDS:
            raise FieldMappingError(f"Unknown contact field '{contact_field}'.")
        if not any(mapping.csv_column == csv_column for mapping in mappings):
            raise FieldMappingError(f"CSV column '{csv_column}' is not part of the uploaded file.")

        updated: list[FieldMapping] = []
        for mapping in mappings:
            if mapping.csv_column != csv_column:
                updated.append(mapping)
                continue
            updated.append(
                FieldMapping(
                    csv_column=mapping.csv_column,
                    contact_field=target_field,
                    confidence=MANUAL_OVERRIDE_CONFIDENCE if target_field else 0,
                    required=config.is_required(target_field),
                    data_type=data_type_for(target_field),
                    sample_values=mapping.sample_values,
                    suggestions=mapping.suggestions,
                )
            )
        return updated

    def _map_column(
        self,
        *,
        header: str,
        column_index: int,
        rows: Sequence[Sequence[str]],
        config: BusinessConfig,
    ) -> FieldMapping:
        ranked = [item for item in self.score_fields(header) if item.score > 0]
        samples = self._sample_values(rows=rows, column_index=column_index)

        if not ranked:
            return FieldMapping(
                csv_column=header,
                contact_field="",
                confidence=0,
                required=False,
                data_type=DataType.TEXT,
                sample_values=samples,
            )

        top = ranked[0]
        data_type = data_type_for(top.field)
        confidence = top.score
        sniffer = _SNIFFERS.get(data_type)
        if sniffer is not None and samples:
            if all(sniffer(sample) for sample in samples):
                confidence = min(100, confidence + SNIFF_BONUS)
            else:
                confidence = max(0, confidence - SNIFF_PENALTY)

        return FieldMapping(
            csv_column=header,
            contact_field=top.field,
            confidence=confidence,
            required=config.is_required(top.field),
            data_type=data_type,
            sample_values=samples,
            suggestions=tuple(ranked[1 : 1 + MAX_SUGGESTIONS]),
        )

    @staticmethod
    def _sample_values(*, rows: Sequence[Sequence[str]], column_index: int) -> tuple[str, ...]:
        samples: list[str] = []
        for row in rows[:SAMPLE_ROW_LIMIT]:
            if column_index >= len(row):
                continue
            value = row[column_index].strip()
            if value:
                samples.append(value)
            if len(samples) >= SAMPLE_VALUE_LIMIT:
                break
        return tuple(samples)


def required_fields_coverage(mappings: Sequence[FieldMapping], config: BusinessConfig) -> tuple[int, int]:
    """
    Return (required fields covered by the mappings, total required fields).
    """

    mapped_fields = {mapping.contact_field for mapping in mappings if mapping.is_mapped}
    covered = sum(1 for required in config.required_fields if required in mapped_fields)
    return covered, len(config.required_fields)
