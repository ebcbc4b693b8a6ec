"""
app/validators/row_validator.py

Cell-level validation of mapped CSV rows for contact import.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from datetime import date

from app.domain.business_schema import BusinessConfig, BusinessType
from app.domain.contact_import import FieldMapping, PHIType, Severity, ValidationError, ValidationSummary
from app.validators.patterns import is_valid_email, is_valid_phone, parse_date, parse_int, parse_time
from app.validators.phi_detector import PHIDetector

MIN_DURATION_MINUTES = 15
MAX_DURATION_MINUTES = 480


class RowValidator:
    """
    Validates mapped cells against required, compliance, business and format rules.
    """

    def __init__(self, *, phi_detector: PHIDetector | None = None, today: date | None = None) -> None:
        self._phi_detector = phi_detector or PHIDetector()
        self._today = today

    def validate_rows(
        self,
        *,
        rows: Sequence[Sequence[str]],
        mappings: Sequence[FieldMapping],
        business_config: BusinessConfig,
    ) -> list[ValidationError]:
        """
        Validate every data row and concatenate the errors in row order.
        """

        errors: list[ValidationError] = []
        for row_index, row in enumerate(rows):
            errors.extend(
                self.validate_row(
                    row=row,
                    row_index=row_index,
                    mappings=mappings,
                    business_config=business_config,
                )
            )
        return errors

    def validate_row(
        self,
        *,
        row: Sequence[str],
        row_index: int,
        mappings: Sequence[FieldMapping],
        business_config: BusinessConfig,
    ) -> list[ValidationError]:
        """
        Validate one data row. ``row_index`` is 0-based; reported rows are 1-based.
        """

        errors: list[ValidationError] = []
        row_number = row_index + 1

        for column_index, mapping in enumerate(mappings):
            if not mapping.is_mapped:
                continue

            raw_value = row[column_index] if column_index < len(row) else ""
            value = raw_value.strip()

            if not value:
                if mapping.required:
                    label = business_config.label_for(mapping.contact_field)
                    errors.append(
                        ValidationError(
                            row=row_number,
                            column=mapping.csv_column,
                            value=raw_value,
                            error=f"{label} is required.",
                            severity=Severity.ERROR,
                            suggestion=f"Provide a value for {label}.",
                        )
                    )
                continue

            if business_config.phi_checks_enabled:
                phi_error = self._check_phi(
                    mapping=mapping,
                    value=value,
                    row_number=row_number,
                )
                if phi_error is not None:
                    errors.append(phi_error)

            errors.extend(
                self._check_business_rules(
                    mapping=mapping,
                    value=value,
                    row_number=row_number,
                    business_config=business_config,
                )
            )
            errors.extend(
                self._check_format(
                    mapping=mapping,
                    value=value,
                    row_number=row_number,
                )
            )

        return errors

    def _check_phi(self, *, mapping: FieldMapping, value: str, row_number: int) -> ValidationError | None:
        finding = self._phi_detector.detect(contact_field=mapping.contact_field, value=value)
        if finding is None:
            return None
        return ValidationError(
            row=row_number,
            column=mapping.csv_column,
            value=value,
            error=finding.message,
            severity=finding.severity,
            suggestion=finding.suggestion,
            hipaa_violation=True,
            phi_type=finding.phi_type,
        )

    @staticmethod
    def _check_business_rules(
        *,
        mapping: FieldMapping,
        value: str,
        row_number: int,
        business_config: BusinessConfig,
    ) -> list[ValidationError]:
        return [
            ValidationError(
                row=row_number,
                column=mapping.csv_column,
                value=value,
                error=finding.message,
                severity=finding.severity,
                suggestion=finding.suggestion,
            )
            for finding in business_config.apply_rule(mapping.contact_field, value)
        ]

    def _check_format(self, *, mapping: FieldMapping, value: str, row_number: int) -> list[ValidationError]:
        errors: list[ValidationError] = []
        contact_field = mapping.contact_field

        def add(message: str, severity: str, suggestion: str | None = None) -> None:
            errors.append(
                ValidationError(
                    row=row_number,
                    column=mapping.csv_column,
                    value=value,
                    error=message,
                    severity=severity,
                    suggestion=suggestion,
                )
            )

        if contact_field == "phone" and not is_valid_phone(value):
            add("Invalid phone number format.", Severity.ERROR, "Use digits with an optional leading +, e.g. +447700900123.")
        elif contact_field == "email" and not is_valid_email(value):
            add("Invalid email address format.", Severity.ERROR, "Use the form name@example.com.")
        elif contact_field == "appointment_date":
            parsed = parse_date(value)
            if parsed is None:
                add("Invalid date format.", Severity.ERROR, "Use YYYY-MM-DD or MM/DD/YYYY.")
            elif parsed < self._current_date():
                add("Appointment date is in the past.", Severity.WARNING, "Past appointments will not be scheduled.")
        elif contact_field == "appointment_time" and parse_time(value) is None:
            add("Invalid time format.", Severity.ERROR, "Use HH:MM (24h) or HH:MM AM/PM.")
        elif contact_field == "duration":
            minutes = parse_int(value)
            if minutes is None or not MIN_DURATION_MINUTES <= minutes <= MAX_DURATION_MINUTES:
                add(
                    f"Duration should be between {MIN_DURATION_MINUTES} and {MAX_DURATION_MINUTES} minutes.",
                    Severity.WARNING,
                )
        return errors

    def _current_date(self) -> date:
        return self._today or date.today()


def can_proceed(errors: Iterable[ValidationError], business_type: str) -> bool:
    """
    Gate for leaving the validation step: no blocking errors and, for medical
    practices, no direct identifiers.
    """

    for error in errors:
        if error.severity == Severity.ERROR:
            return False
        if business_type == BusinessType.MEDICAL and error.phi_type == PHIType.DIRECT:
            return False
    return True


def summarize(errors: Sequence[ValidationError], total_rows: int) -> ValidationSummary:
    rows_with_errors = {error.row for error in errors if error.severity == Severity.ERROR}
    return ValidationSummary(
        total=total_rows,
        valid=total_rows - len(rows_with_errors),
        errors=sum(1 for error in errors if error.severity == Severity.ERROR),
        warnings=sum(1 for error in errors if error.severity == Severity.WARNING),
    )
