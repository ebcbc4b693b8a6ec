from __future__ import annotations

import unittest
from datetime import date

from app.domain.business_schema import BusinessConfig, data_type_for, get_business_config
from app.domain.contact_import import FieldMapping, PHIType, Severity, ValidationError
from app.validators.row_validator import RowValidator, can_proceed, summarize


def _mapping(column: str, contact_field: str, config: BusinessConfig) -> FieldMapping:
    return FieldMapping(
        csv_column=column,
        contact_field=contact_field,
        confidence=100,
        required=config.is_required(contact_field),
        data_type=data_type_for(contact_field),
    )


class TestRowValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = RowValidator(today=date(2030, 1, 10))

    def _validate(self, business_type: str, columns: list[tuple[str, str]], row: list[str]) -> list[ValidationError]:
        config = get_business_config(business_type)
        mappings = [_mapping(column, field, config) for column, field in columns]
        return self.validator.validate_row(row=row, row_index=0, mappings=mappings, business_config=config)

    def test_ssn_in_medical_notes_is_blocking_direct_phi(self) -> None:
        errors = self._validate("medical", [("Notes", "notes")], ["Patient SSN 123-45-6789"])

        phi_errors = [error for error in errors if error.hipaa_violation]
        self.assertEqual(len(phi_errors), 1)
        self.assertEqual(phi_errors[0].severity, Severity.ERROR)
        self.assertEqual(phi_errors[0].phi_type, PHIType.DIRECT)
        self.assertEqual(phi_errors[0].row, 1)
        self.assertFalse(can_proceed(errors, "medical"))

    def test_same_ssn_for_general_business_has_no_hipaa_findings(self) -> None:
        errors = self._validate("general", [("Notes", "notes")], ["Patient SSN 123-45-6789"])

        self.assertEqual([error for error in errors if error.hipaa_violation], [])
        self.assertTrue(can_proceed(errors, "general"))

    def test_restricted_notes_warns_for_medical(self) -> None:
        errors = self._validate("medical", [("Notes", "notes")], ["Prefers mornings"])

        messages = [error.error for error in errors]
        self.assertTrue(any("restricted" in message for message in messages))
        self.assertTrue(all(error.severity == Severity.WARNING for error in errors))

    def test_quasi_identifier_is_a_warning(self) -> None:
        errors = self._validate("medical", [("Prep", "special_instructions")], ["Pick up at 42 Baker Street"])

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].phi_type, PHIType.QUASI)
        self.assertEqual(errors[0].severity, Severity.WARNING)
        self.assertTrue(can_proceed(errors, "medical"))

    def test_empty_required_cell_reports_only_one_error(self) -> None:
        errors = self._validate("general", [("Phone", "phone")], ["   "])

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].severity, Severity.ERROR)
        self.assertEqual(errors[0].error, "Phone is required.")

    def test_empty_optional_cell_is_valid(self) -> None:
        self.assertEqual(self._validate("general", [("Email", "email")], [""]), [])

    def test_unmapped_columns_are_ignored(self) -> None:
        config = get_business_config("general")
        mappings = [FieldMapping(csv_column="Junk", contact_field="", confidence=0, required=False, data_type="text")]

        errors = self.validator.validate_row(row=["???"], row_index=0, mappings=mappings, business_config=config)

        self.assertEqual(errors, [])

    def test_format_errors(self) -> None:
        errors = self._validate(
            "general",
            [
                ("Phone", "phone"),
                ("Email", "email"),
                ("Date", "appointment_date"),
                ("Time", "appointment_time"),
            ],
            ["call me", "not-an-email", "someday", "25:00"],
        )

        self.assertEqual([error.column for error in errors], ["Phone", "Email", "Date", "Time"])
        self.assertTrue(all(error.severity == Severity.ERROR for error in errors))

    def test_valid_formats_pass(self) -> None:
        errors = self._validate(
            "general",
            [
                ("Phone", "phone"),
                ("Email", "email"),
                ("Date", "appointment_date"),
                ("Time", "appointment_time"),
                ("Length", "duration"),
            ],
            ["+1 (555) 123-4567", "jane@example.com", "01/15/2030", "2:30 PM", "45"],
        )

        self.assertEqual(errors, [])

    def test_past_date_is_a_warning(self) -> None:
        errors = self._validate("general", [("Date", "appointment_date")], ["2030-01-09"])

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].severity, Severity.WARNING)

    def test_today_is_not_past(self) -> None:
        self.assertEqual(self._validate("general", [("Date", "appointment_date")], ["2030-01-10"]), [])

    def test_duration_outside_range_warns(self) -> None:
        for value in ("5", "600", "half an hour"):
            errors = self._validate("salon", [("Length", "duration")], [value])
            self.assertEqual(len(errors), 1, value)
            self.assertEqual(errors[0].severity, Severity.WARNING)

    def test_restaurant_party_size_bounds(self) -> None:
        self.assertEqual(self._validate("restaurant", [("Party", "party_size")], ["4"]), [])
        for value in ("0", "21", "four"):
            errors = self._validate("restaurant", [("Party", "party_size")], [value])
            self.assertEqual(errors[0].severity, Severity.ERROR, value)

    def test_salon_vocabulary_mismatch_warns(self) -> None:
        errors = self._validate("salon", [("Service", "service_type")], ["Oil change"])

        self.assertEqual(len(errors), 1)
        self.assertEqual(errors[0].severity, Severity.WARNING)
        self.assertEqual(self._validate("salon", [("Service", "service_type")], ["Haircut & blow dry"]), [])

    def test_medical_visit_type_vocabulary(self) -> None:
        errors = self._validate("medical", [("Visit", "appointment_type")], ["Lunch"])

        self.assertEqual(len(errors), 1)
        self.assertIsNone(errors[0].phi_type)
        self.assertEqual(self._validate("medical", [("Visit", "appointment_type")], ["Annual checkup"]), [])

    def test_validate_rows_keeps_row_order(self) -> None:
        config = get_business_config("general")
        mappings = [_mapping("Phone", "phone", config)]

        errors = self.validator.validate_rows(
            rows=[["bad"], ["5551234567"], [""]],
            mappings=mappings,
            business_config=config,
        )

        self.assertEqual([error.row for error in errors], [1, 3])


class TestProceedGate(unittest.TestCase):
    def test_warnings_never_block(self) -> None:
        warning = ValidationError(row=1, column="Date", value="x", error="old", severity=Severity.WARNING)

        self.assertTrue(can_proceed([warning], "general"))

    def test_errors_block(self) -> None:
        error = ValidationError(row=1, column="Phone", value="x", error="bad", severity=Severity.ERROR)

        self.assertFalse(can_proceed([error], "salon"))

    def test_summary_counts_rows_with_errors(self) -> None:
        errors = [
            ValidationError(row=1, column="Phone", value="x", error="bad", severity=Severity.ERROR),
            ValidationError(row=1, column="Email", value="x", error="bad", severity=Severity.ERROR),
            ValidationError(row=2, column="Date", value="x", error="old", severity=Severity.WARNING),
        ]

        summary = summarize(errors, total_rows=3)

        self.assertEqual((summary.total, summary.valid, summary.errors, summary.warnings), (3, 2, 2, 1))


if __name__ == "__main__":
    unittest.main()
