from __future__ import annotations

import unittest

from app.domain.business_schema import get_business_config
from app.domain.contact_import import DataType
from app.mappers.field_mapper import (
    FieldMapper,
    FieldMappingError,
    normalize_header,
    required_fields_coverage,
    score_synonym,
)


class TestScoreSynonym(unittest.TestCase):
    def test_exact_match_scores_highest(self) -> None:
        self.assertEqual(score_synonym("phone", "phone"), 100)

    def test_header_containing_synonym(self) -> None:
        self.assertEqual(score_synonym("client phone", "phone"), 85)

    def test_synonym_containing_header_needs_three_characters(self) -> None:
        self.assertEqual(score_synonym("pho", "phone"), 70)
        self.assertEqual(score_synonym("ph", "phone"), 0)

    def test_appt_abbreviation(self) -> None:
        self.assertEqual(score_synonym("appt when", "appointment time"), 80)

    def test_no_overlap_scores_zero(self) -> None:
        self.assertEqual(score_synonym("favourite colour", "phone"), 0)

    def test_normalize_header_trims_and_lowercases(self) -> None:
        self.assertEqual(normalize_header("  Patient NAME "), "patient name")


class TestFieldMapper(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = FieldMapper()
        self.general = get_business_config("general")
        self.medical = get_business_config("medical")

    def test_patient_name_maps_to_name_with_high_confidence(self) -> None:
        mappings = self.mapper.generate_field_mappings(["Patient Name"], [["Jane Doe"]], self.medical)

        self.assertEqual(len(mappings), 1)
        self.assertEqual(mappings[0].contact_field, "name")
        self.assertGreaterEqual(mappings[0].confidence, 85)
        self.assertTrue(mappings[0].required)
        self.assertEqual(mappings[0].sample_values, ("Jane Doe",))

    def test_failed_sniff_subtracts_twenty(self) -> None:
        rows = [["555-1234567"], ["abc"]]

        mappings = self.mapper.generate_field_mappings(["Phone"], rows, self.general)

        self.assertEqual(mappings[0].contact_field, "phone")
        self.assertEqual(mappings[0].data_type, DataType.PHONE)
        self.assertEqual(mappings[0].confidence, 80)

    def test_passing_sniff_adds_ten_capped_at_hundred(self) -> None:
        mappings = self.mapper.generate_field_mappings(
            ["Cust Email", "Email"],
            [["a@example.com", "b@example.com"]],
            self.general,
        )

        self.assertEqual(mappings[0].contact_field, "email")
        self.assertEqual(mappings[0].confidence, 95)
        self.assertEqual(mappings[1].confidence, 100)

    def test_sniff_penalty_does_not_rerank(self) -> None:
        mappings = self.mapper.generate_field_mappings(["Appt Date"], [["someday"]], self.general)

        self.assertEqual(mappings[0].contact_field, "appointment_date")
        self.assertEqual(mappings[0].confidence, 80)
        suggested = [item.field for item in mappings[0].suggestions]
        self.assertEqual(suggested[:2], ["appointment_time", "appointment_type"])

    def test_unknown_header_is_left_unmapped(self) -> None:
        mappings = self.mapper.generate_field_mappings(["Favourite Colour"], [["blue"]], self.general)

        self.assertEqual(mappings[0].contact_field, "")
        self.assertEqual(mappings[0].confidence, 0)
        self.assertFalse(mappings[0].required)
        self.assertFalse(mappings[0].is_mapped)

    def test_empty_headers_produce_no_mappings(self) -> None:
        self.assertEqual(self.mapper.generate_field_mappings([], [], self.general), [])

    def test_two_columns_may_share_a_field(self) -> None:
        mappings = self.mapper.generate_field_mappings(["Phone", "Mobile"], [["5551234567", "5557654321"]], self.general)

        self.assertEqual([mapping.contact_field for mapping in mappings], ["phone", "phone"])

    def test_samples_come_from_first_five_rows_and_skip_blanks(self) -> None:
        rows = [[""], ["one"], [""], ["two"], ["three"], ["four"]]

        mappings = self.mapper.generate_field_mappings(["Notes"], rows, self.general)

        self.assertEqual(mappings[0].sample_values, ("one", "two", "three"))

    def test_mapping_is_deterministic(self) -> None:
        headers = ["Name", "Phone", "Appt Date", "Time", "Tags"]
        rows = [["Jane", "5551234567", "2030-01-01", "10:00", "VIP"]]

        first = self.mapper.generate_field_mappings(headers, rows, self.general)
        second = self.mapper.generate_field_mappings(headers, rows, self.general)

        self.assertEqual(first, second)

    def test_confidence_stays_within_bounds(self) -> None:
        headers = ["Name", "Phone", "Email", "Date", "Time", "Duration", "Party", "x", "Cell", "Appt"]
        rows = [["", "nope", "nope", "nope", "nope", "nope", "nope", "nope", "nope", "nope"]] * 3

        for mapping in self.mapper.generate_field_mappings(headers, rows, self.general):
            self.assertGreaterEqual(mapping.confidence, 0)
            self.assertLessEqual(mapping.confidence, 100)

    def test_at_most_three_suggestions(self) -> None:
        mappings = self.mapper.generate_field_mappings(["Appointment"], [], self.general)

        self.assertLessEqual(len(mappings[0].suggestions), 3)


class TestManualReassignment(unittest.TestCase):
    def setUp(self) -> None:
        self.mapper = FieldMapper()
        self.config = get_business_config("general")
        self.mappings = self.mapper.generate_field_mappings(
            ["Customer", "Mobile", "Extra"],
            [["Jane", "5551234567", "x"]],
            self.config,
        )

    def test_reassignment_sets_fixed_confidence_and_required_flag(self) -> None:
        updated = self.mapper.reassign(
            self.mappings,
            csv_column="Extra",
            contact_field="appointment_date",
            config=self.config,
        )

        extra = updated[2]
        self.assertEqual(extra.contact_field, "appointment_date")
        self.assertEqual(extra.confidence, 85)
        self.assertTrue(extra.required)
        self.assertEqual(extra.data_type, DataType.DATE)
        self.assertEqual(updated[:2], self.mappings[:2])

    def test_empty_field_unmaps_column(self) -> None:
        updated = self.mapper.reassign(self.mappings, csv_column="Mobile", contact_field="", config=self.config)

        self.assertEqual(updated[1].contact_field, "")
        self.assertEqual(updated[1].confidence, 0)
        self.assertFalse(updated[1].required)

    def test_unknown_field_raises(self) -> None:
        with self.assertRaises(FieldMappingError):
            self.mapper.reassign(self.mappings, csv_column="Extra", contact_field="shoe_size", config=self.config)

    def test_unknown_column_raises(self) -> None:
        with self.assertRaises(FieldMappingError):
            self.mapper.reassign(self.mappings, csv_column="Missing", contact_field="notes", config=self.config)

    def test_required_coverage_counts_distinct_required_fields(self) -> None:
        covered, total = required_fields_coverage(self.mappings, self.config)

        self.assertEqual((covered, total), (2, 4))


if __name__ == "__main__":
    unittest.main()
