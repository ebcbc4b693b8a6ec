"""
tests/test_business_schema.py

Pytest unit tests for the business type registry and CSV templates.
"""

from __future__ import annotations

import pytest

from app.domain.business_schema import (
    BUSINESS_CONFIGS,
    BusinessType,
    UnknownBusinessTypeError,
    build_template_csv,
    data_type_for,
    get_business_config,
)
from app.domain.contact_import import DataType


class TestRegistry:
    @pytest.mark.parametrize("raw", ["medical", "MEDICAL", " Medical "])
    def test_lookup_is_case_insensitive(self, raw: str) -> None:
        assert get_business_config(raw).business_type == BusinessType.MEDICAL

    @pytest.mark.parametrize("raw", ["dentist", "", None])
    def test_unknown_type_raises(self, raw: str | None) -> None:
        with pytest.raises(UnknownBusinessTypeError):
            get_business_config(raw)  # type: ignore[arg-type]

    def test_every_type_requires_contact_and_appointment_basics(self) -> None:
        assert set(BUSINESS_CONFIGS) == set(BusinessType.ALL)
        for config in BUSINESS_CONFIGS.values():
            assert config.required_fields == ("name", "phone", "appointment_date", "appointment_time")

    def test_only_medical_enables_phi_checks(self) -> None:
        enabled = [name for name, config in BUSINESS_CONFIGS.items() if config.phi_checks_enabled]

        assert enabled == [BusinessType.MEDICAL]

    def test_labels_fall_back_to_defaults(self) -> None:
        general = get_business_config("general")

        assert general.label_for("special_instructions") == "Notes"
        assert general.label_for("phone") == "Phone"
        assert general.label_for("custom_thing") == "custom_thing"
        assert get_business_config("medical").label_for("name") == "Patient Name"

    def test_is_required_ignores_empty_field(self) -> None:
        config = get_business_config("salon")

        assert config.is_required("phone")
        assert not config.is_required("email")
        assert not config.is_required("")

    def test_data_types(self) -> None:
        assert data_type_for("appointment_date") == DataType.DATE
        assert data_type_for("party_size") == DataType.NUMBER
        assert data_type_for("notes") == DataType.TEXT


class TestTemplates:
    def test_medical_template(self) -> None:
        header, sample, trailing = build_template_csv("medical").split("\n")

        assert header == (
            "Patient Name,Phone,Appointment Date,Appointment Time,Email,"
            "Visit Type,Doctor/Provider,Preparation Instructions"
        )
        assert sample.startswith("Jane Doe,+44 7700 900123,2030-01-15,14:30,jane@example.com")
        assert trailing == ""

    def test_restaurant_template_uses_reservation_labels(self) -> None:
        header = build_template_csv("Restaurant").splitlines()[0]

        assert header.startswith("Guest Name,Phone,Reservation Date,Reservation Time")
        assert "Party Size" in header

    def test_unknown_template_raises(self) -> None:
        with pytest.raises(UnknownBusinessTypeError):
            build_template_csv("bakery")
