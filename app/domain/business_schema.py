"""
app/domain/business_schema.py

Static per-business-type contact schema registry.
"""

from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field

from app.domain.contact_import import DataType
from app.validators.business_rules import (
    BusinessRule,
    RuleFinding,
    medical_rules,
    no_rules,
    restaurant_rules,
    salon_rules,
)

CANONICAL_FIELDS: tuple[str, ...] = (
    "name",
    "phone",
    "email",
    "appointment_date",
    "appointment_time",
    "appointment_type",
    "duration",
    "provider",
    "special_instructions",
    "notes",
    "service_type",
    "party_size",
    "occasion",
    "consultation_type",
    "groups",
)

FIELD_DATA_TYPES: dict[str, str] = {
    "phone": DataType.PHONE,
    "email": DataType.EMAIL,
    "appointment_date": DataType.DATE,
    "appointment_time": DataType.TIME,
    "duration": DataType.NUMBER,
    "party_size": DataType.NUMBER,
}

DEFAULT_FIELD_LABELS: dict[str, str] = {
    "name": "Name",
    "phone": "Phone",
    "email": "Email",
    "appointment_date": "Appointment Date",
    "appointment_time": "Appointment Time",
    "appointment_type": "Appointment Type",
    "duration": "Duration (minutes)",
    "provider": "Provider",
    "special_instructions": "Special Instructions",
    "notes": "Notes",
    "service_type": "Service Type",
    "party_size": "Party Size",
    "occasion": "Occasion",
    "consultation_type": "Consultation Type",
    "groups": "Groups",
}

_TEMPLATE_SAMPLE_VALUES: dict[str, str] = {
    "name": "Jane Doe",
    "phone": "+44 7700 900123",
    "email": "jane@example.com",
    "appointment_date": "2030-01-15",
    "appointment_time": "14:30",
    "appointment_type": "Consultation",
    "duration": "30",
    "provider": "Alex Smith",
    "special_instructions": "Arrive 10 minutes early",
    "service_type": "Haircut",
    "party_size": "4",
    "occasion": "Birthday",
    "consultation_type": "Strategy session",
    "groups": "VIP",
}


def data_type_for(contact_field: str) -> str:
    return FIELD_DATA_TYPES.get(contact_field, DataType.TEXT)


class UnknownBusinessTypeError(ValueError):
    """
    Raised when a business type is not present in the registry.
    """


class BusinessType:
    MEDICAL = "medical"
    SALON = "salon"
    RESTAURANT = "restaurant"
    CONSULTANT = "consultant"
    GENERAL = "general"

    ALL = (MEDICAL, SALON, RESTAURANT, CONSULTANT, GENERAL)


@dataclass(frozen=True)
class BusinessConfig:
    """
    Field requirements and validation capabilities of one business type.
    """

    business_type: str
    required_fields: tuple[str, ...]
    optional_fields: tuple[str, ...]
    restricted_fields: tuple[str, ...] = ()
    field_labels: dict[str, str] = field(default_factory=dict)
    phi_checks_enabled: bool = False
    rule: BusinessRule = no_rules

    def label_for(self, contact_field: str) -> str:
        if contact_field in self.field_labels:
            return self.field_labels[contact_field]
        return DEFAULT_FIELD_LABELS.get(contact_field, contact_field)

    def is_required(self, contact_field: str) -> bool:
        return bool(contact_field) and contact_field in self.required_fields

    def apply_rule(self, contact_field: str, value: str) -> list[RuleFinding]:
        return self.rule(contact_field, value, self.restricted_fields)


_BASE_REQUIRED = ("name", "phone", "appointment_date", "appointment_time")

BUSINESS_CONFIGS: dict[str, BusinessConfig] = {
    BusinessType.MEDICAL: BusinessConfig(
        business_type=BusinessType.MEDICAL,
        required_fields=_BASE_REQUIRED,
        optional_fields=("email", "appointment_type", "provider", "special_instructions"),
        restricted_fields=("notes",),
        field_labels={
            "name": "Patient Name",
            "provider": "Doctor/Provider",
            "appointment_type": "Visit Type",
            "special_instructions": "Preparation Instructions",
        },
        phi_checks_enabled=True,
        rule=medical_rules,
    ),
    BusinessType.SALON: BusinessConfig(
        business_type=BusinessType.SALON,
        required_fields=_BASE_REQUIRED,
        optional_fields=("email", "service_type", "provider", "duration", "special_instructions"),
        field_labels={
            "name": "Client Name",
            "service_type": "Service Type",
            "provider": "Stylist",
            "special_instructions": "Special Requests",
        },
        rule=salon_rules,
    ),
    BusinessType.RESTAURANT: BusinessConfig(
        business_type=BusinessType.RESTAURANT,
        required_fields=_BASE_REQUIRED,
        optional_fields=("email", "party_size", "occasion", "special_instructions"),
        field_labels={
            "name": "Guest Name",
            "appointment_date": "Reservation Date",
            "appointment_time": "Reservation Time",
            "special_instructions": "Special Requests",
        },
        rule=restaurant_rules,
    ),
    BusinessType.CONSULTANT: BusinessConfig(
        business_type=BusinessType.CONSULTANT,
        required_fields=_BASE_REQUIRED,
        optional_fields=("email", "consultation_type", "provider", "duration", "special_instructions"),
        field_labels={
            "name": "Client Name",
            "consultation_type": "Consultation Type",
            "provider": "Consultant",
            "special_instructions": "Preparation Required",
        },
    ),
    BusinessType.GENERAL: BusinessConfig(
        business_type=BusinessType.GENERAL,
        required_fields=_BASE_REQUIRED,
        optional_fields=("email", "appointment_type", "duration", "special_instructions"),
        field_labels={
            "name": "Contact Name",
            "appointment_type": "Appointment Type",
            "special_instructions": "Notes",
        },
    ),
}


def get_business_config(business_type: str) -> BusinessConfig:
    """
    Look up the registry entry for a business type (case-insensitive).
    """

    normalized = (business_type or "").strip().lower()
    config = BUSINESS_CONFIGS.get(normalized)
    if config is None:
        allowed = ", ".join(BusinessType.ALL)
        raise UnknownBusinessTypeError(
            f"Unknown business type '{business_type}'. Allowed values: {allowed}."
        )
    return config


def build_template_csv(business_type: str) -> str:
    """
    Render a downloadable CSV template with one sample row.
    """

    config = get_business_config(business_type)
    fields = [*config.required_fields, *config.optional_fields]
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow([config.label_for(name) for name in fields])
    writer.writerow([_TEMPLATE_SAMPLE_VALUES.get(name, "") for name in fields])
    return buffer.getvalue()
