"""
app/validators/business_rules.py

Business-type specific semantic rules for mapped contact fields.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from app.domain.contact_import import Severity
from app.validators.patterns import parse_int

MEDICAL_APPOINTMENT_TERMS: tuple[str, ...] = (
    "consultation",
    "checkup",
    "check-up",
    "follow-up",
    "followup",
    "exam",
    "screening",
    "vaccination",
    "physical",
    "procedure",
    "therapy",
    "treatment",
    "cleaning",
    "x-ray",
    "visit",
    "appointment",
    "review",
    "assessment",
)

SALON_SERVICE_TERMS: tuple[str, ...] = (
    "haircut",
    "cut",
    "trim",
    "color",
    "colour",
    "highlights",
    "balayage",
    "blowout",
    "blow dry",
    "styling",
    "perm",
    "extensions",
    "manicure",
    "pedicure",
    "nails",
    "facial",
    "waxing",
    "massage",
    "makeup",
    "brow",
    "lash",
    "treatment",
)

MIN_PARTY_SIZE = 1
MAX_PARTY_SIZE = 20


@dataclass(frozen=True)
class RuleFinding:
    message: str
    severity: str
    suggestion: str | None = None


BusinessRule = Callable[[str, str, Sequence[str]], list[RuleFinding]]


def _contains_any(value: str, terms: Sequence[str]) -> bool:
    lowered = value.lower()
    return any(term in lowered for term in terms)


def medical_rules(contact_field: str, value: str, restricted_fields: Sequence[str]) -> list[RuleFinding]:
    findings: list[RuleFinding] = []
    if contact_field == "notes" and "notes" in restricted_fields:
        findings.append(
            RuleFinding(
                message="Notes are restricted for medical practices (HIPAA).",
                severity=Severity.WARNING,
                suggestion="Leave the notes column unmapped or remove clinical details.",
            )
        )
    if contact_field == "appointment_type" and not _contains_any(value, MEDICAL_APPOINTMENT_TERMS):
        findings.append(
            RuleFinding(
                message="Visit type is not a recognised medical appointment type.",
                severity=Severity.WARNING,
                suggestion="Use a generic visit type such as 'Consultation' or 'Follow-up'.",
            )
        )
    return findings


def salon_rules(contact_field: str, value: str, restricted_fields: Sequence[str]) -> list[RuleFinding]:
    if contact_field == "service_type" and not _contains_any(value, SALON_SERVICE_TERMS):
        return [
            RuleFinding(
                message="Service type is not a recognised salon service.",
                severity=Severity.WARNING,
                suggestion="Use a service such as 'Haircut', 'Color' or 'Manicure'.",
            )
        ]
    return []


def restaurant_rules(contact_field: str, value: str, restricted_fields: Sequence[str]) -> list[RuleFinding]:
    if contact_field != "party_size":
        return []
    party_size = parse_int(value)
    if party_size is None or not MIN_PARTY_SIZE <= party_size <= MAX_PARTY_SIZE:
        return [
            RuleFinding(
                message=f"Party size must be a whole number between {MIN_PARTY_SIZE} and {MAX_PARTY_SIZE}.",
                severity=Severity.ERROR,
                suggestion="Split large bookings into several reservations.",
            )
        ]
    return []


def no_rules(contact_field: str, value: str, restricted_fields: Sequence[str]) -> list[RuleFinding]:
    return []
