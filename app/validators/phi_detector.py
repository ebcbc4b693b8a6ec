"""
app/validators/phi_detector.py

Pattern-based detection of Protected Health Information in CSV cells.

Direct identifiers are checked first, then quasi-identifiers, then
potential PHI (high-risk fields and medical terminology). The first hit
wins; hits are not accumulated per cell.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from app.domain.contact_import import PHIType, Severity

_DE_IDENTIFY = "Remove or de-identify this value before importing."
_ELDERLY_AGE_THRESHOLD = 89


@dataclass(frozen=True)
class PHIPattern:
    name: str
    pattern: re.Pattern[str]
    message: str
    predicate: Callable[[re.Match[str]], bool] | None = None

    def matches(self, value: str) -> bool:
        for match in self.pattern.finditer(value):
            if self.predicate is None or self.predicate(match):
                return True
        return False


@dataclass(frozen=True)
class PHIFinding:
    rule: str
    phi_type: str
    severity: str
    message: str
    suggestion: str


def _age_over_threshold(match: re.Match[str]) -> bool:
    age = next(group for group in match.groups() if group is not None)
    return int(age) > _ELDERLY_AGE_THRESHOLD


DIRECT_IDENTIFIER_PATTERNS: tuple[PHIPattern, ...] = (
    PHIPattern(
        name="ssn",
        pattern=re.compile(r"\b\d{3}[- ]\d{2}[- ]\d{4}\b|\bssn\s*[:#]?\s*\d{9}\b", re.IGNORECASE),
        message="Social Security Number detected",
    ),
    PHIPattern(
        name="medical_record_number",
        pattern=re.compile(
            r"\b(?:mrn|medical\s+record(?:\s+(?:number|no\.?|#))?)\s*[:#]?\s*[a-z0-9-]*\d[a-z0-9-]*\b",
            re.IGNORECASE,
        ),
        message="Medical record number detected",
    ),
    PHIPattern(
        name="health_plan_id",
        pattern=re.compile(
            r"\b(?:insurance|policy|member|subscriber|beneficiary)\s*(?:id|no\.?|number|#)\s*[:#]?\s*[a-z0-9-]*\d[a-z0-9-]*\b",
            re.IGNORECASE,
        ),
        message="Health plan or insurance identifier detected",
    ),
    PHIPattern(
        name="account_number",
        pattern=re.compile(r"\b(?:account|acct)\s*(?:no\.?|number|#)?\s*[:#]?\s*\d{6,}\b", re.IGNORECASE),
        message="Account number detected",
    ),
    PHIPattern(
        name="certificate_license_number",
        pattern=re.compile(
            r"\b(?:certificate|license|licence)\s*(?:no\.?|number|#)?\s*[:#]?\s*[a-z0-9-]*\d[a-z0-9-]*\b",
            re.IGNORECASE,
        ),
        message="Certificate or license number detected",
    ),
    PHIPattern(
        name="vehicle_identifier",
        pattern=re.compile(
            r"\b(?=[A-HJ-NPR-Z0-9]*\d)(?=[A-HJ-NPR-Z0-9]*[A-HJ-NPR-Z])[A-HJ-NPR-Z0-9]{17}\b"
            r"|\b(?:license|licence|number)\s+plate\b"
        ),
        message="Vehicle identifier detected",
    ),
    PHIPattern(
        name="device_identifier",
        pattern=re.compile(
            r"\b(?:device|serial|implant)\s*(?:id|no\.?|number|#)\s*[:#]?\s*[a-z0-9-]*\d[a-z0-9-]*\b",
            re.IGNORECASE,
        ),
        message="Device identifier or serial number detected",
    ),
    PHIPattern(
        name="url",
        pattern=re.compile(r"\bhttps?://\S+|\bwww\.\S+", re.IGNORECASE),
        message="Web URL detected",
    ),
    PHIPattern(
        name="ip_address",
        pattern=re.compile(r"\b(?:(?:25[0-5]|2[0-4]\d|1?\d?\d)\.){3}(?:25[0-5]|2[0-4]\d|1?\d?\d)\b"),
        message="IP address detected",
    ),
    PHIPattern(
        name="biometric_identifier",
        pattern=re.compile(
            r"\b(?:fingerprints?|retinal?\s+scan|iris\s+scan|voice\s?prints?|biometrics?|facial\s+recognition)\b",
            re.IGNORECASE,
        ),
        message="Biometric identifier reference detected",
    ),
    PHIPattern(
        name="photo_reference",
        pattern=re.compile(
            r"\b(?:photo(?:graph)?s?|headshot|selfie|full[- ]face\s+image)\b|\.(?:jpe?g|png|gif|heic|bmp)\b",
            re.IGNORECASE,
        ),
        message="Photograph or image reference detected",
    ),
    PHIPattern(
        name="patient_identifier",
        pattern=re.compile(
            r"\b(?:patient|medical|health\s+plan|chart)\s*(?:id|number|no\.?|#)\s*[:#]?\s*[a-z0-9-]*\d[a-z0-9-]*\b",
            re.IGNORECASE,
        ),
        message="Patient or medical identifier detected",
    ),
)

QUASI_IDENTIFIER_PATTERNS: tuple[PHIPattern, ...] = (
    PHIPattern(
        name="patient_date",
        pattern=re.compile(
            r"\b(?:dob|d\.o\.b\.?|date\s+of\s+birth|birth\s?date|born(?:\s+on)?|admitted(?:\s+on)?|"
            r"admission\s+date|discharged?(?:\s+on)?|discharge\s+date|date\s+of\s+death|deceased)\b",
            re.IGNORECASE,
        ),
        message="Date tied to the patient (birth, admission, discharge or death) detected",
    ),
    PHIPattern(
        name="street_address",
        pattern=re.compile(
            r"\b\d{1,5}\s+(?:[a-z]+\s+){1,3}(?:street|st|avenue|ave|road|rd|boulevard|blvd|lane|ln|drive|dr|"
            r"court|ct|way|place|pl|terrace|close)\b",
            re.IGNORECASE,
        ),
        message="Street address detected",
    ),
    PHIPattern(
        name="zip_code",
        pattern=re.compile(r"(?<![\d-])\d{5}(?:-\d{4})?(?![\d-])"),
        message="ZIP code detected",
    ),
    PHIPattern(
        name="elderly_age",
        pattern=re.compile(
            r"\bage[d]?\s*[:=]?\s*(\d{2,3})\b|\b(\d{2,3})\s*(?:years?\s+old|y/?o|yrs?\b)",
            re.IGNORECASE,
        ),
        message="Age over 89 detected",
        predicate=_age_over_threshold,
    ),
)

HIGH_RISK_FIELDS: dict[str, str] = {
    "notes": "Free-text notes frequently contain clinical details",
    "special_instructions": "Preparation instructions can reveal treatments or conditions",
}

MEDICAL_TERMS: tuple[str, ...] = (
    "diagnosis",
    "diagnosed",
    "prescription",
    "medication",
    "dosage",
    "chemotherapy",
    "radiotherapy",
    "surgery",
    "diabetes",
    "diabetic",
    "cancer",
    "tumor",
    "tumour",
    "pregnan",
    "depression",
    "anxiety",
    "bipolar",
    "schizophrenia",
    "dementia",
    "alzheimer",
    "asthma",
    "allerg",
    "symptom",
    "disorder",
    "disease",
    "infection",
    "insulin",
    "hepatitis",
    "std test",
    "rehab",
)


class PHIDetector:
    """
    Classifies a single cell into direct, quasi or potential PHI.
    """

    def __init__(
        self,
        *,
        direct_patterns: tuple[PHIPattern, ...] = DIRECT_IDENTIFIER_PATTERNS,
        quasi_patterns: tuple[PHIPattern, ...] = QUASI_IDENTIFIER_PATTERNS,
        high_risk_fields: dict[str, str] | None = None,
        medical_terms: tuple[str, ...] = MEDICAL_TERMS,
    ) -> None:
        self._direct_patterns = direct_patterns
        self._quasi_patterns = quasi_patterns
        self._high_risk_fields = HIGH_RISK_FIELDS if high_risk_fields is None else high_risk_fields
        self._medical_terms = medical_terms

    def detect(self, *, contact_field: str, value: str) -> PHIFinding | None:
        """
        Return the highest-severity PHI finding for one cell, or None.
        """

        for candidate in self._direct_patterns:
            if candidate.matches(value):
                return PHIFinding(
                    rule=candidate.name,
                    phi_type=PHIType.DIRECT,
                    severity=Severity.ERROR,
                    message=f"HIPAA: {candidate.message} (direct identifier).",
                    suggestion=_DE_IDENTIFY,
                )

        for candidate in self._quasi_patterns:
            if candidate.matches(value):
                return PHIFinding(
                    rule=candidate.name,
                    phi_type=PHIType.QUASI,
                    severity=Severity.WARNING,
                    message=f"HIPAA: {candidate.message} (quasi-identifier).",
                    suggestion="Generalise the value (e.g. state or year only) where possible.",
                )

        reason = self._high_risk_fields.get(contact_field)
        if reason is not None:
            return PHIFinding(
                rule="high_risk_field",
                phi_type=PHIType.POTENTIAL,
                severity=Severity.WARNING,
                message=f"HIPAA: {reason} (potential PHI).",
                suggestion="Review this column for clinical information before importing.",
            )

        lowered = value.lower()
        term = next((term for term in self._medical_terms if term in lowered), None)
        if term is not None:
            return PHIFinding(
                rule="medical_terminology",
                phi_type=PHIType.POTENTIAL,
                severity=Severity.WARNING,
                message=f"HIPAA: medical terminology '{term}' found (potential PHI).",
                suggestion="Use a generic description instead of clinical terms.",
            )
        return None
