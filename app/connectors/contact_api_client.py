"""
app/connectors/contact_api_client.py

HTTP client for the contacts backend bulk endpoints used by the import.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from functools import lru_cache
from typing import Any

from app.config import get_backend_api_settings
from app.connectors.base import BackendRequestError, BaseAPIClient
from app.domain.contact_import import (
    AppointmentRequest,
    ContactRecord,
    ExistingGroup,
    ImportPhase,
    ImportPhaseResult,
    PhaseError,
    ReminderRequest,
)

logger = logging.getLogger(__name__)

CONTACTS_BULK_PATH = "/api/contacts/bulk"
APPOINTMENTS_BULK_PATH = "/api/appointments/bulk"
REMINDERS_BULK_PATH = "/api/reminders/bulk"
GROUPS_PATH = "/api/groups"


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _parse_errors(raw_errors: Any, *, phase: str) -> tuple[PhaseError, ...]:
    """
    Accept either ``["msg", ...]`` or ``[{"error": "msg", "index": 0}, ...]``.
    """

    if not isinstance(raw_errors, list):
        return ()
    errors: list[PhaseError] = []
    for item in raw_errors:
        if isinstance(item, dict):
            message = str(item.get("error") or item.get("message") or "Unknown error")
            index = item.get("index")
            errors.append(
                PhaseError(
                    phase=phase,
                    message=message,
                    index=index if isinstance(index, int) and not isinstance(index, bool) else None,
                )
            )
        elif item is not None:
            errors.append(PhaseError(phase=phase, message=str(item)))
    return tuple(errors)


def _require_object(payload: Any, *, path: str) -> dict[str, Any]:
    if not isinstance(payload, dict):
        raise BackendRequestError(f"Unexpected response shape from {path}: expected a JSON object.")
    return payload


class ContactImportAPIClient(BaseAPIClient):
    """
    Bulk create contacts, appointments and reminders on the contacts backend.
    """

    service_name = "contacts_api"

    def create_contacts(self, contacts: Sequence[ContactRecord]) -> ImportPhaseResult:
        payload = _require_object(
            self._request_json(
                method="POST",
                path=CONTACTS_BULK_PATH,
                json_body={"contacts": [contact.to_payload() for contact in contacts]},
            ),
            path=CONTACTS_BULK_PATH,
        )
        raw_ids = payload.get("contactIds")
        if not isinstance(raw_ids, list):
            raise BackendRequestError(f"Response from {CONTACTS_BULK_PATH} is missing 'contactIds'.")
        ids = tuple(str(value) if value is not None else None for value in raw_ids)
        result = ImportPhaseResult(
            created=_as_int(payload.get("created")),
            ids=ids,
            errors=_parse_errors(payload.get("errors"), phase=ImportPhase.CONTACTS),
        )
        logger.info(
            "Created contacts submitted=%s created=%s errors=%s",
            len(contacts),
            result.created,
            len(result.errors),
        )
        return result

    def create_appointments(self, appointments: Sequence[AppointmentRequest]) -> ImportPhaseResult:
        payload = _require_object(
            self._request_json(
                method="POST",
                path=APPOINTMENTS_BULK_PATH,
                json_body={"appointments": [appointment.to_payload() for appointment in appointments]},
            ),
            path=APPOINTMENTS_BULK_PATH,
        )
        return ImportPhaseResult(
            created=_as_int(payload.get("created")),
            errors=_parse_errors(payload.get("errors"), phase=ImportPhase.APPOINTMENTS),
        )

    def schedule_reminders(self, reminders: Sequence[ReminderRequest]) -> ImportPhaseResult:
        payload = _require_object(
            self._request_json(
                method="POST",
                path=REMINDERS_BULK_PATH,
                json_body={"reminders": [reminder.to_payload() for reminder in reminders]},
            ),
            path=REMINDERS_BULK_PATH,
        )
        return ImportPhaseResult(
            created=_as_int(payload.get("scheduled")),
            errors=_parse_errors(payload.get("errors"), phase=ImportPhase.REMINDERS),
        )

    def list_groups(self) -> list[ExistingGroup]:
        payload = self._request_json(method="GET", path=GROUPS_PATH)
        if not isinstance(payload, list):
            raise BackendRequestError(f"Unexpected response shape from {GROUPS_PATH}: expected a JSON array.")
        groups: list[ExistingGroup] = []
        for item in payload:
            if not isinstance(item, dict) or item.get("id") is None:
                continue
            groups.append(
                ExistingGroup(
                    id=str(item["id"]),
                    name=str(item.get("name") or ""),
                    contact_count=_as_int(item.get("contactCount")),
                )
            )
        return groups


@lru_cache(maxsize=1)
def get_contact_import_api_client() -> ContactImportAPIClient:
    return ContactImportAPIClient(settings=get_backend_api_settings())
