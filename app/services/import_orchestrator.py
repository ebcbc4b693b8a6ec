"""
app/services/import_orchestrator.py

Three-phase contact import: contacts, then appointments, then reminders.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Protocol

from app.connectors.base import BackendRequestError
from app.domain.contact_import import (
    AppointmentRequest,
    ContactRecord,
    ExistingGroup,
    ImportPhase,
    ImportPhaseResult,
    ImportProgress,
    PhaseError,
    ReminderRequest,
)
from app.logging_utils import log_event
from app.services.import_preview_service import select_upcoming_appointments

logger = logging.getLogger(__name__)

DEFAULT_REMINDER_LEAD_MINUTES = 24 * 60
DEFAULT_PHASE_DELAY_SECONDS = 0.5


class ImportBackend(Protocol):
    def create_contacts(self, contacts: Sequence[ContactRecord]) -> ImportPhaseResult:
        ...

    def create_appointments(self, appointments: Sequence[AppointmentRequest]) -> ImportPhaseResult:
        ...

    def schedule_reminders(self, reminders: Sequence[ReminderRequest]) -> ImportPhaseResult:
        ...

    def list_groups(self) -> list[ExistingGroup]:
        ...


ProgressCallback = Callable[[ImportProgress], None]


class ImportOrchestrator:
    """
    Runs the import phases strictly in order.

    Created contact IDs are matched back to rows by position, so the backend
    must return one ``contactIds`` slot per submitted contact. A batch call
    that fails outright records one error and ends the run; nothing already
    created is rolled back.
    """

    def __init__(
        self,
        *,
        backend: ImportBackend,
        reminder_lead_minutes: int = DEFAULT_REMINDER_LEAD_MINUTES,
        phase_delay_seconds: float = DEFAULT_PHASE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self._backend = backend
        self._reminder_lead = timedelta(minutes=reminder_lead_minutes)
        self._phase_delay_seconds = phase_delay_seconds
        self._sleep = sleep
        self._clock = clock
        self._on_progress = on_progress

    def run(self, records: Sequence[ContactRecord]) -> ImportProgress:
        started_at = self._clock()
        progress = self._transition(ImportProgress(), ImportPhase.CONTACTS)

        try:
            contacts = self._backend.create_contacts(records)
        except BackendRequestError as exc:
            return self._abort(progress, ImportPhase.CONTACTS, f"Contact import failed: {exc}")

        progress = replace(
            progress,
            contacts_imported=contacts.created,
            errors=progress.errors + contacts.errors,
        )
        if len(contacts.ids) != len(records):
            return self._abort(
                progress,
                ImportPhase.CONTACTS,
                f"Backend returned {len(contacts.ids)} contact ids for {len(records)} contacts; "
                "appointments cannot be matched to rows.",
            )

        self._pause()
        progress = self._transition(progress, ImportPhase.APPOINTMENTS)
        appointments = [
            AppointmentRequest.from_record(contact_id=contacts.ids[index], record=record)
            for index, record in select_upcoming_appointments(records, now=started_at)
            if contacts.ids[index] is not None
        ]

        created_appointments: list[AppointmentRequest] = []
        if appointments:
            try:
                result = self._backend.create_appointments(appointments)
            except BackendRequestError as exc:
                return self._abort(progress, ImportPhase.APPOINTMENTS, f"Appointment scheduling failed: {exc}")
            progress = replace(
                progress,
                appointments_scheduled=result.created,
                errors=progress.errors + result.errors,
            )
            failed = result.failed_indexes()
            unindexed = sum(1 for error in result.errors if error.index is None)
            if unindexed:
                # Unindexed errors cannot be tied to an appointment; reminders still go out.
                log_event(
                    logger,
                    logging.WARNING,
                    "appointment_errors_without_index",
                    count=unindexed,
                    appointments=len(appointments),
                )
            created_appointments = [
                appointment for index, appointment in enumerate(appointments) if index not in failed
            ]
        else:
            log_event(logger, logging.INFO, "import_phase_skipped", phase=ImportPhase.APPOINTMENTS)

        self._pause()
        progress = self._transition(progress, ImportPhase.REMINDERS)
        if created_appointments:
            reminders = [
                ReminderRequest(
                    contact_id=appointment.contact_id,
                    appointment_at=appointment.appointment_at,
                    reminder_at=appointment.appointment_at - self._reminder_lead,
                )
                for appointment in created_appointments
            ]
            try:
                result = self._backend.schedule_reminders(reminders)
            except BackendRequestError as exc:
                return self._abort(progress, ImportPhase.REMINDERS, f"Reminder scheduling failed: {exc}")
            progress = replace(
                progress,
                reminders_scheduled=result.created,
                errors=progress.errors + result.errors,
            )
        else:
            log_event(logger, logging.INFO, "import_phase_skipped", phase=ImportPhase.REMINDERS)

        return self._transition(progress, ImportPhase.COMPLETE)

    def _transition(self, progress: ImportProgress, phase: str) -> ImportProgress:
        updated = replace(progress, phase=phase)
        log_event(
            logger,
            logging.INFO,
            "import_phase_started" if phase != ImportPhase.COMPLETE else "import_completed",
            phase=phase,
            contacts_imported=updated.contacts_imported,
            appointments_scheduled=updated.appointments_scheduled,
            reminders_scheduled=updated.reminders_scheduled,
            error_count=len(updated.errors),
        )
        if self._on_progress is not None:
            self._on_progress(updated)
        return updated

    def _abort(self, progress: ImportProgress, phase: str, message: str) -> ImportProgress:
        logger.error("Import phase failed phase=%s error=%s", phase, message)
        failed = replace(progress, errors=progress.errors + (PhaseError(phase=phase, message=message),))
        return self._transition(failed, ImportPhase.COMPLETE)

    def _pause(self) -> None:
        if self._phase_delay_seconds > 0:
            self._sleep(self._phase_delay_seconds)
