"""
app/services/wizard_state.py

Immutable import wizard state and its step transitions.

Every transition takes a ``WizardState`` and returns a new one; nothing is
mutated in place. Mapping, validation and group data are recomputed wholesale
whenever their inputs change so stale results never survive an edit.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from functools import lru_cache

from app.config import get_import_settings
from app.domain.business_schema import BusinessConfig, BusinessType, get_business_config
from app.domain.contact_import import (
    CSVFile,
    ContactRecord,
    ExistingGroup,
    FieldMapping,
    GroupValue,
    ImportPreview,
    Severity,
    ValidationError,
)
from app.mappers.field_mapper import FieldMapper, required_fields_coverage
from app.mappers.group_mapper import (
    detect_group_columns,
    extract_group_values,
    find_unresolved_assignments,
    update_group_assignment,
)
from app.services.import_preview_service import build_contact_records, build_import_preview
from app.validators.row_validator import RowValidator, can_proceed

logger = logging.getLogger(__name__)


class WizardStep:
    UPLOAD = "upload"
    MAPPING = "mapping"
    VALIDATION = "validation"
    GROUPS = "groups"
    PREVIEW = "preview"
    IMPORTING = "importing"

    ORDER = (UPLOAD, MAPPING, VALIDATION, GROUPS, PREVIEW, IMPORTING)


class WizardStepError(ValueError):
    """
    Raised when a transition is not allowed from the current state.
    """


@dataclass(frozen=True)
class WizardState:
    step: str = WizardStep.UPLOAD
    business_type: str = BusinessType.GENERAL
    csv_file: CSVFile | None = None
    field_mappings: tuple[FieldMapping, ...] = ()
    validation_errors: tuple[ValidationError, ...] = ()
    validated: bool = False
    group_columns: tuple[str, ...] = ()
    selected_group_column: str | None = None
    group_values: tuple[GroupValue, ...] = ()

    @property
    def business_config(self) -> BusinessConfig:
        return get_business_config(self.business_type)

    @property
    def required_fields_count(self) -> int:
        covered, _ = required_fields_coverage(self.field_mappings, self.business_config)
        return covered

    @property
    def total_required_fields(self) -> int:
        return len(self.business_config.required_fields)

    @property
    def can_proceed(self) -> bool:
        """
        True once validation ran and found nothing that blocks import.
        """

        return self.validated and can_proceed(self.validation_errors, self.business_type)

    def step_index(self) -> int:
        return WizardStep.ORDER.index(self.step)


def _invalidate_validation(state: WizardState) -> WizardState:
    step = state.step
    if state.step_index() > WizardStep.ORDER.index(WizardStep.MAPPING):
        step = WizardStep.MAPPING
    return replace(state, step=step, validation_errors=(), validated=False)


class ImportWizard:
    """
    Step transitions for the CSV contact import wizard.
    """

    def __init__(
        self,
        *,
        field_mapper: FieldMapper | None = None,
        row_validator: RowValidator | None = None,
        log_validation_errors: bool = False,
    ) -> None:
        self._field_mapper = field_mapper or FieldMapper()
        self._row_validator = row_validator or RowValidator()
        self._log_validation_errors = log_validation_errors

    def start(self, business_type: str = BusinessType.GENERAL) -> WizardState:
        config = get_business_config(business_type)
        return WizardState(business_type=config.business_type)

    def load_csv(self, state: WizardState, csv_file: CSVFile) -> WizardState:
        """
        Replace the uploaded file and regenerate every derived structure.
        """

        group_columns = tuple(detect_group_columns(csv_file.headers))
        selected = group_columns[0] if group_columns else None
        group_values: tuple[GroupValue, ...] = ()
        if selected is not None:
            group_values = tuple(extract_group_values(csv_file.headers, csv_file.rows, selected))

        mappings = self._field_mapper.generate_field_mappings(
            csv_file.headers,
            csv_file.rows,
            state.business_config,
        )
        logger.info(
            "Loaded CSV into wizard file=%r rows=%s mapped_columns=%s group_column=%r",
            csv_file.file_name,
            csv_file.row_count,
            sum(1 for mapping in mappings if mapping.is_mapped),
            selected,
        )
        return replace(
            state,
            step=WizardStep.MAPPING,
            csv_file=csv_file,
            field_mappings=tuple(mappings),
            validation_errors=(),
            validated=False,
            group_columns=group_columns,
            selected_group_column=selected,
            group_values=group_values,
        )

    def change_business_type(self, state: WizardState, business_type: str) -> WizardState:
        config = get_business_config(business_type)
        updated = replace(state, business_type=config.business_type)
        if state.csv_file is None:
            return replace(updated, field_mappings=(), validation_errors=(), validated=False)

        mappings = self._field_mapper.generate_field_mappings(
            state.csv_file.headers,
            state.csv_file.rows,
            config,
        )
        return _invalidate_validation(replace(updated, field_mappings=tuple(mappings)))

    def reassign_field(self, state: WizardState, *, csv_column: str, contact_field: str) -> WizardState:
        if state.csv_file is None:
            raise WizardStepError("Upload a CSV file before editing field mappings.")
        mappings = self._field_mapper.reassign(
            state.field_mappings,
            csv_column=csv_column,
            contact_field=contact_field,
            config=state.business_config,
        )
        return _invalidate_validation(replace(state, field_mappings=tuple(mappings)))

    def validate(self, state: WizardState) -> list[ValidationError]:
        """
        Run every row through the validator. Pure in its inputs.
        """

        if state.csv_file is None:
            return []
        return self._row_validator.validate_rows(
            rows=state.csv_file.rows,
            mappings=state.field_mappings,
            business_config=state.business_config,
        )

    def enter_validation(self, state: WizardState) -> WizardState:
        if state.csv_file is None:
            raise WizardStepError("Upload a CSV file before validating.")
        if state.required_fields_count < state.total_required_fields:
            raise WizardStepError(
                f"Map all required fields before validating "
                f"({state.required_fields_count}/{state.total_required_fields} mapped)."
            )

        errors = self.validate(state)
        logger.info(
            "Validated CSV rows=%s errors=%s warnings=%s business_type=%s",
            state.csv_file.row_count,
            sum(1 for error in errors if error.severity == Severity.ERROR),
            sum(1 for error in errors if error.severity == Severity.WARNING),
            state.business_type,
        )
        if self._log_validation_errors:
            for error in errors:
                logger.debug(
                    "Validation finding row=%s column=%r severity=%s error=%s",
                    error.row,
                    error.column,
                    error.severity,
                    error.error,
                )
        return replace(
            state,
            step=WizardStep.VALIDATION,
            validation_errors=tuple(errors),
            validated=True,
        )

    def select_group_column(self, state: WizardState, column: str | None) -> WizardState:
        """
        Switch the group column; ``None`` disables grouping. Prior edits are discarded.
        """

        if state.csv_file is None:
            raise WizardStepError("Upload a CSV file before selecting a group column.")
        if column is None:
            return replace(state, selected_group_column=None, group_values=())
        values = extract_group_values(state.csv_file.headers, state.csv_file.rows, column)
        return replace(state, selected_group_column=column, group_values=tuple(values))

    def update_group_assignment(
        self,
        state: WizardState,
        *,
        normalized_value: str,
        action: str,
        target_group_id: str | None = None,
    ) -> WizardState:
        values = update_group_assignment(state.group_values, normalized_value, action, target_group_id)
        return replace(state, group_values=tuple(values))

    def advance(
        self,
        state: WizardState,
        *,
        existing_groups: Sequence[ExistingGroup] | None = None,
    ) -> WizardState:
        """
        Move to the next step if the current step's gate is satisfied.
        """

        if state.step == WizardStep.UPLOAD:
            if state.csv_file is None:
                raise WizardStepError("Upload a CSV file to continue.")
            return replace(state, step=WizardStep.MAPPING)

        if state.step == WizardStep.MAPPING:
            return self.enter_validation(state)

        if state.step == WizardStep.VALIDATION:
            if not state.can_proceed:
                raise WizardStepError("Resolve all blocking validation errors before continuing.")
            return replace(state, step=WizardStep.GROUPS)

        if state.step == WizardStep.GROUPS:
            problems = find_unresolved_assignments(state.group_values, existing_groups)
            if problems:
                raise WizardStepError("Group assignments are incomplete: " + " ".join(problems))
            return replace(state, step=WizardStep.PREVIEW)

        if state.step == WizardStep.PREVIEW:
            if not state.can_proceed:
                raise WizardStepError("Validation must pass before importing.")
            return replace(state, step=WizardStep.IMPORTING)

        raise WizardStepError("The import is already running.")

    def go_back(self, state: WizardState) -> WizardState:
        if state.step in (WizardStep.UPLOAD, WizardStep.IMPORTING):
            raise WizardStepError(f"Cannot go back from the {state.step} step.")
        return replace(state, step=WizardStep.ORDER[state.step_index() - 1])

    def reset(self, state: WizardState) -> WizardState:
        return WizardState(business_type=state.business_type)

    def cancel_import(self, state: WizardState) -> WizardState:
        """
        Return to the preview step after the import could not be queued.
        """

        if state.step != WizardStep.IMPORTING:
            return state
        return replace(state, step=WizardStep.PREVIEW)

    def release_upload(self, state: WizardState) -> WizardState:
        """
        Drop the file and derived data once the import is queued; only the
        step and business type are kept.
        """

        return WizardState(step=state.step, business_type=state.business_type)

    def contact_records(self, state: WizardState) -> list[ContactRecord]:
        if state.csv_file is None:
            return []
        return build_contact_records(
            csv_file=state.csv_file,
            mappings=state.field_mappings,
            group_column=state.selected_group_column,
            group_values=state.group_values,
        )

    def preview(self, state: WizardState, *, now: datetime | None = None) -> ImportPreview:
        if state.csv_file is None:
            raise WizardStepError("Upload a CSV file before previewing the import.")
        return build_import_preview(
            csv_file=state.csv_file,
            mappings=state.field_mappings,
            validation_errors=state.validation_errors,
            group_column=state.selected_group_column,
            group_values=state.group_values,
            now=now,
        )


@lru_cache(maxsize=1)
def get_import_wizard() -> ImportWizard:
    settings = get_import_settings()
    return ImportWizard(log_validation_errors=settings.log_validation_errors)
