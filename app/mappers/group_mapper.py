"""
app/mappers/group_mapper.py

Detection of group-like CSV columns and reconciliation of their values
against contact groups.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, replace

from app.domain.contact_import import ExistingGroup, GroupAction, GroupValue

GROUP_COLUMN_KEYWORDS: tuple[str, ...] = (
    "group",
    "groups",
    "category",
    "categories",
    "department",
    "dept",
    "team",
    "division",
    "section",
    "type",
    "classification",
    "tag",
    "tags",
)

GROUP_TOKEN_SEPARATORS = re.compile(r"[,;|]")


class GroupAssignmentError(ValueError):
    """
    Raised when a group reconciliation edit is invalid.
    """


@dataclass
class _GroupAccumulator:
    original_value: str
    count: int
    rows: list[int]


def normalize_group_value(value: str) -> str:
    return value.strip().lower()


def split_group_cell(cell: str) -> list[str]:
    """
    Split a multi-value group cell into trimmed, non-empty tokens.
    """

    return [token.strip() for token in GROUP_TOKEN_SEPARATORS.split(cell) if token.strip()]


def detect_group_columns(headers: Sequence[str]) -> list[str]:
    """
    Return headers that look like group columns, in original order.
    """

    detected: list[str] = []
    for header in headers:
        lowered = header.strip().lower()
        if any(lowered == keyword or keyword in lowered for keyword in GROUP_COLUMN_KEYWORDS):
            detected.append(header)
    return detected


def extract_group_values(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    column: str,
) -> list[GroupValue]:
    """
    Aggregate distinct group tokens of one column, most frequent first.

    Tokens are de-duplicated case-insensitively; the first-seen casing is kept.
    Each token increments its count once, and row numbers are 1-based.
    """

    try:
        column_index = list(headers).index(column)
    except ValueError as exc:
        raise GroupAssignmentError(f"Group column '{column}' is not part of the uploaded file.") from exc

    accumulators: dict[str, _GroupAccumulator] = {}
    for row_index, row in enumerate(rows):
        if column_index >= len(row):
            continue
        for token in split_group_cell(row[column_index]):
            key = normalize_group_value(token)
            entry = accumulators.get(key)
            if entry is None:
                accumulators[key] = _GroupAccumulator(original_value=token, count=1, rows=[row_index + 1])
                continue
            entry.count += 1
            entry.rows.append(row_index + 1)

    values = [
        GroupValue(
            original_value=entry.original_value,
            normalized_value=key,
            count=entry.count,
            rows=tuple(entry.rows),
        )
        for key, entry in accumulators.items()
    ]
    # Stable sort: equal counts keep first-seen order.
    return sorted(values, key=lambda value: value.count, reverse=True)


def update_group_assignment(
    values: Sequence[GroupValue],
    normalized_value: str,
    action: str,
    target_group_id: str | None = None,
) -> list[GroupValue]:
    """
    Return a copy of ``values`` with one entry's action and target replaced.
    """

    if action not in GroupAction.ALL:
        raise GroupAssignmentError(
            f"Unsupported group action '{action}'. Allowed values: {', '.join(GroupAction.ALL)}."
        )

    key = normalize_group_value(normalized_value)
    if not any(value.normalized_value == key for value in values):
        raise GroupAssignmentError(f"Group value '{normalized_value}' was not found in the group column.")

    target = target_group_id if action == GroupAction.ASSIGN else None
    return [
        replace(value, action=action, target_group_id=target) if value.normalized_value == key else value
        for value in values
    ]


def find_unresolved_assignments(
    values: Sequence[GroupValue],
    existing_groups: Sequence[ExistingGroup] | None = None,
) -> list[str]:
    """
    Describe every ``assign`` entry lacking a valid target group.

    When ``existing_groups`` is given, targets must refer to one of them.
    """

    known_ids = {group.id for group in existing_groups} if existing_groups is not None else None
    problems: list[str] = []
    for value in values:
        if value.action != GroupAction.ASSIGN:
            continue
        if not value.target_group_id:
            problems.append(f"'{value.original_value}' has no target group selected.")
        elif known_ids is not None and value.target_group_id not in known_ids:
            problems.append(f"'{value.original_value}' targets unknown group '{value.target_group_id}'.")
    return problems
