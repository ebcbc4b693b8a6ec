"""
app/parsers/csv_file_parser.py

Tokenizes uploaded CSV bytes into an immutable CSVFile snapshot.
"""

from __future__ import annotations

import csv
import io
import logging
import os

from app.config import CSVUploadSettings, get_csv_upload_settings
from app.domain.contact_import import CSVFile

logger = logging.getLogger(__name__)

DELIMITER_CANDIDATES: tuple[str, ...] = (",", ";", "\t", "|")


class CSVFileValidationError(ValueError):
    """
    Raised when an uploaded file cannot be accepted as a contact CSV.
    """


def detect_delimiter(header_line: str) -> str:
    """
    Pick the candidate delimiter that splits the header line into the most fields.
    """

    best = DELIMITER_CANDIDATES[0]
    best_count = 0
    for candidate in DELIMITER_CANDIDATES:
        count = len(header_line.split(candidate))
        if count > best_count:
            best = candidate
            best_count = count
    return best


def _normalize_headers(raw_headers: list[str]) -> tuple[str, ...]:
    """
    Trim headers and name blank ones ``Column N``. Columns are addressed by
    header name, so duplicates are rejected.
    """

    headers = tuple(
        cell.strip() or f"Column {index}" for index, cell in enumerate(raw_headers, start=1)
    )
    seen: set[str] = set()
    duplicates: list[str] = []
    for header in headers:
        if header in seen and header not in duplicates:
            duplicates.append(header)
        seen.add(header)
    if duplicates:
        names = ", ".join(f"'{name}'" for name in duplicates)
        raise CSVFileValidationError(f"CSV header names must be unique; duplicated: {names}.")
    return headers


def parse_csv_bytes(
    data: bytes,
    *,
    file_name: str,
    settings: CSVUploadSettings | None = None,
) -> CSVFile:
    """
    Decode, tokenize and normalize an uploaded CSV file.

    Headers and cells are trimmed, blank lines dropped, and every row is
    padded or truncated to the header width.
    """

    settings = settings or get_csv_upload_settings()

    _, extension = os.path.splitext(file_name.strip().lower())
    if extension not in settings.allowed_extensions:
        allowed = ", ".join(settings.allowed_extensions)
        raise CSVFileValidationError(f"Please select a valid CSV file ({allowed}).")

    if len(data) > settings.max_file_bytes:
        limit_mb = settings.max_file_bytes / (1024 * 1024)
        raise CSVFileValidationError(f"File size must be less than {limit_mb:g}MB.")

    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CSVFileValidationError("CSV must be UTF-8 encoded.") from exc

    first_line = next((line for line in text.splitlines() if line.strip()), "")
    if not first_line:
        raise CSVFileValidationError("CSV header row is missing.")
    delimiter = "\t" if extension == ".tsv" else detect_delimiter(first_line)

    try:
        reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
        records = [row for row in reader if any(cell.strip() for cell in row)]
    except csv.Error as exc:
        raise CSVFileValidationError(f"Invalid CSV format: {exc}") from exc

    if not records:
        raise CSVFileValidationError("CSV header row is empty.")
    headers = _normalize_headers(records[0])

    data_rows = records[1:]
    if len(data_rows) > settings.max_rows:
        raise CSVFileValidationError(f"CSV file exceeds maximum {settings.max_rows:,} rows.")

    width = len(headers)
    rows = tuple(
        tuple((cell.strip() for cell in row[:width])) + ("",) * max(0, width - len(row))
        for row in data_rows
    )

    logger.info(
        "Parsed CSV upload file=%r rows=%s columns=%s delimiter=%r bytes=%s",
        file_name,
        len(rows),
        width,
        delimiter,
        len(data),
    )
    return CSVFile(
        file_name=file_name,
        headers=headers,
        rows=rows,
        file_size=len(data),
        delimiter=delimiter,
        encoding="utf-8",
    )
