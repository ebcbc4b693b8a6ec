"""
app/parsers package marker.
"""

from app.parsers.csv_file_parser import CSVFileValidationError, detect_delimiter, parse_csv_bytes

__all__ = [
    "CSVFileValidationError",
    "detect_delimiter",
    "parse_csv_bytes",
]
