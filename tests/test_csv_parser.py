from __future__ import annotations

import unittest

from app.config import CSVUploadSettings
from app.parsers.csv_file_parser import CSVFileValidationError, detect_delimiter, parse_csv_bytes


class TestDetectDelimiter(unittest.TestCase):
    def test_picks_delimiter_with_most_fields(self) -> None:
        self.assertEqual(detect_delimiter("Name;Phone;Email"), ";")
        self.assertEqual(detect_delimiter("Name|Phone"), "|")
        self.assertEqual(detect_delimiter("Name\tPhone, Mobile\tEmail"), "\t")

    def test_single_column_defaults_to_comma(self) -> None:
        self.assertEqual(detect_delimiter("Name"), ",")


class TestParseCsvBytes(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = CSVUploadSettings()

    def _parse(self, data: bytes, file_name: str = "contacts.csv", settings: CSVUploadSettings | None = None):
        return parse_csv_bytes(data, file_name=file_name, settings=settings or self.settings)

    def test_semicolon_file(self) -> None:
        csv_file = self._parse(b"Name;Phone\nAnn;5551234567\n")

        self.assertEqual(csv_file.delimiter, ";")
        self.assertEqual(csv_file.headers, ("Name", "Phone"))
        self.assertEqual(csv_file.rows, (("Ann", "5551234567"),))
        self.assertEqual(csv_file.file_size, 26)

    def test_rows_are_padded_and_truncated_to_header_width(self) -> None:
        csv_file = self._parse(b"a,b,c\n1\n1,2,3,4\n")

        self.assertEqual(csv_file.rows, (("1", "", ""), ("1", "2", "3")))

    def test_blank_lines_are_dropped_and_cells_trimmed(self) -> None:
        csv_file = self._parse(b" a , b \n\n 1 ,2\n , \n")

        self.assertEqual(csv_file.headers, ("a", "b"))
        self.assertEqual(csv_file.rows, (("1", "2"),))
        self.assertEqual(csv_file.row_count, 1)

    def test_header_only_file_has_no_rows(self) -> None:
        csv_file = self._parse(b"Name,Phone\n")

        self.assertEqual(csv_file.rows, ())

    def test_utf8_bom_is_stripped(self) -> None:
        csv_file = self._parse(b"\xef\xbb\xbfName,Phone\nAnn,1\n")

        self.assertEqual(csv_file.headers[0], "Name")

    def test_quoted_cells_keep_embedded_delimiters(self) -> None:
        csv_file = self._parse(b'Name,Tags\nAnn,"VIP, Gold"\n')

        self.assertEqual(csv_file.rows[0][1], "VIP, Gold")

    def test_tsv_extension_forces_tab(self) -> None:
        csv_file = self._parse(b"a,b\tc\n1,2\t3\n", file_name="export.TSV")

        self.assertEqual(csv_file.delimiter, "\t")
        self.assertEqual(csv_file.headers, ("a,b", "c"))

    def test_unsupported_extension_is_rejected(self) -> None:
        with self.assertRaises(CSVFileValidationError):
            self._parse(b"Name\nAnn\n", file_name="contacts.xlsx")

    def test_oversized_file_is_rejected(self) -> None:
        with self.assertRaises(CSVFileValidationError):
            self._parse(b"Name\nAnn Lee\n", settings=CSVUploadSettings(max_file_bytes=8))

    def test_row_limit(self) -> None:
        settings = CSVUploadSettings(max_rows=1)

        self.assertEqual(self._parse(b"Name\nAnn\n", settings=settings).row_count, 1)
        with self.assertRaises(CSVFileValidationError) as ctx:
            self._parse(b"Name\nAnn\nBob\n", settings=settings)
        self.assertIn("maximum 1 rows", str(ctx.exception))

    def test_non_utf8_is_rejected(self) -> None:
        with self.assertRaises(CSVFileValidationError):
            self._parse(b"Name\n\xff\xfe\xfa\n")

    def test_empty_file_is_rejected(self) -> None:
        with self.assertRaises(CSVFileValidationError):
            self._parse(b"\n\n")

    def test_header_of_only_delimiters_is_rejected(self) -> None:
        for data in (b",,,\n", b",,,\n,,,\n", b";;\n"):
            with self.assertRaises(CSVFileValidationError, msg=data):
                self._parse(data)

    def test_blank_headers_get_positional_names(self) -> None:
        csv_file = self._parse(b"Name,,Phone,\nAnn,x,5551234567,y\n")

        self.assertEqual(csv_file.headers, ("Name", "Column 2", "Phone", "Column 4"))
        self.assertEqual(csv_file.column_index("Phone"), 2)

    def test_duplicate_headers_are_rejected(self) -> None:
        with self.assertRaises(CSVFileValidationError) as ctx:
            self._parse(b"Name,Phone, Phone\nAnn,1,2\n")

        self.assertIn("'Phone'", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
