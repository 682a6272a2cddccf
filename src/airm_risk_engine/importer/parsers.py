"""Upload parsers: CSV and XLSX bytes to a list of header-keyed rows.

Parsers only decode structure. Header names are returned as written (trimmed)
and cell values are left raw; mapping headers to fields and validating values
happens in importer.validation.

Rows whose cells are all blank are skipped, so trailing blank lines and
formatting-only spreadsheet rows never count toward totals.
"""

import csv
import io
import zipfile
from collections.abc import Callable, Iterable, Sequence
from pathlib import PurePath
from typing import Any

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from airm_risk_engine.errors import FormatError
from airm_risk_engine.importer.schemas import is_blank

ParsedRow = dict[str, Any]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _build_rows(headers: list[str], records: Iterable[Sequence[Any]]) -> list[ParsedRow]:
    rows: list[ParsedRow] = []
    for values in records:
        row = {
            header: (value.strip() if isinstance(value, str) else value)
            for header, value in zip(headers, values, strict=False)
            if header
        }
        # Missing trailing cells read as absent
        for header in headers:
            if header and header not in row:
                row[header] = None
        if any(not is_blank(value) for value in row.values()):
            rows.append(row)
    return rows


def parse_csv_file(content: bytes | str, delimiter: str = ",") -> list[ParsedRow]:
    """Parse CSV content into header-keyed rows.

    Quoted fields may contain the delimiter, doubled quotes, and newlines.
    A UTF-8 byte order mark is ignored.

    Args:
        content: Raw file bytes (UTF-8) or already-decoded text.
        delimiter: Field delimiter.

    Returns:
        One dict per non-blank data row, keyed by the trimmed header names.

    Raises:
        FormatError: If the content is not UTF-8, is malformed, or has fewer
            than two non-blank lines (a header and at least one data row).
    """
    if isinstance(content, bytes):
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise FormatError("CSV file must be UTF-8 encoded") from exc
    else:
        text = content.lstrip("\ufeff")

    try:
        records = [
            record
            for record in csv.reader(io.StringIO(text, newline=""), delimiter=delimiter)
            if any(cell.strip() for cell in record)
        ]
    except csv.Error as exc:
        raise FormatError(f"Malformed CSV: {exc}") from exc

    if len(records) < 2:
        raise FormatError("CSV must have header row and at least one data row")

    headers = [header.strip() for header in records[0]]
    return _build_rows(headers, records[1:])


def parse_excel_file(content: bytes) -> list[ParsedRow]:
    """Parse the first worksheet of an XLSX workbook into header-keyed rows.

    The first row is the header row. Cell values keep their spreadsheet
    types (numbers stay numbers); text is trimmed. A header-only sheet is
    not an error and yields no rows, so a blank import template parses
    cleanly.

    Args:
        content: Raw XLSX bytes.

    Returns:
        One dict per non-blank data row, keyed by the trimmed header names.

    Raises:
        FormatError: If the bytes are not a readable workbook or the first
            worksheet has no header row.
    """
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
        raise FormatError("Unable to read Excel file") from exc

    try:
        if not workbook.worksheets:
            raise FormatError("No worksheet found in Excel file")
        records = workbook.worksheets[0].iter_rows(values_only=True)
        header_row = next(records, None)
        if header_row is None or all(is_blank(value) for value in header_row):
            raise FormatError("Excel worksheet must have a header row")
        headers = ["" if value is None else str(value).strip() for value in header_row]
        return _build_rows(headers, records)
    finally:
        workbook.close()


_PARSERS: dict[str, Callable[[bytes], list[ParsedRow]]] = {
    ".csv": parse_csv_file,
    ".xlsx": parse_excel_file,
}

SUPPORTED_EXTENSIONS = tuple(_PARSERS)


def parse_upload(filename: str, content: bytes) -> list[ParsedRow]:
    """Dispatch an uploaded file to the parser for its extension.

    Args:
        filename: Original file name; only the extension is used.
        content: Raw file bytes.

    Returns:
        Parsed rows.

    Raises:
        FormatError: If the extension is not .csv or .xlsx, or parsing fails.
    """
    parser = _PARSERS.get(PurePath(filename).suffix.lower())
    if parser is None:
        raise FormatError(
            "Unsupported file type. Please upload a CSV or XLSX file.",
            details={"filename": filename, "supported": list(SUPPORTED_EXTENSIONS)},
        )
    return parser(content)
