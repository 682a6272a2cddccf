"""Downloadable XLSX import templates.

Each template has three sheets:
- Import Data       — header row only, one column per importable field
- Validation Notes  — Field / Label / Type / Required / Valid Values
- Example           — the header row plus one filled-in example row

The data sheet is first and header-only, so uploading an untouched
template parses to zero rows.
"""

import io

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet

from airm_risk_engine.importer.schemas import ColumnDefinition
from airm_risk_engine.importer.validation import columns_for

DATA_SHEET_TITLE = "Import Data"
NOTES_SHEET_TITLE = "Validation Notes"
EXAMPLE_SHEET_TITLE = "Example"

_HEADER_FONT = Font(bold=True)
_HEADER_FILL = PatternFill(start_color="FFE0E0E0", end_color="FFE0E0E0", fill_type="solid")


def _write_header(sheet: Worksheet, headers: list[str], widths: list[int]) -> None:
    sheet.append(headers)
    for index, width in enumerate(widths, start=1):
        cell = sheet.cell(row=1, column=index)
        cell.font = _HEADER_FONT
        cell.fill = _HEADER_FILL
        sheet.column_dimensions[get_column_letter(index)].width = width
    sheet.freeze_panes = "A2"


def _write_notes(sheet: Worksheet, columns: tuple[ColumnDefinition, ...]) -> None:
    _write_header(sheet, ["Field", "Label", "Type", "Required", "Valid Values"], [22, 26, 10, 10, 60])
    for column in columns:
        sheet.append(
            [
                column.field,
                column.label,
                column.value_type,
                "Yes" if column.required else "No",
                column.valid_values,
            ]
        )


def generate_import_template(entity_type: str) -> bytes:
    """Build the XLSX import template for an entity type.

    Args:
        entity_type: "risks" or "ai-systems".

    Returns:
        The workbook serialized as XLSX bytes.

    Raises:
        InvalidInputError: If the entity type is not importable.
    """
    columns = columns_for(entity_type)
    headers = [column.field for column in columns]
    widths = [column.width for column in columns]

    workbook = Workbook()
    data_sheet = workbook.active
    data_sheet.title = DATA_SHEET_TITLE
    _write_header(data_sheet, headers, widths)

    _write_notes(workbook.create_sheet(NOTES_SHEET_TITLE), columns)

    example_sheet = workbook.create_sheet(EXAMPLE_SHEET_TITLE)
    _write_header(example_sheet, headers, widths)
    example_sheet.append([column.example for column in columns])

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()
