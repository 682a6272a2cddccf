"""Tests for the downloadable XLSX import templates.

Run with: pytest tests/test_templates.py -v
"""

import io

import pytest
from openpyxl import load_workbook

from airm_risk_engine.adapters.memory import InMemoryImportStore
from airm_risk_engine.errors import InvalidInputError
from airm_risk_engine.importer.parsers import parse_excel_file
from airm_risk_engine.importer.pipeline import ImportPipeline
from airm_risk_engine.importer.schemas import ImportContext
from airm_risk_engine.importer.templates import generate_import_template
from airm_risk_engine.importer.validation import validate_rows


def open_template(entity_type: str):
    return load_workbook(io.BytesIO(generate_import_template(entity_type)))


def test_risk_template_layout():
    workbook = open_template("risks")

    assert workbook.sheetnames == ["Import Data", "Validation Notes", "Example"]
    headers = [cell.value for cell in workbook["Import Data"][1]]
    assert headers == [
        "title",
        "description",
        "category",
        "likelihood",
        "impact",
        "controlEffectiveness",
        "treatmentPlan",
    ]
    assert workbook["Import Data"].max_row == 1


def test_ai_system_template_layout():
    workbook = open_template("ai-systems")

    headers = [cell.value for cell in workbook["Import Data"][1]]
    assert headers == ["name", "description", "systemType", "status", "dataClassification", "purpose"]
    notes = [[cell.value for cell in row] for row in workbook["Validation Notes"].iter_rows(min_row=2)]
    assert [row[0] for row in notes] == headers
    assert notes[0][3] == "Yes"
    assert "DEVELOPMENT" in notes[3][4]


def test_templates_differ_by_entity_type():
    assert generate_import_template("risks") != generate_import_template("ai-systems")
    assert len(generate_import_template("risks")) != len(generate_import_template("ai-systems"))


def test_untouched_template_parses_to_zero_rows():
    assert parse_excel_file(generate_import_template("risks")) == []


@pytest.mark.parametrize("entity_type", ["risks", "ai-systems"])
def test_example_row_passes_validation(entity_type: str):
    workbook = open_template(entity_type)
    sheet = workbook["Example"]
    headers = [cell.value for cell in sheet[1]]
    example = dict(zip(headers, [cell.value for cell in sheet[2]], strict=True))

    outcome = validate_rows([example], entity_type)

    assert outcome.errors == []
    assert len(outcome.valid_rows) == 1


@pytest.mark.asyncio()
async def test_dry_run_of_untouched_template(risk_context: ImportContext):
    pipeline = ImportPipeline(InMemoryImportStore())

    result = await pipeline.import_file(
        "template.xlsx", generate_import_template("risks"), "risks", risk_context, dry_run=True
    )

    assert result.total_rows == 0
    assert result.errors == []


def test_unknown_entity_type_raises():
    with pytest.raises(InvalidInputError):
        generate_import_template("controls")
