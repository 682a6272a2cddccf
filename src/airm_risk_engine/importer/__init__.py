"""Bulk import of risks and AI systems from CSV / XLSX uploads.

Stages: parsers (bytes to rows) -> validation (rows to typed models and row
errors) -> pipeline (dry-run report or chunked transactional commit).
Templates produce the matching downloadable XLSX files.
"""

from airm_risk_engine.importer.parsers import parse_csv_file, parse_excel_file, parse_upload
from airm_risk_engine.importer.pipeline import ImportPipeline
from airm_risk_engine.importer.schemas import (
    AISystemImportRow,
    CommitImportResult,
    DryRunImportResult,
    ImportContext,
    ImportRowError,
    RiskImportRow,
)
from airm_risk_engine.importer.templates import generate_import_template
from airm_risk_engine.importer.validation import detect_duplicates, validate_rows

__all__ = [
    "AISystemImportRow",
    "CommitImportResult",
    "DryRunImportResult",
    "ImportContext",
    "ImportPipeline",
    "ImportRowError",
    "RiskImportRow",
    "detect_duplicates",
    "generate_import_template",
    "parse_csv_file",
    "parse_excel_file",
    "parse_upload",
    "validate_rows",
]
