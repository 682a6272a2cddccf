"""Row validation for parsed import files.

Parsed rows are normalized (header labels mapped to canonical column names)
and then validated into RiskImportRow / AISystemImportRow models. Invalid
rows never raise: each problem becomes an ImportRowError carrying the
1-based spreadsheet row number (header is row 1, so index + 2) and the
column it relates to.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from airm_risk_engine.errors import InvalidInputError
from airm_risk_engine.importer.schemas import (
    COLUMNS_BY_ENTITY,
    FIRST_DATA_ROW,
    ROW_MODELS,
    ColumnDefinition,
    ImportRowError,
    RiskImportRow,
    ValidatedRow,
    is_blank,
)


@dataclass
class ValidationOutcome:
    """Result of validating every row of one file.

    Attributes:
        total_rows: Number of parsed rows.
        valid_rows: Rows that passed validation, in file order.
        errors: One entry per problem; a row may contribute several.
        invalid_row_numbers: Row numbers that failed, in file order.
    """

    total_rows: int
    valid_rows: list[ValidatedRow] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)
    invalid_row_numbers: list[int] = field(default_factory=list)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_row_numbers)


def columns_for(entity_type: str) -> tuple[ColumnDefinition, ...]:
    """Return the column definitions for an entity type.

    Raises:
        InvalidInputError: If the entity type is not importable.
    """
    try:
        return COLUMNS_BY_ENTITY[entity_type]
    except KeyError:
        raise InvalidInputError(
            f"Unsupported import entity type: {entity_type}",
            details={"entity_type": entity_type, "supported": sorted(COLUMNS_BY_ENTITY)},
        ) from None


def _header_lookup(columns: Sequence[ColumnDefinition]) -> dict[str, str]:
    lookup: dict[str, str] = {}
    for column in columns:
        for spelling in (column.field, column.label, *column.aliases):
            lookup[spelling.strip().lower()] = column.field
    return lookup


def normalize_row_keys(row: Mapping[str, Any], columns: Sequence[ColumnDefinition]) -> dict[str, Any]:
    """Map header spellings to canonical column names.

    Matching is case-insensitive and accepts the field name, the template
    label, and any alias. Unknown headers pass through unchanged and are
    ignored by validation. When two headers map to the same column, the
    first non-blank value wins.

    Args:
        row: A parsed row keyed by header text.
        columns: Column definitions for the entity type.

    Returns:
        A new dict keyed by canonical column names.
    """
    lookup = _header_lookup(columns)
    normalized: dict[str, Any] = {}
    for header, value in row.items():
        key = lookup.get(str(header).strip().lower(), header)
        if key in normalized and not is_blank(normalized[key]):
            continue
        normalized[key] = value
    return normalized


def _row_errors(exc: ValidationError, row_number: int) -> list[ImportRowError]:
    errors: list[ImportRowError] = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error["loc"]) or "row"
        errors.append(ImportRowError(row=row_number, field=location, message=error["msg"]))
    return errors


def validate_rows(rows: Sequence[Mapping[str, Any]], entity_type: str) -> ValidationOutcome:
    """Validate parsed rows for one entity type.

    Args:
        rows: Parsed rows in file order.
        entity_type: "risks" or "ai-systems".

    Returns:
        ValidationOutcome with the valid rows and every row error.

    Raises:
        InvalidInputError: If the entity type is not importable.
    """
    columns = columns_for(entity_type)
    row_model = ROW_MODELS[entity_type]
    outcome = ValidationOutcome(total_rows=len(rows))

    for index, row in enumerate(rows):
        row_number = index + FIRST_DATA_ROW
        data = normalize_row_keys(row, columns)
        data["rowNumber"] = row_number
        try:
            outcome.valid_rows.append(row_model.model_validate(data))
        except ValidationError as exc:
            outcome.invalid_row_numbers.append(row_number)
            outcome.errors.extend(_row_errors(exc, row_number))

    return outcome


def _duplicate_key(label: str) -> str:
    return label.strip().lower()


def detect_duplicates(rows: Sequence[ValidatedRow], existing: Iterable[str] = ()) -> list[str]:
    """Report rows whose title (risks) or name (AI systems) is already taken.

    A row is a duplicate when its label repeats an earlier row of the file
    or matches one of the existing records. Comparison is case-insensitive
    and ignores surrounding whitespace. Duplicates are warnings only; they
    do not block an import.

    Args:
        rows: Validated rows in file order.
        existing: Titles or names already stored for the same owner.

    Returns:
        One message per duplicate row, e.g. 'Row 5: Duplicate entry "Model drift"'.
    """
    seen: set[str] = {_duplicate_key(label) for label in existing}
    warnings: list[str] = []
    for row in rows:
        label = row.title if isinstance(row, RiskImportRow) else row.name
        key = _duplicate_key(label)
        if key in seen:
            warnings.append(f'Row {row.row_number}: Duplicate entry "{label}"')
        else:
            seen.add(key)
    return warnings
