"""Pydantic schemas for the bulk import pipeline.

Parsed file rows are free-form mappings of column name to raw cell value.
Once validated they become one of two tagged row models:
- RiskImportRow      (kind="risk")
- AISystemImportRow  (kind="ai_system")

Validation messages are produced with PydanticCustomError so the text shown
to users is exactly the message below, with no pydantic prefix. Blank cells
are treated as absent so optional columns fall back to their defaults.

Also defined here:
- ColumnDefinition, RISK_COLUMNS, AI_SYSTEM_COLUMNS — template and header metadata
- ImportContext      — caller-supplied ownership for created records
- ImportRowError     — one {row, field, message} problem
- DryRunImportResult / CommitImportResult — pipeline results
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from airm_risk_engine.core.domain import AISystemType, DataClassification, LifecycleStatus, RiskCategory
from airm_risk_engine.core.scoring import calculate_inherent_score, calculate_residual_score

ImportEntityType = Literal["risks", "ai-systems"]

# Spreadsheet row number of the first data row (row 1 holds the headers)
FIRST_DATA_ROW = 2


# ---------------------------------------------------------------------------
# Column metadata (drives templates and header normalization)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ColumnDefinition:
    """One importable column.

    Attributes:
        field: Canonical column name, as written in the template header.
        label: Human-friendly label also accepted as a header.
        value_type: Text | Number | Enum, shown in the validation notes.
        required: Whether the column must be filled in.
        valid_values: Description of accepted values for the notes sheet.
        width: Template column width.
        example: Value used on the template's example sheet.
        aliases: Extra header spellings accepted on import.
    """

    field: str
    label: str
    value_type: str
    required: bool
    valid_values: str
    width: int
    example: Any
    aliases: tuple[str, ...] = ()


RISK_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition("title", "Title", "Text", True, "Any text", 30, "Bias in model predictions"),
    ColumnDefinition(
        "description",
        "Description",
        "Text",
        False,
        "Any text",
        40,
        "Model shows demographic bias in loan approval decisions",
    ),
    ColumnDefinition(
        "category",
        "Category",
        "Enum",
        True,
        ", ".join(RiskCategory),
        20,
        RiskCategory.BIAS_FAIRNESS.value,
        aliases=("riskCategory",),
    ),
    ColumnDefinition("likelihood", "Likelihood (1-5)", "Number", True, "1-5", 12, 4),
    ColumnDefinition("impact", "Impact (1-5)", "Number", True, "1-5", 12, 5),
    ColumnDefinition(
        "controlEffectiveness",
        "Control Effectiveness (%)",
        "Number",
        False,
        "0-100 (percentage, default 0)",
        20,
        30,
    ),
    ColumnDefinition(
        "treatmentPlan",
        "Treatment Plan",
        "Text",
        False,
        "Any text",
        40,
        "Implement fairness constraints and regular bias testing",
    ),
)

AI_SYSTEM_COLUMNS: tuple[ColumnDefinition, ...] = (
    ColumnDefinition("name", "Name", "Text", True, "Any text", 30, "Customer Service Chatbot"),
    ColumnDefinition(
        "description",
        "Description",
        "Text",
        False,
        "Any text",
        40,
        "AI-powered chatbot for customer support",
    ),
    ColumnDefinition(
        "systemType",
        "System Type",
        "Text",
        False,
        "Any text, e.g. GENAI, ML, RPA, HYBRID (default: OTHER)",
        20,
        "GENAI",
    ),
    ColumnDefinition(
        "status",
        "Lifecycle Status",
        "Enum",
        False,
        f"{', '.join(LifecycleStatus)} (default: DEVELOPMENT)",
        15,
        LifecycleStatus.PRODUCTION.value,
        aliases=("lifecycleStatus",),
    ),
    ColumnDefinition(
        "dataClassification",
        "Data Classification",
        "Enum",
        False,
        f"{', '.join(DataClassification)} (default: INTERNAL)",
        20,
        DataClassification.CONFIDENTIAL.value,
    ),
    ColumnDefinition(
        "purpose",
        "Purpose",
        "Text",
        False,
        "Any text",
        40,
        "Automate tier-1 customer support inquiries",
    ),
)

COLUMNS_BY_ENTITY: dict[str, tuple[ColumnDefinition, ...]] = {
    "risks": RISK_COLUMNS,
    "ai-systems": AI_SYSTEM_COLUMNS,
}


# ---------------------------------------------------------------------------
# Cell coercion helpers
# ---------------------------------------------------------------------------


def is_blank(value: Any) -> bool:
    """Return True for cells that carry no value (None, empty or whitespace text)."""
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) or math.isinf(number) else number


def _coerce_rating(value: Any, label: str) -> int:
    number = _as_number(value)
    if number is None or not number.is_integer() or not 1 <= number <= 5:
        raise PydanticCustomError("rating_range", f"{label} must be 1-5")
    return int(number)


def _require_text(value: Any, message: str) -> str:
    if is_blank(value):
        raise PydanticCustomError("required", message)
    return str(value).strip()


def _optional_text(value: Any) -> str | None:
    if is_blank(value):
        return None
    return str(value).strip()


def _upper_enum_value(value: Any, allowed: type[StrEnum], error_type: str, message: str) -> str:
    candidate = "" if value is None else str(value).strip().upper()
    if candidate not in {member.value for member in allowed}:
        raise PydanticCustomError(error_type, message)
    return candidate


# ---------------------------------------------------------------------------
# Validated row models
# ---------------------------------------------------------------------------


class _ImportRowBase(BaseModel):
    """Common configuration for validated import rows.

    Field names are snake_case; input columns use the camelCase aliases
    (controlEffectiveness, treatmentPlan, systemType, dataClassification).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )

    row_number: int = Field(..., ge=1, description="1-based spreadsheet row number")

    @model_validator(mode="before")
    @classmethod
    def _drop_blank_cells(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {key: value for key, value in data.items() if key != "kind" and not is_blank(value)}


class RiskImportRow(_ImportRowBase):
    """A validated risk row with derived scores."""

    kind: Literal["risk"] = "risk"
    title: str = Field(default=None, validate_default=True)
    description: str | None = None
    category: RiskCategory = Field(default=None, validate_default=True)
    likelihood: int = Field(default=None, validate_default=True)
    impact: int = Field(default=None, validate_default=True)
    control_effectiveness: float = Field(default=0.0, validate_default=True)
    treatment_plan: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _validate_title(cls, value: Any) -> str:
        return _require_text(value, "Title is required")

    @field_validator("description", "treatment_plan", mode="before")
    @classmethod
    def _validate_optional_text(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("category", mode="before")
    @classmethod
    def _validate_category(cls, value: Any) -> str:
        return _upper_enum_value(value, RiskCategory, "risk_category", "Invalid risk category")

    @field_validator("likelihood", mode="before")
    @classmethod
    def _validate_likelihood(cls, value: Any) -> int:
        return _coerce_rating(value, "Likelihood")

    @field_validator("impact", mode="before")
    @classmethod
    def _validate_impact(cls, value: Any) -> int:
        return _coerce_rating(value, "Impact")

    @field_validator("control_effectiveness", mode="before")
    @classmethod
    def _validate_control_effectiveness(cls, value: Any) -> float:
        if value is None:
            return 0.0
        number = _as_number(value)
        if number is None or not 0 <= number <= 100:
            raise PydanticCustomError("effectiveness_range", "Control effectiveness must be 0-100")
        return number

    @computed_field  # type: ignore[prop-decorator]
    @property
    def inherent_score(self) -> float:
        return calculate_inherent_score(self.likelihood, self.impact)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def residual_score(self) -> float:
        return calculate_residual_score(self.inherent_score, self.control_effectiveness)


class AISystemImportRow(_ImportRowBase):
    """A validated AI-system row with lifecycle defaults applied.

    Partially specified spreadsheets import cleanly: system type defaults to
    OTHER, status to DEVELOPMENT, and data classification to INTERNAL.
    """

    kind: Literal["ai_system"] = "ai_system"
    name: str = Field(default=None, validate_default=True)
    description: str | None = None
    system_type: str = AISystemType.OTHER.value
    status: LifecycleStatus = LifecycleStatus.DEVELOPMENT
    data_classification: DataClassification = DataClassification.INTERNAL
    purpose: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def _validate_name(cls, value: Any) -> str:
        return _require_text(value, "Name is required")

    @field_validator("description", "purpose", mode="before")
    @classmethod
    def _validate_optional_text(cls, value: Any) -> str | None:
        return _optional_text(value)

    @field_validator("system_type", mode="before")
    @classmethod
    def _validate_system_type(cls, value: Any) -> str:
        return str(value).strip().upper()

    @field_validator("status", mode="before")
    @classmethod
    def _validate_status(cls, value: Any) -> str:
        return _upper_enum_value(value, LifecycleStatus, "lifecycle_status", "Invalid lifecycle status")

    @field_validator("data_classification", mode="before")
    @classmethod
    def _validate_data_classification(cls, value: Any) -> str:
        return _upper_enum_value(
            value, DataClassification, "data_classification", "Invalid data classification"
        )


ValidatedRow = Annotated[RiskImportRow | AISystemImportRow, Field(discriminator="kind")]

ROW_MODELS: dict[str, type[RiskImportRow] | type[AISystemImportRow]] = {
    "risks": RiskImportRow,
    "ai-systems": AISystemImportRow,
}


# ---------------------------------------------------------------------------
# Context and results
# ---------------------------------------------------------------------------


class ImportContext(BaseModel):
    """Ownership supplied by the caller for every record an import creates.

    Attributes:
        organization_id: Owning organization.
        assessment_id: Target risk assessment (required for risk imports).
        owner_id: Responsible user (required for AI-system imports).
    """

    model_config = ConfigDict(frozen=True)

    organization_id: uuid.UUID
    assessment_id: uuid.UUID | None = None
    owner_id: uuid.UUID | None = None


class ImportRowError(BaseModel):
    """A single validation or persistence problem on one row."""

    row: int = Field(description="1-based spreadsheet row number")
    field: str = Field(description="Column the problem relates to, or 'row'")
    message: str = Field(description="Human-readable message")


class DryRunImportResult(BaseModel):
    """Outcome of a validation-only pass. Nothing is written."""

    mode: Literal["dry_run"] = "dry_run"
    entity_type: ImportEntityType
    total_rows: int
    valid_rows: int
    invalid_rows: int
    errors: list[ImportRowError] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list, description="Non-blocking findings such as duplicates")
    preview: list[dict[str, Any]] = Field(default_factory=list, description="Sample of parsed rows")


class CommitImportResult(BaseModel):
    """Outcome of a committed import.

    `failed` counts rows that passed validation but could not be persisted;
    `invalid_rows` counts rows rejected by validation. Both kinds of problem
    are listed in `errors`.
    """

    mode: Literal["commit"] = "commit"
    entity_type: ImportEntityType
    total_rows: int
    imported: int
    failed: int
    invalid_rows: int
    errors: list[ImportRowError] = Field(default_factory=list)
    created_ids: list[str] = Field(default_factory=list)


ImportResult = Annotated[DryRunImportResult | CommitImportResult, Field(discriminator="mode")]
