"""Domain types shared by the scoring, velocity, and import components.

Enumerations mirror the values stored in the risk register:
- RiskCategory, RiskLevel
- AISystemType (known system types; OTHER is the import default, other text is kept as-is)
- LifecycleStatus, DataClassification
- ScoreSource (why a score snapshot was recorded)

Value objects:
- RiskScoreSnapshot — immutable point-in-time score record
- RiskVelocity      — derived rate of change, never persisted
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import StrEnum
from typing import Any, Literal

from pydantic import AwareDatetime, BaseModel, ConfigDict, Field


class RiskCategory(StrEnum):
    BIAS_FAIRNESS = "BIAS_FAIRNESS"
    PRIVACY = "PRIVACY"
    SECURITY = "SECURITY"
    RELIABILITY = "RELIABILITY"
    TRANSPARENCY = "TRANSPARENCY"
    ACCOUNTABILITY = "ACCOUNTABILITY"
    SAFETY = "SAFETY"
    OTHER = "OTHER"


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class AISystemType(StrEnum):
    GENAI = "GENAI"
    ML = "ML"
    RPA = "RPA"
    HYBRID = "HYBRID"
    OTHER = "OTHER"


class LifecycleStatus(StrEnum):
    DEVELOPMENT = "DEVELOPMENT"
    PILOT = "PILOT"
    PRODUCTION = "PRODUCTION"
    DEPRECATED = "DEPRECATED"
    RETIRED = "RETIRED"


class DataClassification(StrEnum):
    PUBLIC = "PUBLIC"
    INTERNAL = "INTERNAL"
    CONFIDENTIAL = "CONFIDENTIAL"
    RESTRICTED = "RESTRICTED"


class ScoreSource(StrEnum):
    INITIAL = "INITIAL"
    IMPORT = "IMPORT"
    MANUAL = "MANUAL"
    CONTROL_CHANGE = "CONTROL_CHANGE"


Trend = Literal["improving", "worsening", "stable"]


class RiskScoreSnapshot(BaseModel):
    """Immutable point-in-time record of a risk's scores.

    Created whenever a risk's score is (re)computed and never mutated.
    Snapshots of one risk are totally ordered by recorded_at.

    Attributes:
        risk_id: Identifier of the scored risk.
        inherent_score: Likelihood x impact at the time of recording.
        residual_score: Inherent score reduced by control effectiveness.
        recorded_at: When the score was recorded (timezone-aware UTC).
        target_score: Optional target the risk owner is working toward.
        control_effectiveness: Compounded control effectiveness percentage.
        source: Why the snapshot was recorded.
    """

    model_config = ConfigDict(frozen=True)

    risk_id: str = Field(..., description="Identifier of the scored risk")
    inherent_score: float = Field(..., description="Likelihood x impact")
    residual_score: float = Field(..., description="Score after control effectiveness")
    recorded_at: AwareDatetime = Field(..., description="Recording timestamp, timezone-aware")
    target_score: float | None = Field(default=None, description="Optional target score")
    control_effectiveness: float | None = Field(
        default=None, description="Compounded control effectiveness percentage (0-100)"
    )
    source: ScoreSource = Field(default=ScoreSource.MANUAL, description="Why the snapshot was recorded")


@dataclass(frozen=True)
class RiskVelocity:
    """Rate of change of a risk's scores over a look-back window.

    Attributes:
        inherent_change: Inherent score points per day (signed, 2 dp).
        residual_change: Residual score points per day (signed, 2 dp).
        trend: improving | worsening | stable, from the residual rate.
        period_days: Observed span between earliest and latest snapshot.
    """

    inherent_change: float
    residual_change: float
    trend: Trend
    period_days: int

    @classmethod
    def stable(cls) -> RiskVelocity:
        """Velocity reported when there is no basis for a trend."""
        return cls(inherent_change=0, residual_change=0, trend="stable", period_days=0)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
