"""Pydantic request/response schemas for the risk engine API.

Import results are returned as importer.schemas.DryRunImportResult /
CommitImportResult directly; only the velocity endpoints need their own
shapes here.
"""

from pydantic import BaseModel, Field

from airm_risk_engine.core.domain import RiskVelocity, Trend


class RiskVelocityResponse(BaseModel):
    """Velocity of one risk over the requested window."""

    inherent_change: float = Field(..., description="Inherent score points per day")
    residual_change: float = Field(..., description="Residual score points per day")
    trend: Trend = Field(..., description="improving | worsening | stable")
    period_days: int = Field(..., description="Observed span between first and last snapshot")

    @classmethod
    def from_velocity(cls, velocity: RiskVelocity) -> "RiskVelocityResponse":
        return cls(**velocity.to_dict())


class BatchVelocityRequest(BaseModel):
    """Request body for POST /risks/velocity/batch."""

    risk_ids: list[str] = Field(..., max_length=1000, description="Risks to calculate")
    period_days: int | None = Field(default=None, ge=1, le=3650, description="Look-back window in days")


class BatchVelocityResponse(BaseModel):
    """Velocities keyed by risk id, one entry per distinct requested id."""

    velocities: dict[str, RiskVelocityResponse]
