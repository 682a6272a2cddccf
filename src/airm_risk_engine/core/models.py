"""SQLAlchemy ORM models for the AIRM risk engine.

All models use the `airm_` table prefix and extend AirmModel for automatic
id (UUID), created_at, and updated_at fields. Only the columns the scoring,
velocity, and import logic touch are mapped here; the wider risk register
schema belongs to the surrounding application.

Models:
- Risk              — a scored risk inside a risk assessment
- AISystem          — an AI system in an organization's inventory
- RiskScoreHistory  — append-only score snapshots feeding velocity
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from airm_risk_engine.core.domain import AISystemType
from airm_risk_engine.database import AirmModel, utcnow


class Risk(AirmModel):
    """A risk scored on the 5x5 likelihood/impact matrix.

    inherent_score and residual_score are derived at write time by
    core.scoring and stored alongside the raw ratings.

    Attributes:
        assessment_id: Owning risk assessment (supplied by the caller).
        title: Short risk title.
        description: Optional longer description.
        category: RiskCategory value.
        likelihood: Likelihood rating (1-5).
        impact: Impact rating (1-5).
        inherent_score: likelihood x impact.
        control_effectiveness: Compounded control effectiveness (0-100).
        residual_score: Inherent score after control effectiveness.
        treatment_status: Treatment lifecycle state.
        treatment_plan: Optional treatment plan text.
    """

    __tablename__ = "airm_risks"

    assessment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        nullable=False,
        index=True,
        comment="Owning risk assessment",
    )
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        index=True,
        comment="BIAS_FAIRNESS | PRIVACY | SECURITY | RELIABILITY | TRANSPARENCY | ACCOUNTABILITY | SAFETY | OTHER",
    )
    likelihood: Mapped[int] = mapped_column(Integer, nullable=False, comment="Likelihood rating 1-5")
    impact: Mapped[int] = mapped_column(Integer, nullable=False, comment="Impact rating 1-5")
    inherent_score: Mapped[float] = mapped_column(Float, nullable=False)
    control_effectiveness: Mapped[float] = mapped_column(
        Float,
        nullable=False,
        default=0,
        comment="Compounded control effectiveness percentage 0-100",
    )
    residual_score: Mapped[float] = mapped_column(Float, nullable=False)
    treatment_status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="PENDING",
        comment="PENDING | ACCEPTED | MITIGATING | TRANSFERRED | AVOIDED | COMPLETED",
    )
    treatment_plan: Mapped[str | None] = mapped_column(Text, nullable=True)


class AISystem(AirmModel):
    """An AI system registered in an organization's inventory.

    Attributes:
        organization_id: Owning organization (supplied by the caller).
        owner_id: Responsible user (supplied by the caller).
        name: System name.
        description: Optional description.
        system_type: Free-text system type, upper-cased (default OTHER).
        lifecycle_status: LifecycleStatus value.
        data_classification: DataClassification value.
        purpose: Optional business purpose.
    """

    __tablename__ = "airm_ai_systems"

    organization_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    system_type: Mapped[str] = mapped_column(String(50), nullable=False, default=AISystemType.OTHER.value)
    lifecycle_status: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="DEVELOPMENT",
        comment="DEVELOPMENT | PILOT | PRODUCTION | DEPRECATED | RETIRED",
    )
    data_classification: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="INTERNAL",
        comment="PUBLIC | INTERNAL | CONFIDENTIAL | RESTRICTED",
    )
    purpose: Mapped[str | None] = mapped_column(Text, nullable=True)


class RiskScoreHistory(AirmModel):
    """Append-only score snapshot for a risk.

    A row is written whenever a risk's scores are (re)computed: on creation,
    on import, on edit, and when control effectiveness changes. Rows are
    never updated; deletion is left to a retention policy outside this service.

    Attributes:
        risk_id: The scored risk.
        inherent_score: Inherent score at recording time.
        residual_score: Residual score at recording time.
        target_score: Optional target score.
        control_effectiveness: Control effectiveness at recording time.
        source: ScoreSource value.
        notes: Optional free-text note.
        recorded_at: When the scores were recorded (UTC). Orders snapshots.
    """

    __tablename__ = "airm_risk_score_history"

    risk_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("airm_risks.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    inherent_score: Mapped[float] = mapped_column(Float, nullable=False)
    residual_score: Mapped[float] = mapped_column(Float, nullable=False)
    target_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    control_effectiveness: Mapped[float | None] = mapped_column(Float, nullable=True)
    source: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        default="MANUAL",
        comment="INITIAL | IMPORT | MANUAL | CONTROL_CHANGE",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        index=True,
    )
