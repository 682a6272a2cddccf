"""SQLAlchemy adapters for the risk engine primary database.

Each class implements the corresponding interface from core/interfaces.py.

Adapters:
- RiskScoreHistoryRepository  — snapshot reads for velocity, snapshot writes
- SqlAlchemyImportStore       — one session + transaction per import chunk, duplicate lookups
- SqlAlchemyImportWriter      — row writes under a SAVEPOINT each
"""

import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from airm_risk_engine.core.domain import RiskScoreSnapshot, ScoreSource
from airm_risk_engine.core.models import AISystem, Risk, RiskScoreHistory
from airm_risk_engine.database import utcnow
from airm_risk_engine.errors import PersistenceError
from airm_risk_engine.importer.schemas import AISystemImportRow, ImportContext, RiskImportRow
from airm_risk_engine.observability import get_logger

logger = get_logger(__name__)

IMPORT_SNAPSHOT_NOTE = "Initial score from bulk import"


def _parse_risk_ids(risk_ids: Sequence[str]) -> list[uuid.UUID]:
    parsed: list[uuid.UUID] = []
    for risk_id in risk_ids:
        try:
            parsed.append(uuid.UUID(str(risk_id)))
        except ValueError:
            logger.warning("Ignoring malformed risk id", risk_id=risk_id)
    return parsed


def _to_snapshot(record: RiskScoreHistory) -> RiskScoreSnapshot:
    return RiskScoreSnapshot(
        risk_id=str(record.risk_id),
        inherent_score=record.inherent_score,
        residual_score=record.residual_score,
        recorded_at=record.recorded_at,
        target_score=record.target_score,
        control_effectiveness=record.control_effectiveness,
        source=ScoreSource(record.source),
    )


class RiskScoreHistoryRepository:
    """Score snapshot persistence on the primary database.

    Args:
        session: The SQLAlchemy async session for the primary DB.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def fetch_snapshots(self, risk_ids: Sequence[str], since: datetime) -> list[RiskScoreSnapshot]:
        """Fetch snapshots for many risks in one query.

        Args:
            risk_ids: Risk ids (UUID strings). Malformed ids match nothing.
            since: Inclusive lower bound on recorded_at.

        Returns:
            Snapshots ordered by recorded_at ascending.
        """
        ids = _parse_risk_ids(risk_ids)
        if not ids:
            return []

        stmt = (
            select(RiskScoreHistory)
            .where(
                RiskScoreHistory.risk_id.in_(ids),
                RiskScoreHistory.recorded_at >= since,
            )
            .order_by(RiskScoreHistory.recorded_at.asc())
        )
        result = await self._session.execute(stmt)
        return [_to_snapshot(record) for record in result.scalars().all()]

    async def record_snapshot(self, snapshot: RiskScoreSnapshot, notes: str | None = None) -> None:
        """Append a score snapshot. Existing rows are never modified.

        Args:
            snapshot: The snapshot to store; risk_id must be a UUID string.
            notes: Optional free-text note stored with the snapshot.
        """
        self._session.add(
            RiskScoreHistory(
                id=uuid.uuid4(),
                risk_id=uuid.UUID(snapshot.risk_id),
                inherent_score=snapshot.inherent_score,
                residual_score=snapshot.residual_score,
                target_score=snapshot.target_score,
                control_effectiveness=snapshot.control_effectiveness,
                source=snapshot.source.value,
                recorded_at=snapshot.recorded_at,
                notes=notes,
            )
        )
        await self._session.flush()
        logger.info("Score snapshot recorded", risk_id=snapshot.risk_id, source=snapshot.source.value)


class SqlAlchemyImportWriter:
    """Writes validated import rows inside an open transaction.

    Every row is wrapped in a SAVEPOINT so one bad row is rolled back on
    its own and leaves the surrounding chunk transaction usable.

    Args:
        session: Session with an active transaction.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session
        self._history = RiskScoreHistoryRepository(session)

    async def create_risk(self, row: RiskImportRow, assessment_id: uuid.UUID) -> str:
        """Insert a risk and its IMPORT score snapshot.

        Raises:
            PersistenceError: If either insert fails.
        """
        risk_id = uuid.uuid4()
        try:
            async with self._session.begin_nested():
                self._session.add(
                    Risk(
                        id=risk_id,
                        assessment_id=assessment_id,
                        title=row.title,
                        description=row.description,
                        category=row.category.value,
                        likelihood=row.likelihood,
                        impact=row.impact,
                        inherent_score=row.inherent_score,
                        control_effectiveness=row.control_effectiveness,
                        residual_score=row.residual_score,
                        treatment_plan=row.treatment_plan,
                    )
                )
                await self._session.flush()
                await self._history.record_snapshot(
                    RiskScoreSnapshot(
                        risk_id=str(risk_id),
                        inherent_score=row.inherent_score,
                        residual_score=row.residual_score,
                        control_effectiveness=row.control_effectiveness,
                        recorded_at=utcnow(),
                        source=ScoreSource.IMPORT,
                    ),
                    notes=IMPORT_SNAPSHOT_NOTE,
                )
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to save risk: {exc.__class__.__name__}",
                details={"row": row.row_number},
            ) from exc
        return str(risk_id)

    async def create_ai_system(
        self,
        row: AISystemImportRow,
        organization_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> str:
        """Insert an AI system.

        Raises:
            PersistenceError: If the insert fails.
        """
        system_id = uuid.uuid4()
        try:
            async with self._session.begin_nested():
                self._session.add(
                    AISystem(
                        id=system_id,
                        organization_id=organization_id,
                        owner_id=owner_id,
                        name=row.name,
                        description=row.description,
                        system_type=row.system_type,
                        lifecycle_status=row.status.value,
                        data_classification=row.data_classification.value,
                        purpose=row.purpose,
                    )
                )
                await self._session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError(
                f"Failed to save AI system: {exc.__class__.__name__}",
                details={"row": row.row_number},
            ) from exc
        return str(system_id)


class SqlAlchemyImportStore:
    """Import store opening a fresh session and transaction per chunk.

    Args:
        session_factory: Factory for primary DB sessions.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[SqlAlchemyImportWriter]:
        """Yield a writer bound to a new transaction; commit on clean exit.

        Raises:
            PersistenceError: If the transaction fails to commit.
        """
        async with self._session_factory() as session:
            try:
                async with session.begin():
                    yield SqlAlchemyImportWriter(session)
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Import transaction failed: {exc.__class__.__name__}") from exc

    async def existing_labels(self, entity_type: str, context: ImportContext) -> list[str]:
        """Read stored risk titles or AI-system names for duplicate checks.

        Args:
            entity_type: "risks" or "ai-systems".
            context: Ownership of the import.

        Returns:
            Risk titles in context.assessment_id, or AI-system names in
            context.organization_id.

        Raises:
            PersistenceError: If the query fails.
        """
        if entity_type == "risks":
            if context.assessment_id is None:
                return []
            stmt = select(Risk.title).where(Risk.assessment_id == context.assessment_id)
        else:
            stmt = select(AISystem.name).where(AISystem.organization_id == context.organization_id)

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return list(result.scalars().all())
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read existing records: {exc.__class__.__name__}") from exc
