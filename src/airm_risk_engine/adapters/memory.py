"""In-memory adapters for score history and imports.

Both stores are append-only and keep everything in process memory. They
implement the same interfaces as the SQLAlchemy adapters, so the velocity
engine and the import pipeline run hermetically in tests and local tools
without database infrastructure.
"""

from __future__ import annotations

import bisect
import uuid
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from airm_risk_engine.core.domain import RiskScoreSnapshot, ScoreSource
from airm_risk_engine.database import utcnow
from airm_risk_engine.errors import PersistenceError
from airm_risk_engine.importer.schemas import AISystemImportRow, ImportContext, RiskImportRow


class InMemoryScoreHistoryStore:
    """Append-only snapshot store with per-risk lists sorted by recorded_at.

    reads counts fetch_snapshots() calls so callers can assert how many
    round trips a calculation made.
    """

    def __init__(self) -> None:
        # { risk_id: list[RiskScoreSnapshot] } sorted by recorded_at ascending
        self._snapshots: dict[str, list[RiskScoreSnapshot]] = {}
        # Parallel list of recorded_at values for bisect operations
        self._timestamps: dict[str, list[datetime]] = {}
        self.reads = 0

    def append(self, snapshot: RiskScoreSnapshot) -> None:
        """Store a snapshot at its sorted position.

        Snapshots with equal timestamps keep insertion order.

        Args:
            snapshot: The snapshot to store.
        """
        risk_id = snapshot.risk_id
        if risk_id not in self._snapshots:
            self._snapshots[risk_id] = []
            self._timestamps[risk_id] = []

        index = bisect.bisect_right(self._timestamps[risk_id], snapshot.recorded_at)
        self._snapshots[risk_id].insert(index, snapshot)
        self._timestamps[risk_id].insert(index, snapshot.recorded_at)

    def extend(self, snapshots: Sequence[RiskScoreSnapshot]) -> None:
        for snapshot in snapshots:
            self.append(snapshot)

    async def fetch_snapshots(self, risk_ids: Sequence[str], since: datetime) -> list[RiskScoreSnapshot]:
        """Return snapshots of the given risks recorded at or after since.

        Args:
            risk_ids: Risks to read.
            since: Inclusive lower bound on recorded_at.

        Returns:
            Snapshots ordered by recorded_at ascending across all risks.
        """
        self.reads += 1
        result: list[RiskScoreSnapshot] = []
        for risk_id in dict.fromkeys(risk_ids):
            timestamps = self._timestamps.get(risk_id)
            if not timestamps:
                continue
            low = bisect.bisect_left(timestamps, since)
            result.extend(self._snapshots[risk_id][low:])
        result.sort(key=lambda snapshot: snapshot.recorded_at)
        return result

    def count(self, risk_id: str) -> int:
        return len(self._snapshots.get(risk_id, []))


class InMemoryImportWriter:
    """Stages rows for one in-memory transaction.

    Args:
        failing_rows: Row numbers whose writes raise PersistenceError.
    """

    def __init__(self, failing_rows: frozenset[int]) -> None:
        self._failing_rows = failing_rows
        self.risks: list[dict[str, Any]] = []
        self.ai_systems: list[dict[str, Any]] = []
        self.snapshots: list[RiskScoreSnapshot] = []

    def _check(self, row_number: int) -> None:
        if row_number in self._failing_rows:
            raise PersistenceError(f"Failed to save row {row_number}", details={"row": row_number})

    async def create_risk(self, row: RiskImportRow, assessment_id: uuid.UUID) -> str:
        self._check(row.row_number)
        risk_id = str(uuid.uuid4())
        record = row.model_dump(exclude={"kind", "row_number"})
        self.risks.append({"id": risk_id, "assessment_id": assessment_id, **record})
        self.snapshots.append(
            RiskScoreSnapshot(
                risk_id=risk_id,
                inherent_score=row.inherent_score,
                residual_score=row.residual_score,
                control_effectiveness=row.control_effectiveness,
                recorded_at=utcnow(),
                source=ScoreSource.IMPORT,
            )
        )
        return risk_id

    async def create_ai_system(
        self,
        row: AISystemImportRow,
        organization_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> str:
        self._check(row.row_number)
        system_id = str(uuid.uuid4())
        record = row.model_dump(exclude={"kind", "row_number"})
        self.ai_systems.append(
            {"id": system_id, "organization_id": organization_id, "owner_id": owner_id, **record}
        )
        return system_id


class InMemoryImportStore:
    """Import store that keeps committed rows in lists.

    A transaction's staged rows are published only when its context exits
    cleanly. Failure injection makes partial-failure paths testable.

    Args:
        failing_rows: Row numbers whose writes raise PersistenceError.
        failing_transactions: 0-based transaction indexes that fail to commit.
        history: Optional snapshot store receiving each imported risk's
            initial snapshot on commit.
    """

    def __init__(
        self,
        failing_rows: Sequence[int] = (),
        failing_transactions: Sequence[int] = (),
        history: InMemoryScoreHistoryStore | None = None,
    ) -> None:
        self._failing_rows = frozenset(failing_rows)
        self._failing_transactions = frozenset(failing_transactions)
        self._history = history
        self.risks: list[dict[str, Any]] = []
        self.ai_systems: list[dict[str, Any]] = []
        self.transactions = 0

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryImportWriter]:
        index = self.transactions
        self.transactions += 1
        writer = InMemoryImportWriter(self._failing_rows)
        yield writer
        if index in self._failing_transactions:
            raise PersistenceError(f"Transaction {index} failed to commit", details={"transaction": index})
        self.risks.extend(writer.risks)
        self.ai_systems.extend(writer.ai_systems)
        if self._history is not None:
            self._history.extend(writer.snapshots)

    async def existing_labels(self, entity_type: str, context: ImportContext) -> list[str]:
        if entity_type == "risks":
            if context.assessment_id is None:
                return []
            return [risk["title"] for risk in self.risks if risk["assessment_id"] == context.assessment_id]
        return [
            system["name"]
            for system in self.ai_systems
            if system["organization_id"] == context.organization_id
        ]
