"""Abstract interfaces (Protocol classes) for the risk engine.

Defines the contracts between the calculation/import layers and the adapter
layer using typing.Protocol. The velocity engine and the import pipeline
depend on these protocols, never on concrete adapters, so both run against
the SQLAlchemy adapters in production and the in-memory adapters in tests.

Protocols defined:
- IRiskScoreHistoryRepository
- IImportWriter
- IImportStore
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

from airm_risk_engine.core.domain import RiskScoreSnapshot

if TYPE_CHECKING:
    from airm_risk_engine.importer.schemas import AISystemImportRow, ImportContext, RiskImportRow


class IRiskScoreHistoryRepository(Protocol):
    """Read contract for RiskScoreSnapshot history."""

    async def fetch_snapshots(self, risk_ids: Sequence[str], since: datetime) -> list[RiskScoreSnapshot]:
        """Fetch snapshots for a set of risks recorded at or after a cutoff.

        Implementations must answer with a single read regardless of how
        many risk ids are requested.

        Args:
            risk_ids: Risks to fetch history for.
            since: Inclusive lower bound on recorded_at.

        Returns:
            Snapshots ordered by recorded_at ascending. Risks with no
            history in the window contribute nothing.
        """
        ...


class IImportWriter(Protocol):
    """Write contract used inside one import transaction."""

    async def create_risk(self, row: RiskImportRow, assessment_id: uuid.UUID) -> str:
        """Persist a validated risk row and its initial score snapshot.

        Args:
            row: The validated risk row.
            assessment_id: The assessment the risk belongs to.

        Returns:
            The new risk's id.

        Raises:
            PersistenceError: If the row cannot be written. The transaction
                stays usable for the remaining rows.
        """
        ...

    async def create_ai_system(
        self,
        row: AISystemImportRow,
        organization_id: uuid.UUID,
        owner_id: uuid.UUID,
    ) -> str:
        """Persist a validated AI-system row.

        Args:
            row: The validated AI-system row.
            organization_id: Owning organization.
            owner_id: Responsible user.

        Returns:
            The new AI system's id.

        Raises:
            PersistenceError: If the row cannot be written.
        """
        ...


class IImportStore(Protocol):
    """Transaction boundary for committed imports."""

    def transaction(self) -> AbstractAsyncContextManager[IImportWriter]:
        """Open one atomic unit of work.

        Writes made through the yielded writer become visible together when
        the context exits cleanly. If the body raises, nothing is kept.

        Returns:
            An async context manager yielding an IImportWriter.

        Raises:
            PersistenceError: On exit, if the unit of work fails to commit.
        """
        ...

    async def existing_labels(self, entity_type: str, context: ImportContext) -> list[str]:
        """Return labels already stored for the import's owner.

        Risk titles are scoped to context.assessment_id and AI-system names
        to context.organization_id. Used to flag duplicates on a dry run.

        Args:
            entity_type: "risks" or "ai-systems".
            context: Ownership of the import.

        Returns:
            Stored titles or names. Empty when the scoping id is absent.
        """
        ...
