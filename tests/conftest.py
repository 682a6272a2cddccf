"""Test fixtures for airm-risk-engine.

Provides:
- organization_id / assessment_id / owner_id: deterministic ownership UUIDs
- risk_context / ai_system_context: ImportContext values for each entity type
- now: a fixed "current time" for velocity windows
- history_store: an empty InMemoryScoreHistoryStore
- import_store: an InMemoryImportStore with no injected failures
"""

import uuid
from datetime import UTC, datetime

import pytest

from airm_risk_engine.adapters.memory import InMemoryImportStore, InMemoryScoreHistoryStore
from airm_risk_engine.importer.schemas import ImportContext


@pytest.fixture()
def organization_id() -> uuid.UUID:
    """Return a fixed organization UUID for consistent test assertions."""
    return uuid.UUID("00000000-0000-0000-0000-000000000001")


@pytest.fixture()
def assessment_id() -> uuid.UUID:
    """Return a fixed assessment UUID for consistent test assertions."""
    return uuid.UUID("00000000-0000-0000-0000-000000000002")


@pytest.fixture()
def owner_id() -> uuid.UUID:
    """Return a fixed owner UUID for consistent test assertions."""
    return uuid.UUID("00000000-0000-0000-0000-000000000003")


@pytest.fixture()
def risk_context(organization_id: uuid.UUID, assessment_id: uuid.UUID) -> ImportContext:
    """ImportContext suitable for committing risk imports."""
    return ImportContext(organization_id=organization_id, assessment_id=assessment_id)


@pytest.fixture()
def ai_system_context(organization_id: uuid.UUID, owner_id: uuid.UUID) -> ImportContext:
    """ImportContext suitable for committing AI-system imports."""
    return ImportContext(organization_id=organization_id, owner_id=owner_id)


@pytest.fixture()
def now() -> datetime:
    """Fixed current time used as the velocity engine clock."""
    return datetime(2024, 6, 30, 12, 0, tzinfo=UTC)


@pytest.fixture()
def history_store() -> InMemoryScoreHistoryStore:
    return InMemoryScoreHistoryStore()


@pytest.fixture()
def import_store() -> InMemoryImportStore:
    return InMemoryImportStore()
