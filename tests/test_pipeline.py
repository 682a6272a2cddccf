"""Tests for ImportPipeline dry runs and chunked commits.

Uses the in-memory import store so transaction counts and failure
injection are observable without a database.

Run with: pytest tests/test_pipeline.py -v
"""

import uuid
from datetime import UTC, datetime

import pytest

from airm_risk_engine.adapters.memory import InMemoryImportStore, InMemoryScoreHistoryStore
from airm_risk_engine.core.domain import ScoreSource
from airm_risk_engine.errors import FormatError, InvalidInputError
from airm_risk_engine.importer.pipeline import ImportPipeline
from airm_risk_engine.importer.schemas import CommitImportResult, DryRunImportResult, ImportContext

EPOCH = datetime(2000, 1, 1, tzinfo=UTC)


def make_risk_rows(count: int) -> list[dict]:
    """Build `count` valid parsed risk rows with distinct titles."""
    return [
        {"title": f"Risk {index}", "category": "PRIVACY", "likelihood": "3", "impact": "4"}
        for index in range(count)
    ]


def make_csv(rows: list[dict]) -> bytes:
    """Render parsed-row dicts as CSV bytes (no quoting needed for these values)."""
    headers = list(rows[0])
    lines = [",".join(headers)] + [",".join(str(row[h]) for h in headers) for row in rows]
    return "\n".join(lines).encode()


# ---------------------------------------------------------------------------
# Dry run
# ---------------------------------------------------------------------------


class TestDryRun:
    """Validation-only runs never touch the store."""

    @pytest.mark.asyncio()
    async def test_reports_counts_errors_and_preview(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        rows = make_risk_rows(12)
        rows[3]["title"] = ""
        pipeline = ImportPipeline(import_store)

        result = await pipeline.run("risks", rows, risk_context, dry_run=True)

        assert isinstance(result, DryRunImportResult)
        assert result.mode == "dry_run"
        assert result.total_rows == 12
        assert result.valid_rows == 11
        assert result.invalid_rows == 1
        assert [(e.row, e.field, e.message) for e in result.errors] == [(5, "title", "Title is required")]
        assert len(result.preview) == 10
        assert result.preview[0]["title"] == "Risk 0"
        assert import_store.transactions == 0
        assert import_store.risks == []

    @pytest.mark.asyncio()
    async def test_duplicates_are_warnings(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        rows = make_risk_rows(3)
        rows[2]["title"] = "risk 0"

        result = await ImportPipeline(import_store).run("risks", rows, risk_context, dry_run=True)

        assert result.valid_rows == 3
        assert result.warnings == ['Row 4: Duplicate entry "risk 0"']

    @pytest.mark.asyncio()
    async def test_names_already_stored_are_warnings(
        self, import_store: InMemoryImportStore, ai_system_context: ImportContext
    ) -> None:
        pipeline = ImportPipeline(import_store)
        await pipeline.run("ai-systems", [{"name": "Chatbot"}], ai_system_context)

        rows = [{"name": "CHATBOT"}, {"name": "Scorer"}]
        result = await pipeline.run("ai-systems", rows, ai_system_context, dry_run=True)

        assert result.valid_rows == 2
        assert result.warnings == ['Row 2: Duplicate entry "CHATBOT"']
        assert len(import_store.ai_systems) == 1

    @pytest.mark.asyncio()
    async def test_stored_names_of_other_organizations_are_ignored(
        self, import_store: InMemoryImportStore, ai_system_context: ImportContext, owner_id: uuid.UUID
    ) -> None:
        pipeline = ImportPipeline(import_store)
        await pipeline.run("ai-systems", [{"name": "Chatbot"}], ai_system_context)
        other = ImportContext(organization_id=uuid.uuid4(), owner_id=owner_id)

        result = await pipeline.run("ai-systems", [{"name": "Chatbot"}], other, dry_run=True)

        assert result.warnings == []

    @pytest.mark.asyncio()
    async def test_titles_already_in_assessment_are_warnings(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        pipeline = ImportPipeline(import_store)
        await pipeline.run("risks", make_risk_rows(2), risk_context)

        result = await pipeline.run("risks", make_risk_rows(3), risk_context, dry_run=True)

        assert result.warnings == ['Row 2: Duplicate entry "Risk 0"', 'Row 3: Duplicate entry "Risk 1"']

    @pytest.mark.asyncio()
    async def test_does_not_require_assessment(
        self, import_store: InMemoryImportStore, organization_id: uuid.UUID
    ) -> None:
        context = ImportContext(organization_id=organization_id)
        result = await ImportPipeline(import_store).run("risks", make_risk_rows(1), context, dry_run=True)
        assert result.valid_rows == 1

    @pytest.mark.asyncio()
    async def test_preview_limit_is_configurable(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        pipeline = ImportPipeline(import_store, preview_limit=2)
        result = await pipeline.run("risks", make_risk_rows(5), risk_context, dry_run=True)
        assert len(result.preview) == 2


# ---------------------------------------------------------------------------
# Commit
# ---------------------------------------------------------------------------


class TestCommit:
    """Committed runs persist valid rows in chunk-sized transactions."""

    @pytest.mark.asyncio()
    async def test_150_rows_use_two_transactions(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        result = await ImportPipeline(import_store).run("risks", make_risk_rows(150), risk_context)

        assert isinstance(result, CommitImportResult)
        assert result.imported == 150
        assert result.failed == 0
        assert import_store.transactions == 2
        assert len(import_store.risks) == 150
        assert len(result.created_ids) == 150

    @pytest.mark.asyncio()
    async def test_invalid_rows_are_excluded_and_reported(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        rows = make_risk_rows(4)
        rows[1]["likelihood"] = "9"

        result = await ImportPipeline(import_store).run("risks", rows, risk_context)

        assert result.total_rows == 4
        assert result.imported == 3
        assert result.invalid_rows == 1
        assert result.failed == 0
        assert [(e.row, e.field) for e in result.errors] == [(3, "likelihood")]
        assert [risk["title"] for risk in import_store.risks] == ["Risk 0", "Risk 2", "Risk 3"]

    @pytest.mark.asyncio()
    async def test_risks_are_stored_with_scores_and_assessment(
        self, risk_context: ImportContext, assessment_id: uuid.UUID
    ) -> None:
        history = InMemoryScoreHistoryStore()
        store = InMemoryImportStore(history=history)
        rows = [{"title": "Leak", "category": "privacy", "likelihood": 5, "impact": 4, "controlEffectiveness": 25}]

        result = await ImportPipeline(store).run("risks", rows, risk_context)

        risk = store.risks[0]
        assert risk["id"] == result.created_ids[0]
        assert risk["assessment_id"] == assessment_id
        assert risk["category"] == "PRIVACY"
        assert risk["inherent_score"] == 20
        assert risk["residual_score"] == 15.0
        assert history.count(risk["id"]) == 1

        snapshots = await history.fetch_snapshots([risk["id"]], since=EPOCH)
        assert snapshots[0].source == ScoreSource.IMPORT

    @pytest.mark.asyncio()
    async def test_ai_systems_are_stored_with_owner(
        self, import_store: InMemoryImportStore, ai_system_context: ImportContext, owner_id: uuid.UUID
    ) -> None:
        rows = [{"name": "Chatbot", "systemType": "genai"}, {"name": "Scorer", "status": "PILOT"}]

        result = await ImportPipeline(import_store).run("ai-systems", rows, ai_system_context)

        assert result.imported == 2
        assert [system["name"] for system in import_store.ai_systems] == ["Chatbot", "Scorer"]
        assert import_store.ai_systems[0]["owner_id"] == owner_id
        assert import_store.ai_systems[0]["system_type"] == "GENAI"
        assert import_store.ai_systems[1]["status"] == "PILOT"

    @pytest.mark.asyncio()
    async def test_row_failure_is_counted_and_chunk_continues(self, risk_context: ImportContext) -> None:
        store = InMemoryImportStore(failing_rows=[3])

        result = await ImportPipeline(store, chunk_size=10).run("risks", make_risk_rows(5), risk_context)

        assert result.imported == 4
        assert result.failed == 1
        assert [(e.row, e.field) for e in result.errors] == [(3, "row")]
        assert "Risk 1" not in [risk["title"] for risk in store.risks]
        assert store.transactions == 1

    @pytest.mark.asyncio()
    async def test_failed_chunk_does_not_abort_later_chunks(self, risk_context: ImportContext) -> None:
        store = InMemoryImportStore(failing_transactions=[0])

        result = await ImportPipeline(store, chunk_size=100).run("risks", make_risk_rows(150), risk_context)

        assert store.transactions == 2
        assert result.imported == 50
        assert result.failed == 100
        assert len(result.errors) == 100
        assert store.risks[0]["title"] == "Risk 100"

    @pytest.mark.asyncio()
    async def test_failed_chunk_reports_each_row_once(self, risk_context: ImportContext) -> None:
        store = InMemoryImportStore(failing_rows=[2], failing_transactions=[0])

        result = await ImportPipeline(store, chunk_size=3).run("risks", make_risk_rows(3), risk_context)

        assert result.imported == 0
        assert result.failed == 3
        assert sorted(e.row for e in result.errors) == [2, 3, 4]

    @pytest.mark.asyncio()
    async def test_empty_input_commits_nothing(
        self, import_store: InMemoryImportStore, risk_context: ImportContext
    ) -> None:
        result = await ImportPipeline(import_store).run("risks", [], risk_context)
        assert (result.total_rows, result.imported, result.failed) == (0, 0, 0)
        assert import_store.transactions == 0

    @pytest.mark.asyncio()
    async def test_risk_commit_requires_assessment(
        self, import_store: InMemoryImportStore, organization_id: uuid.UUID
    ) -> None:
        context = ImportContext(organization_id=organization_id)
        with pytest.raises(InvalidInputError, match="assessment_id is required"):
            await ImportPipeline(import_store).run("risks", make_risk_rows(1), context)

    @pytest.mark.asyncio()
    async def test_ai_system_commit_requires_owner(
        self, import_store: InMemoryImportStore, organization_id: uuid.UUID
    ) -> None:
        context = ImportContext(organization_id=organization_id)
        with pytest.raises(InvalidInputError, match="owner_id is required"):
            await ImportPipeline(import_store).run("ai-systems", [{"name": "Bot"}], context)


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


@pytest.mark.asyncio()
async def test_import_file_parses_csv(import_store: InMemoryImportStore, risk_context: ImportContext):
    content = make_csv(make_risk_rows(3))

    result = await ImportPipeline(import_store).import_file("risks.csv", content, "risks", risk_context)

    assert result.imported == 3


@pytest.mark.asyncio()
async def test_import_file_format_error_propagates(import_store: InMemoryImportStore, risk_context: ImportContext):
    with pytest.raises(FormatError):
        await ImportPipeline(import_store).import_file("risks.csv", b"title\n", "risks", risk_context)


@pytest.mark.asyncio()
async def test_import_file_rejects_unknown_entity_before_parsing(
    import_store: InMemoryImportStore, risk_context: ImportContext
):
    with pytest.raises(InvalidInputError):
        await ImportPipeline(import_store).import_file("x.txt", b"", "controls", risk_context)


def test_pipeline_rejects_zero_chunk_size(import_store: InMemoryImportStore):
    with pytest.raises(InvalidInputError):
        ImportPipeline(import_store, chunk_size=0)
