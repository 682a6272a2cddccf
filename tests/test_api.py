"""Tests for API endpoints (router layer).

Routes are exercised through httpx against a bare FastAPI app with the
engine and pipeline dependencies overridden by in-memory wiring, so no
database is needed.

Tests verify:
- Request validation (path, query, and form enforcement)
- HTTP status codes, including 422 for unparseable uploads
- Response schema shapes
"""

import io
import uuid
from datetime import datetime, timedelta

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from openpyxl import load_workbook

from airm_risk_engine.adapters.memory import InMemoryImportStore, InMemoryScoreHistoryStore
from airm_risk_engine.api.router import get_import_pipeline, get_velocity_engine, router
from airm_risk_engine.core.domain import RiskScoreSnapshot
from airm_risk_engine.importer.pipeline import ImportPipeline
from airm_risk_engine.velocity.engine import VelocityEngine

RISKS_CSV = (
    b"title,category,likelihood,impact,controlEffectiveness\n"
    b"Model drift,RELIABILITY,4,5,30\n"
    b"Prompt injection,security,3,4,\n"
    b",PRIVACY,2,2,\n"
)


@pytest.fixture()
def populated_history(history_store: InMemoryScoreHistoryStore, now: datetime) -> InMemoryScoreHistoryStore:
    """History where r1 improves by 1 point/day over 10 days and r2 has one snapshot."""
    history_store.extend(
        [
            RiskScoreSnapshot(risk_id="r1", inherent_score=12, residual_score=12, recorded_at=now - timedelta(days=10)),
            RiskScoreSnapshot(risk_id="r1", inherent_score=2, residual_score=2, recorded_at=now),
            RiskScoreSnapshot(risk_id="r2", inherent_score=9, residual_score=9, recorded_at=now),
        ]
    )
    return history_store


@pytest.fixture()
def test_app(
    populated_history: InMemoryScoreHistoryStore,
    import_store: InMemoryImportStore,
    now: datetime,
) -> FastAPI:
    """Create a FastAPI test app with in-memory engine and pipeline."""
    app = FastAPI()
    app.include_router(router, prefix="/api/v1")
    app.dependency_overrides[get_velocity_engine] = lambda: VelocityEngine(populated_history, clock=lambda: now)
    app.dependency_overrides[get_import_pipeline] = lambda: ImportPipeline(import_store, chunk_size=2)
    return app


def client_for(app: FastAPI) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


class TestVelocityEndpoints:
    """Tests for /risks velocity endpoints."""

    @pytest.mark.asyncio()
    async def test_single_velocity(self, test_app: FastAPI) -> None:
        async with client_for(test_app) as client:
            response = await client.get("/api/v1/risks/r1/velocity")

        assert response.status_code == 200
        assert response.json() == {
            "inherent_change": -1.0,
            "residual_change": -1.0,
            "trend": "improving",
            "period_days": 10,
        }

    @pytest.mark.asyncio()
    async def test_single_velocity_rejects_zero_period(self, test_app: FastAPI) -> None:
        async with client_for(test_app) as client:
            response = await client.get("/api/v1/risks/r1/velocity", params={"period_days": 0})

        assert response.status_code == 422

    @pytest.mark.asyncio()
    async def test_batch_velocity(self, test_app: FastAPI, populated_history: InMemoryScoreHistoryStore) -> None:
        async with client_for(test_app) as client:
            response = await client.post("/api/v1/risks/velocity/batch", json={"risk_ids": ["r1", "r2", "r1"]})

        assert response.status_code == 200
        velocities = response.json()["velocities"]
        assert set(velocities) == {"r1", "r2"}
        assert velocities["r1"]["trend"] == "improving"
        assert velocities["r2"]["trend"] == "stable"
        assert populated_history.reads == 1

    @pytest.mark.asyncio()
    async def test_batch_velocity_requires_risk_ids(self, test_app: FastAPI) -> None:
        async with client_for(test_app) as client:
            response = await client.post("/api/v1/risks/velocity/batch", json={})

        assert response.status_code == 422


class TestImportEndpoints:
    """Tests for /import endpoints."""

    @pytest.mark.asyncio()
    async def test_dry_run_reports_without_writing(
        self, test_app: FastAPI, import_store: InMemoryImportStore, organization_id: uuid.UUID
    ) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/risks",
                files={"file": ("risks.csv", RISKS_CSV, "text/csv")},
                data={"organization_id": str(organization_id), "dry_run": "true"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "dry_run"
        assert (body["total_rows"], body["valid_rows"], body["invalid_rows"]) == (3, 2, 1)
        assert body["errors"] == [{"row": 4, "field": "title", "message": "Title is required"}]
        assert len(body["preview"]) == 3
        assert import_store.transactions == 0

    @pytest.mark.asyncio()
    async def test_commit_persists_valid_rows(
        self,
        test_app: FastAPI,
        import_store: InMemoryImportStore,
        organization_id: uuid.UUID,
        assessment_id: uuid.UUID,
    ) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/risks",
                files={"file": ("risks.csv", RISKS_CSV, "text/csv")},
                data={"organization_id": str(organization_id), "assessment_id": str(assessment_id)},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["mode"] == "commit"
        assert (body["imported"], body["failed"], body["invalid_rows"]) == (2, 0, 1)
        assert len(body["created_ids"]) == 2
        assert [risk["title"] for risk in import_store.risks] == ["Model drift", "Prompt injection"]

    @pytest.mark.asyncio()
    async def test_commit_without_assessment_returns_422(
        self, test_app: FastAPI, organization_id: uuid.UUID
    ) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/risks",
                files={"file": ("risks.csv", RISKS_CSV, "text/csv")},
                data={"organization_id": str(organization_id)},
            )

        assert response.status_code == 422
        assert response.json()["detail"]["error_code"] == "INVALID_INPUT"

    @pytest.mark.asyncio()
    async def test_header_only_csv_returns_422(self, test_app: FastAPI, organization_id: uuid.UUID) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/ai-systems",
                files={"file": ("systems.csv", b"name,purpose\n", "text/csv")},
                data={"organization_id": str(organization_id), "dry_run": "true"},
            )

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert detail["error_code"] == "FORMAT_ERROR"
        assert detail["message"] == "CSV must have header row and at least one data row"

    @pytest.mark.asyncio()
    async def test_unsupported_file_type_returns_422(self, test_app: FastAPI, organization_id: uuid.UUID) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/risks",
                files={"file": ("risks.json", b"{}", "application/json")},
                data={"organization_id": str(organization_id), "dry_run": "true"},
            )

        assert response.status_code == 422
        assert response.json()["detail"]["error_code"] == "FORMAT_ERROR"

    @pytest.mark.asyncio()
    async def test_unknown_entity_type_returns_422(self, test_app: FastAPI, organization_id: uuid.UUID) -> None:
        async with client_for(test_app) as client:
            response = await client.post(
                "/api/v1/import/controls",
                files={"file": ("c.csv", RISKS_CSV, "text/csv")},
                data={"organization_id": str(organization_id)},
            )

        assert response.status_code == 422

    @pytest.mark.asyncio()
    async def test_template_download(self, test_app: FastAPI) -> None:
        async with client_for(test_app) as client:
            response = await client.get("/api/v1/import/templates/ai-systems")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert 'filename="ai-systems-import-template.xlsx"' in response.headers["content-disposition"]
        workbook = load_workbook(io.BytesIO(response.content))
        assert workbook.sheetnames[0] == "Import Data"
