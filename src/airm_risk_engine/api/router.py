"""API router for the AIRM risk engine.

All endpoints are registered here and included in main.py under the
/api/v1 prefix. Routes are thin: calculation and import logic lives in
velocity.engine and importer.pipeline.

Endpoints:
- GET   /risks/{risk_id}/velocity           — velocity of one risk
- POST  /risks/velocity/batch               — velocities of many risks, one read
- POST  /import/{entity_type}               — dry-run or commit a CSV/XLSX upload
- GET   /import/templates/{entity_type}     — download the XLSX import template
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from airm_risk_engine.adapters.repositories import RiskScoreHistoryRepository, SqlAlchemyImportStore
from airm_risk_engine.api.schemas import BatchVelocityRequest, BatchVelocityResponse, RiskVelocityResponse
from airm_risk_engine.database import get_db_session, get_session_factory
from airm_risk_engine.errors import FormatError, InvalidInputError
from airm_risk_engine.importer.parsers import XLSX_MEDIA_TYPE
from airm_risk_engine.importer.pipeline import ImportPipeline
from airm_risk_engine.importer.schemas import ImportContext, ImportEntityType, ImportResult
from airm_risk_engine.importer.templates import generate_import_template
from airm_risk_engine.observability import get_logger
from airm_risk_engine.settings import Settings, get_settings
from airm_risk_engine.velocity.engine import VelocityEngine

logger = get_logger(__name__)

router = APIRouter(tags=["risk-engine"])


# ---------------------------------------------------------------------------
# Dependency factories — wire adapters and engines together
# ---------------------------------------------------------------------------


def get_velocity_engine(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> VelocityEngine:
    """Construct VelocityEngine over the request-scoped session.

    Args:
        session: Primary DB session.
        settings: Service settings.

    Returns:
        Fully wired VelocityEngine instance.
    """
    return VelocityEngine(
        history_repository=RiskScoreHistoryRepository(session),
        default_period_days=settings.velocity_period_days,
        trend_threshold=settings.velocity_trend_threshold,
    )


def get_import_pipeline(settings: Annotated[Settings, Depends(get_settings)]) -> ImportPipeline:
    """Construct ImportPipeline over a chunk-scoped session store.

    The pipeline opens its own session per chunk, so it does not share the
    request-scoped session.

    Args:
        settings: Service settings.

    Returns:
        Fully wired ImportPipeline instance.
    """
    return ImportPipeline(
        store=SqlAlchemyImportStore(get_session_factory()),
        chunk_size=settings.import_chunk_size,
        preview_limit=settings.import_preview_limit,
    )


# ---------------------------------------------------------------------------
# Velocity endpoints
# ---------------------------------------------------------------------------


@router.get("/risks/{risk_id}/velocity", response_model=RiskVelocityResponse)
async def get_risk_velocity(
    risk_id: str,
    engine: Annotated[VelocityEngine, Depends(get_velocity_engine)],
    period_days: Annotated[int | None, Query(ge=1, le=3650)] = None,
) -> RiskVelocityResponse:
    """Calculate the velocity of one risk over a trailing window.

    Args:
        risk_id: The risk to calculate.
        engine: Injected VelocityEngine.
        period_days: Look-back window; the configured default when omitted.

    Returns:
        RiskVelocityResponse. Risks without enough history are stable.
    """
    velocity = await engine.calculate_single_velocity(risk_id, period_days)
    return RiskVelocityResponse.from_velocity(velocity)


@router.post("/risks/velocity/batch", response_model=BatchVelocityResponse)
async def get_batch_risk_velocity(
    request: BatchVelocityRequest,
    engine: Annotated[VelocityEngine, Depends(get_velocity_engine)],
) -> BatchVelocityResponse:
    """Calculate velocities for many risks with a single history read.

    Args:
        request: Risk ids and optional window.
        engine: Injected VelocityEngine.

    Returns:
        BatchVelocityResponse keyed by risk id.
    """
    velocities = await engine.calculate_batch_velocity(request.risk_ids, request.period_days)
    return BatchVelocityResponse(
        velocities={
            risk_id: RiskVelocityResponse.from_velocity(velocity) for risk_id, velocity in velocities.items()
        }
    )


# ---------------------------------------------------------------------------
# Import endpoints
# ---------------------------------------------------------------------------


@router.post("/import/{entity_type}", response_model=ImportResult)
async def import_entities(
    entity_type: ImportEntityType,
    file: Annotated[UploadFile, File(description="CSV or XLSX upload")],
    organization_id: Annotated[uuid.UUID, Form()],
    pipeline: Annotated[ImportPipeline, Depends(get_import_pipeline)],
    assessment_id: Annotated[uuid.UUID | None, Form()] = None,
    owner_id: Annotated[uuid.UUID | None, Form()] = None,
    dry_run: Annotated[bool, Form()] = False,
) -> ImportResult:
    """Validate an upload and, unless dry_run, persist its valid rows.

    Args:
        entity_type: "risks" or "ai-systems".
        file: The uploaded CSV or XLSX file.
        organization_id: Owning organization.
        pipeline: Injected ImportPipeline.
        assessment_id: Target assessment (required to commit risks).
        owner_id: Responsible user (required to commit AI systems).
        dry_run: Validate only when true.

    Returns:
        DryRunImportResult or CommitImportResult.

    Raises:
        HTTPException: 422 if the file cannot be parsed or the context is
            incomplete.
    """
    content = await file.read()
    context = ImportContext(organization_id=organization_id, assessment_id=assessment_id, owner_id=owner_id)
    try:
        return await pipeline.import_file(file.filename or "", content, entity_type, context, dry_run=dry_run)
    except (FormatError, InvalidInputError) as exc:
        logger.warning(
            "Import rejected",
            entity_type=entity_type,
            filename=file.filename,
            error_code=exc.error_code,
            error=exc.message,
        )
        raise HTTPException(status_code=422, detail=exc.to_dict()) from exc


@router.get("/import/templates/{entity_type}")
async def download_import_template(entity_type: ImportEntityType) -> Response:
    """Download the XLSX import template for an entity type.

    Args:
        entity_type: "risks" or "ai-systems".

    Returns:
        The workbook as an attachment.
    """
    return Response(
        content=generate_import_template(entity_type),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{entity_type}-import-template.xlsx"'},
    )
