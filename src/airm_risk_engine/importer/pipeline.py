"""ImportPipeline — parse, validate, and persist bulk risk / AI-system uploads.

A run is either a dry run or a commit:
- dry run: validate every row and report totals, row errors, duplicate
  warnings (within the file and against stored records), and a preview.
  Nothing is written.
- commit: validate, then persist only the valid rows in fixed-size chunks.
  Each chunk is one IImportStore transaction. A row that fails to persist
  is counted as failed and the rest of its chunk carries on; a chunk whose
  transaction fails to commit counts all of its rows as failed. Either way
  the following chunks are still attempted.

The pipeline has no framework code. Files arrive as bytes plus a file name,
and ownership (organization, assessment, owner) comes from ImportContext.
"""

from collections.abc import Mapping, Sequence
from typing import Any

from airm_risk_engine.core.interfaces import IImportStore, IImportWriter
from airm_risk_engine.errors import InvalidInputError, PersistenceError
from airm_risk_engine.importer.parsers import parse_upload
from airm_risk_engine.importer.schemas import (
    CommitImportResult,
    DryRunImportResult,
    ImportContext,
    ImportRowError,
    RiskImportRow,
    ValidatedRow,
)
from airm_risk_engine.importer.validation import ValidationOutcome, columns_for, detect_duplicates, validate_rows
from airm_risk_engine.observability import get_logger

logger = get_logger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_PREVIEW_LIMIT = 10


class ImportPipeline:
    """Runs bulk imports against an IImportStore.

    Args:
        store: Transactional store the committed rows are written to.
        chunk_size: Valid rows persisted per transaction.
        preview_limit: Parsed rows echoed back by a dry run.
    """

    def __init__(
        self,
        store: IImportStore,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        preview_limit: int = DEFAULT_PREVIEW_LIMIT,
    ) -> None:
        if chunk_size < 1:
            raise InvalidInputError("chunk_size must be at least 1", details={"chunk_size": chunk_size})
        if preview_limit < 0:
            raise InvalidInputError("preview_limit must not be negative", details={"preview_limit": preview_limit})
        self._store = store
        self._chunk_size = chunk_size
        self._preview_limit = preview_limit

    async def import_file(
        self,
        filename: str,
        content: bytes,
        entity_type: str,
        context: ImportContext,
        dry_run: bool = False,
    ) -> DryRunImportResult | CommitImportResult:
        """Parse an uploaded file and run the import on its rows.

        Args:
            filename: Original file name; selects the CSV or XLSX parser.
            content: Raw file bytes.
            entity_type: "risks" or "ai-systems".
            context: Ownership for created records.
            dry_run: Validate only when True.

        Returns:
            DryRunImportResult or CommitImportResult.

        Raises:
            FormatError: If the file cannot be parsed.
            InvalidInputError: If the entity type or context is unusable.
        """
        columns_for(entity_type)
        rows = parse_upload(filename, content)
        logger.info(
            "Import file parsed",
            filename=filename,
            entity_type=entity_type,
            row_count=len(rows),
            dry_run=dry_run,
        )
        return await self.run(entity_type, rows, context, dry_run=dry_run)

    async def run(
        self,
        entity_type: str,
        rows: Sequence[Mapping[str, Any]],
        context: ImportContext,
        dry_run: bool = False,
    ) -> DryRunImportResult | CommitImportResult:
        """Validate already-parsed rows and, unless dry_run, persist them.

        Args:
            entity_type: "risks" or "ai-systems".
            rows: Parsed rows keyed by header text.
            context: Ownership for created records.
            dry_run: Validate only when True.

        Returns:
            DryRunImportResult or CommitImportResult.

        Raises:
            InvalidInputError: If the entity type is unknown, or a commit is
                requested without the ids that entity type needs.
        """
        if dry_run:
            return await self._dry_run_result(entity_type, rows, validate_rows(rows, entity_type), context)

        self._check_context(entity_type, context)
        return await self._commit(entity_type, validate_rows(rows, entity_type), context)

    async def _dry_run_result(
        self,
        entity_type: str,
        rows: Sequence[Mapping[str, Any]],
        outcome: ValidationOutcome,
        context: ImportContext,
    ) -> DryRunImportResult:
        existing = await self._store.existing_labels(entity_type, context)
        warnings = detect_duplicates(outcome.valid_rows, existing)
        logger.info(
            "Import dry run completed",
            entity_type=entity_type,
            total_rows=outcome.total_rows,
            valid_rows=len(outcome.valid_rows),
            invalid_rows=outcome.invalid_count,
            warnings=len(warnings),
        )
        return DryRunImportResult(
            entity_type=entity_type,
            total_rows=outcome.total_rows,
            valid_rows=len(outcome.valid_rows),
            invalid_rows=outcome.invalid_count,
            errors=outcome.errors,
            warnings=warnings,
            preview=[dict(row) for row in rows[: self._preview_limit]],
        )

    @staticmethod
    def _check_context(entity_type: str, context: ImportContext) -> None:
        if entity_type == "risks" and context.assessment_id is None:
            raise InvalidInputError("assessment_id is required to import risks")
        if entity_type == "ai-systems" and context.owner_id is None:
            raise InvalidInputError("owner_id is required to import AI systems")

    async def _write_row(
        self,
        writer: IImportWriter,
        row: ValidatedRow,
        context: ImportContext,
    ) -> str:
        if isinstance(row, RiskImportRow):
            return await writer.create_risk(row, context.assessment_id)
        return await writer.create_ai_system(row, context.organization_id, context.owner_id)

    async def _commit(
        self,
        entity_type: str,
        outcome: ValidationOutcome,
        context: ImportContext,
    ) -> CommitImportResult:
        valid_rows = outcome.valid_rows
        errors = list(outcome.errors)
        created_ids: list[str] = []
        failed = 0

        for start in range(0, len(valid_rows), self._chunk_size):
            chunk = valid_rows[start : start + self._chunk_size]
            written: list[str] = []
            chunk_errors: list[ImportRowError] = []

            try:
                async with self._store.transaction() as writer:
                    for row in chunk:
                        try:
                            created_id = await self._write_row(writer, row, context)
                        except PersistenceError as exc:
                            chunk_errors.append(
                                ImportRowError(row=row.row_number, field="row", message=exc.message)
                            )
                            continue
                        written.append(created_id)
            except PersistenceError as exc:
                logger.error(
                    "Import chunk failed to commit",
                    entity_type=entity_type,
                    chunk_start_row=chunk[0].row_number,
                    chunk_size=len(chunk),
                    error=exc.message,
                )
                failed_rows = {error.row for error in chunk_errors}
                chunk_errors.extend(
                    ImportRowError(row=row.row_number, field="row", message=exc.message)
                    for row in chunk
                    if row.row_number not in failed_rows
                )
                written = []

            created_ids.extend(written)
            failed += len(chunk) - len(written)
            errors.extend(chunk_errors)

        errors.sort(key=lambda error: error.row)
        logger.info(
            "Import committed",
            entity_type=entity_type,
            organization_id=str(context.organization_id),
            total_rows=outcome.total_rows,
            imported=len(created_ids),
            failed=failed,
            invalid_rows=outcome.invalid_count,
        )
        return CommitImportResult(
            entity_type=entity_type,
            total_rows=outcome.total_rows,
            imported=len(created_ids),
            failed=failed,
            invalid_rows=outcome.invalid_count,
            errors=errors,
            created_ids=created_ids,
        )
