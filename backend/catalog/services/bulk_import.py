"""Bulk unit import — parse, validate, preview against base products, commit.

Rows are matched to an existing base product by EAN; the per-unit identifiers
(serial, IMEI 1, IMEI 2) from the row are merged over the base product and one
new product is created per valid row.

Error tiers:
- structural row errors and "base product not found" invalidate only that row;
- duplicate serial / IMEI 1 inside the batch are warnings and never block;
- a failing create is recorded against its row and the commit continues.
CollaboratorUnavailableError is the exception: it aborts preview or commit.
"""
import asyncio
import csv
import io
import logging
import uuid
from collections.abc import Awaitable, Callable, Sequence
from typing import Any

from catalog.core.config import settings
from catalog.core.errors import CategoryNotFoundError, CollaboratorUnavailableError
from catalog.schemas.bulk import (
    BulkCommitResult,
    BulkProgress,
    BulkRow,
    PreviewSummary,
    RowError,
    RowOutcome,
    RowPreview,
    RowValidation,
)
from catalog.schemas.category import CategoryConfig
from catalog.services.categories import CategoryStore
from catalog.services.name_generator import generate_product_name
from catalog.services.products import ProductCatalog

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[BulkProgress], Awaitable[None] | None]

UNIQUE_FIELDS = ("serial", "imei1", "imei2")

# Alternative spellings seen in spreadsheets, after lower-casing and trimming.
HEADER_ALIASES = {
    "barcode": "ean",
    "ean13": "ean",
    "código de barras": "ean",
    "codigo de barras": "ean",
    "serial number": "serial",
    "serial_number": "serial",
    "número de série": "serial",
    "imei 1": "imei1",
    "imei_1": "imei1",
    "imei 2": "imei2",
    "imei_2": "imei2",
}


# ─── Parse ───

def normalize_header(header: str) -> str:
    key = (header or "").strip().lower()
    return HEADER_ALIASES.get(key, key)


def _cell(value: Any) -> str:
    return "" if value is None else str(value).strip()


def parse_rows(records: Sequence[dict[str, Any]]) -> list[BulkRow]:
    """Normalize raw records into BulkRows. Unknown columns are kept verbatim."""
    rows: list[BulkRow] = []
    for record in records:
        data: dict[str, Any] = {}
        for header, value in record.items():
            if header is None:
                continue
            key = normalize_header(header)
            if not key:
                continue
            text = _cell(value)
            if key in UNIQUE_FIELDS:
                data[key] = text or None
            else:
                data[key] = text
        data.setdefault("ean", "")
        rows.append(BulkRow.model_validate(data))
    return rows


def parse_csv(content: bytes) -> list[BulkRow]:
    text = content.decode("utf-8-sig", errors="replace")
    reader = csv.DictReader(io.StringIO(text))
    return parse_rows(list(reader))


# ─── Validate ───

def _structural_errors(row: BulkRow) -> list[str]:
    errors: list[str] = []
    code_length = settings.LOOKUP_CODE_LENGTH
    id_length = settings.IDENTIFIER_LENGTH

    if not row.ean:
        errors.append("EAN is required")
    elif len(row.ean) != code_length:
        errors.append(f"EAN must have {code_length} digits")

    if row.imei1 and len(row.imei1) != id_length:
        errors.append(f"IMEI 1 must have {id_length} digits")
    if row.imei2 and len(row.imei2) != id_length:
        errors.append(f"IMEI 2 must have {id_length} digits")

    if not row.serial or not row.serial.strip():
        errors.append("Serial is required")
    return errors


def _duplicate_warnings(rows: Sequence[BulkRow], index: int) -> list[str]:
    """Compare one row against the rows before it; first occurrences are never flagged."""
    row = rows[index]
    earlier = rows[:index]
    warnings: list[str] = []
    if row.serial and any(r.serial == row.serial for r in earlier):
        warnings.append("Duplicate serial in this batch")
    if row.imei1 and any(r.imei1 == row.imei1 for r in earlier):
        warnings.append("Duplicate IMEI 1 in this batch")
    return warnings


def validate_rows(rows: Sequence[BulkRow]) -> list[RowValidation]:
    validations: list[RowValidation] = []
    for i, row in enumerate(rows):
        validation = RowValidation(row=i + 1, warnings=_duplicate_warnings(rows, i))
        for message in _structural_errors(row):
            validation.add_error(message)
        validations.append(validation)
    return validations


# ─── Preview ───

def _resolved_fields(row: BulkRow) -> dict[str, Any]:
    return {f: getattr(row, f) for f in UNIQUE_FIELDS if getattr(row, f)}


def merge_record(
    base: dict[str, Any],
    resolved: dict[str, Any],
    custom_columns: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Base product overlaid with the row's own values; the row always wins.

    Per-unit identifiers of the base record are never inherited.
    """
    merged = {k: v for k, v in base.items() if k != "id" and k not in UNIQUE_FIELDS}
    merged.update(resolved)
    specs = dict(base.get("specs") or {})
    specs.update({k: v for k, v in (custom_columns or {}).items() if v not in (None, "")})
    merged["specs"] = specs
    return merged


async def _category_config(
    categories: CategoryStore | None,
    category_id: Any,
    cache: dict[str, CategoryConfig | None],
) -> CategoryConfig | None:
    if categories is None or not category_id:
        return None
    key = str(category_id)
    if key not in cache:
        try:
            cache[key] = (await categories.get_by_id(uuid.UUID(key))).config
        except (CategoryNotFoundError, ValueError):
            logger.warning("Bulk preview: category %s of base product not found", key)
            cache[key] = None
    return cache[key]


async def generate_preview(
    rows: Sequence[BulkRow],
    catalog: ProductCatalog,
    categories: CategoryStore | None = None,
) -> list[RowPreview]:
    """Validate rows and resolve each against its base product by EAN.

    Lookups are cached per EAN. CollaboratorUnavailableError propagates.
    """
    validations = validate_rows(rows)
    lookups: dict[str, list[dict[str, Any]]] = {}
    configs: dict[str, CategoryConfig | None] = {}
    previews: list[RowPreview] = []

    for row, validation in zip(rows, validations):
        matches: list[dict[str, Any]] = []
        if row.ean:
            if row.ean not in lookups:
                try:
                    lookups[row.ean] = await catalog.search_by_code(row.ean)
                except CollaboratorUnavailableError:
                    raise
                except Exception as exc:
                    logger.warning("Bulk preview: lookup failed for row %d: %s", validation.row, exc)
                    validation.add_error(f"Error looking up base product: {exc}")
                    previews.append(RowPreview(row=validation.row, validation=validation))
                    continue
            matches = lookups[row.ean]

        resolved = _resolved_fields(row)
        if not matches:
            validation.add_error("Base product not found")
            previews.append(RowPreview(row=validation.row, resolved_fields=resolved, validation=validation))
            continue
        if len(matches) > 1:
            validation.warnings.append(f"{len(matches)} base products share this EAN; using the first")

        base = matches[0]
        merged = merge_record(base, resolved, row.custom_columns)
        config = await _category_config(categories, base.get("category_id"), configs)
        generated = generate_product_name(config, merged)
        if generated:
            merged["name"] = generated

        previews.append(
            RowPreview(
                row=validation.row,
                base_record=base,
                resolved_fields=resolved,
                merged_record=merged,
                validation=validation,
            )
        )

    summary = summarize(previews)
    logger.info(
        "Bulk preview: %d rows, %d valid, %d invalid, %d warnings",
        summary.rows, summary.valid, summary.invalid, summary.warnings,
    )
    return previews


def summarize(previews: Sequence[RowPreview]) -> PreviewSummary:
    valid = sum(1 for p in previews if p.validation.valid)
    return PreviewSummary(
        rows=len(previews),
        valid=valid,
        invalid=len(previews) - valid,
        warnings=sum(len(p.validation.warnings) for p in previews),
    )


# ─── Commit ───

def fold_outcome(result: BulkCommitResult, outcome: RowOutcome) -> BulkCommitResult:
    """Account one row outcome into the running result."""
    errors = result.errors
    if outcome.attempted and not outcome.success:
        errors = (*errors, RowError(row=outcome.row, error=outcome.error or "Unknown error"))
    return BulkCommitResult(
        total=result.total + 1,
        success=result.success + (1 if outcome.success else 0),
        failed=result.failed + (0 if outcome.success else 1),
        errors=errors,
    )


async def _attempt(preview: RowPreview, catalog: ProductCatalog) -> RowOutcome:
    try:
        created = await catalog.create(preview.merged_record or {})
    except CollaboratorUnavailableError:
        raise
    except Exception as exc:
        message = str(exc) or exc.__class__.__name__
        logger.warning("Bulk commit: row %d failed: %s", preview.row, message)
        return RowOutcome(row=preview.row, attempted=True, success=False, error=message)
    record_id = created.get("id") if isinstance(created, dict) else None
    return RowOutcome(
        row=preview.row,
        attempted=True,
        success=True,
        record_id=str(record_id) if record_id is not None else None,
    )


async def _notify(on_progress: ProgressCallback | None, progress: BulkProgress) -> None:
    if on_progress is None:
        return
    maybe = on_progress(progress)
    if asyncio.iscoroutine(maybe):
        await maybe


async def commit_previews(
    previews: Sequence[RowPreview],
    catalog: ProductCatalog,
    concurrency: int = 1,
    on_progress: ProgressCallback | None = None,
) -> BulkCommitResult:
    """Create one product per valid preview and tally the outcome.

    With ``concurrency == 1`` rows are created strictly one after another.
    Higher values run creates through a bounded pool; outcomes are still folded
    in input row order. Invalid rows count as failed without being attempted.
    """
    valid = [p for p in previews if p.validation.valid]
    outcomes: dict[int, RowOutcome] = {}
    running = BulkCommitResult()

    async def record(outcome: RowOutcome) -> None:
        nonlocal running
        outcomes[outcome.row] = outcome
        running = fold_outcome(running, outcome)
        await _notify(
            on_progress,
            BulkProgress(
                processed=running.total,
                total=len(valid),
                success=running.success,
                failed=running.failed,
            ),
        )

    if concurrency <= 1:
        for preview in valid:
            await record(await _attempt(preview, catalog))
    else:
        semaphore = asyncio.Semaphore(concurrency)

        async def bounded(preview: RowPreview) -> None:
            async with semaphore:
                outcome = await _attempt(preview, catalog)
            await record(outcome)

        tasks = [asyncio.ensure_future(bounded(p)) for p in valid]
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            # Stop sibling creates before the failure propagates.
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    result = BulkCommitResult()
    for preview in previews:
        outcome = outcomes.get(preview.row) or RowOutcome(
            row=preview.row, attempted=False, success=False
        )
        result = fold_outcome(result, outcome)

    logger.info(
        "Bulk commit: total=%d success=%d failed=%d",
        result.total, result.success, result.failed,
    )
    return result
