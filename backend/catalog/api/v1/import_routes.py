"""CSV bulk import endpoints for serialized units.

Upload parses and previews in one step; the session is then committed or
cancelled by id.
"""
import logging
import uuid

from fastapi import APIRouter, File, HTTPException, Request, UploadFile, status

from catalog.core.config import settings
from catalog.core.deps import CategoryStoreDep, ProductCatalogDep, SessionRegistryDep
from catalog.core.errors import CollaboratorUnavailableError
from catalog.core.limiter import limiter
from catalog.schemas.bulk import BulkCommitResult, ImportSessionOut
from catalog.services.bulk_import import parse_csv

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── POST /import/sessions ───

@router.post(
    "/sessions",
    response_model=ImportSessionOut,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a CSV of units and preview it against existing products",
)
@limiter.limit(settings.BULK_UPLOAD_RATE_LIMIT)
async def create_import_session(
    request: Request,
    catalog: ProductCatalogDep,
    categories: CategoryStoreDep,
    sessions: SessionRegistryDep,
    file: UploadFile = File(...),
):
    content = await file.read()
    rows = parse_csv(content)

    if not rows:
        raise HTTPException(status_code=422, detail="The file has no data rows.")
    if len(rows) > settings.BULK_IMPORT_MAX_ROWS:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"At most {settings.BULK_IMPORT_MAX_ROWS} rows per import; got {len(rows)}.",
        )

    session = sessions.create(rows, filename=file.filename)
    try:
        await session.preview(catalog, categories)
    except CollaboratorUnavailableError:
        sessions.discard(session.id)
        raise
    return session.to_out()


# ─── GET /import/sessions/{id} ───

@router.get("/sessions/{session_id}", response_model=ImportSessionOut, summary="Get an import session")
async def get_import_session(session_id: uuid.UUID, sessions: SessionRegistryDep):
    return sessions.get(session_id).to_out()


# ─── POST /import/sessions/{id}/commit ───

@router.post(
    "/sessions/{session_id}/commit",
    response_model=BulkCommitResult,
    summary="Create one product per valid previewed row",
)
async def commit_import_session(
    session_id: uuid.UUID,
    catalog: ProductCatalogDep,
    sessions: SessionRegistryDep,
):
    session = sessions.get(session_id)
    return await session.commit(catalog, concurrency=settings.BULK_COMMIT_CONCURRENCY)


# ─── DELETE /import/sessions/{id} ───

@router.delete("/sessions/{session_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Cancel an import session")
async def cancel_import_session(session_id: uuid.UUID, sessions: SessionRegistryDep):
    sessions.discard(session_id)
