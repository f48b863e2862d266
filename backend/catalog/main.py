from contextlib import asynccontextmanager
import logging

import sentry_sdk
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from catalog.core.config import settings
from catalog.core.errors import (
    CategoryNotFoundError,
    CollaboratorUnavailableError,
    CustomFieldKeyConflict,
    ImportSessionNotFoundError,
    ImportStateError,
)
from catalog.core.limiter import limiter
from catalog.core.logging import setup_logging

setup_logging()

logger = logging.getLogger(__name__)

# Initialize Sentry error monitoring
if settings.SENTRY_DSN:
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        environment=settings.APP_ENV,
        send_default_pii=False,
    )
    logger.info("Sentry initialized")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Catalog service starting (env=%s)", settings.APP_ENV)
    yield
    # Shutdown: import sessions are process-local and are dropped with the process


app = FastAPI(
    title="Catalog Field Governance",
    version="0.1.0",
    docs_url="/api/docs" if settings.APP_ENV != "production" else None,
    redoc_url="/api/redoc" if settings.APP_ENV != "production" else None,
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Domain errors ───

@app.exception_handler(CategoryNotFoundError)
async def category_not_found_handler(request: Request, exc: CategoryNotFoundError):
    return JSONResponse(status_code=404, content={"detail": "Category not found."})


@app.exception_handler(ImportSessionNotFoundError)
async def session_not_found_handler(request: Request, exc: ImportSessionNotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(CustomFieldKeyConflict)
async def key_conflict_handler(request: Request, exc: CustomFieldKeyConflict):
    existing = exc.existing.model_dump(mode="json") if exc.existing is not None else None
    return JSONResponse(status_code=409, content={"detail": str(exc), "key": exc.key, "existing": existing})


@app.exception_handler(ImportStateError)
async def import_state_handler(request: Request, exc: ImportStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def config_validation_handler(request: Request, exc: ValidationError):
    # Raised when an edited config breaks its invariants
    return JSONResponse(
        status_code=422,
        content={"detail": exc.errors(include_url=False, include_context=False, include_input=False)},
    )


@app.exception_handler(CollaboratorUnavailableError)
async def collaborator_unavailable_handler(request: Request, exc: CollaboratorUnavailableError):
    logger.error("Collaborator unavailable: %s %s — %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Catalog service unavailable."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s %s — %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error."})


# ─── Routers ───
from catalog.api.v1.router import api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")


@app.get("/health")
async def health():
    return {"status": "ok", "env": settings.APP_ENV}
