"""API tests for the bulk import session endpoints."""
import uuid

import pytest
from httpx import AsyncClient, ASGITransport

from catalog.core.deps import get_category_store, get_product_catalog, get_session_registry
from catalog.core.errors import CollaboratorUnavailableError
from catalog.core.limiter import limiter
from catalog.main import app
from catalog.services.import_sessions import ImportSessionRegistry

from conftest import FakeCatalog

CSV = (
    "ean,serial,imei1\n"
    "7891234567890,SN001,356938035643809\n"
    "7891234567890,SN002,\n"
    "789123,SN003,\n"
)


# ─── Helpers ──────────────────────────────────────────────────────────────────

@pytest.fixture
def setup(category_store, base_product):
    catalog = FakeCatalog([base_product])
    registry = ImportSessionRegistry()
    app.dependency_overrides[get_category_store] = lambda: category_store
    app.dependency_overrides[get_product_catalog] = lambda: catalog
    app.dependency_overrides[get_session_registry] = lambda: registry
    limiter.enabled = False
    yield catalog, registry
    limiter.enabled = True
    app.dependency_overrides.clear()


def _client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _upload(content: str):
    return {"file": ("units.csv", content.encode("utf-8"), "text/csv")}


# ─── Tests ────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_upload_previews_rows(setup):
    async with _client() as client:
        response = await client.post("/api/v1/import/sessions", files=_upload(CSV))

    assert response.status_code == 201
    data = response.json()
    assert data["state"] == "previewed"
    assert data["filename"] == "units.csv"
    assert data["summary"] == {"rows": 3, "valid": 2, "invalid": 1, "warnings": 0}
    assert data["previews"][2]["validation"]["errors"] == ["EAN must have 13 digits", "Base product not found"]


@pytest.mark.asyncio
async def test_upload_then_commit(setup):
    catalog, _ = setup
    async with _client() as client:
        session_id = (await client.post("/api/v1/import/sessions", files=_upload(CSV))).json()["id"]
        committed = await client.post(f"/api/v1/import/sessions/{session_id}/commit")
        again = await client.post(f"/api/v1/import/sessions/{session_id}/commit")
        fetched = await client.get(f"/api/v1/import/sessions/{session_id}")

    assert committed.status_code == 200
    assert committed.json() == {"total": 3, "success": 2, "failed": 1, "errors": []}
    assert again.status_code == 409
    assert fetched.json()["state"] == "complete"
    assert len(catalog.created) == 2


@pytest.mark.asyncio
async def test_cancel_session(setup):
    async with _client() as client:
        session_id = (await client.post("/api/v1/import/sessions", files=_upload(CSV))).json()["id"]
        cancelled = await client.delete(f"/api/v1/import/sessions/{session_id}")
        fetched = await client.get(f"/api/v1/import/sessions/{session_id}")

    assert cancelled.status_code == 204
    assert fetched.status_code == 404


@pytest.mark.asyncio
async def test_unknown_session_returns_404(setup):
    async with _client() as client:
        response = await client.get(f"/api/v1/import/sessions/{uuid.uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_empty_file_returns_422(setup):
    async with _client() as client:
        response = await client.post("/api/v1/import/sessions", files=_upload("ean,serial\n"))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_too_many_rows_returns_413(setup, monkeypatch):
    from catalog.core.config import settings

    monkeypatch.setattr(settings, "BULK_IMPORT_MAX_ROWS", 2)
    async with _client() as client:
        response = await client.post("/api/v1/import/sessions", files=_upload(CSV))
    assert response.status_code == 413


@pytest.mark.asyncio
async def test_lookup_outage_returns_503_and_drops_session(setup):
    catalog, registry = setup

    async def unavailable(code):
        raise CollaboratorUnavailableError("connection refused")

    catalog.search_by_code = unavailable
    async with _client() as client:
        response = await client.post("/api/v1/import/sessions", files=_upload(CSV))
    assert response.status_code == 503
    assert len(registry) == 0
