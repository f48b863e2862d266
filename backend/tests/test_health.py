"""Tests for the health endpoint and the API docs toggle."""
import pytest
from httpx import AsyncClient, ASGITransport

from catalog.core.config import settings
from catalog.main import app


@pytest.mark.asyncio
async def test_health_reports_ok_and_env():
    """GET /health needs no collaborators and echoes the environment name."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "env": settings.APP_ENV}


@pytest.mark.asyncio
async def test_openapi_lists_catalog_routes():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/openapi.json")
    paths = response.json()["paths"]
    assert "/api/v1/categories/{category_id}/units/validate" in paths
    assert "/api/v1/import/sessions/{session_id}/commit" in paths
