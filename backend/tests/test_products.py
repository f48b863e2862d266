"""Tests for the SQL product catalog's error classification on create."""
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from catalog.core.errors import CollaboratorUnavailableError
from catalog.schemas.bulk import BulkRow
from catalog.services.bulk_import import commit_previews, generate_preview
from catalog.services.products import SqlProductCatalog

from conftest import FakeCatalog


# ─── Helpers ──────────────────────────────────────────────────────────────────

def _mock_db(commit_error: Exception | None = None) -> AsyncMock:
    db = AsyncMock()
    db.add = MagicMock()
    if commit_error is not None:
        db.commit.side_effect = commit_error
    return db


def _record(**overrides):
    return {"name": "Redmi Note 14", "ean": "7891234567890", "serial": "SN001", **overrides}


# ─── create ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_create_returns_record():
    db = _mock_db()
    created = await SqlProductCatalog(db).create(_record())

    assert created["serial"] == "SN001"
    db.add.assert_called_once()
    db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_connection_refused_is_collaborator_unavailable():
    db = _mock_db(OperationalError("INSERT", {}, ConnectionRefusedError("db down")))

    with pytest.raises(CollaboratorUnavailableError):
        await SqlProductCatalog(db).create(_record())
    db.rollback.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_invalidated_connection_is_collaborator_unavailable():
    db = _mock_db(DBAPIError("INSERT", {}, Exception("reset"), connection_invalidated=True))

    with pytest.raises(CollaboratorUnavailableError):
        await SqlProductCatalog(db).create(_record())


@pytest.mark.asyncio
async def test_create_os_error_is_collaborator_unavailable():
    db = _mock_db(OSError("network unreachable"))

    with pytest.raises(CollaboratorUnavailableError):
        await SqlProductCatalog(db).create(_record())


@pytest.mark.asyncio
async def test_create_integrity_error_stays_a_row_failure():
    db = _mock_db(IntegrityError("INSERT", {}, Exception("duplicate key")))

    with pytest.raises(IntegrityError):
        await SqlProductCatalog(db).create(_record())


@pytest.mark.asyncio
async def test_create_failed_rollback_is_collaborator_unavailable():
    db = _mock_db(IntegrityError("INSERT", {}, Exception("duplicate key")))
    db.rollback.side_effect = OSError("connection lost")

    with pytest.raises(CollaboratorUnavailableError):
        await SqlProductCatalog(db).create(_record())


# ─── Commit with a dead database ──────────────────────────────────────────────

@pytest.mark.asyncio
async def test_commit_aborts_when_database_goes_down(base_product):
    rows = [
        {"ean": base_product["ean"], "serial": f"SN00{i}"} for i in range(1, 4)
    ]
    previews = await generate_preview([BulkRow(**r) for r in rows], FakeCatalog([base_product]))
    db = _mock_db(OperationalError("INSERT", {}, ConnectionRefusedError("db down")))

    with pytest.raises(CollaboratorUnavailableError):
        await commit_previews(previews, SqlProductCatalog(db))
    assert db.commit.await_count == 1


@pytest.mark.asyncio
async def test_commit_keeps_going_after_constraint_violation(base_product):
    previews = await generate_preview(
        [BulkRow(ean=base_product["ean"], serial=s) for s in ("SN001", "SN002")],
        FakeCatalog([base_product]),
    )
    db = _mock_db()
    db.commit.side_effect = [IntegrityError("INSERT", {}, Exception("duplicate key")), None]

    result = await commit_previews(previews, SqlProductCatalog(db))

    assert result.success == 1
    assert result.failed == 1
    assert result.errors[0].row == 1
