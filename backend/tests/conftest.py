"""Shared in-memory collaborators for service and API tests."""
import uuid
from datetime import datetime, timezone
from typing import Any

import pytest

from catalog.core.errors import CategoryNotFoundError
from catalog.schemas.category import CategoryConfig, CategoryCreate, CategoryOut, generate_slug


# ─── Fakes ────────────────────────────────────────────────────────────────────

class FakeCategoryStore:
    """CategoryStore kept in a dict; every write stores the config as JSON like the SQL store."""

    def __init__(self):
        self.rows: dict[uuid.UUID, dict[str, Any]] = {}
        self.writes = 0

    def add(self, name: str, config: CategoryConfig | None = None) -> CategoryOut:
        category_id = uuid.uuid4()
        now = datetime.now(timezone.utc)
        self.rows[category_id] = {
            "id": category_id,
            "name": name,
            "slug": generate_slug(name),
            "config": (config or CategoryConfig()).model_dump(mode="json"),
            "created_at": now,
            "updated_at": now,
        }
        return CategoryOut.model_validate(self.rows[category_id])

    async def list(self) -> list[CategoryOut]:
        return [CategoryOut.model_validate(r) for r in self.rows.values()]

    async def get_by_id(self, category_id: uuid.UUID) -> CategoryOut:
        if category_id not in self.rows:
            raise CategoryNotFoundError(category_id)
        return CategoryOut.model_validate(self.rows[category_id])

    async def create(self, data: CategoryCreate) -> CategoryOut:
        created = self.add(data.name, data.config)
        if data.slug:
            self.rows[created.id]["slug"] = data.slug
        return await self.get_by_id(created.id)

    async def update(self, category_id: uuid.UUID, data: CategoryCreate) -> CategoryOut:
        row = self.rows.get(category_id)
        if row is None:
            raise CategoryNotFoundError(category_id)
        row.update(
            name=data.name,
            slug=data.slug or generate_slug(data.name),
            config=data.config.model_dump(mode="json"),
            updated_at=datetime.now(timezone.utc),
        )
        self.writes += 1
        return CategoryOut.model_validate(row)

    async def remove(self, category_id: uuid.UUID) -> None:
        if self.rows.pop(category_id, None) is None:
            raise CategoryNotFoundError(category_id)


class FakeCatalog:
    """ProductCatalog backed by a list of records.

    ``fail_on`` holds 1-based create call numbers that raise ``error``.
    """

    def __init__(self, records: list[dict[str, Any]] | None = None, fail_on=(), error: Exception | None = None):
        self.records = list(records or [])
        self.fail_on = set(fail_on)
        self.error = error or RuntimeError("insert failed")
        self.searches: list[str] = []
        self.created: list[dict[str, Any]] = []
        self.calls = 0

    async def search_by_code(self, code: str) -> list[dict[str, Any]]:
        self.searches.append(code)
        return [dict(r) for r in self.records if r.get("ean") == code]

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        self.calls += 1
        if self.calls in self.fail_on:
            raise self.error
        created = {**record, "id": str(uuid.uuid4())}
        self.created.append(created)
        return created


class FakeDictionary:
    def __init__(self, entries=None):
        self.entries = list(entries or [])

    async def list(self):
        return list(self.entries)


# ─── Fixtures ─────────────────────────────────────────────────────────────────

@pytest.fixture
def category_store() -> FakeCategoryStore:
    return FakeCategoryStore()


@pytest.fixture
def base_product() -> dict[str, Any]:
    return {
        "id": str(uuid.uuid4()),
        "category_id": None,
        "name": "Redmi Note 14",
        "brand": "Xiaomi",
        "model": "Redmi Note 14",
        "ean": "7891234567890",
        "serial": "BASESERIAL",
        "imei1": None,
        "imei2": None,
        "condition": "new",
        "specs": {"ram": "6GB", "storage": "256GB", "color": "Preto"},
    }
