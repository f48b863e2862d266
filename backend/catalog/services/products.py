"""Catalog lookup collaborator — base-record search by EAN and unit creation."""
import logging
import uuid
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.core.errors import CollaboratorUnavailableError
from catalog.models.product import Product

logger = logging.getLogger(__name__)

_COLUMNS = (
    "category_id",
    "name",
    "brand",
    "model",
    "sku",
    "ean",
    "serial",
    "imei1",
    "imei2",
    "condition",
    "description",
)


class ProductCatalog(Protocol):
    async def search_by_code(self, code: str) -> list[dict[str, Any]]: ...

    async def create(self, record: dict[str, Any]) -> dict[str, Any]: ...


def product_to_record(product: Product) -> dict[str, Any]:
    record: dict[str, Any] = {"id": str(product.id)}
    for col in _COLUMNS:
        value = getattr(product, col)
        record[col] = str(value) if isinstance(value, uuid.UUID) else value
    record["specs"] = dict(product.specs or {})
    return record


def _is_connection_error(exc: BaseException) -> bool:
    """True when the database itself is unreachable, not when one row is rejected."""
    if isinstance(exc, (OperationalError, InterfaceError, OSError)):
        return True
    return isinstance(exc, DBAPIError) and exc.connection_invalidated


class SqlProductCatalog:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def search_by_code(self, code: str) -> list[dict[str, Any]]:
        try:
            rows = (
                await self.db.execute(
                    select(Product)
                    .where(Product.ean == code, Product.deleted_at.is_(None))
                    .order_by(Product.created_at.asc())
                )
            ).scalars().all()
        except (SQLAlchemyError, OSError) as exc:
            raise CollaboratorUnavailableError(f"Catalog lookup failed: {exc}") from exc
        return [product_to_record(p) for p in rows]

    async def create(self, record: dict[str, Any]) -> dict[str, Any]:
        if not record.get("name"):
            raise ValueError("Product name is required")
        values = {col: record.get(col) for col in _COLUMNS if record.get(col) is not None}
        if "category_id" in values:
            values["category_id"] = uuid.UUID(str(values["category_id"]))
        product = Product(**values, specs=dict(record.get("specs") or {}))
        try:
            self.db.add(product)
            await self.db.commit()
            await self.db.refresh(product)
        except (SQLAlchemyError, OSError) as exc:
            try:
                await self.db.rollback()
            except (SQLAlchemyError, OSError) as rollback_exc:
                raise CollaboratorUnavailableError(f"Catalog rollback failed: {rollback_exc}") from exc
            if _is_connection_error(exc):
                raise CollaboratorUnavailableError(f"Catalog write failed: {exc}") from exc
            raise
        return product_to_record(product)
