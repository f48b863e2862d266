"""Category persistence — stores each category with its governance config as JSON.

The config is opaque to the store: it is dumped from and validated back into
CategoryConfig on the way in and out, so callers always see a fully populated
config.
"""
import logging
import uuid
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.core.errors import CategoryNotFoundError
from catalog.models.category import Category
from catalog.schemas.category import CategoryCreate, CategoryOut, generate_slug

logger = logging.getLogger(__name__)


class CategoryStore(Protocol):
    async def list(self) -> list[CategoryOut]: ...

    async def get_by_id(self, category_id: uuid.UUID) -> CategoryOut: ...

    async def create(self, data: CategoryCreate) -> CategoryOut: ...

    async def update(self, category_id: uuid.UUID, data: CategoryCreate) -> CategoryOut: ...

    async def remove(self, category_id: uuid.UUID) -> None: ...


class SqlCategoryStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def _load(self, category_id: uuid.UUID) -> Category:
        category = (
            await self.db.execute(select(Category).where(Category.id == category_id))
        ).scalar_one_or_none()
        if category is None:
            raise CategoryNotFoundError(category_id)
        return category

    async def list(self) -> list[CategoryOut]:
        rows = (await self.db.execute(select(Category).order_by(Category.name.asc()))).scalars().all()
        return [CategoryOut.model_validate(c) for c in rows]

    async def get_by_id(self, category_id: uuid.UUID) -> CategoryOut:
        return CategoryOut.model_validate(await self._load(category_id))

    async def create(self, data: CategoryCreate) -> CategoryOut:
        category = Category(
            name=data.name,
            slug=data.slug or generate_slug(data.name),
            config=data.config.model_dump(mode="json"),
        )
        self.db.add(category)
        await self.db.flush()
        await self.db.commit()
        await self.db.refresh(category)
        logger.info("Category created: %s (%s)", category.name, category.id)
        return CategoryOut.model_validate(category)

    async def update(self, category_id: uuid.UUID, data: CategoryCreate) -> CategoryOut:
        # Whole-config write: last writer wins.
        category = await self._load(category_id)
        category.name = data.name
        category.slug = data.slug or generate_slug(data.name)
        category.config = data.config.model_dump(mode="json")
        self.db.add(category)
        await self.db.commit()
        await self.db.refresh(category)
        logger.info("Category updated: %s (%s)", category.name, category.id)
        return CategoryOut.model_validate(category)

    async def remove(self, category_id: uuid.UUID) -> None:
        category = await self._load(category_id)
        await self.db.delete(category)
        await self.db.commit()
        logger.info("Category deleted: %s", category_id)
