"""Seed script — creates the default categories and a sample base product for dev."""
import asyncio

from sqlalchemy import select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from catalog.core.config import settings
from catalog.models.category import Category
from catalog.models.product import Product
from catalog.schemas.category import CategoryConfig

DEFAULT_CATEGORIES = [
    (
        "Celulares",
        "phones",
        CategoryConfig(
            imei1="required",
            serial="optional",
            color="required",
            storage="required",
            ram="required",
            battery_health="required",
            auto_name_enabled=True,
            auto_name_template="{modelo}, {ram}/{armazenamento} - {versao}",
        ),
    ),
    (
        "Tablets",
        "tablets",
        CategoryConfig(
            imei2="off",
            serial="required",
            color="required",
            storage="required",
            battery_health="required",
        ),
    ),
    (
        "Acessórios",
        "accessories",
        CategoryConfig(
            imei1="off",
            imei2="off",
            serial="off",
            storage="off",
            ram="off",
            version="off",
            battery_health="off",
        ),
    ),
]


async def seed():
    engine = create_async_engine(settings.DATABASE_URL, echo=True)
    SessionLocal = async_sessionmaker(engine, expire_on_commit=False)

    async with SessionLocal() as db:
        existing = set((await db.execute(select(Category.slug))).scalars().all())
        created: dict[str, Category] = {}
        for name, slug, config in DEFAULT_CATEGORIES:
            if slug in existing:
                continue
            category = Category(name=name, slug=slug, config=config.model_dump(mode="json"))
            db.add(category)
            created[slug] = category
        await db.flush()

        phones = created.get("phones")
        if phones is not None:
            db.add(
                Product(
                    category_id=phones.id,
                    name="Redmi Note 14, 6GB/256GB",
                    brand="Xiaomi",
                    model="Redmi Note 14",
                    ean="7891234567890",
                    specs={"ram": "6GB", "storage": "256GB", "color": "Preto"},
                )
            )

        await db.commit()
        print(f"Seed complete: {len(created)} categories created.")

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())
