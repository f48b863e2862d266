import uuid
from typing import Any

from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from catalog.db.base import Base, SoftDeleteMixin, TimestampMixin, UUIDMixin


class Product(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """Catalog entry. Serialized units share ``ean`` and differ by serial/IMEI."""

    __tablename__ = "products"

    category_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("categories.id"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(500), nullable=False)
    brand: Mapped[str | None] = mapped_column(String(255), nullable=True)
    model: Mapped[str | None] = mapped_column(String(255), nullable=True)
    sku: Mapped[str | None] = mapped_column(String(100), nullable=True)
    ean: Mapped[str | None] = mapped_column(String(13), nullable=True, index=True)
    serial: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    imei1: Mapped[str | None] = mapped_column(String(15), nullable=True, index=True)
    imei2: Mapped[str | None] = mapped_column(String(15), nullable=True)
    condition: Mapped[str] = mapped_column(
        String(20), nullable=False, default="new"
    )  # new, used, open_box
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    specs: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)
