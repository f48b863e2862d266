from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from catalog.db.base import Base, TimestampMixin, UUIDMixin


class CustomFieldDefinition(Base, UUIDMixin, TimestampMixin):
    """Shared dictionary entry that category custom fields may reference by id."""

    __tablename__ = "custom_field_definitions"

    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column(
        String(50), nullable=False, default="spec"
    )  # basic, spec, price, fiscal, logistics
    field_type: Mapped[str] = mapped_column(String(50), nullable=False, default="text")
    options: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    table_config: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)
    placeholder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
