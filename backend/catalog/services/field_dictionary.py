"""Shared custom-field dictionary and its merge with per-category fields.

A category custom field either carries its own definition inline or points at
a dictionary entry through ``field_id``. Resolution happens once, when the
config is read: a resolvable reference takes the dictionary's identity (key,
name, type, options) and keeps only the category's requirement; anything else
is used as stored.
"""
import logging
from collections.abc import Iterable
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.models.custom_field import CustomFieldDefinition
from catalog.schemas.category import (
    CategoryConfig,
    CategoryOut,
    CustomField,
    CustomFieldDefinitionOut,
)

logger = logging.getLogger(__name__)


class FieldDictionary(Protocol):
    async def list(self) -> list[CustomFieldDefinitionOut]: ...


class SqlFieldDictionary:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list(self) -> list[CustomFieldDefinitionOut]:
        rows = (
            await self.db.execute(
                select(CustomFieldDefinition).order_by(CustomFieldDefinition.display_order.asc())
            )
        ).scalars().all()
        return [CustomFieldDefinitionOut.model_validate(r) for r in rows]


def _as_custom_field(entry: CustomFieldDefinitionOut, cf: CustomField) -> CustomField:
    return CustomField(
        id=cf.id,
        field_id=cf.field_id,
        name=entry.label,
        key=entry.key,
        type=entry.field_type,
        requirement=cf.requirement,
        options=entry.options,
        placeholder=entry.placeholder or cf.placeholder,
        table_config=entry.table_config,
    )


def resolve_custom_fields(
    config: CategoryConfig,
    dictionary: Iterable[CustomFieldDefinitionOut],
) -> CategoryConfig:
    """Return a copy of ``config`` whose custom fields are merged with the dictionary."""
    by_id = {str(entry.id): entry for entry in dictionary}
    resolved: list[CustomField] = []
    for cf in config.custom_fields:
        entry = by_id.get(cf.field_id) if cf.field_id else None
        if cf.field_id and entry is None:
            logger.warning("Custom field %s references unknown dictionary entry %s", cf.key, cf.field_id)
        resolved.append(_as_custom_field(entry, cf) if entry else cf)
    return config.model_copy(update={"custom_fields": resolved})


def collect_known_fields(
    categories: Iterable[CategoryOut],
    dictionary: Iterable[CustomFieldDefinitionOut],
) -> list[CustomFieldDefinitionOut]:
    """All distinct custom fields, dictionary first, then category fields by first occurrence."""
    known: dict[str, CustomFieldDefinitionOut] = {}
    for entry in dictionary:
        known.setdefault(entry.key, entry)
    for category in categories:
        for cf in category.config.custom_fields:
            if cf.key in known:
                continue
            known[cf.key] = CustomFieldDefinitionOut(
                id=cf.field_id or cf.id,
                key=cf.key,
                label=cf.name,
                field_type=cf.type,
                options=cf.options,
                table_config=cf.table_config,
                placeholder=cf.placeholder,
                source="category",
            )
    return list(known.values())
