"""Category governance editor — read-modify-write operations on CategoryConfig.

Every operation loads the full category from the store, changes an in-memory
copy of its config and writes the whole config back. There is no field-level
patch and no optimistic concurrency check: the last writer wins.
"""
import logging
import uuid
from collections.abc import Callable, Iterable
from typing import Any

from catalog.core.errors import CustomFieldKeyConflict
from catalog.schemas.category import (
    AUTOFILL_TOP_LEVEL_FIELDS,
    RESERVED_FIELD_KEYS,
    WELL_KNOWN_FIELDS,
    CategoryConfig,
    CategoryCreate,
    CategoryOut,
    CustomField,
    CustomFieldCreate,
    CustomFieldDefinitionOut,
    EanAutofillConfig,
    FieldRequirement,
    generate_field_key,
    new_custom_field_id,
)
from catalog.services.categories import CategoryStore

logger = logging.getLogger(__name__)


async def _rewrite(
    store: CategoryStore,
    category_id: uuid.UUID,
    mutate: Callable[[dict[str, Any]], None],
) -> CategoryOut:
    category = await store.get_by_id(category_id)
    raw = category.config.model_dump(mode="json")
    mutate(raw)
    # Re-validating enforces the config invariants on the edited copy.
    config = CategoryConfig.model_validate(raw)
    return await store.update(
        category_id,
        CategoryCreate(name=category.name, slug=category.slug, config=config),
    )


# ─── Custom fields ───

def find_shared_field(
    key: str,
    categories: Iterable[CategoryOut],
    dictionary: Iterable[CustomFieldDefinitionOut] = (),
) -> CustomField | None:
    """Look up an existing custom field with ``key`` in the dictionary or any category."""
    for entry in dictionary:
        if entry.key == key:
            return CustomField(
                name=entry.label,
                key=entry.key,
                type=entry.field_type,
                options=entry.options,
                placeholder=entry.placeholder,
                table_config=entry.table_config,
                field_id=str(entry.id) if entry.source == "dictionary" else None,
            )
    for category in categories:
        cf = category.config.custom_field(key)
        if cf is not None:
            return cf
    return None


async def add_custom_field(
    store: CategoryStore,
    category_id: uuid.UUID,
    data: CustomFieldCreate,
    dictionary: Iterable[CustomFieldDefinitionOut] = (),
) -> CategoryOut:
    """Add a custom field to a category.

    Raises CustomFieldKeyConflict when the generated key is already used in the
    category. When another category or the dictionary already defines the key,
    that definition is reused so both categories share one field.
    """
    key = generate_field_key(data.name)
    category = await store.get_by_id(category_id)

    existing = category.config.custom_field(key)
    if existing is not None or key in RESERVED_FIELD_KEYS:
        logger.info("Custom field key collision in category %s: %s", category_id, key)
        raise CustomFieldKeyConflict(key, existing)

    shared = None
    if data.reuse_existing:
        others = [c for c in await store.list() if c.id != category_id]
        shared = find_shared_field(key, others, dictionary)

    if shared is not None:
        logger.info("Reusing shared custom field '%s' in category %s", key, category_id)
        new_field = shared.model_copy(
            update={"id": new_custom_field_id(), "requirement": data.requirement}
        )
    else:
        new_field = CustomField(
            name=data.name.strip(),
            key=key,
            type=data.type,
            requirement=data.requirement,
            options=data.options,
            placeholder=data.placeholder,
            table_config=data.table_config,
        )

    def mutate(raw: dict[str, Any]) -> None:
        raw["custom_fields"].append(new_field.model_dump(mode="json"))

    return await _rewrite(store, category_id, mutate)


async def update_custom_field(
    store: CategoryStore,
    category_id: uuid.UUID,
    field_id: str,
    data: CustomFieldCreate,
) -> CategoryOut:
    """Rename or retype a custom field; its key follows the new display name.

    Raises CustomFieldKeyConflict when the new key belongs to another field of
    the category. Autofill exclusions follow the renamed key.
    """
    key = generate_field_key(data.name)
    category = await store.get_by_id(category_id)

    existing = category.config.custom_field(key)
    if (existing is not None and existing.id != field_id) or key in RESERVED_FIELD_KEYS:
        logger.info("Custom field key collision in category %s: %s", category_id, key)
        raise CustomFieldKeyConflict(key, existing)

    def mutate(raw: dict[str, Any]) -> None:
        for cf in raw["custom_fields"]:
            if cf["id"] == field_id:
                old_key = cf["key"]
                if old_key != key:
                    renamed = {old_key: key, f"specs.{old_key}": f"specs.{key}"}
                    autofill = raw["ean_autofill_config"]
                    autofill["exclude_fields"] = [renamed.get(f, f) for f in autofill["exclude_fields"]]
                cf.update(
                    name=data.name.strip(),
                    key=key,
                    type=data.type.value,
                    requirement=data.requirement.value,
                    options=data.options,
                    placeholder=data.placeholder,
                    table_config=data.table_config.model_dump() if data.table_config else None,
                )
                return
        raise KeyError(field_id)

    return await _rewrite(store, category_id, mutate)


async def remove_custom_field(store: CategoryStore, category_id: uuid.UUID, field_id: str) -> CategoryOut:
    def mutate(raw: dict[str, Any]) -> None:
        removed = [cf["key"] for cf in raw["custom_fields"] if cf["id"] == field_id]
        raw["custom_fields"] = [cf for cf in raw["custom_fields"] if cf["id"] != field_id]
        # Drop exclusions that pointed at the removed field.
        stale = set(removed) | {f"specs.{k}" for k in removed}
        autofill = raw["ean_autofill_config"]
        autofill["exclude_fields"] = [f for f in autofill["exclude_fields"] if f not in stale]

    return await _rewrite(store, category_id, mutate)


# ─── Well-known fields, naming, autofill ───

async def set_field_requirement(
    store: CategoryStore,
    category_id: uuid.UUID,
    field_name: str,
    requirement: FieldRequirement,
) -> CategoryOut:
    def mutate(raw: dict[str, Any]) -> None:
        if field_name in WELL_KNOWN_FIELDS:
            raw[field_name] = requirement.value
            return
        for cf in raw["custom_fields"]:
            if cf["key"] == field_name:
                cf["requirement"] = requirement.value
                return
        raise KeyError(field_name)

    return await _rewrite(store, category_id, mutate)


async def set_auto_name(
    store: CategoryStore,
    category_id: uuid.UUID,
    enabled: bool,
    template: str | None = None,
) -> CategoryOut:
    def mutate(raw: dict[str, Any]) -> None:
        raw["auto_name_enabled"] = enabled
        if template is not None:
            raw["auto_name_template"] = template

    return await _rewrite(store, category_id, mutate)


async def set_ean_autofill(
    store: CategoryStore,
    category_id: uuid.UUID,
    autofill: EanAutofillConfig,
) -> CategoryOut:
    def mutate(raw: dict[str, Any]) -> None:
        raw["ean_autofill_config"] = autofill.model_dump()

    return await _rewrite(store, category_id, mutate)


def autofill_fields(config: CategoryConfig, found: dict[str, Any]) -> dict[str, Any]:
    """Values to copy from a previously registered record with the same EAN.

    Keys are field paths: top-level names as-is, spec values as ``specs.<key>``.
    Identifier fields are never copied. An exclusion matches either the exact
    path or the bare spec key.
    """
    autofill = config.ean_autofill_config
    if not autofill.enabled:
        return {}
    excluded = set(autofill.exclude_fields)

    filled: dict[str, Any] = {}
    for name in AUTOFILL_TOP_LEVEL_FIELDS:
        value = found.get(name)
        if name not in excluded and value not in (None, "", []):
            filled[name] = value

    for key, value in (found.get("specs") or {}).items():
        if key in ("imei1", "imei2", "serial") or value in (None, ""):
            continue
        path = f"specs.{key}"
        if path in excluded or key in excluded:
            continue
        filled[path] = value

    logger.debug("EAN autofill: %d field(s) filled, %d excluded", len(filled), len(excluded))
    return filled
