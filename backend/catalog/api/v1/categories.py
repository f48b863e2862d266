"""Category API endpoints — CRUD, field governance editing, unit validation, naming."""
import logging
import uuid

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel

from catalog.core.deps import CategoryStoreDep, FieldDictionaryDep, ProductCatalogDep
from catalog.rules.unit_schema import build_unit_validator
from catalog.schemas.category import (
    CategoryCreate,
    CategoryOut,
    CategoryUpdate,
    CustomFieldCreate,
    CustomFieldDefinitionOut,
    EanAutofillConfig,
    FieldRequirement,
)
from catalog.schemas.naming import NamePreviewRequest, NamePreviewResponse, NamingOptions
from catalog.schemas.unit import UnitValidationContext, UnitValidationRequest, UnitValidationResult
from catalog.services import governance
from catalog.services.field_dictionary import collect_known_fields, resolve_custom_fields
from catalog.services.name_generator import (
    available_placeholders,
    preview_name,
    template_presets,
)

logger = logging.getLogger(__name__)

router = APIRouter()
fields_router = APIRouter()


class RequirementUpdate(BaseModel):
    requirement: FieldRequirement


class AutoNameUpdate(BaseModel):
    enabled: bool
    template: str | None = None


class AutofillRequest(BaseModel):
    ean: str


# ─── CRUD ───

@router.get("", response_model=list[CategoryOut], summary="List categories")
async def list_categories(store: CategoryStoreDep):
    return await store.list()


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED, summary="Create a category")
async def create_category(body: CategoryCreate, store: CategoryStoreDep):
    return await store.create(body)


@router.get("/naming-options", response_model=NamingOptions, summary="Name template placeholders and presets")
async def naming_options():
    return NamingOptions(placeholders=available_placeholders(), presets=template_presets())


@router.get("/{category_id}", response_model=CategoryOut, summary="Get a category with its field config")
async def get_category(category_id: uuid.UUID, store: CategoryStoreDep):
    return await store.get_by_id(category_id)


@router.put("/{category_id}", response_model=CategoryOut, summary="Replace a category and its field config")
async def update_category(category_id: uuid.UUID, body: CategoryUpdate, store: CategoryStoreDep):
    return await store.update(category_id, body)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a category")
async def delete_category(category_id: uuid.UUID, store: CategoryStoreDep):
    await store.remove(category_id)


# ─── Field governance ───

@router.post(
    "/{category_id}/custom-fields",
    response_model=CategoryOut,
    status_code=status.HTTP_201_CREATED,
    summary="Add a custom field (reuses a shared definition with the same key)",
)
async def add_custom_field(
    category_id: uuid.UUID,
    body: CustomFieldCreate,
    store: CategoryStoreDep,
    dictionary: FieldDictionaryDep,
):
    return await governance.add_custom_field(store, category_id, body, await dictionary.list())


@router.put("/{category_id}/custom-fields/{field_id}", response_model=CategoryOut, summary="Edit a custom field")
async def update_custom_field(
    category_id: uuid.UUID,
    field_id: str,
    body: CustomFieldCreate,
    store: CategoryStoreDep,
):
    try:
        return await governance.update_custom_field(store, category_id, field_id, body)
    except KeyError:
        raise HTTPException(status_code=404, detail="Custom field not found.")


@router.delete("/{category_id}/custom-fields/{field_id}", response_model=CategoryOut, summary="Remove a custom field")
async def remove_custom_field(category_id: uuid.UUID, field_id: str, store: CategoryStoreDep):
    return await governance.remove_custom_field(store, category_id, field_id)


@router.put("/{category_id}/fields/{field_name}", response_model=CategoryOut, summary="Set a field requirement")
async def set_field_requirement(
    category_id: uuid.UUID,
    field_name: str,
    body: RequirementUpdate,
    store: CategoryStoreDep,
):
    try:
        return await governance.set_field_requirement(store, category_id, field_name, body.requirement)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Field '{field_name}' not found.")


@router.put("/{category_id}/auto-name", response_model=CategoryOut, summary="Configure automatic naming")
async def set_auto_name(category_id: uuid.UUID, body: AutoNameUpdate, store: CategoryStoreDep):
    return await governance.set_auto_name(store, category_id, body.enabled, body.template)


@router.put("/{category_id}/ean-autofill", response_model=CategoryOut, summary="Configure EAN autofill")
async def set_ean_autofill(category_id: uuid.UUID, body: EanAutofillConfig, store: CategoryStoreDep):
    return await governance.set_ean_autofill(store, category_id, body)


@router.post("/{category_id}/ean-autofill", summary="Values to prefill from a product already registered with this EAN")
async def ean_autofill(
    category_id: uuid.UUID,
    body: AutofillRequest,
    store: CategoryStoreDep,
    catalog: ProductCatalogDep,
):
    category = await store.get_by_id(category_id)
    matches = await catalog.search_by_code(body.ean.strip())
    if not matches:
        return {"found": False, "fields": {}}
    return {"found": True, "fields": governance.autofill_fields(category.config, matches[0])}


# ─── Unit validation & naming ───

@router.post(
    "/{category_id}/units/validate",
    response_model=UnitValidationResult,
    summary="Validate a serialized unit against the category's field rules",
)
async def validate_unit(
    category_id: uuid.UUID,
    body: UnitValidationRequest,
    store: CategoryStoreDep,
    dictionary: FieldDictionaryDep,
):
    category = await store.get_by_id(category_id)
    config = resolve_custom_fields(category.config, await dictionary.list())
    validator = build_unit_validator(config, UnitValidationContext(condition=body.condition))
    return validator.validate(body.unit)


@router.post("/{category_id}/name-preview", response_model=NamePreviewResponse, summary="Preview the generated name")
async def name_preview(category_id: uuid.UUID, body: NamePreviewRequest, store: CategoryStoreDep):
    category = await store.get_by_id(category_id)
    config = category.config
    if body.template is not None:
        config = config.model_copy(update={"auto_name_enabled": True, "auto_name_template": body.template})
    return NamePreviewResponse(name=preview_name(config, body.data), template=config.auto_name_template)


# ─── Custom-field dictionary ───

@fields_router.get("", response_model=list[CustomFieldDefinitionOut], summary="All known custom fields, unique by key")
async def list_custom_fields(store: CategoryStoreDep, dictionary: FieldDictionaryDep):
    return collect_known_fields(await store.list(), await dictionary.list())
