"""Tests for the field governance model and the category governance editor.

Covers key generation, stored-config normalization and invariants, the
shared custom-field dictionary merge, editor read-modify-write operations
and EAN autofill.
"""
import uuid

import pytest
from pydantic import ValidationError

from catalog.core.errors import CategoryNotFoundError, CustomFieldKeyConflict
from catalog.schemas.category import (
    CategoryConfig,
    CustomField,
    CustomFieldCreate,
    CustomFieldDefinitionOut,
    CustomFieldType,
    EanAutofillConfig,
    FieldRequirement,
    WELL_KNOWN_FIELDS,
    generate_field_key,
    generate_slug,
)
from catalog.services import governance
from catalog.services.field_dictionary import collect_known_fields, resolve_custom_fields


# ─── Key generation ───────────────────────────────────────────────────────────

def test_generate_field_key_folds_accents_and_separators():
    assert generate_field_key("Garantia Estendida") == "garantia_estendida"
    assert generate_field_key("Número do Lote") == "numero_do_lote"
    assert generate_field_key("  Cor / Acabamento  ") == "cor_acabamento"


def test_generate_field_key_is_idempotent():
    """Regenerating from a name or from its own key yields the same key."""
    key = generate_field_key("Peso Líquido (kg)")
    assert key == "peso_liquido_kg"
    assert generate_field_key("Peso Líquido (kg)") == key
    assert generate_field_key(key) == key


def test_generate_slug_uses_hyphens():
    assert generate_slug("Acessórios Premium") == "acessorios-premium"


def test_custom_field_key_derived_from_name():
    cf = CustomField(name="Garantia Estendida")
    assert cf.key == "garantia_estendida"
    assert cf.id.startswith("custom-")


def test_custom_field_name_without_usable_key_rejected():
    with pytest.raises(ValidationError):
        CustomField(name="!!!")


# ─── Config normalization ─────────────────────────────────────────────────────

def test_empty_config_is_fully_populated_with_optional():
    config = CategoryConfig.model_validate({})
    for name in WELL_KNOWN_FIELDS:
        assert config.requirement_for(name) == FieldRequirement.optional
    assert config.custom_fields == []
    assert config.ean_autofill_config.enabled is True
    assert config.auto_name_enabled is False


def test_null_values_in_stored_config_fall_back_to_defaults():
    config = CategoryConfig.model_validate({"color": None, "custom_fields": None, "ram": "required"})
    assert config.color == FieldRequirement.optional
    assert config.ram == FieldRequirement.required
    assert config.custom_fields == []


def test_legacy_imei_key_maps_to_both_identifiers():
    config = CategoryConfig.model_validate({"imei": "required"})
    assert config.imei1 == FieldRequirement.required
    assert config.imei2 == FieldRequirement.required


def test_legacy_imei_key_does_not_override_explicit_identifier():
    config = CategoryConfig.model_validate({"imei": "required", "imei2": "off"})
    assert config.imei1 == FieldRequirement.required
    assert config.imei2 == FieldRequirement.off


def test_unknown_requirement_value_rejected():
    with pytest.raises(ValidationError):
        CategoryConfig.model_validate({"serial": "mandatory"})


def test_duplicate_custom_field_keys_rejected():
    with pytest.raises(ValidationError):
        CategoryConfig(custom_fields=[CustomField(name="Garantia"), CustomField(name="garantia")])


def test_custom_field_cannot_shadow_well_known_field():
    with pytest.raises(ValidationError):
        CategoryConfig(custom_fields=[CustomField(name="Color")])


@pytest.mark.parametrize("name", ["Status", "Condition", "Product ID", "Cost Price"])
def test_custom_field_cannot_shadow_fixed_unit_field(name):
    with pytest.raises(ValidationError):
        CategoryConfig(custom_fields=[CustomField(name=name)])


def test_exclude_fields_accept_bare_and_dotted_names():
    config = CategoryConfig(
        custom_fields=[CustomField(name="Garantia")],
        ean_autofill_config=EanAutofillConfig(
            exclude_fields=["brand", "color", "specs.color", "garantia", "specs.garantia"]
        ),
    )
    assert "specs.garantia" in config.ean_autofill_config.exclude_fields


def test_exclude_fields_reject_unknown_path():
    with pytest.raises(ValidationError):
        CategoryConfig(ean_autofill_config=EanAutofillConfig(exclude_fields=["specs.nope"]))


def test_requirement_for_custom_and_unknown_fields():
    config = CategoryConfig(
        custom_fields=[CustomField(name="Garantia", requirement=FieldRequirement.required)]
    )
    assert config.requirement_for("garantia") == FieldRequirement.required
    assert config.requirement_for("does_not_exist") == FieldRequirement.off


def test_dictionary_type_aliases_mapped():
    entry = CustomFieldDefinitionOut(id="d1", key="voltagem", label="Voltagem", field_type="select")
    assert entry.field_type == CustomFieldType.dropdown


# ─── Dictionary merge ─────────────────────────────────────────────────────────

def _dictionary_entry(**kwargs) -> CustomFieldDefinitionOut:
    data = {"id": "dict-1", "key": "voltagem", "label": "Voltagem", "field_type": "dropdown",
            "options": ["110V", "220V", "Bivolt"]}
    data.update(kwargs)
    return CustomFieldDefinitionOut(**data)


def test_dictionary_reference_wins_identity_but_keeps_requirement():
    """A resolvable field_id takes name, key, type and options from the dictionary."""
    config = CategoryConfig(custom_fields=[
        CustomField(name="Tensão", type=CustomFieldType.text,
                    requirement=FieldRequirement.required, field_id="dict-1"),
    ])
    resolved = resolve_custom_fields(config, [_dictionary_entry()])
    cf = resolved.custom_fields[0]
    assert cf.key == "voltagem"
    assert cf.name == "Voltagem"
    assert cf.type == CustomFieldType.dropdown
    assert cf.options == ["110V", "220V", "Bivolt"]
    assert cf.requirement == FieldRequirement.required
    # The stored config is untouched
    assert config.custom_fields[0].key == "tensao"


def test_unresolvable_dictionary_reference_uses_inline_field():
    config = CategoryConfig(custom_fields=[CustomField(name="Tensão", field_id="gone")])
    resolved = resolve_custom_fields(config, [_dictionary_entry()])
    assert resolved.custom_fields[0].key == "tensao"


@pytest.mark.asyncio
async def test_collect_known_fields_unique_by_key(category_store):
    category_store.add("Celulares", CategoryConfig(custom_fields=[
        CustomField(name="Voltagem"), CustomField(name="Garantia"),
    ]))
    category_store.add("Tablets", CategoryConfig(custom_fields=[CustomField(name="Garantia")]))

    known = collect_known_fields(await category_store.list(), [_dictionary_entry()])

    assert [f.key for f in known] == ["voltagem", "garantia"]
    assert known[0].source == "dictionary"
    assert known[1].source == "category"


# ─── Editor operations ────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_add_custom_field_creates_new_definition(category_store):
    category = category_store.add("Celulares")

    updated = await governance.add_custom_field(
        category_store, category.id,
        CustomFieldCreate(name="Garantia Estendida", requirement=FieldRequirement.required),
    )

    cf = updated.config.custom_field("garantia_estendida")
    assert cf is not None
    assert cf.requirement == FieldRequirement.required
    assert category_store.writes == 1


@pytest.mark.asyncio
async def test_add_custom_field_key_collision_raises_with_existing(category_store):
    """Adding 'garantia' twice to one category is a conflict carrying the existing field."""
    category = category_store.add("Celulares", CategoryConfig(custom_fields=[CustomField(name="Garantia")]))

    with pytest.raises(CustomFieldKeyConflict) as exc_info:
        await governance.add_custom_field(category_store, category.id, CustomFieldCreate(name="GARANTIA"))

    assert exc_info.value.key == "garantia"
    assert exc_info.value.existing.name == "Garantia"
    assert category_store.writes == 0


@pytest.mark.asyncio
async def test_add_custom_field_reuses_definition_from_other_category(category_store):
    category_store.add("Tablets", CategoryConfig(custom_fields=[
        CustomField(name="Voltagem", type=CustomFieldType.dropdown, options=["110V", "220V"]),
    ]))
    target = category_store.add("Acessórios")

    updated = await governance.add_custom_field(
        category_store, target.id,
        CustomFieldCreate(name="voltagem", type=CustomFieldType.text, requirement=FieldRequirement.required),
    )

    cf = updated.config.custom_field("voltagem")
    assert cf.type == CustomFieldType.dropdown
    assert cf.options == ["110V", "220V"]
    assert cf.requirement == FieldRequirement.required


@pytest.mark.asyncio
async def test_add_custom_field_reuses_dictionary_entry(category_store):
    target = category_store.add("Acessórios")

    updated = await governance.add_custom_field(
        category_store, target.id, CustomFieldCreate(name="Voltagem"), [_dictionary_entry()],
    )

    cf = updated.config.custom_field("voltagem")
    assert cf.field_id == "dict-1"
    assert cf.type == CustomFieldType.dropdown


@pytest.mark.asyncio
async def test_add_custom_field_unknown_category(category_store):
    with pytest.raises(CategoryNotFoundError):
        await governance.add_custom_field(category_store, uuid.uuid4(), CustomFieldCreate(name="X"))


@pytest.mark.asyncio
async def test_update_custom_field_renames_key(category_store):
    cf = CustomField(name="Garantia")
    category = category_store.add("Celulares", CategoryConfig(custom_fields=[cf]))

    updated = await governance.update_custom_field(
        category_store, category.id, cf.id,
        CustomFieldCreate(name="Garantia Loja", type=CustomFieldType.number),
    )

    assert updated.config.custom_field("garantia") is None
    assert updated.config.custom_field("garantia_loja").type == CustomFieldType.number


@pytest.mark.asyncio
async def test_update_missing_custom_field_raises_key_error(category_store):
    category = category_store.add("Celulares")
    with pytest.raises(KeyError):
        await governance.update_custom_field(category_store, category.id, "custom-x", CustomFieldCreate(name="X"))


@pytest.mark.asyncio
async def test_update_custom_field_rewrites_exclusions_for_new_key(category_store):
    cf = CustomField(name="Garantia")
    category = category_store.add("Celulares", CategoryConfig(
        custom_fields=[cf],
        ean_autofill_config=EanAutofillConfig(exclude_fields=["specs.garantia", "garantia", "brand"]),
    ))

    updated = await governance.update_custom_field(
        category_store, category.id, cf.id, CustomFieldCreate(name="Garantia Estendida"),
    )

    assert updated.config.ean_autofill_config.exclude_fields == [
        "specs.garantia_estendida", "garantia_estendida", "brand",
    ]


@pytest.mark.asyncio
async def test_update_custom_field_onto_other_key_raises_conflict(category_store):
    garantia, lote = CustomField(name="Garantia"), CustomField(name="Lote")
    category = category_store.add("Celulares", CategoryConfig(custom_fields=[garantia, lote]))
    writes = category_store.writes

    with pytest.raises(CustomFieldKeyConflict) as exc_info:
        await governance.update_custom_field(
            category_store, category.id, lote.id, CustomFieldCreate(name="Garantia"),
        )

    assert exc_info.value.key == "garantia"
    assert exc_info.value.existing.id == garantia.id
    assert category_store.writes == writes


@pytest.mark.asyncio
async def test_update_custom_field_keeping_its_own_key(category_store):
    cf = CustomField(name="Garantia")
    category = category_store.add("Celulares", CategoryConfig(custom_fields=[cf]))

    updated = await governance.update_custom_field(
        category_store, category.id, cf.id,
        CustomFieldCreate(name="garantia", requirement=FieldRequirement.required),
    )

    assert updated.config.custom_field("garantia").requirement == FieldRequirement.required


@pytest.mark.asyncio
async def test_add_custom_field_with_fixed_unit_key_raises_conflict(category_store):
    category = category_store.add("Celulares")
    with pytest.raises(CustomFieldKeyConflict) as exc_info:
        await governance.add_custom_field(category_store, category.id, CustomFieldCreate(name="Status"))
    assert exc_info.value.key == "status"
    assert exc_info.value.existing is None


@pytest.mark.asyncio
async def test_remove_custom_field_drops_stale_exclusions(category_store):
    cf = CustomField(name="Garantia")
    category = category_store.add("Celulares", CategoryConfig(
        custom_fields=[cf],
        ean_autofill_config=EanAutofillConfig(exclude_fields=["specs.garantia", "brand"]),
    ))

    updated = await governance.remove_custom_field(category_store, category.id, cf.id)

    assert updated.config.custom_fields == []
    assert updated.config.ean_autofill_config.exclude_fields == ["brand"]


@pytest.mark.asyncio
async def test_set_field_requirement_for_well_known_and_custom(category_store):
    category = category_store.add("Celulares", CategoryConfig(custom_fields=[CustomField(name="Garantia")]))

    await governance.set_field_requirement(category_store, category.id, "battery_health", FieldRequirement.required)
    updated = await governance.set_field_requirement(category_store, category.id, "garantia", FieldRequirement.off)

    assert updated.config.battery_health == FieldRequirement.required
    assert updated.config.requirement_for("garantia") == FieldRequirement.off


@pytest.mark.asyncio
async def test_set_field_requirement_unknown_field(category_store):
    category = category_store.add("Celulares")
    with pytest.raises(KeyError):
        await governance.set_field_requirement(category_store, category.id, "nope", FieldRequirement.off)


@pytest.mark.asyncio
async def test_set_auto_name_keeps_template_when_only_toggling(category_store):
    category = category_store.add("Celulares")

    await governance.set_auto_name(category_store, category.id, True, "{modelo} {cor}")
    updated = await governance.set_auto_name(category_store, category.id, False)

    assert updated.config.auto_name_enabled is False
    assert updated.config.auto_name_template == "{modelo} {cor}"


@pytest.mark.asyncio
async def test_set_ean_autofill_rejects_unknown_exclusion(category_store):
    category = category_store.add("Celulares")
    with pytest.raises(ValidationError):
        await governance.set_ean_autofill(
            category_store, category.id, EanAutofillConfig(exclude_fields=["specs.unknown"]),
        )


# ─── EAN autofill ─────────────────────────────────────────────────────────────

def test_autofill_copies_shared_fields_and_skips_identifiers(base_product):
    base_product["specs"]["imei1"] = "123456789012345"
    filled = governance.autofill_fields(CategoryConfig(), base_product)

    assert filled["brand"] == "Xiaomi"
    assert filled["specs.ram"] == "6GB"
    assert "specs.imei1" not in filled
    assert "serial" not in filled
    assert "ean" not in filled


def test_autofill_honours_bare_and_dotted_exclusions(base_product):
    config = CategoryConfig(ean_autofill_config=EanAutofillConfig(exclude_fields=["brand", "ram", "specs.color"]))
    filled = governance.autofill_fields(config, base_product)

    assert "brand" not in filled
    assert "specs.ram" not in filled
    assert "specs.color" not in filled
    assert filled["specs.storage"] == "256GB"


def test_autofill_disabled_copies_nothing(base_product):
    config = CategoryConfig(ean_autofill_config=EanAutofillConfig(enabled=False))
    assert governance.autofill_fields(config, base_product) == {}
