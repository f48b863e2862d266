"""Field governance model — per-category tri-state field requirements.

Every category carries a CategoryConfig that decides, for each well-known
unit field and each custom field, whether the field is hidden (``off``),
``optional`` or ``required``. The config is stored opaquely by the category
store and is always read back fully populated.
"""
import enum
import re
import unicodedata
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


# ─── Enumerations ───

class FieldRequirement(str, enum.Enum):
    off = "off"
    optional = "optional"
    required = "required"


class CustomFieldType(str, enum.Enum):
    # Basic
    text = "text"
    textarea = "textarea"
    number = "number"
    dropdown = "dropdown"
    # Text transforms
    capitalize = "capitalize"
    uppercase = "uppercase"
    lowercase = "lowercase"
    titlecase = "titlecase"
    sentence = "sentence"
    slug = "slug"
    # Specialized text
    alphanumeric = "alphanumeric"
    numeric = "numeric"
    # Brazilian formats
    phone = "phone"
    cpf = "cpf"
    cnpj = "cnpj"
    cep = "cep"
    # Dates
    date_br = "date_br"
    date_br_short = "date_br_short"
    date_iso = "date_iso"
    # Fiscal codes
    ncm = "ncm"
    ean13 = "ean13"
    cest = "cest"
    # Currency
    brl = "brl"


# ─── Field vocabulary ───

IDENTIFIER_FIELDS: tuple[str, ...] = ("imei1", "imei2")
SPEC_FIELDS: tuple[str, ...] = ("color", "storage", "ram", "version", "battery_health")
WELL_KNOWN_FIELDS: tuple[str, ...] = (*IDENTIFIER_FIELDS, "serial", *SPEC_FIELDS)
# Fixed unit attributes that every unit carries regardless of category.
UNIT_FIXED_FIELDS: tuple[str, ...] = ("product_id", "condition", "status", "cost_price")
# Keys a custom field may never take.
RESERVED_FIELD_KEYS: frozenset[str] = frozenset((*WELL_KNOWN_FIELDS, *UNIT_FIXED_FIELDS))

# Top-level product attributes that EAN autofill may copy from a found record.
AUTOFILL_TOP_LEVEL_FIELDS: tuple[str, ...] = (
    "category_id",
    "brand",
    "model",
    "name",
    "description",
    "sku",
    "price_cost",
    "price_retail",
    "price_reseller",
    "price_wholesale",
    "images",
)


# ─── Key generation ───

def _fold(value: str) -> str:
    decomposed = unicodedata.normalize("NFD", value.lower())
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def generate_field_key(name: str) -> str:
    """Derive a stable custom-field key from its display name.

    "Garantia Estendida" → "garantia_estendida", "Número do Lote" → "numero_do_lote".
    """
    return re.sub(r"[^a-z0-9]+", "_", _fold(name)).strip("_")


def generate_slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", _fold(name)).strip("-")


# ─── Custom fields ───

class TableConfig(BaseModel):
    """Dropdown options looked up from another stored collection."""

    table_name: str
    value_column: str
    label_column: str
    order_by: str | None = None


def new_custom_field_id() -> str:
    return f"custom-{uuid.uuid4().hex[:12]}"


class CustomField(BaseModel):
    id: str = Field(default_factory=new_custom_field_id)
    name: str
    key: str = ""
    type: CustomFieldType = CustomFieldType.text
    requirement: FieldRequirement = FieldRequirement.optional
    options: list[str] | None = None
    placeholder: str | None = None
    table_config: TableConfig | None = None
    field_id: str | None = None  # reference into the shared field dictionary

    @model_validator(mode="after")
    def _fill_key(self) -> "CustomField":
        if not self.key:
            self.key = generate_field_key(self.name)
        if not self.key:
            raise ValueError(f"Custom field name '{self.name}' does not produce a usable key")
        return self


class EanAutofillConfig(BaseModel):
    enabled: bool = True
    exclude_fields: list[str] = Field(default_factory=list)


# ─── Category config ───

class CategoryConfig(BaseModel):
    """Complete field-governance configuration of one category."""

    # Unit identifiers
    imei1: FieldRequirement = FieldRequirement.optional
    imei2: FieldRequirement = FieldRequirement.optional
    serial: FieldRequirement = FieldRequirement.optional

    # Specifications
    color: FieldRequirement = FieldRequirement.optional
    storage: FieldRequirement = FieldRequirement.optional
    ram: FieldRequirement = FieldRequirement.optional
    version: FieldRequirement = FieldRequirement.optional

    # Enforced only for used units, see catalog.rules.unit_schema
    battery_health: FieldRequirement = FieldRequirement.optional

    custom_fields: list[CustomField] = Field(default_factory=list)
    ean_autofill_config: EanAutofillConfig = Field(default_factory=EanAutofillConfig)

    auto_name_enabled: bool = False
    auto_name_template: str | None = None
    # Deprecated: kept for configs written before templates existed
    auto_name_fields: list[str] = Field(default_factory=list)
    auto_name_separator: str = " "

    @model_validator(mode="before")
    @classmethod
    def _normalize_stored(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = {k: v for k, v in data.items() if v is not None}
        # Older configs used one "imei" switch for both identifiers.
        legacy = data.pop("imei", None)
        if legacy is not None:
            data.setdefault("imei1", legacy)
            data.setdefault("imei2", legacy)
        return data

    @model_validator(mode="after")
    def _check_invariants(self) -> "CategoryConfig":
        seen: set[str] = set()
        for cf in self.custom_fields:
            if cf.key in RESERVED_FIELD_KEYS:
                raise ValueError(f"Custom field key '{cf.key}' is reserved")
            if cf.key in seen:
                raise ValueError(f"Duplicate custom field key '{cf.key}'")
            seen.add(cf.key)

        allowed = self.autofill_field_paths()
        unknown = [f for f in self.ean_autofill_config.exclude_fields if f not in allowed]
        if unknown:
            raise ValueError(f"Unknown exclude_fields entries: {', '.join(unknown)}")
        return self

    def requirement_for(self, field_name: str) -> FieldRequirement:
        if field_name in WELL_KNOWN_FIELDS:
            return getattr(self, field_name)
        cf = self.custom_field(field_name)
        return cf.requirement if cf else FieldRequirement.off

    def custom_field(self, key: str) -> CustomField | None:
        return next((cf for cf in self.custom_fields if cf.key == key), None)

    def autofill_field_paths(self) -> set[str]:
        """Every name accepted in ``ean_autofill_config.exclude_fields``.

        Bare names and ``specs.``-prefixed paths are both accepted; stored
        configs mix the two.
        """
        bare = set(WELL_KNOWN_FIELDS) | {cf.key for cf in self.custom_fields}
        return set(AUTOFILL_TOP_LEVEL_FIELDS) | bare | {f"specs.{name}" for name in bare}


# ─── API schemas ───

class CategoryCreate(BaseModel):
    name: str = Field(min_length=1)
    slug: str | None = None
    config: CategoryConfig = Field(default_factory=CategoryConfig)


class CategoryUpdate(CategoryCreate):
    """Full replacement: the editor always writes the whole config back."""


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    config: CategoryConfig
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CustomFieldCreate(BaseModel):
    name: str = Field(min_length=1)
    type: CustomFieldType = CustomFieldType.text
    requirement: FieldRequirement = FieldRequirement.optional
    options: list[str] | None = None
    placeholder: str | None = None
    table_config: TableConfig | None = None
    reuse_existing: bool = True


class CustomFieldDefinitionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID | str
    key: str
    label: str
    field_type: CustomFieldType
    options: list[str] | None = None
    table_config: TableConfig | None = None
    placeholder: str | None = None
    source: str = "dictionary"  # dictionary, category

    @field_validator("field_type", mode="before")
    @classmethod
    def _map_dictionary_type(cls, v: Any) -> Any:
        # Dictionary rows use the wider form-builder vocabulary.
        return _DICTIONARY_TYPE_ALIASES.get(v, v)


_DICTIONARY_TYPE_ALIASES = {
    "select": CustomFieldType.dropdown.value,
    "table_relation": CustomFieldType.dropdown.value,
    "checkbox": CustomFieldType.text.value,
}
