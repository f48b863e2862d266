"""Unit schema generator — category-driven validation for serialized units.

build_unit_validator(config, context) is a pure function: it never fails for a
well-formed CategoryConfig. Each governed field is compiled independently into
a pydantic field definition and the definitions are assembled into a model with
pydantic.create_model. Validation failures are reported per field.

Requirement semantics:
- off       → field is not enforced; any value (or none) is accepted.
- optional  → may be absent or blank; a present value must pass its format.
- required  → must be present and pass its format.

battery_health is the one field whose effective requirement depends on both the
stored config and the runtime condition of the unit (see
effective_battery_requirement).
"""
import logging
import re
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Annotated, Any, Optional

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, ValidationError, create_model

from catalog.core.config import settings
from catalog.schemas.category import (
    CategoryConfig,
    CustomField,
    CustomFieldType,
    FieldRequirement,
    generate_slug,
)
from catalog.schemas.unit import (
    UnitCondition,
    UnitStatus,
    UnitValidationContext,
    UnitValidationResult,
)

logger = logging.getLogger(__name__)

FieldDefinition = tuple[Any, Any]

FIELD_LABELS = {
    "imei1": "IMEI 1",
    "imei2": "IMEI 2",
    "serial": "Serial",
    "color": "Color",
    "storage": "Storage",
    "ram": "RAM",
    "version": "Version",
    "battery_health": "Battery health",
}


# ─── Value normalizers ───

def _blank_to_none(value: Any) -> Any:
    """Strip strings and treat blank input as absent."""
    if isinstance(value, str):
        value = value.strip()
        return value or None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return value


def _number_or_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip().rstrip("%").strip()
        return value or None
    return value


def _require(label: str) -> Callable[[Any], Any]:
    def check(value: Any) -> Any:
        if value is None:
            raise ValueError(f"{label} is required")
        return value
    return check


def _digits_only(value: str) -> str:
    return re.sub(r"\D", "", value)


# ─── Intrinsic format checks ───

def _identifier_check(label: str) -> Callable[[str], str]:
    length = settings.IDENTIFIER_LENGTH

    def check(value: str) -> str:
        if not value.isdigit():
            raise ValueError(f"{label} must contain only digits")
        if len(value) != length:
            raise ValueError(f"{label} must have exactly {length} digits")
        return value
    return check


def _min_length_check(label: str, minimum: int) -> Callable[[str], str]:
    def check(value: str) -> str:
        if len(value) < minimum:
            raise ValueError(f"{label} must have at least {minimum} characters")
        return value
    return check


def _range_check(label: str, low: float, high: float) -> Callable[[float], float]:
    def check(value: float) -> float:
        if not low <= value <= high:
            raise ValueError(f"{label} must be between {low:g} and {high:g}")
        return value
    return check


def _digit_count_check(label: str, *lengths: int) -> Callable[[str], str]:
    allowed = " or ".join(str(n) for n in lengths)

    def check(value: str) -> str:
        digits = _digits_only(value)
        if not re.fullmatch(r"[\d.\-/() ]+", value) or len(digits) not in lengths:
            raise ValueError(f"{label} must have {allowed} digits")
        return digits
    return check


def _pattern_check(label: str, pattern: str, message: str) -> Callable[[str], str]:
    compiled = re.compile(pattern)

    def check(value: str) -> str:
        if not compiled.fullmatch(value):
            raise ValueError(f"{label} {message}")
        return value
    return check


def _date_check(label: str, fmt: str, shown: str) -> Callable[[str], date]:
    def check(value: str) -> date:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            raise ValueError(f"{label} must be a date in the format {shown}")
    return check


def _decimal_check(label: str) -> Callable[[str], Decimal]:
    def check(value: str) -> Decimal:
        text = value.replace("R$", "").replace(" ", "")
        if "," in text:
            # Brazilian notation: 1.234,56
            text = text.replace(".", "").replace(",", ".")
        try:
            return Decimal(text)
        except InvalidOperation:
            raise ValueError(f"{label} must be a number")
    return check


def _options_check(label: str, options: list[str]) -> Callable[[str], str]:
    def check(value: str) -> str:
        if value not in options:
            raise ValueError(f"{label} must be one of: {', '.join(options)}")
        return value
    return check


def _sentence(value: str) -> str:
    return value[:1].upper() + value[1:].lower()


_TRANSFORMS: dict[CustomFieldType, Callable[[str], str]] = {
    CustomFieldType.capitalize: lambda v: v[:1].upper() + v[1:],
    CustomFieldType.uppercase: str.upper,
    CustomFieldType.lowercase: str.lower,
    CustomFieldType.titlecase: str.title,
    CustomFieldType.sentence: _sentence,
    CustomFieldType.slug: generate_slug,
}


# ─── Requirement → field definition ───

def _text_definition(
    label: str,
    requirement: FieldRequirement,
    checks: list[Callable[[Any], Any]] | None = None,
) -> FieldDefinition:
    """Compile a text-valued field under its tri-state requirement."""
    after = [AfterValidator(c) for c in checks or []]
    if requirement == FieldRequirement.off:
        return Any, None
    if requirement == FieldRequirement.optional:
        inner = Annotated[(str, *after)] if after else str
        return Annotated[Optional[inner], BeforeValidator(_blank_to_none)], None
    if requirement == FieldRequirement.required:
        # Before validators run last-declared first: blank → None, then presence check.
        metadata = (*after, BeforeValidator(_require(label)), BeforeValidator(_blank_to_none))
        return Annotated[(str, *metadata)], Field(default=None, validate_default=True)
    raise ValueError(f"Unhandled field requirement: {requirement!r}")


def effective_battery_requirement(
    requirement: FieldRequirement,
    condition: UnitCondition,
) -> FieldRequirement:
    """Battery health is mandatory only for used units in categories that require it."""
    if requirement == FieldRequirement.required and condition != UnitCondition.used:
        return FieldRequirement.optional
    return requirement


# ─── Rule compilers ───

def compile_identifier(name: str, requirement: FieldRequirement) -> FieldDefinition:
    label = FIELD_LABELS[name]
    return _text_definition(label, requirement, [_identifier_check(label)])


def compile_serial(requirement: FieldRequirement) -> FieldDefinition:
    label = FIELD_LABELS["serial"]
    checks = []
    if requirement == FieldRequirement.required:
        checks.append(_min_length_check(label, settings.SERIAL_MIN_LENGTH))
    return _text_definition(label, requirement, checks)


def compile_spec(name: str, requirement: FieldRequirement) -> FieldDefinition:
    return _text_definition(FIELD_LABELS[name], requirement)


def compile_battery_health(
    requirement: FieldRequirement,
    condition: UnitCondition,
) -> FieldDefinition:
    label = FIELD_LABELS["battery_health"]
    effective = effective_battery_requirement(requirement, condition)
    in_range = AfterValidator(
        _range_check(label, settings.BATTERY_HEALTH_MIN, settings.BATTERY_HEALTH_MAX)
    )
    if effective == FieldRequirement.off:
        return Any, None
    if effective == FieldRequirement.optional:
        return Annotated[Optional[Annotated[float, in_range]], BeforeValidator(_number_or_none)], None
    return (
        Annotated[float, in_range, BeforeValidator(_require(label)), BeforeValidator(_number_or_none)],
        Field(default=None, validate_default=True),
    )


def _custom_checks(cf: CustomField) -> list[Callable[[Any], Any]]:
    label = cf.name
    t = cf.type
    if t in _TRANSFORMS:
        return [_TRANSFORMS[t]]
    if t == CustomFieldType.alphanumeric:
        return [_pattern_check(label, r"[A-Za-z0-9]+", "must contain only letters and digits")]
    if t == CustomFieldType.numeric:
        return [_pattern_check(label, r"\d+", "must contain only digits")]
    if t in (CustomFieldType.number, CustomFieldType.brl):
        return [_decimal_check(label)]
    if t == CustomFieldType.phone:
        return [_digit_count_check(label, 10, 11)]
    if t == CustomFieldType.cpf:
        return [_digit_count_check(label, 11)]
    if t == CustomFieldType.cnpj:
        return [_digit_count_check(label, 14)]
    if t == CustomFieldType.cep:
        return [_digit_count_check(label, 8)]
    if t == CustomFieldType.ncm:
        return [_digit_count_check(label, 8)]
    if t == CustomFieldType.ean13:
        return [_digit_count_check(label, 13)]
    if t == CustomFieldType.cest:
        return [_digit_count_check(label, 7)]
    if t == CustomFieldType.date_br:
        return [_date_check(label, "%d/%m/%Y", "DD/MM/YYYY")]
    if t == CustomFieldType.date_br_short:
        return [_date_check(label, "%d/%m/%y", "DD/MM/YY")]
    if t == CustomFieldType.date_iso:
        return [_date_check(label, "%Y-%m-%d", "YYYY-MM-DD")]
    if t == CustomFieldType.dropdown and cf.options:
        return [_options_check(label, cf.options)]
    # text, textarea, dropdown backed by a lookup table
    return []


def compile_custom_field(cf: CustomField) -> FieldDefinition:
    return _text_definition(cf.name, cf.requirement, _custom_checks(cf))


# ─── Validator ───

class _UnitBase(BaseModel):
    model_config = ConfigDict(extra="ignore")


class UnitValidator:
    """Validator produced for one (config, context) pair."""

    def __init__(self, model: type[BaseModel], governed: dict[str, FieldRequirement]):
        self.model = model
        self.governed = governed

    @property
    def enforced_fields(self) -> list[str]:
        return [name for name, req in self.governed.items() if req != FieldRequirement.off]

    def validate(self, record: Mapping[str, Any]) -> UnitValidationResult:
        data = _flatten(record)
        try:
            unit = self.model.model_validate(data)
        except ValidationError as exc:
            return UnitValidationResult(valid=False, errors=_errors_by_field(exc))
        values = unit.model_dump(by_alias=True, exclude_none=True)
        return UnitValidationResult(valid=True, values=values)


def _flatten(record: Mapping[str, Any]) -> dict[str, Any]:
    """Lift values stored under ``specs`` to the top level; specs values win."""
    data = {k: v for k, v in record.items() if k != "specs"}
    specs = record.get("specs")
    if isinstance(specs, Mapping):
        data.update(specs)
    return data


def _errors_by_field(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for err in exc.errors():
        field = str(err["loc"][0]) if err["loc"] else "__root__"
        if err["type"] == "value_error" and "error" in err.get("ctx", {}):
            message = str(err["ctx"]["error"])
        else:
            message = err["msg"]
        errors.setdefault(field, []).append(message)
    return errors


def build_unit_validator(
    config: CategoryConfig,
    context: UnitValidationContext,
) -> UnitValidator:
    """Build the unit validator for a category and the unit's runtime condition."""
    definitions: dict[str, FieldDefinition] = {
        "product_id": (Annotated[str, Field(min_length=1)], ...),
        "condition": (UnitCondition, context.condition),
        "status": (UnitStatus, UnitStatus.available),
        "cost_price": (float | None, Field(default=None, ge=0)),
    }
    governed: dict[str, FieldRequirement] = {}

    for name in ("imei1", "imei2"):
        definitions[name] = compile_identifier(name, getattr(config, name))
        governed[name] = getattr(config, name)

    definitions["serial"] = compile_serial(config.serial)
    governed["serial"] = config.serial

    for name in ("color", "storage", "ram", "version"):
        definitions[name] = compile_spec(name, getattr(config, name))
        governed[name] = getattr(config, name)

    definitions["battery_health"] = compile_battery_health(config.battery_health, context.condition)
    governed["battery_health"] = effective_battery_requirement(config.battery_health, context.condition)

    # Custom keys are user-derived and may clash with BaseModel attributes, so they
    # are declared under positional names and validated through their alias.
    for index, cf in enumerate(config.custom_fields):
        annotation, default = compile_custom_field(cf)
        definitions[f"custom_{index}"] = (Annotated[annotation, Field(alias=cf.key)], default)
        governed[cf.key] = cf.requirement

    model = create_model("UnitRecord", __base__=_UnitBase, **definitions)
    logger.debug(
        "Built unit validator: condition=%s enforced=%s",
        context.condition.value, [k for k, v in governed.items() if v != FieldRequirement.off],
    )
    return UnitValidator(model, governed)
