"""Automatic product naming from category templates.

A template such as ``"{modelo}, {ram}/{armazenamento} - {versao}"`` is filled
from a product record (spec values first, then top-level values) and then
cleaned of the punctuation left behind by missing values. Configs written
before templates existed use an ordered field list joined by a separator.
"""
import logging
import re
from collections.abc import Mapping
from typing import Any

from catalog.core.config import settings
from catalog.schemas.category import CategoryConfig
from catalog.schemas.naming import PlaceholderOut, TemplatePreset

logger = logging.getLogger(__name__)

# Placeholder → record field. Stored templates use the Portuguese names; the
# canonical field names are accepted as well.
PLACEHOLDER_FIELDS: dict[str, str] = {
    "marca": "brand",
    "modelo": "model",
    "sku": "sku",
    "ram": "ram",
    "armazenamento": "storage",
    "cor": "color",
    "versao": "version",
    "bateria": "battery_health",
    "serial": "serial",
    "imei1": "imei1",
    "imei2": "imei2",
    "ncm": "ncm",
    "cest": "cest",
    "peso": "weight_kg",
}
PLACEHOLDER_FIELDS.update({field: field for field in list(PLACEHOLDER_FIELDS.values())})

PLACEHOLDER_LABELS: list[tuple[str, str, str]] = [
    ("brand", "Marca", "{marca}"),
    ("model", "Modelo", "{modelo}"),
    ("sku", "SKU", "{sku}"),
    ("ram", "Memória RAM", "{ram}"),
    ("storage", "Armazenamento", "{armazenamento}"),
    ("color", "Cor", "{cor}"),
    ("version", "Versão", "{versao}"),
    ("battery_health", "Saúde da Bateria", "{bateria}"),
    ("serial", "Número de Série", "{serial}"),
    ("imei1", "IMEI 1", "{imei1}"),
    ("imei2", "IMEI 2", "{imei2}"),
    ("ncm", "NCM", "{ncm}"),
    ("cest", "CEST", "{cest}"),
    ("weight_kg", "Peso (kg)", "{peso}"),
]

TEMPLATE_PRESETS: list[tuple[str, str, str]] = [
    ("Simples (espaços)", "{modelo} {ram} {armazenamento} {cor}", "iPhone 13 4GB 128GB Azul"),
    ("Com vírgula e barra", "{modelo}, {ram}/{armazenamento} - {versao}", "Redmi Note 14, 6GB/256GB - Global"),
    ("Completo com marca", "{marca} {modelo} ({ram}/{armazenamento}) - {cor}", "Apple iPhone 13 (4GB/128GB) - Azul"),
    ("Compacto", "{modelo} {armazenamento} {cor}", "iPhone 13 128GB Azul"),
]

EXAMPLE_DATA: dict[str, Any] = {
    "brand": "Apple",
    "model": "iPhone 13",
    "specs": {
        "ram": "4GB",
        "storage": "128GB",
        "color": "Azul",
        "version": "Global",
        "battery_health": "100%",
    },
}

_PLACEHOLDER_RE = re.compile(r"\{(\w+)\}")

# One cleanup pass, in order. Later rules assume the earlier ones already ran.
_CLEANUP_RULES: list[tuple[re.Pattern[str], str]] = [
    # 1. repeated separators
    (re.compile(r",(?:\s*,)+"), ","),
    (re.compile(r"/(?:\s*/)+"), "/"),
    (re.compile(r"-(?:\s*-)+"), "-"),
    # 2. empty parentheses
    (re.compile(r"\(\s*\)"), ""),
    # 3. dangling separators at the edges
    (re.compile(r",\s*$"), ""),
    (re.compile(r"^\s*,"), ""),
    (re.compile(r"\s*[-/]\s*$"), ""),
    (re.compile(r"^\s*[-/]\s*"), ""),
    # 4. comma next to hyphen
    (re.compile(r",\s*-"), " -"),
    (re.compile(r"-\s*,"), ","),
    # 5. slash next to hyphen
    (re.compile(r"/\s*-"), " -"),
    (re.compile(r"-\s*/"), "/"),
    # 6. whitespace
    (re.compile(r"\s+"), " "),
]


def _lookup(data: Mapping[str, Any], field: str) -> Any:
    specs = data.get("specs")
    if isinstance(specs, Mapping) and specs.get(field) is not None:
        return specs[field]
    return data.get(field)


def _as_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    return str(value).strip()


def _cleanup_pass(text: str) -> str:
    for pattern, replacement in _CLEANUP_RULES:
        text = pattern.sub(replacement, text)
    return text.strip()


def cleanup_name(text: str) -> str:
    """Remove separator artifacts left by empty placeholders.

    The pass is repeated until the text stops changing, so cleaning an already
    clean name is a no-op.
    """
    previous = None
    while text != previous:
        previous, text = text, _cleanup_pass(text)
    return text


def render_template(template: str, data: Mapping[str, Any]) -> str:
    """Substitute placeholders without cleanup. Unknown placeholders become ""."""
    def substitute(match: re.Match[str]) -> str:
        field = PLACEHOLDER_FIELDS.get(match.group(1).lower())
        if field is None:
            return ""
        return _as_text(_lookup(data, field))

    return _PLACEHOLDER_RE.sub(substitute, template)


def generate_from_template(template: str, data: Mapping[str, Any]) -> str:
    return cleanup_name(render_template(template, data))


def generate_from_fields(fields: list[str], separator: str, data: Mapping[str, Any]) -> str:
    parts = [_as_text(_lookup(data, field)) for field in fields]
    return separator.join(part for part in parts if part)


def generate_product_name(config: CategoryConfig | None, data: Mapping[str, Any]) -> str:
    """Build the product name for ``data`` or return "" when auto-naming is off."""
    if config is None or not config.auto_name_enabled:
        return ""
    if config.auto_name_template:
        return generate_from_template(config.auto_name_template, data)
    if config.auto_name_fields:
        separator = config.auto_name_separator or settings.AUTO_NAME_DEFAULT_SEPARATOR
        return generate_from_fields(config.auto_name_fields, separator, data)
    return ""


def preview_name(config: CategoryConfig, data: Mapping[str, Any] | None = None) -> str:
    """Render the configured name against ``data`` or the built-in example record."""
    name = generate_product_name(config, data if data is not None else EXAMPLE_DATA)
    logger.debug("Name preview for template %r: %r", config.auto_name_template, name)
    return name


def available_placeholders() -> list[PlaceholderOut]:
    return [PlaceholderOut(key=k, label=label, placeholder=p) for k, label, p in PLACEHOLDER_LABELS]


def template_presets() -> list[TemplatePreset]:
    return [TemplatePreset(name=n, template=t, example=e) for n, t, e in TEMPLATE_PRESETS]
