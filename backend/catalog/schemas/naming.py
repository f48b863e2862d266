"""Pydantic schemas for automatic product naming."""
from typing import Any

from pydantic import BaseModel, Field


class NamePreviewRequest(BaseModel):
    data: dict[str, Any] | None = None  # example data is used when omitted
    template: str | None = None  # overrides the stored template


class NamePreviewResponse(BaseModel):
    name: str
    template: str | None = None


class PlaceholderOut(BaseModel):
    key: str
    label: str
    placeholder: str


class TemplatePreset(BaseModel):
    name: str
    template: str
    example: str


class NamingOptions(BaseModel):
    placeholders: list[PlaceholderOut] = Field(default_factory=list)
    presets: list[TemplatePreset] = Field(default_factory=list)
