"""Pydantic schemas for serialized unit validation."""
import enum
from typing import Any

from pydantic import BaseModel, Field


class UnitCondition(str, enum.Enum):
    new = "new"
    used = "used"
    open_box = "open_box"


class UnitStatus(str, enum.Enum):
    available = "available"
    reserved = "reserved"
    sold = "sold"
    in_repair = "in_repair"
    returned = "returned"


class UnitValidationContext(BaseModel):
    condition: UnitCondition = UnitCondition.new


class UnitValidationRequest(BaseModel):
    condition: UnitCondition = UnitCondition.new
    unit: dict[str, Any] = Field(default_factory=dict)


class UnitValidationResult(BaseModel):
    valid: bool
    errors: dict[str, list[str]] = Field(default_factory=dict)
    values: dict[str, Any] = Field(default_factory=dict)
