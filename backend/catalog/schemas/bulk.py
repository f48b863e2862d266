"""Pydantic schemas for the bulk import pipeline."""
import enum
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ImportState(str, enum.Enum):
    parsed = "parsed"
    previewed = "previewed"
    committing = "committing"
    complete = "complete"


class BulkRow(BaseModel):
    """One parsed input row. Unrecognized columns pass through as extra keys."""

    model_config = ConfigDict(extra="allow")

    ean: str = ""
    serial: str | None = None
    imei1: str | None = None
    imei2: str | None = None

    @property
    def custom_columns(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


class RowValidation(BaseModel):
    row: int
    valid: bool = True
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    def add_error(self, message: str) -> None:
        self.errors.append(message)
        self.valid = False


class RowPreview(BaseModel):
    row: int
    base_record: dict[str, Any] | None = None
    resolved_fields: dict[str, Any] = Field(default_factory=dict)
    merged_record: dict[str, Any] | None = None
    validation: RowValidation


class RowError(BaseModel):
    model_config = ConfigDict(frozen=True)

    row: int
    error: str


class RowOutcome(BaseModel):
    """Result of attempting (or skipping) one row during commit."""

    model_config = ConfigDict(frozen=True)

    row: int
    attempted: bool
    success: bool
    error: str | None = None
    record_id: str | None = None


class BulkCommitResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    total: int = 0
    success: int = 0
    failed: int = 0
    errors: tuple[RowError, ...] = ()


class BulkProgress(BaseModel):
    model_config = ConfigDict(frozen=True)

    processed: int
    total: int
    success: int
    failed: int


class PreviewSummary(BaseModel):
    rows: int
    valid: int
    invalid: int
    warnings: int


class ImportSessionOut(BaseModel):
    id: uuid.UUID
    state: ImportState
    filename: str | None = None
    created_at: datetime
    summary: PreviewSummary | None = None
    previews: list[RowPreview] = Field(default_factory=list)
    result: BulkCommitResult | None = None
    error: str | None = None
