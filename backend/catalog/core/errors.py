"""Domain exceptions raised by the governance and import services.

Row-level validation problems are never raised; they are collected as data
on the row. These exceptions cover the cases where an operation as a whole
cannot proceed.
"""
from typing import Any


class CatalogError(Exception):
    """Base class for catalog domain errors."""


class CategoryNotFoundError(CatalogError):
    def __init__(self, category_id: Any):
        super().__init__(f"Category {category_id} not found")
        self.category_id = category_id


class CustomFieldKeyConflict(CatalogError):
    """A custom field with the same generated key already exists in the category."""

    def __init__(self, key: str, existing: Any):
        super().__init__(f"Custom field '{key}' already exists in this category")
        self.key = key
        self.existing = existing


class CollaboratorUnavailableError(CatalogError):
    """A remote collaborator (catalog lookup, persistence) could not be reached."""


class ImportSessionNotFoundError(CatalogError):
    def __init__(self, session_id: Any):
        super().__init__(f"Import session {session_id} not found or expired")
        self.session_id = session_id


class ImportStateError(CatalogError):
    """Illegal transition of a bulk import session."""
