"""FastAPI dependencies — collaborators bound to the request's DB session."""
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from catalog.db.session import get_session
from catalog.services.categories import CategoryStore, SqlCategoryStore
from catalog.services.field_dictionary import FieldDictionary, SqlFieldDictionary
from catalog.services.import_sessions import ImportSessionRegistry, registry
from catalog.services.products import ProductCatalog, SqlProductCatalog


def get_category_store(db: Annotated[AsyncSession, Depends(get_session)]) -> CategoryStore:
    return SqlCategoryStore(db)


def get_product_catalog(db: Annotated[AsyncSession, Depends(get_session)]) -> ProductCatalog:
    return SqlProductCatalog(db)


def get_field_dictionary(db: Annotated[AsyncSession, Depends(get_session)]) -> FieldDictionary:
    return SqlFieldDictionary(db)


def get_session_registry() -> ImportSessionRegistry:
    return registry


CategoryStoreDep = Annotated[CategoryStore, Depends(get_category_store)]
ProductCatalogDep = Annotated[ProductCatalog, Depends(get_product_catalog)]
FieldDictionaryDep = Annotated[FieldDictionary, Depends(get_field_dictionary)]
SessionRegistryDep = Annotated[ImportSessionRegistry, Depends(get_session_registry)]
