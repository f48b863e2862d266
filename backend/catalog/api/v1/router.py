from fastapi import APIRouter

from catalog.api.v1 import categories, import_routes

api_router = APIRouter()

api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(categories.fields_router, prefix="/custom-fields", tags=["categories"])
api_router.include_router(import_routes.router, prefix="/import", tags=["import"])
