from catalog.models.category import Category
from catalog.models.custom_field import CustomFieldDefinition
from catalog.models.product import Product

__all__ = [
    "Category",
    "CustomFieldDefinition",
    "Product",
]
