"""Category and movie catalog."""

from .queries import (
    CatalogError,
    CatalogQueries,
    DuplicateNameError,
    UnknownCategoryError,
)
from .routes import configure_catalog_router, get_catalog_queries

__all__ = [
    "CatalogError",
    "CatalogQueries",
    "DuplicateNameError",
    "UnknownCategoryError",
    "configure_catalog_router",
    "get_catalog_queries",
]
