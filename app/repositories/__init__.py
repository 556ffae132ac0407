"""
app/repositories package marker.
"""

from app.repositories.catalog_repository import (
    CatalogStore,
    CatalogUnitOfWork,
    SQLAlchemyCatalogStore,
)

__all__ = [
    "CatalogStore",
    "CatalogUnitOfWork",
    "SQLAlchemyCatalogStore",
]
