"""
app/api/routers package marker.
"""

from app.api.routers.catalog_ingestion import router as catalog_ingestion_router
from app.api.routers.ingestion_orchestrator import router as ingestion_orchestrator_router

__all__ = [
    "catalog_ingestion_router",
    "ingestion_orchestrator_router",
]
