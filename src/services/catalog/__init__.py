from src.services.catalog.catalog_client import CatalogClient
from src.services.catalog.catalog_service import (
    CatalogLoadReport,
    CatalogService,
    TargetCatalog,
    controls_for_context,
)

__all__ = [
    "CatalogClient",
    "CatalogLoadReport",
    "CatalogService",
    "TargetCatalog",
    "controls_for_context",
]
