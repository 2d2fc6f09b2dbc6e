"""
Requirement Catalog
===================

Loading and validation of per-tenant requirement catalogs, plus the Guyana
sample catalog used to seed tenants.

Version: 0.1.0
"""

from services.monitoring.catalog.guyana import guyana_catalog
from services.monitoring.catalog.loader import RequirementCatalog, load_catalog


__all__ = [
    "RequirementCatalog",
    "guyana_catalog",
    "load_catalog",
]
