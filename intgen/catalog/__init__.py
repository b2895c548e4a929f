"""Provider and template catalog."""

from .registry import BUILTIN_CATALOG, CatalogRegistry

__all__ = ["BUILTIN_CATALOG", "CatalogRegistry"]
