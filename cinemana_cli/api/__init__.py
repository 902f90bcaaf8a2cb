"""
Catalog API Layer.

This package handles all communication with the Cinemana catalog API.
"""

from .client import CatalogClient

__all__ = ["CatalogClient"]
