"""Catalog reference domain exports."""
from .entity import Product, LocalizedName
from .repository import CatalogRepository

__all__ = ["Product", "LocalizedName", "CatalogRepository"]
