"""Catalog API: books, categories, users and reviews with blob-backed assets."""

__version__ = "1.0.0"
