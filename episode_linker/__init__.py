"""Fuzzy show matching and episode URL resolution for streaming catalogs."""

__version__ = "0.1.0"
