"""Ingestion layer.

Helpers that turn raw API responses into lists of plain record dicts
before the state/store layer normalizes and stores them.
"""

__all__: list[str] = []
