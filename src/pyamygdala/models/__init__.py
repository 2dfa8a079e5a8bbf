"""Data models for pyamygdala."""

from pyamygdala.models.schema import OrderBy, TypeSchema

__all__ = [
    "OrderBy",
    "TypeSchema",
]
