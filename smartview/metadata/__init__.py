"""
SmartView metadata models

Pydantic-based descriptions of what the provider reports about a cube.
"""

from .base import MetadataObject
from .filter import Filter, FilterArgument, FilterSelection

__all__ = ["MetadataObject", "Filter", "FilterArgument", "FilterSelection"]
