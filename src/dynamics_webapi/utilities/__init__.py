"""
Utilities module

Parameter validation and entity name lookup shared by the request engine.
"""

from .entity_names import EntityNameMap
from . import validation

__all__ = [
    "EntityNameMap",
    "validation",
]
