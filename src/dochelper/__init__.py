"""Per-collection document accessors with a process-local cache."""

from dochelper.accessor import EntityAccessor, create_helper
from dochelper.actions import Actions, create_actions
from dochelper.cache import CacheRegistry, default_registry
from dochelper.exceptions import (
    DHError,
    DocumentNotFoundError,
    QueryShapeError,
    StoreError,
    ValidationError,
)
from dochelper.query import QueryDescriptor

__version__ = "0.1.0"

__all__ = [
    "Actions",
    "CacheRegistry",
    "DHError",
    "DocumentNotFoundError",
    "EntityAccessor",
    "QueryDescriptor",
    "QueryShapeError",
    "StoreError",
    "ValidationError",
    "create_actions",
    "create_helper",
    "default_registry",
]
