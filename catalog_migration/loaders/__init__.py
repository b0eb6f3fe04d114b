"""Loaders for the target catalog store."""

from .base import BaseTargetStore
from .sql_store import SqlTargetStore

__all__ = [
    "BaseTargetStore",
    "SqlTargetStore",
]
