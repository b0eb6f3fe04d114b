"""Readers for the legacy catalog store."""

from .base import BaseReader, LEGACY_TABLES, LEGACY_JUNCTIONS
from .mysql_reader import LegacyReader

__all__ = [
    "BaseReader",
    "LEGACY_TABLES",
    "LEGACY_JUNCTIONS",
    "LegacyReader",
]
