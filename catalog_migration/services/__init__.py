"""Service layer for the catalog migration."""

from .id_mapping import IdMappingRegistry
from .image_migrator import ImageMigrator, RetryPolicy
from .reporter import RunReporter
from .slugs import ensure_unique_slug, generate_slug, transliterate
from .status_store import MigrationStatusStore

__all__ = [
    "IdMappingRegistry",
    "ImageMigrator",
    "RetryPolicy",
    "RunReporter",
    "ensure_unique_slug",
    "generate_slug",
    "transliterate",
    "MigrationStatusStore",
]
