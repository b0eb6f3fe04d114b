"""Exception hierarchy for the catalog migration.

Errors fall into three tiers. Fatal errors (configuration, store connectivity,
unexpected source queries) abort the whole run. ``TableMissingError`` is
recoverable at stage level: the stage proceeds with zero rows. Everything
deriving from ``RowError`` is scoped to a single record and is collected into
the run result instead of stopping the stage.
"""

from typing import Iterable, Optional


class MigrationError(Exception):
    """Base class for all migration errors."""


class ConfigurationError(MigrationError):
    """Required settings are missing or invalid."""

    def __init__(self, message: str, missing: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing = list(missing or [])


class StoreConnectionError(MigrationError):
    """A source or target store is unreachable."""

    def __init__(self, store: str, message: str):
        super().__init__(f"{store} store connection failed: {message}")
        self.store = store


class SourceQueryError(MigrationError):
    """The legacy store failed a query for a reason other than a missing table."""


class TableMissingError(MigrationError):
    """The legacy relation does not exist."""

    def __init__(self, table: str):
        super().__init__(f"Table '{table}' does not exist")
        self.table = table


class RowError(MigrationError):
    """A failure scoped to one record."""


class MappingError(RowError, ValueError):
    """A legacy row could not be mapped to the target shape."""

    def __init__(self, message: str, entity: str = "", field: Optional[str] = None):
        super().__init__(message)
        self.entity = entity
        self.field = field


class RequiredFieldError(MappingError):
    """A required field is absent or blank."""

    def __init__(self, entity: str, field: str):
        super().__init__(f"{entity} {field} is required", entity=entity, field=field)


class InvalidFieldError(MappingError):
    """A field is present but its value is not acceptable."""


class MissingReferenceError(RowError):
    """A foreign key could not be resolved through the ID mapping registry."""

    def __init__(self, entity: str, legacy_id):
        super().__init__(f"{entity} ID {legacy_id} not found in mapping")
        self.entity = entity
        self.legacy_id = legacy_id


class DuplicateRowError(RowError):
    """Two legacy rows resolve to the same target record within one run."""

    def __init__(self, entity: str, legacy_id, original_id):
        super().__init__(f"{entity} ID {legacy_id} duplicates {entity} ID {original_id}")
        self.entity = entity
        self.legacy_id = legacy_id
        self.original_id = original_id


class TargetWriteError(RowError):
    """The target store rejected a single write (constraint or data error)."""


class StorageError(MigrationError):
    """An upload was rejected or the object storage could not be reached."""


class DownloadError(MigrationError):
    """A single image download attempt failed."""


class ImageMigrationError(RowError):
    """Image migration and the placeholder fallback both failed."""

    def __init__(self, slug: str, original: Exception, fallback: Exception):
        super().__init__(
            f"Image migration failed for {slug}: {original}; "
            f"placeholder generation failed: {fallback}"
        )
        self.slug = slug
        self.original = original
        self.fallback = fallback
