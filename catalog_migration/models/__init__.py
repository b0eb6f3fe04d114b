"""Data models for the catalog migration."""

from .entities import (
    EntityKind,
    REFERENCE_KINDS,
    TariffPeriod,
    ReferenceRecord,
    HostingRecord,
    TariffRecord,
    ContentBlockRecord,
)
from .run import (
    MigrationStatus,
    Stage,
    STAGE_ORDER,
    RunStatistics,
    RunError,
    MigrationRunResult,
)

__all__ = [
    "EntityKind",
    "REFERENCE_KINDS",
    "TariffPeriod",
    "ReferenceRecord",
    "HostingRecord",
    "TariffRecord",
    "ContentBlockRecord",
    "MigrationStatus",
    "Stage",
    "STAGE_ORDER",
    "RunStatistics",
    "RunError",
    "MigrationRunResult",
]
