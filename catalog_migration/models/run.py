"""Run result models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
import uuid

from .entities import REFERENCE_KINDS


class MigrationStatus(str, Enum):
    """Status of a migration run."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"
    FAILED = "failed"


class Stage(str, Enum):
    """Ordered stages of a migration run."""
    REFERENCES = "references"
    HOSTINGS = "hostings"
    IMAGES = "images"
    TARIFFS = "tariffs"
    TARIFF_RELATIONS = "tariff_relations"
    CONTENT_BLOCKS = "content_blocks"


STAGE_ORDER = [
    Stage.REFERENCES,
    Stage.HOSTINGS,
    Stage.IMAGES,
    Stage.TARIFFS,
    Stage.TARIFF_RELATIONS,
    Stage.CONTENT_BLOCKS,
]


def _reference_counters() -> Dict[str, int]:
    return {kind.value: 0 for kind in REFERENCE_KINDS}


@dataclass
class RunStatistics:
    """Per-stage "created" counters."""
    references: Dict[str, int] = field(default_factory=_reference_counters)
    hostings: int = 0
    images: int = 0
    tariffs: int = 0
    tariff_relations: Dict[str, int] = field(default_factory=_reference_counters)
    content_blocks: int = 0
    content_blocks_updated: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "references": dict(self.references),
            "hostings": self.hostings,
            "images": self.images,
            "tariffs": self.tariffs,
            "tariff_relations": dict(self.tariff_relations),
            "content_blocks": self.content_blocks,
            "content_blocks_updated": self.content_blocks_updated,
        }

    @property
    def total_created(self) -> int:
        return (
            sum(self.references.values())
            + self.hostings
            + self.tariffs
            + sum(self.tariff_relations.values())
            + self.content_blocks
        )


@dataclass
class RunError:
    """A row-level or fatal error recorded during a run."""
    stage: str
    subject: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "stage": self.stage,
            "subject": self.subject,
            "message": self.message,
        }


@dataclass
class MigrationRunResult:
    """Everything a migration run produced, persisted once at the end."""
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: datetime = field(default_factory=datetime.utcnow)
    completed_at: Optional[datetime] = None
    status: MigrationStatus = MigrationStatus.PENDING
    dry_run: bool = False
    skipped_images: bool = False
    current_stage: Optional[Stage] = None
    statistics: RunStatistics = field(default_factory=RunStatistics)
    mappings: Dict[str, Dict[str, str]] = field(default_factory=dict)
    errors: List[RunError] = field(default_factory=list)

    def add_error(self, stage: str, subject: str, message: str) -> RunError:
        """Append an error record."""
        error = RunError(stage=stage, subject=subject, message=message)
        self.errors.append(error)
        return error

    def errors_for(self, stage: str) -> List[RunError]:
        """Errors whose stage is ``stage`` or one of its sub-stages."""
        return [
            e for e in self.errors
            if e.stage == stage or e.stage.startswith(f"{stage}.")
        ]

    @property
    def duration_seconds(self) -> Optional[float]:
        """Get duration in seconds."""
        if self.completed_at:
            return (self.completed_at - self.timestamp).total_seconds()
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "status": self.status.value,
            "dry_run": self.dry_run,
            "skipped_images": self.skipped_images,
            "current_stage": self.current_stage.value if self.current_stage else None,
            "statistics": self.statistics.to_dict(),
            "mappings": self.mappings,
            "errors": [e.to_dict() for e in self.errors],
        }
