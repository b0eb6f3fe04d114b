"""Run reporter - persists the run result and logs a summary."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from ..models.run import MigrationRunResult

logger = logging.getLogger(__name__)


def timestamp_slug(moment: Optional[datetime] = None) -> str:
    """Compact UTC timestamp for file names."""
    return (moment or datetime.utcnow()).strftime("%Y%m%dT%H%M%S")


class RunReporter:
    """Writes one JSON artifact per run into the output directory."""

    def __init__(self, output_dir: str = "./data/migration"):
        self.output_dir = Path(output_dir)
        self.last_path: Optional[Path] = None

    def artifact_path(self, result: MigrationRunResult) -> Path:
        """File name embeds the run start time so runs never overwrite each other."""
        stamp = timestamp_slug(result.timestamp)
        return self.output_dir / f"migration-result-{stamp}-{result.id[:8]}.json"

    def save(self, result: MigrationRunResult) -> Path:
        """
        Persist the run result.

        Args:
            result: Completed (or failed) run result

        Returns:
            Path of the written artifact
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        filepath = self.artifact_path(result)

        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, default=str, ensure_ascii=False)

        self.last_path = filepath
        logger.info(f"Saved migration result to {filepath}")
        return filepath

    def log_summary(self, result: MigrationRunResult) -> None:
        """Log per-stage counters and the error count."""
        stats = result.statistics
        logger.info("=== MIGRATION SUMMARY ===")
        logger.info(f"Status: {result.status.value}")
        logger.info(f"Dry run: {result.dry_run}, images skipped: {result.skipped_images}")
        for kind, created in stats.references.items():
            logger.info(f"references.{kind}: {created} created")
        logger.info(f"hostings: {stats.hostings} created")
        logger.info(f"images: {stats.images} migrated")
        logger.info(f"tariffs: {stats.tariffs} created")
        for kind, created in stats.tariff_relations.items():
            logger.info(f"tariff_relations.{kind}: {created} created")
        logger.info(
            f"content_blocks: {stats.content_blocks} created, "
            f"{stats.content_blocks_updated} updated"
        )
        if result.errors:
            logger.warning(f"Errors: {len(result.errors)}")
            for error in result.errors:
                logger.warning(f"  [{error.stage}] {error.subject}: {error.message}")
        else:
            logger.info("Errors: 0")

        if result.completed_at:
            elapsed = (result.completed_at - result.timestamp).total_seconds()
            logger.info(f"Duration: {elapsed:.2f} seconds")
