"""File-backed status document for migrations started over HTTP."""

import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from ..models.run import MigrationStatus

logger = logging.getLogger(__name__)


class MigrationStatusStore:
    """
    Keeps the status of the latest migration in ``status/migration-status.json``.

    The file survives process restarts, so a status request after a crash
    still shows the last known state.
    """

    FILENAME = "migration-status.json"

    def __init__(self, output_dir: str = "./data/migration"):
        self.path = Path(output_dir) / "status" / self.FILENAME
        self._lock = threading.Lock()

    def read(self) -> Optional[Dict[str, Any]]:
        """Return the stored status document, or None when nothing was started yet."""
        if not self.path.exists():
            return None
        with open(self.path, encoding="utf-8") as f:
            return json.load(f)

    def write(self, document: Dict[str, Any]) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, default=str, ensure_ascii=False)
            tmp.replace(self.path)

    def is_running(self) -> bool:
        document = self.read()
        return bool(document) and document.get("status") == MigrationStatus.RUNNING.value

    def mark_running(self, migration_id: str, dry_run: bool, skip_images: bool) -> Dict[str, Any]:
        """Record that a migration has been accepted and is starting."""
        document = {
            "migration_id": migration_id,
            "status": MigrationStatus.RUNNING.value,
            "dry_run": dry_run,
            "skip_images": skip_images,
            "started_at": datetime.utcnow().isoformat(),
            "completed_at": None,
            "result": None,
            "error": None,
        }
        self.write(document)
        return document

    def mark_finished(
        self,
        status: MigrationStatus,
        result: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Record the final state of the current migration."""
        document = self.read() or {}
        document.update({
            "status": status.value,
            "completed_at": datetime.utcnow().isoformat(),
            "result": result,
            "error": error,
        })
        self.write(document)
        logger.info(f"Migration {document.get('migration_id')} finished with status {status.value}")
        return document
