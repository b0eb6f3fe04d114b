"""Registry translating legacy integer keys to target identifiers."""

import logging
from typing import Dict, Optional, Union

from ..models.entities import EntityKind

logger = logging.getLogger(__name__)

LegacyKey = Union[int, str]


class IdMappingRegistry:
    """
    Per-run table of ``(kind, legacy id) -> target id``.

    An entry is never overwritten once set and nothing is ever removed, so a
    registry lives exactly as long as the run that owns it.
    """

    def __init__(self):
        self._tables: Dict[EntityKind, Dict[int, str]] = {kind: {} for kind in EntityKind}
        # First legacy id registered for each target id
        self._owners: Dict[EntityKind, Dict[str, int]] = {kind: {} for kind in EntityKind}

    @staticmethod
    def _normalize(legacy_id: LegacyKey) -> int:
        return int(legacy_id)

    def set(self, kind: EntityKind, legacy_id: LegacyKey, new_id: str) -> bool:
        """
        Register a mapping.

        Args:
            kind: Entity kind
            legacy_id: Legacy integer primary key
            new_id: Target identifier

        Returns:
            True if the entry was added, False if one already existed
        """
        table = self._tables[kind]
        key = self._normalize(legacy_id)

        existing = table.get(key)
        if existing is not None:
            if existing != new_id:
                logger.warning(
                    f"Ignoring remap of {kind.value} {key}: already mapped to {existing}"
                )
            return False

        table[key] = new_id
        self._owners[kind].setdefault(new_id, key)
        return True

    def get(self, kind: EntityKind, legacy_id: Optional[LegacyKey]) -> Optional[str]:
        """Look up a target identifier, or None when unmapped."""
        if legacy_id is None:
            return None
        try:
            key = self._normalize(legacy_id)
        except (TypeError, ValueError):
            return None
        return self._tables[kind].get(key)

    def legacy_id_for(self, kind: EntityKind, new_id: str) -> Optional[int]:
        """First legacy id mapped onto ``new_id``, or None."""
        return self._owners[kind].get(new_id)

    def contains(self, kind: EntityKind, legacy_id: LegacyKey) -> bool:
        return self.get(kind, legacy_id) is not None

    def count(self, kind: EntityKind) -> int:
        return len(self._tables[kind])

    def snapshot(self) -> Dict[str, Dict[str, str]]:
        """Copy of all tables keyed by kind name, suitable for JSON."""
        return {
            kind.value: {str(legacy): new for legacy, new in table.items()}
            for kind, table in self._tables.items()
        }
