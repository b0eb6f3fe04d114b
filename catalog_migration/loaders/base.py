"""Base target store interface."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

from ..models.entities import EntityKind

logger = logging.getLogger(__name__)


class BaseTargetStore(ABC):
    """
    Base class for target catalog stores.

    Stores expose find-by-natural-key, create, update and an idempotent
    junction-pair upsert per entity kind. Dry-run never reaches a store:
    the orchestrator skips the write calls instead.
    """

    @abstractmethod
    def ping(self) -> None:
        """Raise StoreConnectionError if the store is unreachable."""
        pass

    @abstractmethod
    def find_id(self, kind: EntityKind, **natural_key: Any) -> Optional[str]:
        """
        Find an existing record by natural key.

        Args:
            kind: Entity kind
            **natural_key: Column values identifying the record
                (``slug=...``, ``key=...``, or ``hosting_id=..., name=...``)

        Returns:
            Identifier of the existing record, or None
        """
        pass

    @abstractmethod
    def get(self, kind: EntityKind, record_id: str) -> Optional[Dict[str, Any]]:
        """Fetch a record's columns by identifier."""
        pass

    @abstractmethod
    def create(self, kind: EntityKind, record_id: str, values: Dict[str, Any]) -> str:
        """
        Insert a record.

        Args:
            kind: Entity kind
            record_id: Identifier to assign
            values: Column values

        Returns:
            Identifier of the created record
        """
        pass

    @abstractmethod
    def update(self, kind: EntityKind, record_id: str, values: Dict[str, Any]) -> None:
        """Update columns of an existing record."""
        pass

    @abstractmethod
    def link(self, kind: EntityKind, tariff_id: str, reference_id: str) -> bool:
        """
        Create a tariff junction pair.

        Returns:
            True if the pair was created, False if it already existed
        """
        pass

    @abstractmethod
    def hostings_with_logo(self) -> List[Dict[str, Any]]:
        """Hostings that have a logo URL, as ``{id, slug, logo_url}`` dicts."""
        pass

    @abstractmethod
    def count(self, kind: EntityKind) -> int:
        """Number of records of a kind."""
        pass

    def close(self) -> None:
        """Release connections."""
