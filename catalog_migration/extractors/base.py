"""Base reader interface for the legacy store."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional
import logging

from ..models.entities import EntityKind

logger = logging.getLogger(__name__)

Row = Dict[str, Any]

# Legacy table per entity kind
LEGACY_TABLES: Dict[EntityKind, str] = {
    EntityKind.CMS: "cms",
    EntityKind.CONTROL_PANEL: "control_panel",
    EntityKind.COUNTRY: "country",
    EntityKind.DATA_STORE: "data_store",
    EntityKind.OPERATION_SYSTEM: "operation_system",
    EntityKind.PROGRAMMING_LANGUAGE: "programming_language",
    EntityKind.HOSTING: "hosting",
    EntityKind.TARIFF: "tariff",
    EntityKind.CONTENT_BLOCK: "content_block",
}

# Legacy tariff junction table and its reference column, per reference kind
LEGACY_JUNCTIONS: Dict[EntityKind, tuple] = {
    EntityKind.CMS: ("tariff_cms", "cms_id"),
    EntityKind.CONTROL_PANEL: ("tariff_control_panel", "control_panel_id"),
    EntityKind.COUNTRY: ("tariff_country", "country_id"),
    EntityKind.DATA_STORE: ("tariff_data_store", "data_store_id"),
    EntityKind.OPERATION_SYSTEM: ("tariff_operation_system", "operation_system_id"),
    EntityKind.PROGRAMMING_LANGUAGE: ("tariff_programming_language", "programming_language_id"),
}

LEGACY_IMAGES_TABLE = "images"
HOSTING_IMAGE_OWNER = "hosting"


class BaseReader(ABC):
    """
    Base class for legacy store readers.

    Readers run read-only queries and return plain dict rows. A query against
    a relation that does not exist raises ``TableMissingError`` so callers can
    treat it as an empty table. Connectivity failures raise
    ``StoreConnectionError`` and anything else ``SourceQueryError``.
    """

    @abstractmethod
    def query(self, sql: str, params: Optional[Mapping[str, Any]] = None, table: str = "") -> List[Row]:
        """
        Execute a parameterized read-only query.

        Args:
            sql: SQL with named ``:param`` placeholders
            params: Bound parameter values
            table: Relation the query reads, used in error reporting

        Returns:
            List of rows as dictionaries
        """
        pass

    @abstractmethod
    def ping(self) -> None:
        """Raise StoreConnectionError if the store is unreachable."""
        pass

    def close(self) -> None:
        """Release connections."""

    def fetch_table(self, table: str, order_by: str = "id") -> List[Row]:
        """Read every row of a legacy table."""
        rows = self.query(f"SELECT * FROM {table} ORDER BY {order_by}", table=table)
        logger.debug(f"Read {len(rows)} rows from {table}")
        return rows

    def fetch_entities(self, kind: EntityKind) -> List[Row]:
        """Read all legacy rows of an entity kind."""
        return self.fetch_table(LEGACY_TABLES[kind])

    def fetch_tariff_links(self, kind: EntityKind) -> List[Row]:
        """Read ``(tariff_id, <reference>_id)`` pairs for a reference kind."""
        table, column = LEGACY_JUNCTIONS[kind]
        return self.fetch_table(table, order_by=f"tariff_id, {column}")

    def fetch_hosting_logos(self, base_url: str) -> Dict[int, str]:
        """
        Collect absolute logo URLs from the legacy ``images`` table.

        Args:
            base_url: Public prefix of the legacy upload directory

        Returns:
            Dictionary of hosting legacy id -> logo URL
        """
        rows = self.query(
            f"SELECT * FROM {LEGACY_IMAGES_TABLE} "
            "WHERE owner_hash = :owner AND path IS NOT NULL AND path != ''",
            {"owner": HOSTING_IMAGE_OWNER},
            table=LEGACY_IMAGES_TABLE,
        )

        logos: Dict[int, str] = {}
        base = base_url.rstrip("/")
        for row in rows:
            path = row.get("path")
            owner_id = row.get("owner_id")
            if not path or not owner_id:
                continue
            if not path.startswith("/"):
                path = f"/{path}"
            logos[int(owner_id)] = f"{base}{path}"

        logger.info(f"Found {len(logos)} hosting logos in {LEGACY_IMAGES_TABLE}")
        return logos
