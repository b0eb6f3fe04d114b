"""Fixed relational schema of the target catalog store."""

import dataclasses
from enum import Enum
from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
)

from ..models.entities import EntityKind, REFERENCE_KINDS

metadata = MetaData()

ID_LENGTH = 36


def _id_column() -> Column:
    return Column("id", String(ID_LENGTH), primary_key=True)


def _reference_table(name: str) -> Table:
    return Table(
        name,
        metadata,
        _id_column(),
        Column("name", String(255), nullable=False),
        Column("slug", String(255), nullable=False, unique=True),
    )


hostings = Table(
    "hostings",
    metadata,
    _id_column(),
    Column("name", String(255), nullable=False),
    Column("slug", String(255), nullable=False, unique=True),
    Column("description", Text),
    Column("logo_url", String(1024)),
    Column("website_url", String(1024)),
    Column("start_year", String(16)),
    Column("test_period", Integer),
    Column("clients", Integer),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

tariffs = Table(
    "tariffs",
    metadata,
    _id_column(),
    Column("hosting_id", String(ID_LENGTH), ForeignKey("hostings.id", ondelete="CASCADE"), nullable=False, index=True),
    Column("name", String(255), nullable=False),
    Column("price", Numeric(12, 2), nullable=False),
    Column("currency", String(8), nullable=False, default="RUB"),
    Column("period", String(16), nullable=False),
    Column("subtitle", String(255)),
    Column("link", String(1024)),
    Column("disk_space", Integer),
    Column("bandwidth", Integer),
    Column("domains_count", Integer),
    Column("databases_count", Integer),
    Column("email_accounts", Integer),
    Column("ssl", Boolean),
    Column("backup", Boolean),
    Column("ssh", Boolean),
    Column("ddos_def", Boolean),
    Column("antivirus", Boolean),
    Column("price_month", Numeric(12, 2)),
    Column("price_year", Numeric(12, 2)),
    Column("count_test_days", Integer),
    Column("type", Integer),
    Column("domains", Integer),
    Column("sites", Integer),
    Column("ftp_accounts", Integer),
    Column("traffic", Integer),
    Column("mailboxes", Integer),
    Column("count_db", Integer),
    Column("disk_type", String(64)),
    Column("automatic_cms", Boolean),
    Column("additional_id", Boolean),
    Column("is_template", Boolean),
    Column("info_disk_area", Text),
    Column("info_platforms", Text),
    Column("info_panels", Text),
    Column("info_price", Text),
    Column("info_ozu", Text),
    Column("info_cpu", Text),
    Column("info_cpu_core", Text),
    Column("info_domains", Text),
    Column("is_active", Boolean, nullable=False, default=True),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

content_blocks = Table(
    "content_blocks",
    metadata,
    _id_column(),
    Column("key", String(255), nullable=False, unique=True),
    Column("title", String(255)),
    Column("content", Text),
    Column("type", String(255)),
    Column("hosting_id", String(ID_LENGTH), ForeignKey("hostings.id", ondelete="SET NULL")),
    Column("is_active", Boolean, nullable=False, default=False),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

REFERENCE_TABLES: Dict[EntityKind, Table] = {
    kind: _reference_table(kind.value) for kind in REFERENCE_KINDS
}

ENTITY_TABLES: Dict[EntityKind, Table] = {
    **REFERENCE_TABLES,
    EntityKind.HOSTING: hostings,
    EntityKind.TARIFF: tariffs,
    EntityKind.CONTENT_BLOCK: content_blocks,
}

# Reference column of each tariff junction table
JUNCTION_COLUMNS: Dict[EntityKind, str] = {
    EntityKind.CMS: "cms_id",
    EntityKind.CONTROL_PANEL: "control_panel_id",
    EntityKind.COUNTRY: "country_id",
    EntityKind.DATA_STORE: "data_store_id",
    EntityKind.OPERATION_SYSTEM: "operation_system_id",
    EntityKind.PROGRAMMING_LANGUAGE: "programming_language_id",
}


def _junction_table(kind: EntityKind) -> Table:
    column = JUNCTION_COLUMNS[kind]
    return Table(
        f"tariff_{kind.value}",
        metadata,
        Column("tariff_id", String(ID_LENGTH), ForeignKey("tariffs.id", ondelete="CASCADE"), primary_key=True),
        Column(column, String(ID_LENGTH), ForeignKey(f"{kind.value}.id", ondelete="CASCADE"), primary_key=True),
    )


JUNCTION_TABLES: Dict[EntityKind, Table] = {
    kind: _junction_table(kind) for kind in REFERENCE_KINDS
}


def row_values(table: Table, record: Any) -> Dict[str, Any]:
    """
    Column values of ``record`` for ``table``.

    Fields the table does not have (legacy ids and the like) are dropped and
    enums are stored by value.
    """
    values = {}
    for name, value in dataclasses.asdict(record).items():
        if name == "id" or name not in table.c:
            continue
        values[name] = value.value if isinstance(value, Enum) else value
    return values
