"""Target store over SQLAlchemy Core (psycopg2 driver for Postgres)."""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, create_engine, func, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DataError, IntegrityError, SQLAlchemyError
from sqlalchemy.sql.expression import Insert

from ..config import MigrationSettings
from ..errors import StoreConnectionError, TargetWriteError
from ..extractors.mysql_reader import is_connection_error
from ..models.entities import EntityKind
from .base import BaseTargetStore
from .schema import ENTITY_TABLES, JUNCTION_COLUMNS, JUNCTION_TABLES, hostings, metadata

logger = logging.getLogger(__name__)


class SqlTargetStore(BaseTargetStore):
    """
    Writes the normalized catalog through a SQLAlchemy engine.

    Each write runs in its own transaction so a rejected row never rolls
    back rows written before it.
    """

    def __init__(self, engine: Engine, create_schema: bool = False):
        """
        Initialize the store.

        Args:
            engine: SQLAlchemy engine connected to the target database
            create_schema: Create missing tables on start (tests, fresh databases)
        """
        self.engine = engine
        if create_schema:
            metadata.create_all(engine)

    @classmethod
    def from_settings(cls, settings: MigrationSettings) -> "SqlTargetStore":
        engine = create_engine(settings.target_url, pool_pre_ping=True)
        return cls(engine)

    def _raise_for(self, error: SQLAlchemyError, action: str) -> None:
        """Translate a driver error into the migration error hierarchy and raise it."""
        detail = str(getattr(error, "orig", None) or error).strip()
        if is_connection_error(error):
            raise StoreConnectionError("target", detail) from error
        if isinstance(error, (IntegrityError, DataError)):
            raise TargetWriteError(f"{action} rejected: {detail}") from error
        raise error

    def ping(self) -> None:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise StoreConnectionError("target", str(getattr(e, "orig", None) or e)) from e
        logger.info("Target store connection OK")

    def find_id(self, kind: EntityKind, **natural_key: Any) -> Optional[str]:
        table = ENTITY_TABLES[kind]
        conditions = [table.c[name] == value for name, value in natural_key.items()]
        stmt = select(table.c.id).where(and_(*conditions)).limit(1)
        try:
            with self.engine.connect() as conn:
                return conn.execute(stmt).scalar()
        except SQLAlchemyError as e:
            self._raise_for(e, f"Lookup of {kind.value}")

    def get(self, kind: EntityKind, record_id: str) -> Optional[Dict[str, Any]]:
        table = ENTITY_TABLES[kind]
        try:
            with self.engine.connect() as conn:
                row = conn.execute(select(table).where(table.c.id == record_id)).first()
        except SQLAlchemyError as e:
            self._raise_for(e, f"Lookup of {kind.value}")
        return dict(row._mapping) if row is not None else None

    def create(self, kind: EntityKind, record_id: str, values: Dict[str, Any]) -> str:
        table = ENTITY_TABLES[kind]
        try:
            with self.engine.begin() as conn:
                conn.execute(table.insert().values(id=record_id, **values))
        except SQLAlchemyError as e:
            self._raise_for(e, f"Insert into {table.name}")
        return record_id

    def update(self, kind: EntityKind, record_id: str, values: Dict[str, Any]) -> None:
        if not values:
            return
        table = ENTITY_TABLES[kind]
        try:
            with self.engine.begin() as conn:
                conn.execute(table.update().where(table.c.id == record_id).values(**values))
        except SQLAlchemyError as e:
            self._raise_for(e, f"Update of {table.name}")

    def _insert_ignoring_duplicates(self, kind: EntityKind, values: Dict[str, Any]) -> Optional[Insert]:
        table = JUNCTION_TABLES[kind]
        keys = ["tariff_id", JUNCTION_COLUMNS[kind]]
        dialect = self.engine.dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table).values(**values).on_conflict_do_nothing(index_elements=keys)
        if dialect == "sqlite":
            return sqlite.insert(table).values(**values).on_conflict_do_nothing(index_elements=keys)
        return None

    def link(self, kind: EntityKind, tariff_id: str, reference_id: str) -> bool:
        table = JUNCTION_TABLES[kind]
        column = JUNCTION_COLUMNS[kind]
        values = {"tariff_id": tariff_id, column: reference_id}

        try:
            with self.engine.begin() as conn:
                stmt = self._insert_ignoring_duplicates(kind, values)
                if stmt is not None:
                    return conn.execute(stmt).rowcount > 0

                exists = conn.execute(
                    select(table.c.tariff_id).where(
                        and_(table.c.tariff_id == tariff_id, table.c[column] == reference_id)
                    )
                ).first()
                if exists:
                    return False
                conn.execute(table.insert().values(**values))
                return True
        except SQLAlchemyError as e:
            self._raise_for(e, f"Insert into {table.name}")

    def hostings_with_logo(self) -> List[Dict[str, Any]]:
        stmt = (
            select(hostings.c.id, hostings.c.slug, hostings.c.logo_url)
            .where(hostings.c.logo_url.isnot(None))
            .where(hostings.c.logo_url != "")
            .order_by(hostings.c.slug)
        )
        try:
            with self.engine.connect() as conn:
                return [dict(row._mapping) for row in conn.execute(stmt)]
        except SQLAlchemyError as e:
            self._raise_for(e, "Listing hostings")

    def count(self, kind: EntityKind) -> int:
        table = ENTITY_TABLES[kind]
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def count_links(self, kind: EntityKind) -> int:
        table = JUNCTION_TABLES[kind]
        with self.engine.connect() as conn:
            return conn.execute(select(func.count()).select_from(table)).scalar_one()

    def close(self) -> None:
        logger.info("Disconnecting from target store")
        self.engine.dispose()
