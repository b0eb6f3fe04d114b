"""Tests for catalog_migration/extractors/mysql_reader.py"""

import pytest
from sqlalchemy.exc import OperationalError, ProgrammingError

from catalog_migration.errors import SourceQueryError, TableMissingError
from catalog_migration.extractors.mysql_reader import is_connection_error, is_missing_table_error
from catalog_migration.models.entities import EntityKind


class TestErrorClassification:
    def test_mysql_missing_table_code(self):
        error = ProgrammingError("SELECT * FROM cms", {}, Exception(1146, "Table 'legacy.cms' doesn't exist"))
        assert is_missing_table_error(error)

    def test_sqlite_missing_table_message(self):
        error = OperationalError("SELECT * FROM cms", {}, Exception("no such table: cms"))
        assert is_missing_table_error(error)

    def test_syntax_error_is_not_missing_table(self):
        error = ProgrammingError("SELEC", {}, Exception(1064, "You have an error in your SQL syntax"))
        assert not is_missing_table_error(error)

    def test_connection_refused(self):
        error = OperationalError("SELECT 1", {}, Exception(2003, "Can't connect to MySQL server"))
        assert is_connection_error(error)

    def test_access_denied(self):
        error = OperationalError("SELECT 1", {}, Exception(1045, "Access denied"))
        assert is_connection_error(error)

    def test_other_operational_error(self):
        error = OperationalError("SELECT 1", {}, Exception(1205, "Lock wait timeout exceeded"))
        assert not is_connection_error(error)

    def test_non_driver_error(self):
        assert not is_connection_error(ValueError("boom"))


class TestLegacyReader:
    def test_fetch_entities(self, legacy_db, reader):
        legacy_db.insert("cms", id=2, name="Joomla")
        legacy_db.insert("cms", id=1, name="WordPress")

        rows = reader.fetch_entities(EntityKind.CMS)

        assert rows == [{"id": 1, "name": "WordPress"}, {"id": 2, "name": "Joomla"}]

    def test_missing_table(self, legacy_db, reader):
        legacy_db.drop("country")

        with pytest.raises(TableMissingError) as exc_info:
            reader.fetch_entities(EntityKind.COUNTRY)

        assert exc_info.value.table == "country"

    def test_unexpected_query_error(self, reader):
        with pytest.raises(SourceQueryError):
            reader.query("SELEC nonsense", table="cms")

    def test_parameterized_query(self, legacy_db, reader):
        legacy_db.insert("cms", id=1, name="WordPress")
        legacy_db.insert("cms", id=2, name="Joomla")

        rows = reader.query("SELECT name FROM cms WHERE id = :id", {"id": 2}, table="cms")

        assert rows == [{"name": "Joomla"}]

    def test_fetch_tariff_links_ordered(self, legacy_db, reader):
        legacy_db.insert("tariff_cms", tariff_id=2, cms_id=1)
        legacy_db.insert("tariff_cms", tariff_id=1, cms_id=3)
        legacy_db.insert("tariff_cms", tariff_id=1, cms_id=2)

        rows = reader.fetch_tariff_links(EntityKind.CMS)

        assert [(r["tariff_id"], r["cms_id"]) for r in rows] == [(1, 2), (1, 3), (2, 1)]

    def test_fetch_hosting_logos(self, legacy_db, reader):
        legacy_db.insert("images", id=1, owner_hash="hosting", owner_id=10, path="logos/a.png")
        legacy_db.insert("images", id=2, owner_hash="hosting", owner_id=11, path="/logos/b.png")
        legacy_db.insert("images", id=3, owner_hash="hosting", owner_id=12, path="")
        legacy_db.insert("images", id=4, owner_hash="tariff", owner_id=13, path="t.png")

        logos = reader.fetch_hosting_logos("https://old.example.com/upload/")

        assert logos == {
            10: "https://old.example.com/upload/logos/a.png",
            11: "https://old.example.com/upload/logos/b.png",
        }

    def test_ping(self, reader):
        reader.ping()
