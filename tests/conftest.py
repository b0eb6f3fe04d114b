"""Shared test fixtures."""

import io
import struct
import zlib
from typing import Dict, List, Tuple
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image
from sqlalchemy import create_engine, text

from catalog_migration.errors import StorageError
from catalog_migration.extractors.mysql_reader import LegacyReader
from catalog_migration.loaders.sql_store import SqlTargetStore
from catalog_migration.storage.base import ObjectStorage, UploadOptions

_REFERENCE_COLUMNS = "id INTEGER PRIMARY KEY, name TEXT"

LEGACY_SCHEMA = {
    "cms": _REFERENCE_COLUMNS,
    "control_panel": _REFERENCE_COLUMNS,
    "country": _REFERENCE_COLUMNS,
    "data_store": _REFERENCE_COLUMNS,
    "operation_system": _REFERENCE_COLUMNS,
    "programming_language": _REFERENCE_COLUMNS,
    "hosting": (
        "id INTEGER PRIMARY KEY, name TEXT, slug TEXT, description TEXT, logo_url TEXT, "
        "start_year TEXT, test_period INTEGER, clients INTEGER, status INTEGER, "
        "is_active INTEGER, created_at TEXT, updated_at TEXT"
    ),
    "tariff": (
        "id INTEGER PRIMARY KEY, hosting_id INTEGER, name TEXT, price TEXT, period TEXT, "
        "price_month TEXT, price_year TEXT, currency TEXT, is_active INTEGER, "
        "domains INTEGER, disk_type TEXT, automatic_cms INTEGER, info_ozu TEXT, "
        "created_at TEXT, updated_at TEXT"
    ),
    "content_block": (
        'id INTEGER PRIMARY KEY, "key" TEXT, title TEXT, content TEXT, type TEXT, '
        "hosting_id INTEGER, is_active INTEGER, created_at TEXT, updated_at TEXT"
    ),
    "tariff_cms": "tariff_id INTEGER, cms_id INTEGER",
    "tariff_control_panel": "tariff_id INTEGER, control_panel_id INTEGER",
    "tariff_country": "tariff_id INTEGER, country_id INTEGER",
    "tariff_data_store": "tariff_id INTEGER, data_store_id INTEGER",
    "tariff_operation_system": "tariff_id INTEGER, operation_system_id INTEGER",
    "tariff_programming_language": "tariff_id INTEGER, programming_language_id INTEGER",
    "images": "id INTEGER PRIMARY KEY, owner_hash TEXT, owner_id INTEGER, path TEXT",
}


class LegacyDatabase:
    """A throwaway SQLite copy of the legacy schema."""

    def __init__(self, engine):
        self.engine = engine

    def create_all(self):
        with self.engine.begin() as conn:
            for table, columns in LEGACY_SCHEMA.items():
                conn.execute(text(f"CREATE TABLE {table} ({columns})"))

    def drop(self, table: str):
        with self.engine.begin() as conn:
            conn.execute(text(f"DROP TABLE {table}"))

    def insert(self, table: str, **values):
        columns = ", ".join(f'"{name}"' for name in values)
        params = ", ".join(f":{name}" for name in values)
        with self.engine.begin() as conn:
            conn.execute(text(f"INSERT INTO {table} ({columns}) VALUES ({params})"), values)


class InMemoryStorage(ObjectStorage):
    """Object storage double that keeps uploads in a dict."""

    def __init__(self, base_url: str = "https://cdn.example.com", fail_when=None):
        self._base_url = base_url
        self.fail_when = fail_when or (lambda key: False)
        self.objects: Dict[str, Tuple[bytes, UploadOptions]] = {}
        self.attempted: List[str] = []

    @property
    def base_url(self) -> str:
        return self._base_url

    def public_url(self, key: str) -> str:
        return f"{self._base_url}/{key}"

    def upload(self, key: str, body: bytes, options: UploadOptions) -> str:
        self.attempted.append(key)
        if self.fail_when(key):
            raise StorageError(f"Upload of {key} failed: access denied")
        self.objects[key] = (body, options)
        return self.public_url(key)


def image_bytes(fmt: str = "PNG", size=(64, 48), color=(200, 30, 30)) -> bytes:
    """Encode a solid-color image."""
    img = Image.new("RGB", size, color)
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def oversized_png(width: int = 30000, height: int = 30000) -> bytes:
    """PNG header declaring dimensions beyond Pillow's decompression bomb limit."""
    def chunk(kind: bytes, data: bytes) -> bytes:
        return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", zlib.crc32(kind + data))

    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b"\x00\x00\x00\x00"))
        + chunk(b"IEND", b"")
    )


def make_response(body: bytes = b"", status: int = 200, content_type: str = None, url: str = "https://legacy.example.com/logo.png"):
    """Build a real requests.Response without the network."""
    response = requests.Response()
    response.status_code = status
    response._content = body
    response.url = url
    response.reason = {200: "OK", 404: "Not Found", 500: "Internal Server Error"}.get(status, "")
    if content_type:
        response.headers["Content-Type"] = content_type
    return response


@pytest.fixture
def legacy_db(tmp_path):
    """Legacy database with every table created and empty."""
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    database = LegacyDatabase(engine)
    database.create_all()
    yield database
    engine.dispose()


@pytest.fixture
def reader(legacy_db):
    return LegacyReader(legacy_db.engine)


@pytest.fixture
def target_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'target.db'}")
    yield engine
    engine.dispose()


@pytest.fixture
def target_store(target_engine):
    return SqlTargetStore(target_engine, create_schema=True)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def sleep():
    """Stands in for time.sleep and records requested delays."""
    return MagicMock()
