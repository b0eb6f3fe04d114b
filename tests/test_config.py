"""Tests for catalog_migration/config.py"""

import os
from unittest.mock import patch

import pytest

from catalog_migration.config import DEFAULT_LEGACY_IMAGE_BASE_URL, MigrationSettings, load_environment
from catalog_migration.errors import ConfigurationError

COMPLETE_ENV = {
    "MYSQL_HOST": "legacy-db",
    "MYSQL_PORT": "3307",
    "MYSQL_USER": "reader",
    "MYSQL_PASSWORD": "p@ss",
    "MYSQL_DATABASE": "hosting",
    "DATABASE_URL": "postgres://app:secret@pg:5432/catalog",
    "AWS_S3_BUCKET": "logos",
}


class TestMigrationSettings:
    def test_from_env(self):
        settings = MigrationSettings.from_env(COMPLETE_ENV)
        assert settings.mysql_host == "legacy-db"
        assert settings.mysql_port == 3307
        assert settings.mysql_connection_limit == 10
        assert settings.s3_region == "us-east-1"
        assert settings.legacy_image_base_url == DEFAULT_LEGACY_IMAGE_BASE_URL

    def test_invalid_integer(self):
        with pytest.raises(ConfigurationError):
            MigrationSettings.from_env({**COMPLETE_ENV, "MYSQL_PORT": "abc"})

    def test_validate_complete(self):
        assert MigrationSettings.from_env(COMPLETE_ENV).validate() == []

    def test_validate_lists_every_missing_name(self):
        settings = MigrationSettings.from_env({"MYSQL_HOST": "db"})
        assert settings.validate() == [
            "MYSQL_USER", "MYSQL_PASSWORD", "MYSQL_DATABASE", "DATABASE_URL", "AWS_S3_BUCKET",
        ]

    def test_storage_optional_when_images_skipped(self):
        env = {k: v for k, v in COMPLETE_ENV.items() if k != "AWS_S3_BUCKET"}
        settings = MigrationSettings.from_env(env)
        assert settings.validate(require_storage=False) == []
        assert settings.validate(require_storage=True) == ["AWS_S3_BUCKET"]

    def test_ensure_valid_raises(self):
        with pytest.raises(ConfigurationError, match="MYSQL_PASSWORD") as exc_info:
            MigrationSettings.from_env({}).ensure_valid()
        assert "DATABASE_URL" in exc_info.value.missing

    def test_source_url(self):
        url = MigrationSettings.from_env(COMPLETE_ENV).source_url
        assert url.startswith("mysql+pymysql://reader:")
        assert "@legacy-db:3307/hosting" in url
        assert "charset=utf8mb4" in url

    @pytest.mark.parametrize("database_url", [
        "postgres://app:secret@pg:5432/catalog",
        "postgresql://app:secret@pg:5432/catalog",
    ])
    def test_target_url_uses_psycopg2(self, database_url):
        settings = MigrationSettings.from_env({**COMPLETE_ENV, "DATABASE_URL": database_url})
        assert settings.target_url == "postgresql+psycopg2://app:secret@pg:5432/catalog"

    def test_target_url_other_driver_untouched(self):
        settings = MigrationSettings.from_env({**COMPLETE_ENV, "DATABASE_URL": "sqlite:///x.db"})
        assert settings.target_url == "sqlite:///x.db"

    def test_to_dict_hides_secrets(self):
        data = MigrationSettings.from_env(COMPLETE_ENV).to_dict()
        assert "mysql_password" not in data
        assert "p@ss" not in str(data)


class TestLoadEnvironment:
    def test_prefers_migration_env(self, tmp_path):
        (tmp_path / ".env.migration").write_text("MYSQL_HOST=from-migration\n")
        (tmp_path / ".env").write_text("MYSQL_HOST=from-dotenv\nMYSQL_DATABASE=fallback\n")

        with patch.dict(os.environ):
            os.environ.pop("MYSQL_HOST", None)
            os.environ.pop("MYSQL_DATABASE", None)
            load_environment(str(tmp_path))

            assert os.environ["MYSQL_HOST"] == "from-migration"
            assert "MYSQL_DATABASE" not in os.environ

    def test_falls_back_to_dotenv(self, tmp_path):
        (tmp_path / ".env").write_text("MYSQL_HOST=from-dotenv\n")

        with patch.dict(os.environ):
            os.environ.pop("MYSQL_HOST", None)
            load_environment(str(tmp_path))

            assert os.environ["MYSQL_HOST"] == "from-dotenv"

    def test_existing_variables_win(self, tmp_path):
        (tmp_path / ".env.migration").write_text("MYSQL_HOST=from-file\n")

        with patch.dict(os.environ, {"MYSQL_HOST": "from-process"}):
            load_environment(str(tmp_path))

            assert os.environ["MYSQL_HOST"] == "from-process"
