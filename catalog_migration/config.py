"""Settings for the catalog migration, read from the environment."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from dotenv import load_dotenv
from sqlalchemy.engine import URL

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_LEGACY_IMAGE_BASE_URL = "https://hosting-top.online/upload/images"


def load_environment(base_dir: Optional[str] = None) -> None:
    """
    Load variables from ``.env.migration``, falling back to ``.env``.

    Variables already present in the process environment are never overridden.
    """
    base = Path(base_dir) if base_dir else Path.cwd()

    migration_env = base / ".env.migration"
    if migration_env.exists():
        load_dotenv(migration_env)
        logger.debug(f"Loaded environment from {migration_env}")

    if not os.environ.get("MYSQL_HOST"):
        fallback = base / ".env"
        if fallback.exists():
            load_dotenv(fallback)
            logger.debug(f"Loaded environment from {fallback}")


def _int(value: Optional[str], default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Expected an integer, got {value!r}")


@dataclass
class MigrationSettings:
    """Connection settings and locations for one migration run."""

    # Legacy MySQL store
    mysql_host: str = ""
    mysql_port: int = 3306
    mysql_user: str = ""
    mysql_password: str = ""
    mysql_database: str = ""
    mysql_connection_limit: int = 10
    mysql_connect_timeout: int = 10

    # Target store
    database_url: str = ""

    # Object storage
    s3_bucket: str = ""
    s3_region: str = "us-east-1"
    s3_access_key_id: Optional[str] = None
    s3_secret_access_key: Optional[str] = None
    s3_endpoint_url: Optional[str] = None
    s3_public_url: Optional[str] = None

    legacy_image_base_url: str = DEFAULT_LEGACY_IMAGE_BASE_URL
    output_dir: str = "./data/migration"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "MigrationSettings":
        """Create settings from environment variables."""
        env = os.environ if environ is None else environ

        return cls(
            mysql_host=env.get("MYSQL_HOST", ""),
            mysql_port=_int(env.get("MYSQL_PORT"), 3306),
            mysql_user=env.get("MYSQL_USER", ""),
            mysql_password=env.get("MYSQL_PASSWORD", ""),
            mysql_database=env.get("MYSQL_DATABASE", ""),
            mysql_connection_limit=_int(env.get("MYSQL_CONNECTION_LIMIT"), 10),
            mysql_connect_timeout=_int(env.get("MYSQL_CONNECT_TIMEOUT"), 10),
            database_url=env.get("DATABASE_URL", ""),
            s3_bucket=env.get("AWS_S3_BUCKET", ""),
            s3_region=env.get("AWS_REGION", "us-east-1"),
            s3_access_key_id=env.get("AWS_ACCESS_KEY_ID") or None,
            s3_secret_access_key=env.get("AWS_SECRET_ACCESS_KEY") or None,
            s3_endpoint_url=env.get("S3_ENDPOINT_URL") or None,
            s3_public_url=env.get("S3_PUBLIC_URL") or None,
            legacy_image_base_url=env.get("LEGACY_IMAGE_BASE_URL", DEFAULT_LEGACY_IMAGE_BASE_URL),
            output_dir=env.get("MIGRATION_OUTPUT_DIR", "./data/migration"),
        )

    def missing_source_settings(self) -> List[str]:
        """Names of required legacy store variables that are unset."""
        required = {
            "MYSQL_HOST": self.mysql_host,
            "MYSQL_USER": self.mysql_user,
            "MYSQL_PASSWORD": self.mysql_password,
            "MYSQL_DATABASE": self.mysql_database,
        }
        return [name for name, value in required.items() if not value]

    def validate(self, require_storage: bool = True) -> List[str]:
        """
        Collect the names of required variables that are unset.

        Args:
            require_storage: Whether object storage settings are needed
                (they are not when images are skipped)

        Returns:
            List of missing variable names
        """
        missing = self.missing_source_settings()
        if not self.database_url:
            missing.append("DATABASE_URL")
        if require_storage and not self.s3_bucket:
            missing.append("AWS_S3_BUCKET")
        return missing

    def ensure_valid(self, require_storage: bool = True) -> None:
        """Raise ConfigurationError if any required variable is unset."""
        missing = self.validate(require_storage)
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}",
                missing=missing,
            )

    @property
    def source_url(self) -> str:
        """SQLAlchemy URL for the legacy MySQL store."""
        url = URL.create(
            "mysql+pymysql",
            username=self.mysql_user,
            password=self.mysql_password,
            host=self.mysql_host,
            port=self.mysql_port,
            database=self.mysql_database,
            query={"charset": "utf8mb4"},
        )
        return url.render_as_string(hide_password=False)

    @property
    def target_url(self) -> str:
        """SQLAlchemy URL for the target Postgres store."""
        url = self.database_url
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://"):]
        if url.startswith("postgresql://"):
            url = "postgresql+psycopg2://" + url[len("postgresql://"):]
        return url

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation, without secrets."""
        return {
            "mysql_host": self.mysql_host,
            "mysql_port": self.mysql_port,
            "mysql_user": self.mysql_user,
            "mysql_database": self.mysql_database,
            "mysql_connection_limit": self.mysql_connection_limit,
            "s3_bucket": self.s3_bucket,
            "s3_region": self.s3_region,
            "s3_endpoint_url": self.s3_endpoint_url,
            "s3_public_url": self.s3_public_url,
            "legacy_image_base_url": self.legacy_image_base_url,
            "output_dir": self.output_dir,
        }
