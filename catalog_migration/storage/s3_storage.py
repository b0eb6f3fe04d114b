"""S3-compatible object storage (AWS S3, MinIO) via boto3."""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..config import MigrationSettings
from ..errors import StorageError
from .base import ObjectStorage, UploadOptions

logger = logging.getLogger(__name__)


class S3ObjectStorage(ObjectStorage):
    """
    Uploads objects with ``put_object``.

    Public URLs use ``public_url_base`` when configured (CDN, MinIO proxy),
    otherwise the endpoint URL with path-style addressing, otherwise the
    virtual-hosted AWS URL.
    """

    def __init__(
        self,
        *,
        bucket: str,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        public_url_base: Optional[str] = None,
        client: Optional[Any] = None,
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
    ) -> None:
        self.bucket = bucket
        self.region = region or "us-east-1"
        self.endpoint_url = endpoint_url
        self._public_url_base = public_url_base
        self.client = client or boto3.client(
            "s3",
            region_name=self.region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    @classmethod
    def from_settings(cls, settings: MigrationSettings) -> "S3ObjectStorage":
        return cls(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            endpoint_url=settings.s3_endpoint_url,
            public_url_base=settings.s3_public_url,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
        )

    @property
    def base_url(self) -> str:
        if self._public_url_base:
            return self._public_url_base.rstrip("/")
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com"

    def public_url(self, key: str) -> str:
        return f"{self.base_url}/{key.lstrip('/')}"

    def upload(self, key: str, body: bytes, options: UploadOptions) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=body,
                ContentType=options.content_type,
                CacheControl=options.cache_control,
                ACL=options.visibility.value,
                Metadata={k: str(v) for k, v in options.metadata.items()},
            )
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Upload of {key} failed: {e}") from e

        url = self.public_url(key)
        logger.debug(f"Uploaded {key} ({len(body)} bytes) to {url}")
        return url
