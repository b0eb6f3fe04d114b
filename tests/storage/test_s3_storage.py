"""Tests for catalog_migration/storage/s3_storage.py"""

from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from catalog_migration.config import MigrationSettings
from catalog_migration.errors import StorageError
from catalog_migration.storage.base import UploadOptions, Visibility
from catalog_migration.storage.s3_storage import S3ObjectStorage


class TestBaseUrl:
    def test_public_url_base_wins(self):
        storage = S3ObjectStorage(
            bucket="logos",
            endpoint_url="http://minio:9000",
            public_url_base="https://cdn.example.com/",
            client=MagicMock(),
        )
        assert storage.public_url("images/a.png") == "https://cdn.example.com/images/a.png"

    def test_endpoint_path_style(self):
        storage = S3ObjectStorage(bucket="logos", endpoint_url="http://minio:9000/", client=MagicMock())
        assert storage.base_url == "http://minio:9000/logos"

    def test_aws_virtual_host(self):
        storage = S3ObjectStorage(bucket="logos", region="eu-central-1", client=MagicMock())
        assert storage.base_url == "https://logos.s3.eu-central-1.amazonaws.com"


class TestUpload:
    def test_put_object(self):
        client = MagicMock()
        storage = S3ObjectStorage(bucket="logos", public_url_base="https://cdn.example.com", client=client)

        url = storage.upload(
            "images/hosting-logos/a.png",
            b"data",
            UploadOptions(content_type="image/png", metadata={"hosting-slug": "a"}),
        )

        assert url == "https://cdn.example.com/images/hosting-logos/a.png"
        client.put_object.assert_called_once_with(
            Bucket="logos",
            Key="images/hosting-logos/a.png",
            Body=b"data",
            ContentType="image/png",
            CacheControl="public, max-age=31536000, immutable",
            ACL="public-read",
            Metadata={"hosting-slug": "a"},
        )

    def test_private_visibility(self):
        client = MagicMock()
        storage = S3ObjectStorage(bucket="logos", client=client)

        storage.upload("k", b"x", UploadOptions(content_type="image/png", visibility=Visibility.PRIVATE))

        assert client.put_object.call_args.kwargs["ACL"] == "private"

    def test_client_error_wrapped(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "Access Denied"}}, "PutObject"
        )
        storage = S3ObjectStorage(bucket="logos", client=client)

        with pytest.raises(StorageError, match="Upload of k failed"):
            storage.upload("k", b"x", UploadOptions(content_type="image/png"))


class TestFromSettings:
    def test_builds_client_from_settings(self, monkeypatch):
        created = {}

        def fake_client(service, **kwargs):
            created.update(kwargs, service=service)
            return MagicMock()

        monkeypatch.setattr("catalog_migration.storage.s3_storage.boto3.client", fake_client)
        settings = MigrationSettings(
            s3_bucket="logos",
            s3_region="eu-west-1",
            s3_endpoint_url="http://minio:9000",
            s3_access_key_id="key",
            s3_secret_access_key="secret",
        )

        storage = S3ObjectStorage.from_settings(settings)

        assert storage.bucket == "logos"
        assert created["service"] == "s3"
        assert created["region_name"] == "eu-west-1"
        assert created["endpoint_url"] == "http://minio:9000"
        assert created["aws_access_key_id"] == "key"
