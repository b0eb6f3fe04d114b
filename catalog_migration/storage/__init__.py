"""Object storage for migrated images."""

from .base import ObjectStorage, UploadOptions, Visibility, IMMUTABLE_CACHE_CONTROL
from .s3_storage import S3ObjectStorage

__all__ = [
    "ObjectStorage",
    "UploadOptions",
    "Visibility",
    "IMMUTABLE_CACHE_CONTROL",
    "S3ObjectStorage",
]
