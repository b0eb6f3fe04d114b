"""Object storage interface for migrated images."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict


class Visibility(str, Enum):
    PUBLIC_READ = "public-read"
    PRIVATE = "private"


IMMUTABLE_CACHE_CONTROL = "public, max-age=31536000, immutable"


@dataclass
class UploadOptions:
    """Per-object upload settings."""
    content_type: str
    cache_control: str = IMMUTABLE_CACHE_CONTROL
    visibility: Visibility = Visibility.PUBLIC_READ
    metadata: Dict[str, str] = field(default_factory=dict)


class ObjectStorage(ABC):
    """Sink for original images and thumbnails."""

    @abstractmethod
    def upload(self, key: str, body: bytes, options: UploadOptions) -> str:
        """
        Store an object.

        Args:
            key: Object key
            body: Object bytes
            options: Content type, cache directive, visibility and metadata

        Returns:
            Public URL of the stored object
        """
        pass

    @abstractmethod
    def public_url(self, key: str) -> str:
        """Public URL for a key."""
        pass

    @property
    @abstractmethod
    def base_url(self) -> str:
        """Prefix shared by every public URL this storage returns."""
        pass
