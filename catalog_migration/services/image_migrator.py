"""
Hosting logo migration.

Downloads a legacy logo, detects its format, uploads the original and a set of
square thumbnails to object storage, and falls back to a generated
placeholder when every download attempt fails.
"""

import io
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, List, Optional, Sequence

import requests
from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError
from requests.adapters import HTTPAdapter

from ..errors import DownloadError, ImageMigrationError, MigrationError, StorageError
from ..storage.base import ObjectStorage, UploadOptions

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("jpg", "jpeg", "png", "gif", "webp")
THUMBNAIL_SIZES = (100, 200, 400)
DEFAULT_FORMAT = "jpg"
DOWNLOAD_TIMEOUT = 30
THUMBNAIL_QUALITY = 85
USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
KEY_PREFIX = "images/hosting-logos"

PLACEHOLDER_SIZE = 400
PLACEHOLDER_BACKGROUND = "#e5e7eb"
PLACEHOLDER_TEXT_COLOR = "#6b7280"
PLACEHOLDER_FONTS = ("DejaVuSans-Bold.ttf", "Arial Bold.ttf", "arialbd.ttf")

MIME_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
}

# Pillow format name -> our format name
_PILLOW_FORMATS = {
    "JPEG": "jpg",
    "MPO": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
}

# Source format -> (thumbnail format, Pillow encoder)
_THUMBNAIL_FORMATS = {
    "gif": ("png", "PNG"),
    "webp": ("webp", "WEBP"),
}
_DEFAULT_THUMBNAIL_FORMAT = ("jpeg", "JPEG")


class UnsupportedImageFormatError(MigrationError):
    """The detected format is outside the supported set."""


class RejectedImageError(MigrationError):
    """The downloaded image can never be used; retrying would not help."""


@dataclass
class RetryPolicy:
    """Fixed-delay bounded retry."""
    max_attempts: int = 3
    delay_seconds: float = 2.0


@dataclass
class DownloadedImage:
    body: bytes
    content_type: Optional[str] = None


def sniff_format(body: bytes) -> Optional[str]:
    """
    Identify the image format from its bytes, or None if Pillow cannot.

    Raises:
        RejectedImageError: If the declared dimensions exceed Pillow's pixel limit
    """
    try:
        with Image.open(io.BytesIO(body)) as img:
            return _PILLOW_FORMATS.get(img.format or "")
    except Image.DecompressionBombError as e:
        raise RejectedImageError(f"Image rejected: {e}") from e
    except (UnidentifiedImageError, OSError, ValueError):
        return None


def format_from_headers(content_type: Optional[str], url: Optional[str]) -> Optional[str]:
    """Guess the format from a Content-Type header, then from the URL extension."""
    if content_type:
        normalized = content_type.lower()
        if "jpeg" in normalized or "jpg" in normalized:
            return "jpg"
        for fmt in ("png", "gif", "webp"):
            if fmt in normalized:
                return fmt

    if url:
        path = url.split("?", 1)[0].split("#", 1)[0]
        extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
        if extension in SUPPORTED_FORMATS:
            return extension

    return None


def detect_format(body: bytes, content_type: Optional[str] = None, url: Optional[str] = None) -> str:
    """
    Detect an image format.

    Order: sniffed bytes, declared content type, URL extension, default.
    ``jpeg`` is normalized to ``jpg``.

    Raises:
        UnsupportedImageFormatError: If the result is not a supported format
        RejectedImageError: If the image is too large to decode safely
    """
    fmt = sniff_format(body) or format_from_headers(content_type, url) or DEFAULT_FORMAT
    if fmt == "jpeg":
        fmt = "jpg"
    if fmt not in SUPPORTED_FORMATS:
        raise UnsupportedImageFormatError(f"Unsupported image format: {fmt}")
    return fmt


def thumbnail_format(source_format: str) -> tuple:
    """(extension, Pillow encoder) used for thumbnails of a source format."""
    return _THUMBNAIL_FORMATS.get(source_format, _DEFAULT_THUMBNAIL_FORMAT)


def render_thumbnail(body: bytes, size: int, source_format: str) -> bytes:
    """Cover-fit ``body`` into a centered ``size`` x ``size`` square."""
    _, encoder = thumbnail_format(source_format)

    with Image.open(io.BytesIO(body)) as img:
        img.seek(0)
        frame = img.convert("RGB" if encoder == "JPEG" else "RGBA")

    fitted = ImageOps.fit(frame, (size, size), method=Image.LANCZOS, centering=(0.5, 0.5))

    out = io.BytesIO()
    if encoder == "PNG":
        fitted.save(out, format=encoder, optimize=True)
    else:
        fitted.save(out, format=encoder, quality=THUMBNAIL_QUALITY)
    return out.getvalue()


def _placeholder_font(size: int):
    font_size = int(size * 0.4)
    for name in PLACEHOLDER_FONTS:
        try:
            return ImageFont.truetype(name, font_size)
        except OSError:
            continue
    return ImageFont.load_default(size=font_size)


def render_placeholder(slug: str, size: int = PLACEHOLDER_SIZE) -> bytes:
    """Flat square PNG with the slug's first letter centered on it."""
    img = Image.new("RGB", (size, size), PLACEHOLDER_BACKGROUND)
    letter = slug[:1].upper()

    if letter:
        draw = ImageDraw.Draw(img)
        font = _placeholder_font(size)
        left, top, right, bottom = draw.textbbox((0, 0), letter, font=font)
        x = (size - (right - left)) / 2 - left
        y = (size - (bottom - top)) / 2 - top
        draw.text((x, y), letter, fill=PLACEHOLDER_TEXT_COLOR, font=font)

    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


class ImageMigrator:
    """
    Moves hosting logos into object storage.

    Handles:
    - Download with timeout and browser-like User-Agent
    - Format detection
    - Original upload plus 100/200/400 px thumbnails
    - Bounded retry with a fixed delay
    - Placeholder fallback
    """

    def __init__(
        self,
        storage: ObjectStorage,
        session: Optional[requests.Session] = None,
        retry_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = DOWNLOAD_TIMEOUT,
        thumbnail_sizes: Sequence[int] = THUMBNAIL_SIZES,
    ):
        """
        Initialize the migrator.

        Args:
            storage: Object storage receiving originals and thumbnails
            session: Custom requests session
            retry_policy: Attempt limit and delay between attempts
            sleep: Called with the delay between attempts
            timeout: Download timeout in seconds
            thumbnail_sizes: Thumbnail edge lengths in pixels
        """
        self.storage = storage
        self.session = session or self._create_session()
        self.retry_policy = retry_policy or RetryPolicy()
        self.sleep = sleep
        self.timeout = timeout
        self.thumbnail_sizes = tuple(thumbnail_sizes)

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update({"User-Agent": USER_AGENT})
        adapter = HTTPAdapter(max_retries=0)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def download(self, url: str) -> DownloadedImage:
        """
        Download an image.

        Raises:
            DownloadError: On timeout, transport error, HTTP error status or empty body
        """
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.Timeout as e:
            raise DownloadError(f"Timeout downloading image: {url}") from e
        except requests.HTTPError as e:
            status = e.response.status_code if e.response is not None else "?"
            reason = e.response.reason if e.response is not None else ""
            raise DownloadError(f"HTTP {status}: {reason}".strip()) from e
        except requests.RequestException as e:
            raise DownloadError(f"Network error while downloading {url}: {e}") from e

        body = response.content
        if not body:
            raise DownloadError(f"Downloaded image is empty: {url}")

        content_type = response.headers.get("Content-Type")
        logger.info(
            f"Downloaded {len(body) / 1024:.2f} KB"
            + (f" ({content_type})" if content_type else "")
        )
        return DownloadedImage(body=body, content_type=content_type)

    def _metadata(self, slug: str, **extra: str) -> Dict[str, str]:
        metadata = {
            "hosting-slug": slug,
            "upload-timestamp": datetime.utcnow().isoformat(),
        }
        metadata.update(extra)
        return metadata

    def upload_original(self, body: bytes, slug: str, fmt: str) -> str:
        """Upload the original under ``images/hosting-logos/<slug>.<fmt>``."""
        key = f"{KEY_PREFIX}/{slug}.{fmt}"
        return self.storage.upload(
            key,
            body,
            UploadOptions(content_type=MIME_TYPES[fmt], metadata=self._metadata(slug)),
        )

    def upload_thumbnails(self, body: bytes, slug: str, fmt: str) -> List[str]:
        """
        Render and upload one thumbnail per configured size.

        A size that fails to render or upload is logged and skipped.

        Returns:
            URLs of the uploaded thumbnails
        """
        extension, _ = thumbnail_format(fmt)
        urls = []

        for size in self.thumbnail_sizes:
            key = f"{KEY_PREFIX}/thumbnails/{size}x{size}/{slug}.{extension}"
            try:
                thumbnail = render_thumbnail(body, size, fmt)
                url = self.storage.upload(
                    key,
                    thumbnail,
                    UploadOptions(
                        content_type=MIME_TYPES["jpg" if extension == "jpeg" else extension],
                        metadata=self._metadata(slug, **{"thumbnail-size": f"{size}x{size}"}),
                    ),
                )
                urls.append(url)
            except (OSError, ValueError, Image.DecompressionBombError, StorageError) as e:
                logger.error(f"Thumbnail {size}x{size} for {slug} failed: {e}")

        logger.info(f"Created {len(urls)}/{len(self.thumbnail_sizes)} thumbnails for {slug}")
        return urls

    def upload_placeholder(self, slug: str) -> str:
        """Generate and upload the placeholder PNG."""
        key = f"{KEY_PREFIX}/{slug}.png"
        return self.storage.upload(
            key,
            render_placeholder(slug),
            UploadOptions(
                content_type="image/png",
                metadata=self._metadata(slug, **{"is-placeholder": "true"}),
            ),
        )

    def _attempt(self, url: str, slug: str) -> str:
        image = self.download(url)
        fmt = detect_format(image.body, image.content_type, url)
        image_url = self.upload_original(image.body, slug, fmt)
        self.upload_thumbnails(image.body, slug, fmt)
        return image_url

    def migrate(self, url: str, slug: str) -> str:
        """
        Migrate one hosting logo.

        Args:
            url: Legacy logo URL
            slug: Hosting slug, used in object keys

        Returns:
            Public URL of the new primary image (or of the placeholder)

        Raises:
            ImageMigrationError: If every attempt and the placeholder both fail
        """
        policy = self.retry_policy
        last_error: Optional[Exception] = None

        for attempt in range(1, policy.max_attempts + 1):
            logger.info(f"Attempt {attempt}/{policy.max_attempts}: migrating image for {slug}")
            try:
                image_url = self._attempt(url, slug)
                logger.info(f"Migrated image for {slug}: {image_url}")
                return image_url
            except RejectedImageError as e:
                last_error = e
                logger.warning(f"Image for {slug} rejected, not retrying: {e}")
                break
            except MigrationError as e:
                last_error = e
                logger.warning(f"Attempt {attempt}/{policy.max_attempts} for {slug} failed: {e}")

            if attempt < policy.max_attempts:
                logger.info(f"Waiting {policy.delay_seconds}s before retrying")
                self.sleep(policy.delay_seconds)

        logger.warning(f"All attempts failed for {slug}, creating placeholder")
        try:
            placeholder_url = self.upload_placeholder(slug)
        except (StorageError, OSError, ValueError) as e:
            raise ImageMigrationError(slug, last_error, e) from e

        logger.info(f"Placeholder created for {slug}: {placeholder_url}")
        return placeholder_url
