"""Tests for catalog_migration/services/image_migrator.py"""

import io
from unittest.mock import MagicMock

import pytest
import requests
from PIL import Image

from catalog_migration.errors import DownloadError, ImageMigrationError, MigrationError
from catalog_migration.services.image_migrator import (
    ImageMigrator,
    RejectedImageError,
    RetryPolicy,
    UnsupportedImageFormatError,
    detect_format,
    render_placeholder,
    render_thumbnail,
)
from conftest import InMemoryStorage, image_bytes, make_response, oversized_png

LOGO_URL = "https://legacy.example.com/upload/images/logo.png"


def _session(*results):
    """Session double whose ``get`` returns or raises ``results`` in order."""
    session = MagicMock()
    session.get.side_effect = list(results)
    return session


def _migrator(storage, session, sleep):
    return ImageMigrator(storage, session=session, sleep=sleep)


class TestDetectFormat:
    def test_sniffed_bytes_win(self):
        assert detect_format(image_bytes("PNG"), "image/jpeg", "https://x/logo.gif") == "png"

    def test_jpeg_normalized(self):
        assert detect_format(image_bytes("JPEG")) == "jpg"

    def test_falls_back_to_content_type(self):
        assert detect_format(b"not an image", "image/webp; charset=binary") == "webp"

    def test_falls_back_to_url_extension(self):
        assert detect_format(b"not an image", "application/octet-stream", "https://x/logo.GIF?v=2") == "gif"

    def test_url_jpeg_extension_normalized(self):
        assert detect_format(b"not an image", None, "https://x/logo.jpeg") == "jpg"

    def test_default(self):
        assert detect_format(b"not an image", None, "https://x/logo") == "jpg"

    def test_unsupported_sniffed_format_falls_through(self):
        assert detect_format(image_bytes("BMP"), "image/png") == "png"

    def test_unsupported_format_error_is_migration_error(self):
        assert issubclass(UnsupportedImageFormatError, MigrationError)

    def test_oversized_image_rejected(self):
        with pytest.raises(RejectedImageError, match="Image rejected"):
            detect_format(oversized_png(), "image/png", LOGO_URL)


class TestRenderThumbnail:
    def test_cover_fit_square(self):
        body = render_thumbnail(image_bytes("PNG", size=(300, 100)), 100, "png")
        with Image.open(io.BytesIO(body)) as img:
            assert img.size == (100, 100)
            assert img.format == "JPEG"

    def test_gif_becomes_png(self):
        body = render_thumbnail(image_bytes("GIF"), 50, "gif")
        with Image.open(io.BytesIO(body)) as img:
            assert img.format == "PNG"

    def test_webp_stays_webp(self):
        body = render_thumbnail(image_bytes("WEBP"), 50, "webp")
        with Image.open(io.BytesIO(body)) as img:
            assert img.format == "WEBP"


class TestRenderPlaceholder:
    def test_square_png(self):
        with Image.open(io.BytesIO(render_placeholder("beget"))) as img:
            assert img.format == "PNG"
            assert img.size == (400, 400)

    def test_background_color(self):
        with Image.open(io.BytesIO(render_placeholder("beget"))) as img:
            assert img.convert("RGB").getpixel((0, 0)) == (0xE5, 0xE7, 0xEB)

    def test_empty_slug(self):
        assert render_placeholder("")


class TestDownload:
    def test_success(self, storage, sleep):
        body = image_bytes()
        migrator = _migrator(storage, _session(make_response(body, content_type="image/png")), sleep)
        image = migrator.download(LOGO_URL)
        assert image.body == body
        assert image.content_type == "image/png"

    def test_empty_body(self, storage, sleep):
        migrator = _migrator(storage, _session(make_response(b"")), sleep)
        with pytest.raises(DownloadError, match="empty"):
            migrator.download(LOGO_URL)

    def test_http_error(self, storage, sleep):
        migrator = _migrator(storage, _session(make_response(b"nope", status=404)), sleep)
        with pytest.raises(DownloadError, match="HTTP 404"):
            migrator.download(LOGO_URL)

    def test_timeout(self, storage, sleep):
        migrator = _migrator(storage, _session(requests.Timeout("slow")), sleep)
        with pytest.raises(DownloadError, match="Timeout"):
            migrator.download(LOGO_URL)

    def test_network_error(self, storage, sleep):
        migrator = _migrator(storage, _session(requests.ConnectionError("refused")), sleep)
        with pytest.raises(DownloadError, match="Network error"):
            migrator.download(LOGO_URL)

    def test_uses_timeout(self, storage, sleep):
        session = _session(make_response(image_bytes()))
        ImageMigrator(storage, session=session, sleep=sleep, timeout=5).download(LOGO_URL)
        session.get.assert_called_once_with(LOGO_URL, timeout=5)

    def test_default_session_sends_user_agent(self, storage):
        migrator = ImageMigrator(storage)
        assert "Mozilla/5.0" in migrator.session.headers["User-Agent"]


class TestMigrate:
    def test_uploads_original_and_thumbnails(self, storage, sleep):
        session = _session(make_response(image_bytes("PNG"), content_type="image/png"))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        assert url == "https://cdn.example.com/images/hosting-logos/beget.png"
        assert set(storage.objects) == {
            "images/hosting-logos/beget.png",
            "images/hosting-logos/thumbnails/100x100/beget.jpeg",
            "images/hosting-logos/thumbnails/200x200/beget.jpeg",
            "images/hosting-logos/thumbnails/400x400/beget.jpeg",
        }
        sleep.assert_not_called()

    def test_upload_options(self, storage, sleep):
        session = _session(make_response(image_bytes("PNG")))
        _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        _, options = storage.objects["images/hosting-logos/beget.png"]
        assert options.content_type == "image/png"
        assert options.cache_control == "public, max-age=31536000, immutable"
        assert options.visibility.value == "public-read"
        assert options.metadata["hosting-slug"] == "beget"
        assert "upload-timestamp" in options.metadata

        _, thumb_options = storage.objects["images/hosting-logos/thumbnails/200x200/beget.jpeg"]
        assert thumb_options.content_type == "image/jpeg"
        assert thumb_options.metadata["thumbnail-size"] == "200x200"

    def test_retries_then_succeeds(self, storage, sleep):
        session = _session(requests.ConnectionError("refused"), make_response(image_bytes("JPEG")))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "timeweb")

        assert url.endswith("/images/hosting-logos/timeweb.jpg")
        assert session.get.call_count == 2
        sleep.assert_called_once_with(2.0)

    def test_placeholder_after_three_failed_downloads(self, storage, sleep):
        session = _session(*[requests.ConnectionError("refused")] * 3)

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "reg-ru")

        assert session.get.call_count == 3
        assert sleep.call_count == 2
        assert url == "https://cdn.example.com/images/hosting-logos/reg-ru.png"
        body, options = storage.objects["images/hosting-logos/reg-ru.png"]
        assert options.metadata["is-placeholder"] == "true"
        with Image.open(io.BytesIO(body)) as img:
            assert img.size == (400, 400)

    def test_failed_primary_upload_is_retried(self, sleep):
        attempts = []

        def fail_first_original(key):
            if key == "images/hosting-logos/beget.png":
                attempts.append(key)
                return len(attempts) == 1
            return False

        storage = InMemoryStorage(fail_when=fail_first_original)
        session = _session(make_response(image_bytes("PNG")), make_response(image_bytes("PNG")))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        assert url.endswith("/images/hosting-logos/beget.png")
        assert session.get.call_count == 2

    def test_thumbnail_failure_is_skipped(self, sleep):
        storage = InMemoryStorage(fail_when=lambda key: "200x200" in key)
        session = _session(make_response(image_bytes("PNG")))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        assert url.endswith("/images/hosting-logos/beget.png")
        assert "images/hosting-logos/thumbnails/100x100/beget.jpeg" in storage.objects
        assert "images/hosting-logos/thumbnails/200x200/beget.jpeg" not in storage.objects
        assert session.get.call_count == 1

    def test_undecodable_body_keeps_original(self, storage, sleep):
        session = _session(make_response(b"<svg></svg>", content_type="image/png"))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        assert url.endswith("/images/hosting-logos/beget.png")
        assert list(storage.objects) == ["images/hosting-logos/beget.png"]

    def test_oversized_image_goes_straight_to_placeholder(self, storage, sleep):
        session = _session(make_response(oversized_png(), content_type="image/png"))

        url = _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        assert url == "https://cdn.example.com/images/hosting-logos/beget.png"
        assert session.get.call_count == 1
        sleep.assert_not_called()
        _, options = storage.objects["images/hosting-logos/beget.png"]
        assert options.metadata["is-placeholder"] == "true"

    def test_placeholder_failure_raises_combined_error(self, sleep):
        storage = InMemoryStorage(fail_when=lambda key: True)
        session = _session(*[requests.ConnectionError("refused")] * 3)

        with pytest.raises(ImageMigrationError) as exc_info:
            _migrator(storage, session, sleep).migrate(LOGO_URL, "beget")

        message = str(exc_info.value)
        assert "Network error" in message
        assert "placeholder generation failed" in message
        assert "access denied" in message

    def test_custom_retry_policy(self, storage, sleep):
        session = _session(*[requests.ConnectionError("refused")] * 5)
        migrator = ImageMigrator(
            storage,
            session=session,
            sleep=sleep,
            retry_policy=RetryPolicy(max_attempts=5, delay_seconds=0.5),
        )

        migrator.migrate(LOGO_URL, "beget")

        assert session.get.call_count == 5
        assert sleep.call_count == 4
        sleep.assert_called_with(0.5)
