"""Tests for image downloading and format inference."""

from unittest.mock import MagicMock

import pytest
import requests

from content_sync.images import (
    MAX_IMAGE_BYTES,
    build_file_name,
    detect_image_format,
    download_image,
    infer_image_extension,
    is_downloadable_url,
)

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _session(content=PNG_BYTES, headers=None, error=None):
    response = MagicMock()
    response.content = content
    response.headers = headers or {"Content-Type": "image/png"}
    if error is not None:
        response.raise_for_status.side_effect = error
    session = MagicMock()
    session.get.return_value = response
    return session


def test_is_downloadable_url():
    assert is_downloadable_url("https://cdn.test/a.png")
    assert not is_downloadable_url("data:image/png;base64,AAAA")
    assert not is_downloadable_url("/relative.png")
    assert not is_downloadable_url("")
    assert not is_downloadable_url("http://[broken/a.png")


def test_detect_image_format():
    assert detect_image_format(PNG_BYTES) == "png"
    assert detect_image_format(b"\xff\xd8\xff\xe0" + b"\x00" * 32) == "jpg"
    assert detect_image_format(b"plain text") is None


@pytest.mark.parametrize(
    "content_type,url,disposition,expected",
    [
        ("image/jpeg", "", None, "jpg"),
        ("image/svg+xml; charset=utf-8", "", None, "svg"),
        ("application/octet-stream", "https://cdn.test/a.webp?x=1", None, "webp"),
        (None, "https://cdn.test/image", 'attachment; filename="pic.JPEG"', "jpg"),
        (None, "https://cdn.test/image", None, None),
    ],
)
def test_infer_image_extension_fallbacks(content_type, url, disposition, expected):
    assert infer_image_extension(content_type, b"unknown", url, disposition) == expected


def test_build_file_name():
    assert build_file_name("https://cdn.test/My%20Photo.jpeg?v=2", "jpg") == "my-photo.jpg"
    assert build_file_name("https://cdn.test/", "png") == "image.png"
    assert build_file_name("http://[broken/a.png", "png") == "image.png"


class TestDownloadImage:
    def test_success(self):
        session = _session()
        image = download_image("https://cdn.test/cat.png", session=session, timeout=3)
        session.get.assert_called_once_with("https://cdn.test/cat.png", timeout=3)
        assert image.extension == "png"
        assert image.file_name == "cat.png"
        assert image.content_type == "image/png"
        assert image.data == PNG_BYTES

    def test_http_error_returns_none(self):
        session = _session(error=requests.HTTPError("404"))
        assert download_image("https://cdn.test/cat.png", session=session) is None

    def test_connection_error_returns_none(self):
        session = MagicMock()
        session.get.side_effect = requests.ConnectionError("down")
        assert download_image("https://cdn.test/cat.png", session=session) is None

    def test_non_http_url_is_skipped(self):
        session = _session()
        assert download_image("ftp://cdn.test/cat.png", session=session) is None
        session.get.assert_not_called()

    def test_non_image_payload_is_rejected(self):
        session = _session(content=b"<html></html>", headers={"Content-Type": "text/html"})
        assert download_image("https://cdn.test/page", session=session) is None

    def test_oversized_payload_is_rejected(self):
        session = _session(content=PNG_BYTES + b"\x00" * MAX_IMAGE_BYTES)
        assert download_image("https://cdn.test/cat.png", session=session) is None

    def test_empty_payload_is_rejected(self):
        session = _session(content=b"")
        assert download_image("https://cdn.test/cat.png", session=session) is None

    def test_malformed_url_is_skipped(self):
        session = _session()
        assert download_image("http://[broken/a.png", session=session) is None
        session.get.assert_not_called()
