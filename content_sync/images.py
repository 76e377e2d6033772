"""Image downloading and validation utilities."""

from __future__ import annotations

import logging
import re
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

import requests
from filetype import guess

from .models import DownloadedImage
from .utils import slugify

logger = logging.getLogger("content_sync")

MAX_IMAGE_BYTES = 10 * 1024 * 1024
MIN_IMAGE_BYTES = 1
ALLOWED_IMAGE_TYPES = {"png", "jpg", "jpeg", "gif", "webp", "bmp", "tiff", "svg", "avif"}
DISPOSITION_FILENAME = re.compile(r'filename="?([^";]+)"?', re.IGNORECASE)


def _url_path(url: str) -> str:
    try:
        return urlparse(url or "").path
    except ValueError:
        return ""


def is_downloadable_url(url: str) -> bool:
    try:
        parsed = urlparse(url or "")
    except ValueError:
        # e.g. an unbalanced "[" read as an IPv6 host
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def detect_image_format(data: bytes) -> Optional[str]:
    """Detect image type using filetype; returns lowercase extension."""
    kind = guess(data)
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def _extension_from_name(name: str) -> Optional[str]:
    suffix = PurePosixPath(name).suffix.lstrip(".").lower()
    if not suffix:
        return None
    return "jpg" if suffix == "jpeg" else suffix


def infer_image_extension(
    content_type: Optional[str],
    data: bytes,
    url: str = "",
    disposition: Optional[str] = None,
) -> Optional[str]:
    """Guess an image file extension from the payload, HTTP metadata or URL."""
    detected = detect_image_format(data)
    if detected:
        return detected
    if content_type:
        parts = content_type.split(";")[0].split("/")
        if len(parts) == 2 and parts[0] == "image":
            ext = parts[1].strip().lower()
            if ext == "jpeg":
                ext = "jpg"
            if ext == "svg+xml":
                ext = "svg"
            return ext
    from_url = _extension_from_name(_url_path(url))
    if from_url:
        return from_url
    if disposition:
        match = DISPOSITION_FILENAME.search(disposition)
        if match:
            return _extension_from_name(match.group(1))
    return None


def build_file_name(url: str, extension: str) -> str:
    """Derive a stable local file name from the last URL path segment."""
    stem = PurePosixPath(unquote(_url_path(url))).stem
    return slugify(stem, fallback="image")[:80] + f".{extension}"


def download_image(
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = 15.0,
) -> Optional[DownloadedImage]:
    """Fetch a remote image; returns ``None`` whenever it cannot be used."""
    if not is_downloadable_url(url):
        logger.warning("Skipping %s: not a downloadable URL", url)
        return None

    session = session or requests.Session()
    try:
        resp = session.get(url, timeout=timeout)
        resp.raise_for_status()
    except requests.RequestException as exc:
        logger.warning("Failed to fetch image %s: %s", url, exc)
        return None

    content_type = resp.headers.get("Content-Type", "")
    data = resp.content
    if len(data) < MIN_IMAGE_BYTES:
        logger.warning("Skipping %s: response too small", url)
        return None
    if len(data) > MAX_IMAGE_BYTES:
        logger.warning("Skipping %s: image larger than %s bytes", url, MAX_IMAGE_BYTES)
        return None

    extension = infer_image_extension(
        content_type,
        data,
        url=url,
        disposition=resp.headers.get("Content-Disposition"),
    )
    if not extension or extension.lower() not in ALLOWED_IMAGE_TYPES:
        logger.warning(
            "Skipping %s: unsupported image type (Content-Type=%s)",
            url,
            content_type,
        )
        return None

    return DownloadedImage(
        origin_url=url,
        file_name=build_file_name(url, extension),
        extension=extension,
        content_type=content_type or f"image/{extension}",
        data=data,
    )
