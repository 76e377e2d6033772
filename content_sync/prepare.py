"""Tree passes that run between parsing and rendering."""

from __future__ import annotations

import html
import logging
import re
from typing import Optional

from bs4 import BeautifulSoup

from .assets import AssetManager
from .walker import is_embedded

logger = logging.getLogger("content_sync")

H1_PATTERN = re.compile(r"<h1[^>]*>(.*?)</h1>", re.IGNORECASE | re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")


def extract_title(content: str) -> str:
    """Text of the first ``<h1>``, tags stripped; empty when there is none."""
    match = H1_PATTERN.search(content)
    if not match:
        return ""
    return html.unescape(TAG_PATTERN.sub("", match.group(1))).strip()


def strip_title_headings(tree: BeautifulSoup, title: Optional[str] = None) -> int:
    """Remove ``<h1>`` headings, or only those whose text equals ``title``."""
    removed = 0
    for heading in tree.find_all("h1"):
        if title is not None and heading.get_text().strip() != title:
            continue
        heading.decompose()
        removed += 1
    return removed


def resolve_embedded_images(tree: BeautifulSoup, manager: AssetManager) -> int:
    """Point images nested in serialized blocks at their local copies.

    Images the walker reaches directly are left alone; their handlers resolve
    them with the detail the target format needs.
    """
    resolved = 0
    for image in tree.find_all("img"):
        if not is_embedded(image):
            continue
        src = image.get("src") or ""
        if not src:
            continue
        image["src"] = manager.resolve(src, image.get("alt") or "", url_only=True)
        resolved += 1
    logger.debug("Resolved %d embedded image(s)", resolved)
    return resolved


def unwrap_list_paragraphs(tree: BeautifulSoup) -> int:
    """Replace ``<p>`` wrappers inside ``<li>`` items with their children."""
    unwrapped = 0
    for item in tree.find_all("li"):
        for paragraph in item.find_all("p"):
            paragraph.unwrap()
            unwrapped += 1
    return unwrapped
