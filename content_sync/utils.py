"""Utility helpers for string normalization and path handling."""

from __future__ import annotations

import re
import uuid

SLUG_PATTERN = re.compile(r"[^a-z0-9]+")
EMOJI_PATTERN = re.compile("[\U0001F000-\U0001F9FF]")


def slugify(value: str, fallback: str = "image") -> str:
    """Generate a filesystem-friendly slug using ASCII characters only."""
    normalized = value.encode("ascii", "ignore").decode("ascii")
    normalized = normalized.lower()
    normalized = SLUG_PATTERN.sub("-", normalized).strip("-")
    return normalized or fallback


def short_id() -> str:
    """Eight hex characters from a random UUID, as used for block ids."""
    return uuid.uuid4().hex[:8]


def count_images(content: str) -> int:
    return content.count("<img")


def encode_emoji(content: str) -> str:
    """Replace emoji code points with numeric entities so any store accepts them."""
    return EMOJI_PATTERN.sub(lambda match: f"&#x{ord(match.group(0)):x};", content)
