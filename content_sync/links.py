"""Anchor ``rel``/``target`` policy applied before rendering."""

from __future__ import annotations

import copy
import logging

from bs4 import BeautifulSoup, Tag

from .config import LinkPolicy, RelList

logger = logging.getLogger("content_sync")


def is_internal(href: str, site_origin: str) -> bool:
    """Substring match against the site origin; a heuristic, not a security check."""
    return site_origin.rstrip("/") in href


def _apply(anchor: Tag, target: str, rel: RelList) -> None:
    anchor["target"] = target
    if rel:
        del anchor["rel"]
        anchor["rel"] = " ".join(rel)


def rewrite_anchor(anchor: Tag, policy: LinkPolicy, site_origin: str) -> None:
    """Rewrite one anchor in place."""
    href = anchor.get("href") or ""
    del anchor["target"]
    internal = is_internal(href, site_origin)
    if internal:
        _apply(anchor, policy.internal_target, policy.internal_rel)
    if not internal:
        _apply(anchor, policy.external_target, policy.external_rel)


def rewrite_links(tree: BeautifulSoup, policy: LinkPolicy, site_origin: str) -> BeautifulSoup:
    """Return a copy of ``tree`` with every anchor rewritten."""
    rewritten = copy.copy(tree)
    anchors = rewritten.find_all("a")
    for anchor in anchors:
        rewrite_anchor(anchor, policy, site_origin)
    logger.debug("Rewrote %d links", len(anchors))
    return rewritten
