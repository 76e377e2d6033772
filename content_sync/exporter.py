"""Flatten stored rich-text bodies back into linear HTML for the editing service."""

from __future__ import annotations

import logging
from typing import Dict, Optional

from bs4 import Tag
from bs4.element import PageElement

from .audit import EXPORT_OPERATION, OperationLog, record_failure
from .flat import image_tag, wrap
from .walker import Handler, NodeCategory, inner_html, parse_fragment, walk, wrap_document

logger = logging.getLogger("content_sync")


class ReverseExporter:
    """Walks a stored body and emits paragraphs, list items, headings and images.

    Any node whose markup holds an ``<img`` is emitted as its raw inner HTML,
    whatever its type, so prose and its images are never separated.
    """

    @property
    def handlers(self) -> Dict[NodeCategory, Handler]:
        return {
            NodeCategory.LIST_ITEM: lambda node: wrap("li", inner_html(node)),
            NodeCategory.PARAGRAPH: lambda node: wrap("p", inner_html(node)),
            NodeCategory.HEADING: lambda node: wrap(node.name, inner_html(node)),
            NodeCategory.IMAGE: lambda node: image_tag(node) + "\n",
            NodeCategory.TABLE: self.export_table,
        }

    @staticmethod
    def keep_images_inline(node: PageElement) -> Optional[str]:
        content = inner_html(node)
        if content and "<img" in content:
            return content
        return None

    @staticmethod
    def export_table(node: Tag) -> str:
        content = inner_html(node)
        if not content.strip():
            return ""
        return wrap("table", content)

    def flatten(self, content: str) -> str:
        tree = parse_fragment(wrap_document(content))
        return "".join(walk(tree, self.handlers, intercept=self.keep_images_inline))


def export_content(content: str, log: Optional[OperationLog] = None) -> str:
    """Prepare a stored body for sending to the external editing service."""
    try:
        if not isinstance(content, str) or not content.strip():
            raise ValueError("Content to export must be a non-empty string")
        flattened = ReverseExporter().flatten(content)
    except Exception as exc:
        logger.error("Export failed: %s", exc)
        record_failure(log, EXPORT_OPERATION, content, exc)
        raise
    if log is not None:
        log.record(EXPORT_OPERATION, content, flattened)
    logger.info("Exported content (%d -> %d characters)", len(content), len(flattened))
    return flattened
