"""Fragment parsing and the category-driven DOM walker shared by all renderers."""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, List, Optional, TypeVar

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

logger = logging.getLogger("content_sync")

T = TypeVar("T")

HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")
DOCUMENT_TAGS = ("[document]", "html", "body")


class NodeCategory(enum.Enum):
    DOCUMENT = "document"
    PARAGRAPH = "paragraph"
    LIST = "list"
    LIST_ITEM = "list_item"
    HEADING = "heading"
    IMAGE = "image"
    BLOCKQUOTE = "blockquote"
    TABLE = "table"
    TEXT = "text"
    CONTAINER = "container"
    OTHER = "other"


# Handlers for these categories serialize the whole subtree themselves.
SERIALIZED_CATEGORIES = frozenset(
    {
        NodeCategory.PARAGRAPH,
        NodeCategory.LIST,
        NodeCategory.LIST_ITEM,
        NodeCategory.HEADING,
        NodeCategory.IMAGE,
        NodeCategory.BLOCKQUOTE,
        NodeCategory.TABLE,
    }
)

Handler = Callable[[PageElement], Optional[T]]


def parse_fragment(html: str) -> BeautifulSoup:
    """Tolerantly parse an HTML fragment without adding a document shell."""
    return BeautifulSoup(html, "html.parser")


def wrap_document(html: str) -> str:
    return f"<html><body>{html}</body></html>"


def classify(node: PageElement) -> NodeCategory:
    if isinstance(node, PreformattedString):
        return NodeCategory.OTHER
    if isinstance(node, NavigableString):
        return NodeCategory.TEXT
    if not isinstance(node, Tag):
        return NodeCategory.OTHER
    name = (node.name or "").lower()
    if name in DOCUMENT_TAGS:
        return NodeCategory.DOCUMENT
    if name == "p":
        return NodeCategory.PARAGRAPH
    if name in ("ul", "ol"):
        return NodeCategory.LIST
    if name == "li":
        return NodeCategory.LIST_ITEM
    if name in HEADING_TAGS:
        return NodeCategory.HEADING
    if name == "img":
        return NodeCategory.IMAGE
    if name == "blockquote":
        return NodeCategory.BLOCKQUOTE
    if name == "table":
        return NodeCategory.TABLE
    return NodeCategory.CONTAINER


def inner_html(node: PageElement) -> str:
    if isinstance(node, Tag):
        return node.decode_contents()
    return ""


def has_children(node: PageElement) -> bool:
    return isinstance(node, Tag) and bool(node.contents)


def is_embedded(node: Tag) -> bool:
    """True when an ancestor is serialized verbatim by the walker's handlers."""
    return any(classify(parent) in SERIALIZED_CATEGORIES for parent in node.parents)


def walk(
    root: PageElement,
    handlers: Dict[NodeCategory, Handler],
    intercept: Optional[Handler] = None,
) -> List[T]:
    """Visit ``root``'s children in document order and collect handler output.

    A document shell (``html``/``body``) is drilled into once and ends the walk
    at its level. Nodes with a handler are not descended into; any other node
    with children is treated as a transparent container. ``intercept`` runs
    before classification and claims the node when it returns a value.
    """
    output: List[T] = []
    _walk_into(root, handlers, intercept, output)
    return output


def _walk_into(
    parent: PageElement,
    handlers: Dict[NodeCategory, Handler],
    intercept: Optional[Handler],
    output: List,
) -> None:
    for node in list(getattr(parent, "contents", [])):
        category = classify(node)
        if category is NodeCategory.DOCUMENT:
            _walk_into(node, handlers, intercept, output)
            break

        if intercept is not None:
            claimed = intercept(node)
            if claimed is not None:
                if claimed:
                    output.append(claimed)
                continue

        handler = handlers.get(category)
        if handler is not None:
            result = handler(node)
            if result:
                output.append(result)
            else:
                logger.debug("Dropped empty %s node", category.value)
            continue

        if has_children(node):
            _walk_into(node, handlers, intercept, output)
