"""Flat HTML output for rich-text stores that keep a single HTML body."""

from __future__ import annotations

import html
import logging
from typing import Dict, Optional

from bs4 import Tag
from bs4.element import PageElement

from .assets import AssetManager
from .walker import Handler, NodeCategory, classify, inner_html, walk

logger = logging.getLogger("content_sync")

IMAGE_ATTRIBUTES = ("src", "alt", "title", "width", "height", "class")


def attribute_value(node: Tag, name: str) -> str:
    value = node.get(name)
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(value)
    return value


def glue_attributes(attributes: Dict[str, str]) -> str:
    """Render ``key="value"`` pairs in the given order, with a leading space."""
    return "".join(
        f' {key}="{html.escape(value, quote=True)}"' for key, value in attributes.items()
    )


def image_tag(node: Tag, src: Optional[str] = None) -> str:
    """Self-closing ``<img>`` carrying exactly :data:`IMAGE_ATTRIBUTES`, in order."""
    attributes = {name: attribute_value(node, name) for name in IMAGE_ATTRIBUTES}
    if src is not None:
        attributes["src"] = src
    return f"<img{glue_attributes(attributes)} />"


def wrap(tag: str, content: str) -> str:
    return f"<{tag}>{content}</{tag}>\n"


class FlatHtmlRenderer:
    """Rebuilds normalized HTML: paragraphs, headings, lists, images and blocks.

    A paragraph whose markup holds an ``<img`` is emitted without its ``<p>``
    wrapper so the image stays inline with the surrounding prose.
    """

    def __init__(self, assets: Optional[AssetManager] = None) -> None:
        self.assets = assets

    @property
    def handlers(self) -> Dict[NodeCategory, Handler]:
        return {
            NodeCategory.PARAGRAPH: self.render_paragraph,
            NodeCategory.LIST: self.render_list,
            NodeCategory.LIST_ITEM: self.render_list_item,
            NodeCategory.HEADING: self.render_heading,
            NodeCategory.IMAGE: self.render_image,
            NodeCategory.BLOCKQUOTE: self.render_block,
            NodeCategory.TABLE: self.render_block,
            NodeCategory.TEXT: self.render_text,
        }

    def render(self, tree: PageElement) -> str:
        return "".join(walk(tree, self.handlers))

    def render_paragraph(self, node: Tag) -> str:
        content = inner_html(node)
        if "<img" in content:
            return content
        return wrap("p", content)

    def render_list(self, node: Tag) -> str:
        items = []
        for child in node.contents:
            category = classify(child)
            if category is NodeCategory.LIST_ITEM:
                items.append(self.render_list_item(child))
            elif category is NodeCategory.TEXT:
                items.append(self.render_text(child))
            elif isinstance(child, Tag):
                items.append(str(child))
        attributes = {name: attribute_value(node, name) for name in node.attrs}
        return (
            f"<{node.name}{glue_attributes(attributes)}>\n"
            + "".join(items)
            + f"</{node.name}>\n"
        )

    def render_list_item(self, node: Tag) -> str:
        return wrap("li", inner_html(node))

    def render_heading(self, node: Tag) -> str:
        return wrap(node.name, inner_html(node))

    def render_image(self, node: Tag) -> str:
        src = attribute_value(node, "src")
        if self.assets is not None and src:
            src = self.assets.resolve(src, attribute_value(node, "alt"), url_only=True)
        return image_tag(node, src) + "\n"

    def render_block(self, node: Tag) -> str:
        content = inner_html(node)
        if not content.strip():
            return ""
        return wrap(node.name, content)

    def render_text(self, node: PageElement) -> str:
        text = str(node)
        if not text.strip():
            return ""
        return html.escape(text, quote=False)
