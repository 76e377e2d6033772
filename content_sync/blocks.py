"""Nested block-tree output: one container holding a flat list of widgets."""

from __future__ import annotations

import copy
import json
import logging
from typing import Any, Dict, List, Optional, Union

from bs4 import Tag
from bs4.element import PageElement

from .assets import AssetManager
from .prepare import unwrap_list_paragraphs
from .styles import node_attributes
from .utils import short_id
from .walker import Handler, NodeCategory, inner_html, walk

logger = logging.getLogger("content_sync")

Settings = Dict[str, Any]
Template = Union[Dict[str, Any], List[Dict[str, Any]], None]

DEFAULT_CONTAINER_SETTINGS: Settings = {"flex_direction": "column"}
DEFAULT_HEADER_SIZE = "h2"
IMAGE_WIDGET_TITLE = "Header"

TEXT_EDITOR = "text-editor"
HEADING = "heading"
IMAGE = "image"
HTML = "html"


def _template_root(template: Template) -> Optional[Dict[str, Any]]:
    if isinstance(template, list):
        return template[0] if template else None
    return template or None


def index_template(template: Template) -> Dict[str, Settings]:
    """Map widget type (heading level for headings) to template settings."""
    root = _template_root(template)
    styling: Dict[str, Settings] = {}
    if not root:
        return styling
    for element in root.get("elements", []):
        if element.get("elType") != "widget":
            continue
        settings = element.get("settings") or {}
        if element.get("widgetType") == HEADING:
            styling[settings.get("header_size") or DEFAULT_HEADER_SIZE] = settings
        elif element.get("widgetType"):
            styling[element["widgetType"]] = settings
    return styling


def container_settings(template: Template) -> Settings:
    root = _template_root(template)
    if root and root.get("elType") == "container" and isinstance(root.get("settings"), dict):
        return copy.deepcopy(root["settings"])
    return dict(DEFAULT_CONTAINER_SETTINGS)


def escape_quotes(markup: str) -> str:
    return markup.replace('"', "&quot;").replace("'", "&#39;")


def to_json(document: List[Dict[str, Any]]) -> str:
    return json.dumps(document, ensure_ascii=False)


class BlockTreeRenderer:
    """Builds the block-tree document for page builders.

    Each widget starts from a deep copy of the matching template settings so
    imported content inherits the template's visual styling.
    """

    def __init__(self, assets: Optional[AssetManager] = None, template: Template = None) -> None:
        self.assets = assets
        self.styling = index_template(template)
        self.settings = container_settings(template)

    @property
    def handlers(self) -> Dict[NodeCategory, Handler]:
        return {
            NodeCategory.PARAGRAPH: self.render_paragraph,
            NodeCategory.LIST: self.render_list,
            NodeCategory.HEADING: self.render_heading,
            NodeCategory.IMAGE: self.render_image,
            NodeCategory.BLOCKQUOTE: self.render_blockquote,
            NodeCategory.TABLE: self.render_table,
        }

    def render(self, tree: PageElement) -> List[Dict[str, Any]]:
        unwrap_list_paragraphs(tree)
        widgets = walk(tree, self.handlers)
        logger.debug("Built %d widget(s)", len(widgets))
        return [
            {
                "id": short_id(),
                "elType": "container",
                "settings": copy.deepcopy(self.settings),
                "elements": widgets,
                "isInner": None,
            }
        ]

    def base_settings(self, key: str) -> Settings:
        return copy.deepcopy(self.styling.get(key, {}))

    def widget(self, widget_type: str, settings: Settings) -> Dict[str, Any]:
        return {
            "id": short_id(),
            "elType": "widget",
            "settings": settings,
            "elements": [],
            "widgetType": widget_type,
        }

    def _text_editor(self, node: Tag, markup: str) -> Dict[str, Any]:
        settings = self.base_settings(TEXT_EDITOR)
        settings["editor"] = markup
        attributes = node_attributes(node)
        if "align" in attributes:
            settings["align"] = attributes["align"]
        return self.widget(TEXT_EDITOR, settings)

    def render_paragraph(self, node: Tag) -> Dict[str, Any]:
        return self._text_editor(node, f"<p>{inner_html(node)}</p>")

    def render_list(self, node: Tag) -> Dict[str, Any]:
        return self._text_editor(node, f"<{node.name}>{inner_html(node)}</{node.name}>")

    def render_heading(self, node: Tag) -> Dict[str, Any]:
        settings = self.base_settings(node.name)
        settings["title"] = inner_html(node)
        settings["header_size"] = node.name
        return self.widget(HEADING, settings)

    def render_image(self, node: Tag) -> Dict[str, Any]:
        url = node.get("src") or ""
        alt = node.get("alt") or ""
        image_id = 0
        if self.assets is not None and url:
            resolved = self.assets.resolve(url, alt, url_only=False)
            url, image_id = resolved["url"], resolved["id"]

        settings = self.base_settings(IMAGE)
        settings["title"] = IMAGE_WIDGET_TITLE
        settings["image"] = {
            "url": url,
            "id": image_id,
            "size": None,
            "alt": alt,
            "source": "library",
        }
        return self.widget(IMAGE, settings)

    def render_blockquote(self, node: Tag) -> Optional[Dict[str, Any]]:
        content = inner_html(node)
        if not content.strip():
            return None
        settings = self.base_settings(HTML)
        settings["html"] = content
        return self.widget(HTML, settings)

    def render_table(self, node: Tag) -> Optional[Dict[str, Any]]:
        content = inner_html(node)
        if not content.strip():
            return None
        settings = self.base_settings(HTML)
        settings["html"] = escape_quotes(f"<table>{content}</table>")
        return self.widget(HTML, settings)
