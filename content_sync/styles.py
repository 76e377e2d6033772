"""Inline style analysis for block-level nodes."""

from __future__ import annotations

from typing import Dict

from bs4 import Tag

STYLED_TAGS = ("p", "ul", "ol", "h2", "h3", "h4", "h5", "h6")
IGNORED_ATTRIBUTES = ("contenteditable",)
ALIGN_ALIASES = {"start": "left", "end": "right"}


def parse_style(style: str) -> Dict[str, str]:
    """Split an inline ``style`` value into a property -> value mapping."""
    declarations: Dict[str, str] = {}
    for declaration in style.split(";"):
        name, sep, value = declaration.partition(":")
        name = name.strip().lower()
        if not sep or not name:
            continue
        declarations[name] = value.strip()
    return declarations


def style_attributes(style: str) -> Dict[str, str]:
    """Derive normalized layout attributes (currently ``align``) from a style."""
    declarations = parse_style(style)
    attributes: Dict[str, str] = {}
    if "text-align" in declarations:
        align = declarations["text-align"].lower()
        attributes["align"] = ALIGN_ALIASES.get(align, align)
    return attributes


def node_attributes(node: Tag) -> Dict[str, str]:
    """Return the node's attributes merged with style-derived ones.

    ``class`` and other multi-valued attributes are joined back into strings.
    """
    attributes: Dict[str, str] = {}
    for name, value in node.attrs.items():
        if name in IGNORED_ATTRIBUTES:
            continue
        if isinstance(value, (list, tuple)):
            value = " ".join(value)
        attributes[name] = value if value is not None else ""
        if name == "style" and node.name in STYLED_TAGS:
            attributes.update(style_attributes(attributes[name]))
    return attributes
