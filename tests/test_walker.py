"""Tests for fragment classification and the dispatch walk."""

import pytest

from content_sync.walker import (
    NodeCategory,
    classify,
    inner_html,
    is_embedded,
    parse_fragment,
    walk,
)


def _names(node):
    return f"{node.name}:{node.get_text()}"


class TestClassify:
    @pytest.mark.parametrize(
        "markup,expected",
        [
            ("<p>x</p>", NodeCategory.PARAGRAPH),
            ("<ul><li>x</li></ul>", NodeCategory.LIST),
            ("<ol><li>x</li></ol>", NodeCategory.LIST),
            ("<h3>x</h3>", NodeCategory.HEADING),
            ("<img src='a.png'>", NodeCategory.IMAGE),
            ("<blockquote>x</blockquote>", NodeCategory.BLOCKQUOTE),
            ("<table><tr><td>x</td></tr></table>", NodeCategory.TABLE),
            ("<div>x</div>", NodeCategory.CONTAINER),
            ("<hr>", NodeCategory.CONTAINER),
            ("<html><body></body></html>", NodeCategory.DOCUMENT),
        ],
    )
    def test_tag_categories(self, markup, expected):
        tree = parse_fragment(markup)
        assert classify(tree.contents[0]) is expected

    def test_text_and_comments(self):
        tree = parse_fragment("text<!-- note -->")
        assert classify(tree.contents[0]) is NodeCategory.TEXT
        assert classify(tree.contents[1]) is NodeCategory.OTHER


class TestWalk:
    def test_handled_nodes_are_not_descended_into(self):
        tree = parse_fragment("<blockquote><p>nested</p></blockquote><h2>two</h2>")
        output = walk(
            tree,
            {
                NodeCategory.BLOCKQUOTE: _names,
                NodeCategory.PARAGRAPH: _names,
                NodeCategory.HEADING: _names,
            },
        )
        assert output == ["blockquote:nested", "h2:two"]

    def test_containers_are_transparent(self):
        tree = parse_fragment("<div><section><p>a</p></section><p>b</p></div>")
        output = walk(tree, {NodeCategory.PARAGRAPH: _names})
        assert output == ["p:a", "p:b"]

    def test_document_shell_is_drilled_into_once(self):
        tree = parse_fragment("<html><body><p>inside</p></body></html><p>after</p>")
        output = walk(tree, {NodeCategory.PARAGRAPH: _names})
        assert output == ["p:inside"]

    def test_empty_handler_output_is_dropped(self):
        tree = parse_fragment("<blockquote></blockquote><p>kept</p>")
        output = walk(
            tree,
            {
                NodeCategory.BLOCKQUOTE: lambda node: "",
                NodeCategory.PARAGRAPH: _names,
            },
        )
        assert output == ["p:kept"]

    def test_unhandled_leaves_are_omitted(self):
        tree = parse_fragment("loose text<hr><p>x</p>")
        assert walk(tree, {NodeCategory.PARAGRAPH: _names}) == ["p:x"]

    def test_intercept_claims_nodes_first(self):
        tree = parse_fragment("<div><img src='a.png'></div><p>x</p>")
        output = walk(
            tree,
            {NodeCategory.PARAGRAPH: _names},
            intercept=lambda node: "claimed" if getattr(node, "name", None) == "div" else None,
        )
        assert output == ["claimed", "p:x"]


def test_inner_html_keeps_inline_markup():
    tree = parse_fragment("<p>Hello <em>world</em></p>")
    assert inner_html(tree.p) == "Hello <em>world</em>"


def test_is_embedded():
    tree = parse_fragment("<div><img src='top.png'></div><p><img src='inline.png'></p>")
    top, inline = tree.find_all("img")
    assert not is_embedded(top)
    assert is_embedded(inline)


def test_list_items_count_as_serialized():
    tree = parse_fragment("<li>see <img src='a.png'></li>")
    assert is_embedded(tree.img)
