"""Tests for flattening stored bodies back into linear HTML."""

import pytest

from content_sync.audit import EXPORT_OPERATION, InMemoryOperationLog
from content_sync.exporter import ReverseExporter, export_content


def test_export_flattens_structure():
    body = (
        "<h2>Title</h2>"
        "<div><p>First</p></div>"
        "<ul><li>one</li><li>two</li></ul>"
        "<blockquote><p>quoted</p></blockquote>"
    )
    assert export_content(body) == (
        "<h2>Title</h2>\n<p>First</p>\n<li>one</li>\n<li>two</li>\n<p>quoted</p>\n"
    )


def test_nodes_holding_images_are_kept_inline():
    output = export_content('<p>Look <img src="a.png"> here</p><p>after</p>')
    assert output == 'Look <img src="a.png"/> here<p>after</p>\n'


def test_top_level_image_uses_fixed_attributes():
    assert export_content('<img alt="A" src="a.png">') == (
        '<img src="a.png" alt="A" title="" width="" height="" class="" />\n'
    )


def test_tables_are_kept_whole():
    output = export_content("<table><tr><td>cell</td></tr></table><table> </table>")
    assert output == "<table><tr><td>cell</td></tr></table>\n"


def test_existing_document_shell_is_tolerated():
    assert ReverseExporter().flatten("<html><body><p>x</p></body></html>") == "<p>x</p>\n"


@pytest.mark.parametrize("content", ["", "   ", None])
def test_empty_input_is_rejected(content):
    with pytest.raises(ValueError):
        export_content(content)


def test_export_runs_are_logged():
    log = InMemoryOperationLog()
    flattened = export_content("<p>x</p>", log=log)
    with pytest.raises(ValueError):
        export_content("  ", log=log)

    success, failure = log.entries(EXPORT_OPERATION)
    assert success.result == "success"
    assert success.parsed_content == flattened
    assert failure.result == "error"
    assert failure.error_message == "Content to export must be a non-empty string"
