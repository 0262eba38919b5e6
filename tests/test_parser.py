"""Tests for the markup parser helpers."""

from rdms_mcp.parser import cells_of, input_value, own_text, parse_html, select_text


class TestParser:
    """Tests for parser helpers."""

    def test_own_text(self):
        """Test child elements and comments are excluded."""
        document = parse_html("<li>Created by admin<!-- hidden --><div>note</div></li>")

        assert own_text(document.li) == "Created by admin"

    def test_cells_not_recursive(self):
        """Test nested table cells are not counted."""
        document = parse_html("<table><tr><th>A</th><td><table><tr><td>x</td></tr></table></td></tr></table>")

        assert len(cells_of(document.tr)) == 2

    def test_select_text_concatenates(self):
        """Test the text of every match is joined."""
        document = parse_html('<p class="a">one</p><p class="a">two</p>')

        assert select_text(document, ".a") == "onetwo"

    def test_input_value(self):
        """Test hidden input lookup."""
        document = parse_html('<input name="token" value="abc"><input name="empty" value="">')

        assert input_value(document, "token") == "abc"
        assert input_value(document, "empty") is None
        assert input_value(document, "missing") is None
