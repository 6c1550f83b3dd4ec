"""Tests for quoted reply removal."""

from thread_sharing.quoting import remove_quoted_html, visible_text


class TestRemoveQuotedHtml:
    """Tests for remove_quoted_html."""

    def test_removes_blockquote(self) -> None:
        """Should drop quoted replies."""
        body = "<p>Sounds good</p><blockquote type=\"cite\"><p>Lunch?</p></blockquote>"
        assert remove_quoted_html(body) == "<p>Sounds good</p>"

    def test_removes_nested_blockquotes(self) -> None:
        """Should drop quotes containing quotes."""
        body = (
            "<p>Yes</p>"
            "<blockquote><p>Really?</p><blockquote><p>Lunch?</p></blockquote></blockquote>"
        )
        assert remove_quoted_html(body) == "<p>Yes</p>"

    def test_removes_trailing_gmail_quote(self) -> None:
        """Should drop Gmail's quote container and everything after it."""
        body = '<div>Thanks!</div><div class="gmail_quote">On Monday Bob wrote:<br>Hi</div>'
        assert remove_quoted_html(body) == "<div>Thanks!</div>"

    def test_whole_body_quote_kept_when_requested(self) -> None:
        """Should keep a body that is nothing but a quote."""
        body = "<blockquote><p>Forwarded text</p></blockquote>"

        assert remove_quoted_html(body, keep_if_whole_body_is_quote=True) == body
        assert remove_quoted_html(body) == ""

    def test_empty_body(self) -> None:
        """Should treat None and empty bodies as empty."""
        assert remove_quoted_html(None, keep_if_whole_body_is_quote=True) == ""
        assert remove_quoted_html("", keep_if_whole_body_is_quote=True) == ""

    def test_body_without_quotes_unchanged(self) -> None:
        """Should leave unquoted bodies alone."""
        body = "<p>Hello <b>world</b></p>"
        assert remove_quoted_html(body, keep_if_whole_body_is_quote=True) == body


class TestVisibleText:
    """Tests for visible_text."""

    def test_strips_tags_and_entities(self) -> None:
        """Should return plain text with collapsed whitespace."""
        assert visible_text("<p>Fish &amp;\n <i>chips</i></p>") == "Fish & chips"
