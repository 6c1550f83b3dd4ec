"""Removal of quoted replies from HTML message bodies."""

import html
import re

# Innermost blockquote: one that contains no other blockquote
_INNER_BLOCKQUOTE = re.compile(
    r"<blockquote\b[^>]*>(?:(?!<blockquote\b).)*?</blockquote\s*>",
    re.IGNORECASE | re.DOTALL,
)
# Gmail and Outlook put the quoted history in a trailing container
_QUOTE_CONTAINER = re.compile(
    r"<div\b[^>]*(?:class=[\"'][^\"']*gmail_quote|id=[\"']divRplyFwdMsg|id=[\"']appendonsend)[^>]*>.*\Z",
    re.IGNORECASE | re.DOTALL,
)
_TAG = re.compile(r"<[^>]+>")


def visible_text(body: str) -> str:
    """Text content of an HTML fragment with whitespace collapsed."""
    text = html.unescape(_TAG.sub(" ", body))
    return " ".join(text.split())


def remove_quoted_html(body: str | None, keep_if_whole_body_is_quote: bool = False) -> str:
    """Strip quoted replies from an HTML body.

    Args:
        body: HTML body (None is treated as empty)
        keep_if_whole_body_is_quote: Return the body untouched when removing
            quotes would leave no visible text

    Returns:
        Body without quoted replies
    """
    if not body:
        return ""

    stripped = body
    while True:
        reduced = _INNER_BLOCKQUOTE.sub("", stripped)
        if reduced == stripped:
            break
        stripped = reduced
    stripped = _QUOTE_CONTAINER.sub("", stripped)

    if keep_if_whole_body_is_quote and not visible_text(stripped) and visible_text(body):
        return body
    return stripped
