"""Tag stripping and whitespace normalization for eCFR markup fragments."""

import html
import re

_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace (including NBSP) to single spaces and trim."""
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def strip_tags(markup: str) -> str:
    """Convert a raw markup fragment to plain text.

    Every tag is replaced by a space (so ``foo<E>bar</E>`` reads as two words),
    then entities are resolved and whitespace is collapsed. Entity resolution
    covers the HTML named set (``&mdash;``, ``&sect;``, ``&nbsp;``...) as well as
    decimal and hex character references.

    Args:
        markup: A fragment of GPO/eCFR markup.

    Returns:
        Normalized plain text; empty string for empty or tag-only input.
    """
    if not markup:
        return ""
    text = _TAG_PATTERN.sub(" ", markup)
    text = html.unescape(text)
    return normalize_whitespace(text)
