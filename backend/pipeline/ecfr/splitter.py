"""Split one paragraph's text into (label, text) pairs.

eCFR frequently packs several designations into a single ``<P>``:

    (a) Definitions. (1) Motor carrier means ...
    (b)(1) Each driver shall ...

The first is a short heading followed by a nested paragraph; the second has an
empty level-1 paragraph wrapping a level-2 one. Both are unpacked so that each
designation becomes its own node.
"""

import re

# Intros at least this long are prose that merely mentions a label.
MAX_INTRO_LENGTH = 80

_OUTER_PATTERN = re.compile(r"^\(([^)]{1,4})\)\s*(.*)", re.DOTALL)
_DOUBLE_PATTERN = re.compile(r"^\(([^)]{1,4})\)\s+(.*)", re.DOTALL)
_INNER_PATTERN = re.compile(
    r"^(.*?(?:\.|—|:|;))\s*(\([^)]{1,4}\))\s+(.+)", re.DOTALL
)
_TRAILING_DELIMITER = re.compile(r"[—:;]\s*$")
_SINGLE_LOWER = re.compile(r"^[a-z]$")
_DIGITS = re.compile(r"^\d+$")
_ROMAN = re.compile(r"^[ivxlc]+$", re.IGNORECASE)


def split_packed_paragraph(text: str) -> list[tuple[str | None, str]]:
    """Unpack stacked designations from a paragraph's text.

    Args:
        text: Normalized paragraph text.

    Returns:
        At least one ``(label, text)`` pair. ``label`` is None when the text
        does not open with a parenthesized designation.
    """
    pairs: list[tuple[str | None, str]] = []
    remaining = text

    while True:
        outer = _OUTER_PATTERN.match(remaining)
        if not outer:
            pairs.append((None, remaining))
            return pairs

        label = outer.group(1).strip()
        rest = outer.group(2)

        if rest.startswith("("):
            double = _DOUBLE_PATTERN.match(rest)
            if double:
                inner_label = double.group(1).strip()
                if _SINGLE_LOWER.match(label) and (
                    _DIGITS.match(inner_label) or _ROMAN.match(inner_label)
                ):
                    pairs.append((label, ""))
                    remaining = f"({inner_label}) {double.group(2).strip()}"
                    continue

        inner = _INNER_PATTERN.match(rest)
        if inner:
            intro = _TRAILING_DELIMITER.sub("", inner.group(1).strip()).strip()
            if len(intro) < MAX_INTRO_LENGTH:
                pairs.append((label, intro))
                inner_label = inner.group(2)[1:-1].strip()
                remaining = f"({inner_label}) {inner.group(3).strip()}"
                continue

        pairs.append((label, rest))
        return pairs
