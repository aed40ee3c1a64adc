"""Split an eCFR section body into typed markup chunks.

eCFR full-text responses wrap a section in a document envelope
(``<ECFR>``/``<DIV5>`` part/``<DIV6>`` subpart/``<DIV8>`` section, or
``<DIV9>`` for appendices). Only the innermost container matters for content.
Within it, the tags we render are matched in ONE ordered alternation pass so
that chunk order equals document order and no tag is claimed twice (a ``<P>``
inside an ``<EXTRACT>`` belongs to the extract, not to the paragraph stream).
Free text between recognized tags carries no content and is dropped.
"""

import re
from dataclasses import dataclass
from enum import Enum


class ChunkKind(str, Enum):
    """Kind of markup chunk, in alternation priority order."""

    GPOTABLE = "gpotable"
    TABLE = "table"
    GRAPHIC = "graphic"
    EXTRACT = "extract"
    IMAGE = "image"
    HEADING = "heading"
    FLUSH_PARAGRAPH = "flush_paragraph"
    PARAGRAPH = "paragraph"


@dataclass(frozen=True)
class Chunk:
    """One recognized markup element from a section body."""

    kind: ChunkKind
    markup: str


# Order matters: container elements first so their inner <P> tags are
# consumed with them.
CHUNK_PATTERN = re.compile(
    r"(?P<gpotable><GPOTABLE\b.*?</GPOTABLE\s*>)"
    r"|(?P<table><TABLE\b.*?</TABLE\s*>)"
    r"|(?P<graphic><GPH\b.*?</GPH\s*>)"
    r"|(?P<extract><EXTRACT\b.*?</EXTRACT\s*>)"
    r"|(?P<image><img\b[^>]*>)"
    r"|(?P<heading><HD\b[^>]*>.*?</HD\s*>)"
    r"|(?P<flush_paragraph><FP\b[^>]*>.*?</FP\s*>)"
    r"|(?P<paragraph><P\b[^>]*>.*?</P\s*>)",
    re.IGNORECASE | re.DOTALL,
)

# Innermost section containers: DIV8 (section) and DIV9 (appendix).
_SECTION_BODY_PATTERNS = (
    re.compile(r"<DIV8\b[^>]*>(.*)</DIV8\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<DIV9\b[^>]*>(.*)</DIV9\s*>", re.IGNORECASE | re.DOTALL),
)


def extract_section_body(xml: str) -> str:
    """Strip the document envelope down to the section container's body.

    Returns the whole input when no section container is present, so callers
    can segment bare fragments too.
    """
    for pattern in _SECTION_BODY_PATTERNS:
        match = pattern.search(xml)
        if match:
            return match.group(1)
    return xml


def segment(body: str) -> list[Chunk]:
    """Split a section body into chunks in document order.

    Args:
        body: Markup body (envelope already stripped, or any fragment).

    Returns:
        Ordered chunks; empty when nothing recognizable is present.
    """
    chunks: list[Chunk] = []
    for match in CHUNK_PATTERN.finditer(body):
        kind = ChunkKind(match.lastgroup)
        chunks.append(Chunk(kind=kind, markup=match.group(0)))
    return chunks
