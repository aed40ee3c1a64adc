"""Section assembler: eCFR full-text XML to a ParsedSection.

Pipeline per section:

    raw XML -> extract_section_body -> segment -> per-chunk node builders
            -> split packed paragraphs -> classify label levels -> nodes

Parsing is pure and never raises: markup we cannot structure degrades to a
single unlabelled paragraph holding the section's plain text.
"""

from __future__ import annotations

import logging
import re
from datetime import date

import lxml.html
from lxml import etree

from pipeline.ecfr.labels import LevelState, step
from pipeline.ecfr.nodes import NODE_ID_PREFIX, Node, NodeKind, ParsedSection
from pipeline.ecfr.segmenter import Chunk, ChunkKind, extract_section_body, segment
from pipeline.ecfr.splitter import split_packed_paragraph
from pipeline.ecfr.text import normalize_whitespace, strip_tags

logger = logging.getLogger(__name__)

# Paragraphs shorter than this are stray punctuation or bare designations.
MIN_PARAGRAPH_LENGTH = 3

GRAPHICS_PATH = "/graphics"

_HEAD_PATTERN = re.compile(r"<HEAD\b[^>]*>(.*?)</HEAD\s*>", re.IGNORECASE | re.DOTALL)
_SECTION_HEAD_PATTERN = re.compile(
    r"<DIV[89]\b[^>]*>.*?<HEAD\b[^>]*>(.*?)</HEAD\s*>", re.IGNORECASE | re.DOTALL
)
_SUBPART_HEAD_PATTERN = re.compile(
    r"<DIV6\b[^>]*>.*?<HEAD\b[^>]*>(.*?)</HEAD\s*>", re.IGNORECASE | re.DOTALL
)
_SECTION_NUMBER_PREFIX = re.compile(r"^§+\s*[\d.]+[A-Z]?\s*")
_SUBPART_HEADING = re.compile(r"Subpart\s+([A-Z]+)\s*[—–-]\s*(.*)")
_HEADING_SOURCE = re.compile(r"""SOURCE\s*=\s*["']?HD(\d)""", re.IGNORECASE)
_IMG_SRC = re.compile(r"""src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_IMG_ALT = re.compile(r"""alt\s*=\s*["']([^"']*)["']""", re.IGNORECASE)
_EXTRACT_PARAGRAPH = re.compile(
    r"<(P|FP)\b[^>]*>(.*?)</\1\s*>", re.IGNORECASE | re.DOTALL
)
_CITA_PATTERN = re.compile(r"<CITA\b[^>]*>(.*?)</CITA\s*>", re.IGNORECASE | re.DOTALL)
_FR_CITATION = re.compile(r"\b(\d+)\s+FR\s+(\d+)\b")


class _NodeBuilder:
    """Accumulates nodes for one section with a shared id counter."""

    def __init__(self) -> None:
        self.nodes: list[Node] = []
        self.state = LevelState()
        self._counter = 0

    def next_id(self, kind: NodeKind) -> str:
        node_id = f"{NODE_ID_PREFIX[kind]}-{self._counter}"
        self._counter += 1
        return node_id

    def add(self, kind: NodeKind, **fields: object) -> Node:
        node = Node(id=self.next_id(kind), kind=kind, **fields)  # type: ignore[arg-type]
        self.nodes.append(node)
        return node

    def add_paragraph(self, label: str | None, text: str) -> None:
        if label:
            level, self.state = step(label, self.state)
        else:
            label = None
            level = 0
        self.add(NodeKind.PARAGRAPH, label=label, text=text, level=level)


# =============================================================================
# Chunk handlers
# =============================================================================


def _parse_fragment(markup: str) -> etree._Element | None:
    try:
        return lxml.html.fragment_fromstring(markup, create_parent="div")
    except (etree.ParserError, ValueError) as e:
        logger.warning(f"Unparseable fragment skipped ({e}): {markup[:80]!r}")
        return None


def _cell_text(element: etree._Element) -> str:
    return normalize_whitespace(" ".join(element.itertext()))


def _handle_gpotable(chunk: Chunk, builder: _NodeBuilder) -> None:
    root = _parse_fragment(chunk.markup)
    if root is None:
        return
    headers = [_cell_text(ched) for ched in root.iter("ched")]
    rows = []
    for row in root.iter("row"):
        cells = [_cell_text(ent) for ent in row.iter("ent")]
        if cells:
            rows.append(cells)
    if headers or rows:
        builder.add(NodeKind.TABLE, headers=headers, rows=rows)


def _handle_html_table(chunk: Chunk, builder: _NodeBuilder) -> None:
    root = _parse_fragment(chunk.markup)
    if root is None:
        return
    headers: list[str] = []
    for thead in root.iter("thead"):
        headers.extend(_cell_text(th) for th in thead.iter("th"))

    tbody = next(root.iter("tbody"), None)
    row_source = tbody if tbody is not None else root
    rows = []
    for tr in row_source.iter("tr"):
        has_th = next(tr.iter("th"), None) is not None
        tds = list(tr.iter("td"))
        if has_th and not tds and not headers:
            # Header-only first row stands in for a missing <THEAD>.
            headers = [_cell_text(th) for th in tr.iter("th")]
            continue
        cells = [_cell_text(td) for td in tds]
        if cells:
            rows.append(cells)
    if headers or rows:
        builder.add(NodeKind.TABLE, headers=headers, rows=rows)


def _handle_graphic(chunk: Chunk, builder: _NodeBuilder) -> None:
    root = _parse_fragment(chunk.markup)
    if root is None:
        return
    gid = next(root.iter("gid"), None)
    if gid is None:
        return
    filename = _cell_text(gid)
    if not filename:
        return
    src = filename if filename.startswith("http") else f"{GRAPHICS_PATH}/{filename}"
    builder.add(NodeKind.IMAGE, src=src)


def _handle_image(chunk: Chunk, builder: _NodeBuilder) -> None:
    src = _IMG_SRC.search(chunk.markup)
    if not src:
        return
    alt = _IMG_ALT.search(chunk.markup)
    caption = normalize_whitespace(alt.group(1)) if alt else None
    builder.add(NodeKind.IMAGE, src=src.group(1), caption=caption or None)


def _handle_extract(chunk: Chunk, builder: _NodeBuilder) -> None:
    # Quoted material keeps its own designations out of the outline.
    for match in _EXTRACT_PARAGRAPH.finditer(chunk.markup):
        text = strip_tags(match.group(2))
        if len(text) >= MIN_PARAGRAPH_LENGTH:
            builder.add(NodeKind.PARAGRAPH, text=text, level=0)


def _handle_heading(chunk: Chunk, builder: _NodeBuilder) -> None:
    text = strip_tags(chunk.markup)
    if not text:
        return
    source = _HEADING_SOURCE.search(chunk.markup)
    heading_level = min(max(int(source.group(1)), 1), 3) if source else 1
    builder.add(NodeKind.HEADING, text=text, heading_level=heading_level)


def _handle_paragraph(chunk: Chunk, builder: _NodeBuilder) -> None:
    text = strip_tags(chunk.markup)
    if len(text) < MIN_PARAGRAPH_LENGTH:
        return
    for label, paragraph_text in split_packed_paragraph(text):
        label = label.strip() if label else None
        builder.add_paragraph(label, paragraph_text)


_HANDLERS = {
    ChunkKind.GPOTABLE: _handle_gpotable,
    ChunkKind.TABLE: _handle_html_table,
    ChunkKind.GRAPHIC: _handle_graphic,
    ChunkKind.EXTRACT: _handle_extract,
    ChunkKind.IMAGE: _handle_image,
    ChunkKind.HEADING: _handle_heading,
    ChunkKind.FLUSH_PARAGRAPH: _handle_paragraph,
    ChunkKind.PARAGRAPH: _handle_paragraph,
}


# =============================================================================
# Public API
# =============================================================================


def parse_content(xml: str) -> list[Node]:
    """Parse section markup into a flat, ordered node list.

    Args:
        xml: Full-text response for one section, with or without envelope.

    Returns:
        Nodes in document order. Empty only when the markup has no text.
    """
    builder = _NodeBuilder()
    for chunk in segment(extract_section_body(xml)):
        _HANDLERS[chunk.kind](chunk, builder)

    if not builder.nodes:
        text = strip_tags(xml)
        if text:
            return [Node(id="p-0", kind=NodeKind.PARAGRAPH, text=text, level=0)]
    return builder.nodes


def parse_section_title(xml: str) -> str:
    """Return the section caption with the ``§ 390.5`` prefix removed."""
    match = _SECTION_HEAD_PATTERN.search(xml) or _HEAD_PATTERN.search(xml)
    if not match:
        return ""
    heading = strip_tags(match.group(1))
    return _SECTION_NUMBER_PREFIX.sub("", heading).strip()


def parse_subpart(xml: str) -> tuple[str | None, str | None]:
    """Return ``(label, title)`` of the enclosing subpart, if the XML has one."""
    match = _SUBPART_HEAD_PATTERN.search(xml)
    if not match:
        return None, None
    raw = strip_tags(match.group(1))
    heading = _SUBPART_HEADING.search(raw)
    if heading:
        return heading.group(1), heading.group(2).strip()
    return None, raw or None


def parse_fr_citation(xml: str) -> str | None:
    """Return the last Federal Register citation in the section source note.

    ``[80 FR 59074, Oct. 1, 2015, as amended at 88 FR 1234, Jan. 9, 2023]``
    gives ``"88 FR 1234"``, the rule that most recently touched the section.
    """
    citations = []
    for cita in _CITA_PATTERN.findall(xml):
        citations.extend(_FR_CITATION.findall(strip_tags(cita)))
    if not citations:
        return None
    volume, page = citations[-1]
    return f"{volume} FR {page}"


def parse_section_xml(
    xml: str,
    part: str,
    section: str,
    source_version: date | None = None,
) -> ParsedSection:
    """Parse one section's full-text XML.

    Args:
        xml: Raw eCFR full-text XML.
        part: CFR part number, e.g. ``"390"``.
        section: Section id, e.g. ``"390.5"`` or ``"385-appA"``.
        source_version: As-of date the XML was fetched for.

    Returns:
        ParsedSection. Same input always yields the same output.
    """
    subpart_label, subpart_title = parse_subpart(xml)
    return ParsedSection(
        part=part,
        section=section,
        title=parse_section_title(xml),
        content=parse_content(xml),
        subpart_label=subpart_label,
        subpart_title=subpart_title,
        source_version=source_version,
    )
