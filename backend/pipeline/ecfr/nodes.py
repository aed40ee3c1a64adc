"""Node and section types produced by the section parser.

A parsed section is a flat list of nodes in document order. Nesting is implied
by ``level``: a paragraph at level 3 belongs to the nearest preceding node
with a lower level. Content is persisted as JSON (``to_dict``) so the field
names here are part of the stored format.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

# Bump when make_paragraph_id changes; stored annotations depend on it.
PARAGRAPH_ID_SCHEME_VERSION = 1

_WHITESPACE_PATTERN = re.compile(r"\s+")


class NodeKind(str, Enum):
    """Kind of content node."""

    PARAGRAPH = "paragraph"
    TABLE = "table"
    IMAGE = "image"
    HEADING = "heading"


# Prefix used for sequence-scoped node ids (p-3, t-1, img-0, h-2).
NODE_ID_PREFIX = {
    NodeKind.PARAGRAPH: "p",
    NodeKind.TABLE: "t",
    NodeKind.IMAGE: "img",
    NodeKind.HEADING: "h",
}


@dataclass
class Node:
    """One renderable unit of section content."""

    id: str
    kind: NodeKind
    text: str = ""
    level: int = 0
    label: str | None = None
    headers: list[str] = field(default_factory=list)
    rows: list[list[str]] = field(default_factory=list)
    src: str | None = None
    caption: str | None = None
    heading_level: int | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON shape stored in ``cached_section.content``.

        Only fields meaningful for the node's kind are emitted.
        """
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "text": self.text,
            "level": self.level,
        }
        if self.kind == NodeKind.PARAGRAPH and self.label is not None:
            data["label"] = self.label
        elif self.kind == NodeKind.TABLE:
            data["headers"] = self.headers
            data["rows"] = self.rows
        elif self.kind == NodeKind.IMAGE:
            data["src"] = self.src
            if self.caption:
                data["caption"] = self.caption
        elif self.kind == NodeKind.HEADING:
            data["heading_level"] = self.heading_level
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Node:
        """Rebuild a node from its stored JSON shape."""
        return cls(
            id=data["id"],
            kind=NodeKind(data["type"]),
            text=data.get("text", ""),
            level=data.get("level", 0),
            label=data.get("label"),
            headers=list(data.get("headers", [])),
            rows=[list(row) for row in data.get("rows", [])],
            src=data.get("src"),
            caption=data.get("caption"),
            heading_level=data.get("heading_level"),
        )


@dataclass
class ParsedSection:
    """A fully parsed section (or appendix)."""

    part: str
    section: str
    title: str
    content: list[Node]
    subpart_label: str | None = None
    subpart_title: str | None = None
    source_version: date | None = None

    def content_json(self) -> list[dict[str, Any]]:
        return [node.to_dict() for node in self.content]


def make_paragraph_id(section_id: str, label: str | None, index: int) -> str:
    """Derive the stable anchor id for a paragraph.

    Labelled paragraphs are anchored by their designation, so an annotation on
    ``390.5(b)`` survives insertions elsewhere in the section. Unlabelled ones
    fall back to their position.

    Args:
        section_id: Section id such as ``"390.5"`` or ``"385-appA"``.
        label: Paragraph label, with or without parentheses.
        index: Position of the node in the section's content list.

    Returns:
        ``"390.5-b"`` for a labelled node, ``"390.5-p7"`` otherwise.
    """
    if label:
        clean = label.replace("(", "").replace(")", "")
        clean = _WHITESPACE_PATTERN.sub("-", clean.strip())
        if clean:
            return f"{section_id}-{clean}"
    return f"{section_id}-p{index}"


def nodes_from_json(content: list[dict[str, Any]] | None) -> list[Node]:
    """Rebuild a node list from stored JSON content."""
    return [Node.from_dict(item) for item in content or []]
