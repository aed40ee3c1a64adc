"""Part table of contents and section navigation.

The eCFR structure endpoint returns a part as a tree of typed nodes::

    part -> subpart -> subject_group -> section
                    -> appendix

Sections and appendices become TOC entries grouped by subpart. Subject groups
and any other node types are transparent: their children are walked in place.
Sections that appear before the first subpart are collected in a "General"
group with an empty label.

Appendices are addressed by slug (``385-appA``, ``395-appA-subB``) everywhere
inside the system; the eCFR identifier (``Appendix A to Part 385``) is only
used when talking to the upstream API.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

GENERAL_GROUP_TITLE = "General"

_PART_APPENDIX = re.compile(r"^Appendix\s+([A-Z0-9]+)\s+to\s+Part\s+(\d+)$", re.IGNORECASE)
_SUBPART_APPENDIX = re.compile(
    r"^Appendix\s+([A-Z0-9]+)\s+to\s+Subpart\s+([A-Z]+)\s+of\s+Part\s+(\d+)$",
    re.IGNORECASE,
)
_APPENDIX_SLUG = re.compile(r"^(\d+)-app([A-Z0-9]+)(?:-sub([A-Z]+))?$")


@dataclass
class TocEntry:
    """One navigable section or appendix."""

    section: str
    title: str
    is_appendix: bool = False


@dataclass
class TocGroup:
    """A subpart (or the leading "General" group) and its entries."""

    label: str
    title: str
    sections: list[TocEntry] = field(default_factory=list)


@dataclass
class PartToc:
    """Ordered table of contents for one CFR part."""

    part: str
    title: str
    subparts: list[TocGroup] = field(default_factory=list)

    def section_ids(self) -> list[str]:
        """Flattened section ids in reading order."""
        return [entry.section for group in self.subparts for entry in group.sections]

    def to_dict(self) -> dict[str, Any]:
        return {
            "part": self.part,
            "title": self.title,
            "subparts": [
                {
                    "label": group.label,
                    "title": group.title,
                    "sections": [
                        {
                            "section": entry.section,
                            "title": entry.title,
                            "is_appendix": entry.is_appendix,
                        }
                        for entry in group.sections
                    ],
                }
                for group in self.subparts
            ],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PartToc:
        return cls(
            part=data["part"],
            title=data.get("title", ""),
            subparts=[
                TocGroup(
                    label=group.get("label", ""),
                    title=group.get("title", ""),
                    sections=[
                        TocEntry(
                            section=entry["section"],
                            title=entry.get("title", ""),
                            is_appendix=entry.get("is_appendix", False),
                        )
                        for entry in group.get("sections", [])
                    ],
                )
                for group in data.get("subparts", [])
            ],
        )


# =============================================================================
# Appendix identifiers
# =============================================================================


def appendix_identifier_to_slug(identifier: str) -> str | None:
    """Map an eCFR appendix identifier to its slug.

    ``"Appendix A to Part 385"`` -> ``"385-appA"``;
    ``"Appendix A to Subpart B of Part 395"`` -> ``"395-appA-subB"``.
    """
    identifier = identifier.strip()
    match = _SUBPART_APPENDIX.match(identifier)
    if match:
        letter, subpart, part = match.groups()
        return f"{part}-app{letter.upper()}-sub{subpart.upper()}"
    match = _PART_APPENDIX.match(identifier)
    if match:
        letter, part = match.groups()
        return f"{part}-app{letter.upper()}"
    return None


def slug_to_appendix_identifier(slug: str) -> str | None:
    """Inverse of appendix_identifier_to_slug."""
    match = _APPENDIX_SLUG.match(slug)
    if not match:
        return None
    part, letter, subpart = match.groups()
    if subpart:
        return f"Appendix {letter} to Subpart {subpart} of Part {part}"
    return f"Appendix {letter} to Part {part}"


def is_appendix_section(section_id: str) -> bool:
    return _APPENDIX_SLUG.match(section_id) is not None


def part_of(section_id: str) -> str:
    """Return the part number a section id belongs to (``390.5`` -> ``390``)."""
    if is_appendix_section(section_id):
        return section_id.split("-", 1)[0]
    return section_id.split(".", 1)[0]


def upstream_identifier(section_id: str) -> str:
    """Identifier eCFR uses for a section id in version and full-text payloads."""
    if is_appendix_section(section_id):
        return slug_to_appendix_identifier(section_id) or section_id
    return section_id


# =============================================================================
# TOC construction
# =============================================================================


def build_part_toc(structure: dict[str, Any], part: str) -> PartToc:
    """Build a PartToc from the eCFR part structure JSON.

    Args:
        structure: Decoded ``/structure/{date}/title-49/part-{part}.json``.
        part: Part number the structure belongs to.

    Returns:
        PartToc whose groups keep upstream order. Groups without entries are
        omitted.
    """
    groups: list[TocGroup] = []
    current = TocGroup(label="", title=GENERAL_GROUP_TITLE)

    def visit(node: dict[str, Any]) -> None:
        nonlocal current
        node_type = node.get("type")
        if node_type == "subpart":
            if current.sections:
                groups.append(current)
            current = TocGroup(
                label=node.get("identifier") or "",
                title=node.get("label_description") or "",
            )
            for child in node.get("children") or []:
                visit(child)
        elif node_type == "section":
            current.sections.append(
                TocEntry(
                    section=node.get("identifier", ""),
                    title=node.get("label_description") or node.get("label") or "",
                )
            )
        elif node_type == "appendix":
            identifier = node.get("identifier", "")
            slug = appendix_identifier_to_slug(identifier) or identifier
            current.sections.append(
                TocEntry(
                    section=slug,
                    title=node.get("label_description") or node.get("label") or "",
                    is_appendix=True,
                )
            )
        else:
            for child in node.get("children") or []:
                visit(child)

    for child in structure.get("children") or []:
        visit(child)
    if current.sections:
        groups.append(current)

    return PartToc(
        part=part,
        title=structure.get("label_description") or f"Part {part}",
        subparts=groups,
    )


def adjacent_sections(toc: PartToc | None, section_id: str) -> tuple[str | None, str | None]:
    """Return ``(previous, next)`` section ids around ``section_id``.

    Both are None when the TOC is missing or does not contain the section.
    """
    if toc is None:
        return None, None
    ids = toc.section_ids()
    if section_id not in ids:
        return None, None
    index = ids.index(section_id)
    previous = ids[index - 1] if index > 0 else None
    following = ids[index + 1] if index < len(ids) - 1 else None
    return previous, following
