"""Pydantic schemas for regulation content, navigation, history and sync.

These schemas are used for API responses. Node and TOC shapes match what the
pipeline stores in JSONB, so stored content validates straight into them.
"""

from datetime import date

from pydantic import BaseModel, Field

from pipeline.ecfr.nodes import NodeKind


class RegNodeSchema(BaseModel):
    """One content node of a section.

    Attributes:
        id: Sequence-scoped id within one parse (``p-3``, ``t-1``, ``img-0``).
        type: Node kind.
        label: Paragraph designation without parentheses, e.g. ``"a"``.
        text: Plain text (empty for tables and images).
        level: Outline depth, 0 for unlabelled content, 1-6 for ``(a)..(i)``.
        anchor: Stable paragraph id used by annotations.
    """

    id: str
    type: NodeKind
    label: str | None = None
    text: str = ""
    level: int = Field(0, ge=0, le=6)
    headers: list[str] | None = None
    rows: list[list[str]] | None = None
    src: str | None = None
    caption: str | None = None
    heading_level: int | None = Field(None, ge=1, le=3)
    anchor: str | None = Field(None, description="make_paragraph_id() of this node")


class SectionSchema(BaseModel):
    """A cached section ready for the reader."""

    part: str
    section: str
    title: str
    subpart_label: str | None = None
    subpart_title: str | None = None
    source_version: date | None = None
    content: list[RegNodeSchema]


class AdjacentSectionsSchema(BaseModel):
    """Previous and next sections in the part's reading order."""

    section: str
    prev: str | None = None
    next: str | None = None


class TocEntrySchema(BaseModel):
    section: str
    title: str
    is_appendix: bool = False


class TocGroupSchema(BaseModel):
    label: str
    title: str
    sections: list[TocEntrySchema]


class PartTocSchema(BaseModel):
    """Cached table of contents for one part."""

    part: str
    title: str
    subparts: list[TocGroupSchema]


class ChangelogEntrySchema(BaseModel):
    """A text change detected by sync."""

    id: int
    version_date: date
    change_type: str
    effective_date: date | None = None
    summary: str | None = None
    federal_reg_citation: str | None = None


class VersionTimelineEntrySchema(BaseModel):
    """One upstream version, joined with the changelog entry we recorded."""

    effective_date: date | None
    amendment_date: date | None = None
    substantive: bool
    removed: bool
    name: str | None = None
    changelog: ChangelogEntrySchema | None = None


class SectionHistorySchema(BaseModel):
    section: str
    timeline: list[VersionTimelineEntrySchema]
    changelogs: list[ChangelogEntrySchema]


class DiffSegmentSchema(BaseModel):
    op: str = Field(..., description="equal, delete or insert")
    text: str


class DiffEntrySchema(BaseModel):
    status: str = Field(..., description="unchanged, modified, added or removed")
    old_node: RegNodeSchema | None = None
    new_node: RegNodeSchema | None = None
    segments: list[DiffSegmentSchema] = []


class SectionDiffSchema(BaseModel):
    """Historical version (old) compared with the cached one (new)."""

    section: str
    date: str
    summary: dict[str, int]
    entries: list[DiffEntrySchema]


class SectionSyncResultSchema(BaseModel):
    section: str
    outcome: str
    version: date | None = None
    annotations_flagged: int = 0
    error: str | None = None


class PartSyncReportSchema(BaseModel):
    part: str
    as_of: str | None
    counts: dict[str, int]
    stopped: bool
    elapsed_seconds: float
    results: list[SectionSyncResultSchema]


class StructureSyncSchema(BaseModel):
    """Sections per part after a TOC rebuild; null marks a failed part."""

    parts: dict[str, int | None]


class StalenessSchema(BaseModel):
    part: str
    as_of: str | None
    is_stale: bool
    stale: list[str]
    missing: list[str]
    up_to_date: int
