"""CRUD operations for cached regulation content.

Reads go through RegulationStore so the API and the sync pipeline see the
cache through the same queries.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.regulation import RegChangelog
from app.schemas.regulation import (
    AdjacentSectionsSchema,
    ChangelogEntrySchema,
    DiffEntrySchema,
    DiffSegmentSchema,
    PartTocSchema,
    RegNodeSchema,
    SectionDiffSchema,
    SectionHistorySchema,
    SectionSchema,
    VersionTimelineEntrySchema,
)
from pipeline.ecfr.diff_engine import HistoricalDiff
from pipeline.ecfr.nodes import make_paragraph_id
from pipeline.ecfr.store import RegulationStore
from pipeline.ecfr.structure import adjacent_sections, part_of
from pipeline.ecfr.versions import VersionRecord, versions_for


def _build_node(section_id: str, index: int, data: dict[str, Any]) -> RegNodeSchema:
    """Build a RegNodeSchema from stored node JSON, adding its anchor."""
    anchor = None
    if data.get("type") == "paragraph":
        anchor = make_paragraph_id(section_id, data.get("label"), index)
    return RegNodeSchema(**data, anchor=anchor)


async def get_section(session: AsyncSession, section_id: str) -> SectionSchema | None:
    """Get a cached section with anchored nodes, or None if not cached."""
    row = await RegulationStore(session).get_section(section_id)
    if row is None:
        return None
    return SectionSchema(
        part=row.part,
        section=row.section,
        title=row.title,
        subpart_label=row.subpart_label,
        subpart_title=row.subpart_title,
        source_version=row.source_version,
        content=[
            _build_node(row.section, index, node)
            for index, node in enumerate(row.content or [])
        ],
    )


async def get_part_toc(session: AsyncSession, part: str) -> PartTocSchema | None:
    toc = await RegulationStore(session).get_part_toc(part)
    if toc is None:
        return None
    return PartTocSchema.model_validate(toc.to_dict())


async def get_adjacent_sections(
    session: AsyncSession, section_id: str
) -> AdjacentSectionsSchema:
    """Previous/next section ids from the cached TOC of the section's part."""
    toc = await RegulationStore(session).get_part_toc(part_of(section_id))
    prev, following = adjacent_sections(toc, section_id)
    return AdjacentSectionsSchema(section=section_id, prev=prev, next=following)


def _build_changelog(entry: RegChangelog) -> ChangelogEntrySchema:
    return ChangelogEntrySchema(
        id=entry.id,
        version_date=entry.version_date,
        change_type=entry.change_type.value,
        effective_date=entry.effective_date,
        summary=entry.summary,
        federal_reg_citation=entry.federal_reg_citation,
    )


async def get_section_history(
    session: AsyncSession,
    section_id: str,
    identifier: str,
    versions: list[VersionRecord],
) -> SectionHistorySchema:
    """Merge the upstream version timeline with our detected changes.

    Args:
        session: Database session.
        section_id: Section id or appendix slug.
        identifier: The section's identifier in upstream version records.
        versions: Every upstream version of the section's part.
    """
    changelogs = await RegulationStore(session).list_changelog(section_id)

    timeline = []
    for version in versions_for(versions, identifier):
        match = next(
            (
                c
                for c in changelogs
                if c.version_date in (version.amendment_date, version.effective_date)
            ),
            None,
        )
        timeline.append(
            VersionTimelineEntrySchema(
                effective_date=version.effective_date,
                amendment_date=version.amendment_date,
                substantive=version.substantive,
                removed=version.removed,
                name=version.name,
                changelog=_build_changelog(match) if match else None,
            )
        )

    return SectionHistorySchema(
        section=section_id,
        timeline=timeline,
        changelogs=[_build_changelog(c) for c in changelogs],
    )


def build_section_diff(diff: HistoricalDiff) -> SectionDiffSchema:
    """Convert a HistoricalDiff into its response schema."""
    entries = []
    for result in diff.results:
        entries.append(
            DiffEntrySchema(
                status=result.status.value,
                old_node=RegNodeSchema(**result.old_node.to_dict())
                if result.old_node
                else None,
                new_node=RegNodeSchema(**result.new_node.to_dict())
                if result.new_node
                else None,
                segments=[
                    DiffSegmentSchema(op=s.op.value, text=s.text)
                    for s in result.segments
                ],
            )
        )
    return SectionDiffSchema(
        section=diff.section_id,
        date=diff.date,
        summary=diff.summary,
        entries=entries,
    )
