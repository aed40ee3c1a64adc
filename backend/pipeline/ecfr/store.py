"""Persistence for parsed sections, part TOCs, the changelog and images.

The store treats its tables as an upsert cache keyed by section id (and part
id for TOCs). Writes are staged on the session; the caller commits once per
section so a failure never leaves a half-written section behind.
"""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import ChangelogChangeType
from app.models.regulation import CachedImage, CachedPartToc, CachedSection, RegChangelog
from pipeline.ecfr.errors import CacheWriteFailure
from pipeline.ecfr.nodes import ParsedSection
from pipeline.ecfr.structure import PartToc

logger = logging.getLogger(__name__)


class RegulationStore:
    """Reads and writes the regulation cache tables."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # Sections
    # =========================================================================

    async def get_section(self, section_id: str) -> CachedSection | None:
        result = await self.session.execute(
            select(CachedSection).where(CachedSection.section == section_id)
        )
        return result.scalar_one_or_none()

    async def list_sections(self, part: str | None = None) -> list[CachedSection]:
        """Cached sections, optionally limited to one part, in section order."""
        stmt = select(CachedSection).order_by(CachedSection.section)
        if part is not None:
            stmt = stmt.where(CachedSection.part == part)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def save_section(self, parsed: ParsedSection, raw_xml: str) -> CachedSection:
        """Insert or replace the cached row for a parsed section."""
        row = await self.get_section(parsed.section)
        if row is None:
            row = CachedSection(section=parsed.section)
            self.session.add(row)

        row.part = parsed.part
        row.title = parsed.title
        row.subpart_label = parsed.subpart_label
        row.subpart_title = parsed.subpart_title
        row.content = parsed.content_json()
        row.raw_xml = raw_xml
        row.source_version = parsed.source_version
        return row

    async def touch_section_version(self, section_id: str, version: date) -> None:
        """Advance the cached version of an unchanged section."""
        row = await self.get_section(section_id)
        if row is not None:
            row.source_version = version

    async def update_parsed_content(self, row: CachedSection, parsed: ParsedSection) -> None:
        """Replace derived fields of a row without touching raw XML or version."""
        row.title = parsed.title
        row.subpart_label = parsed.subpart_label
        row.subpart_title = parsed.subpart_title
        row.content = parsed.content_json()

    # =========================================================================
    # Changelog
    # =========================================================================

    async def append_changelog(
        self,
        section_id: str,
        version_date: date,
        change_type: ChangelogChangeType,
        effective_date: date | None = None,
        summary: str | None = None,
        federal_reg_citation: str | None = None,
    ) -> RegChangelog:
        entry = RegChangelog(
            section_id=section_id,
            version_date=version_date,
            change_type=change_type,
            effective_date=effective_date,
            summary=summary,
            federal_reg_citation=federal_reg_citation,
        )
        self.session.add(entry)
        return entry

    async def list_changelog(self, section_id: str) -> list[RegChangelog]:
        """Changelog entries for a section, newest version first."""
        result = await self.session.execute(
            select(RegChangelog)
            .where(RegChangelog.section_id == section_id)
            .order_by(RegChangelog.version_date.desc(), RegChangelog.id.desc())
        )
        return list(result.scalars().all())

    # =========================================================================
    # Part TOCs
    # =========================================================================

    async def get_part_toc(self, part: str) -> PartToc | None:
        result = await self.session.execute(
            select(CachedPartToc).where(CachedPartToc.part == part)
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return PartToc.from_dict(row.toc)

    async def save_part_toc(self, toc: PartToc, source_version: str | None = None) -> None:
        """Replace the cached TOC for a part."""
        result = await self.session.execute(
            select(CachedPartToc).where(CachedPartToc.part == toc.part)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = CachedPartToc(part=toc.part)
            self.session.add(row)
        row.title = toc.title
        row.toc = toc.to_dict()
        row.source_version = source_version

    # =========================================================================
    # Images
    # =========================================================================

    async def get_image(self, path: str) -> CachedImage | None:
        result = await self.session.execute(
            select(CachedImage).where(CachedImage.path == path)
        )
        return result.scalar_one_or_none()

    async def list_image_paths(self) -> set[str]:
        result = await self.session.execute(select(CachedImage.path))
        return set(result.scalars().all())

    async def save_image(self, path: str, content_type: str, data: bytes) -> CachedImage:
        """Insert or replace the cached bytes for an image path."""
        row = await self.get_image(path)
        if row is None:
            row = CachedImage(path=path)
            self.session.add(row)
        row.content_type = content_type
        row.data = data
        return row

    # =========================================================================
    # Transactions
    # =========================================================================

    async def commit(self, key: str) -> None:
        """Commit staged writes for one section or part.

        Raises:
            CacheWriteFailure: The database rejected the write. The session
                has been rolled back.
        """
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise CacheWriteFailure(key, e) from e

    async def rollback(self) -> None:
        await self.session.rollback()
