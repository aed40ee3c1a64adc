"""Regulation cache models: CachedSection, CachedPartToc, RegChangelog, CachedImage."""

from datetime import date
from typing import Any

from sqlalchemy import Date, Index, LargeBinary, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, TimestampMixin, enum_column
from app.models.enums import ChangelogChangeType


class CachedSection(Base, TimestampMixin):
    """Parsed content of one section (or appendix) at a known eCFR version.

    ``raw_xml`` is kept verbatim: change detection compares it byte for byte,
    and the CLI ``reparse`` command rebuilds ``content`` from it offline.
    """

    __tablename__ = "cached_section"

    id: Mapped[int] = mapped_column(primary_key=True)
    part: Mapped[str] = mapped_column(String(10), nullable=False)
    section: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    subpart_label: Mapped[str | None] = mapped_column(String(10), nullable=True)
    subpart_title: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Flat node list as produced by pipeline.ecfr.parser
    content: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONB, nullable=False, default=list
    )
    raw_xml: Mapped[str] = mapped_column(Text, nullable=False, default="")

    # eCFR as-of date the content was fetched for
    source_version: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        UniqueConstraint("section", name="uq_cached_section_section"),
        Index("idx_cached_section_part", "part"),
        Index("idx_cached_section_source_version", "source_version"),
    )

    def __repr__(self) -> str:
        return f"<CachedSection({self.section}@{self.source_version})>"


class CachedPartToc(Base, TimestampMixin):
    """Table of contents for one part, replaced wholesale on structure sync."""

    __tablename__ = "cached_part_toc"

    id: Mapped[int] = mapped_column(primary_key=True)
    part: Mapped[str] = mapped_column(String(10), nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    toc: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    source_version: Mapped[str | None] = mapped_column(String(20), nullable=True)

    __table_args__ = (UniqueConstraint("part", name="uq_cached_part_toc_part"),)

    def __repr__(self) -> str:
        return f"<CachedPartToc(part {self.part})>"


class RegChangelog(Base, TimestampMixin):
    """Append-only record of a detected upstream text change."""

    __tablename__ = "reg_changelog"

    id: Mapped[int] = mapped_column(primary_key=True)
    section_id: Mapped[str] = mapped_column(String(50), nullable=False)
    version_date: Mapped[date] = mapped_column(Date, nullable=False)
    change_type: Mapped[ChangelogChangeType] = mapped_column(
        enum_column(ChangelogChangeType, "changelog_change_type"), nullable=False
    )
    effective_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    federal_reg_citation: Mapped[str | None] = mapped_column(String(100), nullable=True)

    __table_args__ = (
        Index("idx_reg_changelog_section_version", "section_id", "version_date"),
    )

    def __repr__(self) -> str:
        return f"<RegChangelog({self.section_id} {self.version_date} {self.change_type.value})>"


class CachedImage(Base, TimestampMixin):
    """Image bytes downloaded once from eCFR.

    ``path`` is the ``src`` exactly as stored in section content, so the
    reader can request ``/api/v1/images?path=<src>`` without rewriting it.
    """

    __tablename__ = "cached_image"

    id: Mapped[int] = mapped_column(primary_key=True)
    path: Mapped[str] = mapped_column(String(500), nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)
    data: Mapped[bytes] = mapped_column(LargeBinary, nullable=False)

    __table_args__ = (UniqueConstraint("path", name="uq_cached_image_path"),)

    def __repr__(self) -> str:
        return f"<CachedImage({self.path}, {len(self.data or b'')} bytes)>"
