"""User annotation models: Highlight, Note, Bookmark.

All three anchor to paragraphs by the id derived in
``pipeline.ecfr.nodes.make_paragraph_id``. A multi-paragraph span stores every
covered id in ``paragraph_ids``; the anchor is the last one.
"""

from typing import ClassVar

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from app.models.base import Base, TimestampMixin
from app.models.enums import AnnotationType


class AnnotationMixin(TimestampMixin):
    """Columns shared by every annotation kind."""

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    cfr_part: Mapped[str] = mapped_column(String(10), nullable=False)
    section_id: Mapped[str] = mapped_column(String(50), nullable=False)
    paragraph_ids: Mapped[list[str]] = mapped_column(
        ARRAY(Text), nullable=False, default=list
    )

    # Set only by the impact propagator; cleared only by user review
    impacted_by_change: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )

    annotation_type: ClassVar[AnnotationType]

    @declared_attr.directive
    def __table_args__(cls) -> tuple[Index, ...]:
        return (
            Index(f"idx_{cls.__tablename__}_user_section", "user_id", "section_id"),
            Index(f"idx_{cls.__tablename__}_section", "section_id"),
        )

    @property
    def paragraph_id(self) -> str | None:
        """Anchor paragraph: the last id of the span."""
        return self.paragraph_ids[-1] if self.paragraph_ids else None


class Highlight(AnnotationMixin, Base):
    """A colored highlight over one or more paragraphs."""

    __tablename__ = "highlight"
    annotation_type = AnnotationType.HIGHLIGHT

    color: Mapped[str] = mapped_column(String(20), nullable=False, default="yellow")

    def __repr__(self) -> str:
        return f"<Highlight({self.section_id} {self.paragraph_id} {self.color})>"


class Note(AnnotationMixin, Base):
    """A free-text note attached to one or more paragraphs."""

    __tablename__ = "note"
    annotation_type = AnnotationType.NOTE

    text: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Note({self.section_id} {self.paragraph_id})>"


class Bookmark(AnnotationMixin, Base):
    """A saved position in a section."""

    __tablename__ = "bookmark"
    annotation_type = AnnotationType.BOOKMARK

    def __repr__(self) -> str:
        return f"<Bookmark({self.section_id} {self.paragraph_id})>"


ANNOTATION_MODELS: dict[AnnotationType, type[AnnotationMixin]] = {
    AnnotationType.HIGHLIGHT: Highlight,
    AnnotationType.NOTE: Note,
    AnnotationType.BOOKMARK: Bookmark,
}
