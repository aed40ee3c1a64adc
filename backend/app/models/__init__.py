"""SQLAlchemy models for the FMCSR reader."""

from app.models.annotation import ANNOTATION_MODELS, Bookmark, Highlight, Note
from app.models.base import Base, TimestampMixin, async_session_maker, get_async_session
from app.models.enums import AnnotationType, ChangelogChangeType
from app.models.regulation import CachedImage, CachedPartToc, CachedSection, RegChangelog

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "async_session_maker",
    "get_async_session",
    # Enums
    "AnnotationType",
    "ChangelogChangeType",
    # Regulation cache
    "CachedImage",
    "CachedPartToc",
    "CachedSection",
    "RegChangelog",
    # Annotations
    "ANNOTATION_MODELS",
    "Bookmark",
    "Highlight",
    "Note",
]
