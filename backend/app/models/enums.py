"""SQLAlchemy ENUM types for the database schema."""

import enum


class ChangelogChangeType(str, enum.Enum):
    """Whether an upstream amendment changed the rule or only its wording.

    Mirrors the eCFR version ``substantive`` flag.
    """

    SUBSTANTIVE = "substantive"
    EDITORIAL = "editorial"


class AnnotationType(str, enum.Enum):
    """User annotation kinds anchored to regulation paragraphs."""

    HIGHLIGHT = "highlight"
    NOTE = "note"
    BOOKMARK = "bookmark"
