"""Pydantic schemas for user annotations."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.models.enums import AnnotationType


class AnnotationSchema(BaseModel):
    """A highlight, note or bookmark as returned to the reader.

    ``paragraph_id`` is the anchor (last id of ``paragraph_ids``).
    ``impacted_by_change`` asks the reader to review the annotation because
    the section's text changed upstream since it was made.
    """

    id: int
    type: AnnotationType
    user_id: str
    cfr_part: str
    section_id: str
    paragraph_id: str | None
    paragraph_ids: list[str]
    impacted_by_change: bool
    color: str | None = None
    text: str | None = None
    created_at: datetime
    updated_at: datetime


class AnnotationListSchema(BaseModel):
    annotations: list[AnnotationSchema]
    impacted_count: int = Field(..., description="Annotations awaiting review")


class DismissImpactRequest(BaseModel):
    """Clear review flags for one user, optionally for one section."""

    user_id: str
    section_id: str | None = None


class DismissImpactResponse(BaseModel):
    cleared: int
