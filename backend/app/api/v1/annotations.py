"""Annotation endpoints, including the change-review actions."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.annotation import (
    delete_annotation,
    dismiss_impact,
    keep_annotation,
    list_annotations,
)
from app.models.base import get_async_session
from app.models.enums import AnnotationType
from app.schemas.annotation import (
    AnnotationListSchema,
    AnnotationSchema,
    DismissImpactRequest,
    DismissImpactResponse,
)

router = APIRouter()


@router.get("")
async def read_annotations(
    user_id: str = Query(..., description="Owner of the annotations"),
    section: str | None = Query(None, description="Limit to one section"),
    session: AsyncSession = Depends(get_async_session),
) -> AnnotationListSchema:
    """List a user's highlights, notes and bookmarks."""
    return await list_annotations(session, user_id, section)


@router.post("/dismiss-impact")
async def dismiss_annotation_impact(
    body: DismissImpactRequest,
    session: AsyncSession = Depends(get_async_session),
) -> DismissImpactResponse:
    """Clear every review flag of a user, optionally within one section."""
    cleared = await dismiss_impact(session, body.user_id, body.section_id)
    return DismissImpactResponse(cleared=cleared)


@router.post("/{annotation_type}/{annotation_id}/keep")
async def keep_flagged_annotation(
    annotation_type: AnnotationType,
    annotation_id: int,
    session: AsyncSession = Depends(get_async_session),
) -> AnnotationSchema:
    """Keep an annotation flagged by a text change."""
    result = await keep_annotation(session, annotation_type, annotation_id)
    if result is None:
        raise HTTPException(
            status_code=404,
            detail=f"{annotation_type.value.title()} {annotation_id} not found",
        )
    return result


@router.delete("/{annotation_type}/{annotation_id}", status_code=204)
async def remove_annotation(
    annotation_type: AnnotationType,
    annotation_id: int,
    session: AsyncSession = Depends(get_async_session),
) -> None:
    """Delete an annotation."""
    if not await delete_annotation(session, annotation_type, annotation_id):
        raise HTTPException(
            status_code=404,
            detail=f"{annotation_type.value.title()} {annotation_id} not found",
        )
