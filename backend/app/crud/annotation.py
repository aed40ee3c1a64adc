"""CRUD operations for user annotations.

Only the review actions here (keep, dismiss, delete) clear
``impacted_by_change``; setting it is left to the sync pipeline.
"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.annotation import ANNOTATION_MODELS, AnnotationMixin, Highlight, Note
from app.models.enums import AnnotationType
from app.schemas.annotation import AnnotationListSchema, AnnotationSchema


def _build_annotation(row: AnnotationMixin) -> AnnotationSchema:
    return AnnotationSchema(
        id=row.id,
        type=row.annotation_type,
        user_id=row.user_id,
        cfr_part=row.cfr_part,
        section_id=row.section_id,
        paragraph_id=row.paragraph_id,
        paragraph_ids=list(row.paragraph_ids or []),
        impacted_by_change=row.impacted_by_change,
        color=row.color if isinstance(row, Highlight) else None,
        text=row.text if isinstance(row, Note) else None,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


async def list_annotations(
    session: AsyncSession, user_id: str, section_id: str | None = None
) -> AnnotationListSchema:
    """All of a user's annotations, optionally for one section.

    Ordered by section, then type, then creation time.
    """
    rows: list[AnnotationMixin] = []
    for model in ANNOTATION_MODELS.values():
        stmt = select(model).where(model.user_id == user_id)
        if section_id is not None:
            stmt = stmt.where(model.section_id == section_id)
        result = await session.execute(stmt.order_by(model.section_id, model.created_at))
        rows.extend(result.scalars().all())

    annotations = [_build_annotation(row) for row in rows]
    annotations.sort(key=lambda a: (a.section_id, a.type.value, a.created_at))
    return AnnotationListSchema(
        annotations=annotations,
        impacted_count=sum(1 for a in annotations if a.impacted_by_change),
    )


async def _get_annotation(
    session: AsyncSession, annotation_type: AnnotationType, annotation_id: int
) -> AnnotationMixin | None:
    model = ANNOTATION_MODELS[annotation_type]
    result = await session.execute(select(model).where(model.id == annotation_id))
    return result.scalar_one_or_none()


async def keep_annotation(
    session: AsyncSession, annotation_type: AnnotationType, annotation_id: int
) -> AnnotationSchema | None:
    """Mark a flagged annotation as reviewed and still valid."""
    row = await _get_annotation(session, annotation_type, annotation_id)
    if row is None:
        return None
    row.impacted_by_change = False
    await session.commit()
    await session.refresh(row)
    return _build_annotation(row)


async def dismiss_impact(
    session: AsyncSession, user_id: str, section_id: str | None = None
) -> int:
    """Clear every review flag of a user. Returns the number cleared."""
    cleared = 0
    for model in ANNOTATION_MODELS.values():
        stmt = (
            update(model)
            .where(model.user_id == user_id, model.impacted_by_change.is_(True))
            .values(impacted_by_change=False)
            .execution_options(synchronize_session=False)
        )
        if section_id is not None:
            stmt = stmt.where(model.section_id == section_id)
        result = await session.execute(stmt)
        cleared += result.rowcount or 0
    await session.commit()
    return cleared


async def delete_annotation(
    session: AsyncSession, annotation_type: AnnotationType, annotation_id: int
) -> bool:
    """Delete an annotation. Returns False if it did not exist."""
    row = await _get_annotation(session, annotation_type, annotation_id)
    if row is None:
        return False
    await session.delete(row)
    await session.commit()
    return True
