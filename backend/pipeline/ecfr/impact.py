"""Flag annotations on sections whose text changed upstream.

The flag is section-wide: a reader reviews each flagged annotation
and either keeps it or deletes it. The propagator never clears a flag and
never touches an annotation that is already flagged.
"""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.annotation import Bookmark, Highlight, Note

logger = logging.getLogger(__name__)

ANNOTATION_TABLES = (Highlight, Note, Bookmark)


class AnnotationImpactPropagator:
    """Sets ``impacted_by_change`` on every annotation of a changed section."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def flag_section(self, section_id: str, commit: bool = True) -> int:
        """Flag unflagged annotations on ``section_id``.

        Args:
            section_id: Section whose text changed.
            commit: Commit immediately. The sync coordinator passes False so
                the flags land in the same transaction as the new text.

        Returns:
            Number of annotations newly flagged (0 when re-run).
        """
        flagged = 0
        for model in ANNOTATION_TABLES:
            result = await self.session.execute(
                update(model)
                .where(
                    model.section_id == section_id,
                    model.impacted_by_change.is_(False),
                )
                .values(impacted_by_change=True)
                .execution_options(synchronize_session=False)
            )
            flagged += result.rowcount or 0
        if commit:
            await self.session.commit()

        if flagged:
            logger.info(f"Flagged {flagged} annotations on {section_id} for review")
        return flagged
