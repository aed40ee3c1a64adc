"""Section endpoints for reading cached regulation content."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.deps import get_ecfr_client
from app.crud.regulation import (
    build_section_diff,
    get_adjacent_sections,
    get_section,
    get_section_history,
)
from app.models.base import get_async_session
from app.schemas.regulation import (
    AdjacentSectionsSchema,
    SectionDiffSchema,
    SectionHistorySchema,
    SectionSchema,
)
from pipeline.ecfr.client import ECFRClient
from pipeline.ecfr.diff_engine import HistoricalDiffEngine
from pipeline.ecfr.errors import ECFRError, SectionNotFoundError
from pipeline.ecfr.store import RegulationStore
from pipeline.ecfr.structure import part_of, upstream_identifier

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/{section_id}")
async def read_section(
    section_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> SectionSchema:
    """Get the cached content of a section or appendix (e.g. 390.5, 385-appA)."""
    result = await get_section(session, section_id)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Section {section_id} not cached")
    return result


@router.get("/{section_id}/adjacent")
async def read_adjacent_sections(
    section_id: str,
    session: AsyncSession = Depends(get_async_session),
) -> AdjacentSectionsSchema:
    """Get the previous and next sections in the part's reading order."""
    return await get_adjacent_sections(session, section_id)


@router.get("/{section_id}/history")
async def read_section_history(
    section_id: str,
    session: AsyncSession = Depends(get_async_session),
    client: ECFRClient = Depends(get_ecfr_client),
) -> SectionHistorySchema:
    """Get the upstream version timeline merged with detected changes."""
    try:
        versions = await client.get_versions(part_of(section_id))
    except (ECFRError, httpx.HTTPError) as e:
        logger.error(f"Version history unavailable for {section_id}: {e}")
        raise HTTPException(status_code=502, detail="eCFR version history unavailable")
    return await get_section_history(
        session, section_id, upstream_identifier(section_id), versions
    )


@router.get("/{section_id}/diff")
async def read_section_diff(
    section_id: str,
    date: str = Query(..., pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD"),
    session: AsyncSession = Depends(get_async_session),
    client: ECFRClient = Depends(get_ecfr_client),
) -> SectionDiffSchema:
    """Compare the section as of ``date`` with the current cached version."""
    engine = HistoricalDiffEngine(client, RegulationStore(session))
    try:
        diff = await engine.diff(section_id, date)
    except SectionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except (ECFRError, httpx.HTTPError) as e:
        logger.error(f"Historical fetch failed for {section_id}@{date}: {e}")
        raise HTTPException(status_code=502, detail=f"eCFR fetch failed for {date}")
    return build_section_diff(diff)
