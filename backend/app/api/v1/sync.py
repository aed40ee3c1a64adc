"""Sync endpoints, meant to be called by a scheduler.

Run ``/structure`` first, then ``/parts/{part}`` for each part. Each call
handles one part so it fits within a request timeout.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.v1.deps import get_sync_coordinator
from app.config import settings
from app.schemas.regulation import (
    PartSyncReportSchema,
    SectionSyncResultSchema,
    StalenessSchema,
    StructureSyncSchema,
)
from pipeline.ecfr.errors import ECFRError
from pipeline.ecfr.sync import SectionSyncCoordinator

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_part(part: str) -> None:
    if part not in settings.fmcsr_parts:
        raise HTTPException(status_code=404, detail=f"Part {part} is not synced")


@router.post("/structure")
async def sync_structure(
    parts: list[str] | None = Query(None, description="Defaults to every FMCSR part"),
    coordinator: SectionSyncCoordinator = Depends(get_sync_coordinator),
) -> StructureSyncSchema:
    """Rebuild cached tables of contents."""
    selected = parts or settings.fmcsr_parts
    for part in selected:
        _check_part(part)
    return StructureSyncSchema(parts=await coordinator.sync_structure(selected))


@router.post("/parts/{part}")
async def sync_part(
    part: str,
    coordinator: SectionSyncCoordinator = Depends(get_sync_coordinator),
) -> PartSyncReportSchema:
    """Run one incremental sync pass over a part."""
    _check_part(part)
    try:
        report = await coordinator.sync_part(part)
    except (ECFRError, httpx.HTTPError) as e:
        logger.error(f"Sync of part {part} failed: {e}")
        raise HTTPException(status_code=502, detail=f"eCFR unavailable: {e}")
    return PartSyncReportSchema(
        part=report.part,
        as_of=report.as_of,
        counts=report.counts,
        stopped=report.stopped,
        elapsed_seconds=report.elapsed_seconds,
        results=[
            SectionSyncResultSchema(
                section=r.section_id,
                outcome=r.outcome.value,
                version=r.version,
                annotations_flagged=r.annotations_flagged,
                error=r.error,
            )
            for r in report.results
        ],
    )


@router.get("/parts/{part}/staleness")
async def check_part_staleness(
    part: str,
    coordinator: SectionSyncCoordinator = Depends(get_sync_coordinator),
) -> StalenessSchema:
    """Report stale and missing sections without fetching any text."""
    _check_part(part)
    report = await coordinator.check_staleness(part)
    return StalenessSchema(
        part=report.part,
        as_of=report.as_of,
        is_stale=report.is_stale,
        stale=report.stale,
        missing=report.missing,
        up_to_date=report.up_to_date,
    )
