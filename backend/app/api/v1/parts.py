"""Part endpoints for navigating the FMCSR."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.crud.regulation import get_part_toc
from app.models.base import get_async_session
from app.schemas.regulation import PartTocSchema

router = APIRouter()


@router.get("/{part}/toc")
async def read_part_toc(
    part: str,
    session: AsyncSession = Depends(get_async_session),
) -> PartTocSchema:
    """Get the cached table of contents of a part, grouped by subpart."""
    result = await get_part_toc(session, part)
    if result is None:
        raise HTTPException(status_code=404, detail=f"Part {part} not cached")
    return result
