"""Image proxy serving eCFR graphics from the local cache."""

import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Response

from app.api.v1.deps import get_image_cache
from app.config import settings
from pipeline.ecfr.errors import (
    ECFRError,
    ImageBlockedError,
    ImageNotFoundError,
    InvalidImagePathError,
)
from pipeline.ecfr.images import ImageCache

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_class=Response)
async def read_image(
    path: str = Query(..., min_length=1, description="Image src from section content"),
    cache: ImageCache = Depends(get_image_cache),
) -> Response:
    """Serve an image, fetching and caching it from eCFR on first request."""
    try:
        data, content_type = await cache.get(path)
    except InvalidImagePathError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ImageNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ImageBlockedError:
        raise HTTPException(status_code=502, detail="Blocked by eCFR")
    except (ECFRError, httpx.HTTPError) as e:
        logger.error(f"Image fetch failed for {path}: {e}")
        raise HTTPException(status_code=502, detail="eCFR image fetch failed")

    return Response(
        content=data,
        media_type=content_type,
        headers={"Cache-Control": f"public, max-age={settings.image_cache_max_age}"},
    )
