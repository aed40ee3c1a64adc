"""Shared endpoint dependencies for the eCFR pipeline."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.base import get_async_session
from pipeline.cache import get_pipeline_cache
from pipeline.ecfr.client import ECFRClient
from pipeline.ecfr.images import ImageCache
from pipeline.ecfr.impact import AnnotationImpactPropagator
from pipeline.ecfr.store import RegulationStore
from pipeline.ecfr.sync import SectionSyncCoordinator


def get_ecfr_client() -> ECFRClient:
    """eCFR client with the shared pipeline cache."""
    return ECFRClient.from_settings(cache=get_pipeline_cache())


def get_image_cache(
    session: AsyncSession = Depends(get_async_session),
    client: ECFRClient = Depends(get_ecfr_client),
) -> ImageCache:
    return ImageCache(client, RegulationStore(session))


def get_sync_coordinator(
    session: AsyncSession = Depends(get_async_session),
    client: ECFRClient = Depends(get_ecfr_client),
) -> SectionSyncCoordinator:
    return SectionSyncCoordinator(
        client=client,
        store=RegulationStore(session),
        propagator=AnnotationImpactPropagator(session),
        request_delay=settings.sync_request_delay,
    )
