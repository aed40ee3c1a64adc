"""Cache of eCFR images referenced by section content.

eCFR serves graphics from ``/graphics/`` and sometimes answers automated
clients with an HTML block page instead of the image. Images are therefore
downloaded once, stored in ``cached_image`` and served from there; an HTML
response is never stored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

import httpx

from pipeline.ecfr.client import ECFRClient
from pipeline.ecfr.errors import CacheWriteFailure, ECFRError
from pipeline.ecfr.nodes import NodeKind, nodes_from_json
from pipeline.ecfr.store import RegulationStore

logger = logging.getLogger(__name__)


def image_paths(contents: Iterable[list[dict[str, Any]] | None]) -> list[str]:
    """Unique image srcs across stored section contents, in first-seen order."""
    seen: dict[str, None] = {}
    for content in contents:
        for node in nodes_from_json(content):
            if node.kind == NodeKind.IMAGE and node.src:
                seen.setdefault(node.src, None)
    return list(seen)


@dataclass
class ImageSyncReport:
    """Result of one sync-images pass."""

    found: int = 0
    already_cached: int = 0
    cached: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)


class ImageCache:
    """Cache-first access to eCFR images."""

    def __init__(
        self,
        client: ECFRClient,
        store: RegulationStore,
        request_delay: float = 0.2,
    ) -> None:
        self.client = client
        self.store = store
        self.request_delay = request_delay

    async def _pause(self) -> None:
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def get(self, path: str) -> tuple[bytes, str]:
        """Return ``(data, content_type)`` for an image, fetching it on a miss.

        A fetched image is stored for next time. If that write fails the image
        is still returned.

        Raises:
            InvalidImagePathError, ImageNotFoundError, ImageBlockedError,
            TransientFetchError: Miss and the upstream fetch failed.
        """
        row = await self.store.get_image(path)
        if row is not None:
            return row.data, row.content_type

        data, content_type = await self.client.get_image(path)
        await self.store.save_image(path, content_type, data)
        try:
            await self.store.commit(path)
        except CacheWriteFailure as e:
            logger.warning(f"Serving {path} uncached: {e}")
        return data, content_type

    async def sync(self, part: str | None = None) -> ImageSyncReport:
        """Download every image referenced by cached sections and not yet stored.

        Args:
            part: Limit to sections of one part.
        """
        sections = await self.store.list_sections(part)
        paths = image_paths(row.content for row in sections)
        existing = await self.store.list_image_paths()

        report = ImageSyncReport(found=len(paths))
        to_fetch = [path for path in paths if path not in existing]
        report.already_cached = report.found - len(to_fetch)
        logger.info(
            f"Found {report.found} images, {report.already_cached} already cached, "
            f"fetching {len(to_fetch)}"
        )

        for path in to_fetch:
            try:
                data, content_type = await self.client.get_image(path)
                await self.store.save_image(path, content_type, data)
                await self.store.commit(path)
            except (ECFRError, httpx.HTTPError) as e:
                logger.warning(f"Image {path} not cached: {e}")
                report.failed[path] = str(e)
            else:
                report.cached.append(path)
                if len(report.cached) % 10 == 0:
                    logger.info(f"... {len(report.cached)} images cached")
            await self._pause()

        logger.info(f"Images done: {len(report.cached)} cached, {len(report.failed)} failed")
        return report
