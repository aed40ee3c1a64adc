"""eCFR versioner API client.

Endpoints used (all under ``/api/versioner/v1``):

    titles                                   latest as-of date per title
    structure/{date}/title-49/part-{p}.json  part table of contents
    full/{date}/title-49.xml?part=&section=  section full text (XML)
    full/{date}/title-49.xml?part=&appendix= appendix full text (XML)
    versions/title-49.json?part=             version history for a part

Images referenced by section content live outside the API, under
``/graphics/`` on the same host.

The API is public and unauthenticated. It rate limits aggressively under
bursty load (429), so callers pace requests and every call is retried.
"""

import asyncio
import logging
from typing import Any

import httpx

from pipeline.cache import PipelineCache
from pipeline.ecfr.errors import (
    ImageBlockedError,
    ImageNotFoundError,
    InvalidImagePathError,
    SectionNotFoundError,
    TransientFetchError,
)
from pipeline.ecfr.structure import (
    is_appendix_section,
    part_of,
    slug_to_appendix_identifier,
)
from pipeline.ecfr.versions import VersionRecord, parse_versions

logger = logging.getLogger(__name__)

ECFR_BASE_URL = "https://www.ecfr.gov"
VERSIONER_PATH = "/api/versioner/v1"

DEFAULT_TITLE = 49
DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_BACKOFF_SECONDS = 0.8

# Status codes worth retrying besides 5xx.
RETRYABLE_STATUS_CODES = frozenset({429})

IMAGE_ACCEPT = "image/*,*/*"
DEFAULT_IMAGE_TYPE = "image/gif"


class ECFRClient:
    """Async client for the eCFR versioner API."""

    def __init__(
        self,
        base_url: str = ECFR_BASE_URL,
        title: int = DEFAULT_TITLE,
        timeout: float = 30.0,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_BACKOFF_SECONDS,
        cache: PipelineCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the eCFR client.

        Args:
            base_url: eCFR host.
            title: CFR title number (49 for FMCSR).
            timeout: Per-request timeout in seconds.
            max_attempts: Attempts per request before giving up.
            retry_delay: Linear backoff unit; attempt n waits n * retry_delay.
            cache: Optional cache for dated full-text responses.
            transport: Optional httpx transport (tests use MockTransport).
        """
        self.base_url = base_url.rstrip("/")
        self.title = title
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self.cache = cache
        self._transport = transport

    @classmethod
    def from_settings(cls, cache: PipelineCache | None = None) -> "ECFRClient":
        """Build a client from application settings."""
        from app.config import settings

        return cls(
            base_url=settings.ecfr_base_url,
            title=settings.cfr_title,
            timeout=settings.http_timeout,
            max_attempts=settings.fetch_max_attempts,
            retry_delay=settings.fetch_backoff_seconds,
            cache=cache,
        )

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    def _url(self, path: str) -> str:
        return f"{self.base_url}{VERSIONER_PATH}/{path}"

    async def _request_with_retry(
        self,
        client: httpx.AsyncClient,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """GET with retries on transport errors, 5xx and 429.

        Args:
            client: httpx AsyncClient instance.
            url: Request URL.
            **kwargs: Additional arguments passed to client.get().

        Returns:
            httpx.Response on success.

        Raises:
            TransientFetchError: Every attempt failed with a retryable error.
            httpx.HTTPStatusError: Non-retryable 4xx response.
        """
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await client.get(url, **kwargs)
                response.raise_for_status()
                return response
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                if status < 500 and status not in RETRYABLE_STATUS_CODES:
                    raise
                last_error = e
                reason = f"HTTP {status}"
            except httpx.RequestError as e:
                last_error = e
                reason = f"Request error: {e}"

            if attempt < self.max_attempts:
                delay = self.retry_delay * attempt
                logger.warning(
                    f"{reason} for {url}, "
                    f"retrying in {delay:.1f}s (attempt {attempt}/{self.max_attempts})"
                )
                await asyncio.sleep(delay)

        raise TransientFetchError(url, self.max_attempts, last_error)

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        async with self._client() as client:
            response = await self._request_with_retry(client, url, **kwargs)
            return response.json()

    # =========================================================================
    # Public API
    # =========================================================================

    async def get_latest_date(self) -> str | None:
        """Return the title's latest as-of date (``YYYY-MM-DD``), if published."""
        data = await self._get_json(self._url("titles"))
        for entry in data.get("titles") or []:
            if entry.get("number") == self.title:
                return entry.get("up_to_date_as_of")
        logger.warning(f"Title {self.title} missing from eCFR titles listing")
        return None

    async def get_part_structure(self, part: str, date: str = "current") -> dict[str, Any]:
        """Fetch the structure tree for one part."""
        url = self._url(f"structure/{date}/title-{self.title}/part-{part}.json")
        logger.info(f"Fetching structure for part {part} ({date})")
        result: dict[str, Any] = await self._get_json(url)
        return result

    async def get_versions(self, part: str) -> list[VersionRecord]:
        """Fetch every content version for one part."""
        url = self._url(f"versions/title-{self.title}.json")
        logger.info(f"Fetching version history for part {part}")
        data = await self._get_json(url, params={"part": part})
        return parse_versions(data)

    def _full_text_params(self, section_id: str) -> dict[str, str]:
        part = part_of(section_id)
        if is_appendix_section(section_id):
            identifier = slug_to_appendix_identifier(section_id)
            if identifier is None:
                raise SectionNotFoundError(section_id)
            return {"part": part, "appendix": identifier}
        return {"part": part, "section": section_id}

    async def get_section_xml(self, section_id: str, date: str) -> str:
        """Fetch the full-text XML of a section or appendix as of ``date``.

        A dated snapshot never changes upstream, so responses are cached under
        ``ecfr/full/{date}/{section}.xml`` when a cache is configured.

        Raises:
            SectionNotFoundError: Upstream has no such section on that date.
            TransientFetchError: Retries exhausted.
        """
        cache_key = f"ecfr/full/{date}/{section_id}.xml"
        if self.cache is not None:
            cached = self.cache.get_text(cache_key)
            if cached is not None:
                logger.debug(f"Cache hit: {cache_key}")
                return cached

        params = self._full_text_params(section_id)
        url = self._url(f"full/{date}/title-{self.title}.xml")
        async with self._client() as client:
            try:
                response = await self._request_with_retry(client, url, params=params)
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise SectionNotFoundError(section_id, date) from e
                raise

        xml = response.text
        if self.cache is not None:
            self.cache.put_text(cache_key, xml)
        return xml

    def image_url(self, path: str) -> str:
        """Resolve an image node's ``src`` to an absolute eCFR URL.

        Raises:
            InvalidImagePathError: ``path`` is neither host-relative nor on
                the eCFR host.
        """
        if path.startswith(f"{self.base_url}/"):
            return path
        if path.startswith("/") and not path.startswith("//"):
            return f"{self.base_url}{path}"
        raise InvalidImagePathError(path)

    async def get_image(self, path: str) -> tuple[bytes, str]:
        """Download one image.

        Returns:
            ``(data, content_type)``.

        Raises:
            InvalidImagePathError: ``path`` is not an eCFR image.
            ImageNotFoundError: Upstream answered 404.
            ImageBlockedError: Upstream served an HTML page instead.
            TransientFetchError: Retries exhausted.
        """
        url = self.image_url(path)
        async with self._client() as client:
            try:
                response = await self._request_with_retry(
                    client, url, headers={"Accept": IMAGE_ACCEPT}
                )
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 404:
                    raise ImageNotFoundError(path) from e
                raise

        content_type = response.headers.get("content-type") or DEFAULT_IMAGE_TYPE
        if "text/html" in content_type:
            raise ImageBlockedError(path, content_type)
        return response.content, content_type
