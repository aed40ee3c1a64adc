"""Pipeline cache with local filesystem + optional GCS backing.

Provides a two-layer cache: local filesystem (fast) backed by GCS (shared).
When GCS_CACHE_BUCKET is unset, behaves as local-only cache.

Only immutable upstream responses belong here. Keys mirror the local
directory structure, e.g.:
    ecfr/full/2025-06-15/390.5.xml
    ecfr/full/2025-06-15/385-appA.xml
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class PipelineCache:
    """Two-layer cache: local filesystem -> GCS bucket -> upstream API.

    When bucket_name is None, only local caching is used.
    The google-cloud-storage library is imported lazily so it remains optional.
    """

    def __init__(
        self,
        local_root: Path | str = "data",
        bucket_name: str | None = None,
    ) -> None:
        self.local_root = Path(local_root)
        self.bucket_name = bucket_name
        self._gcs_bucket: Any = None
        self._gcs_available: bool | None = None

    def _init_gcs(self) -> bool:
        """Lazily initialize GCS client. Returns True if GCS is available."""
        if self._gcs_available is not None:
            return self._gcs_available

        if not self.bucket_name:
            self._gcs_available = False
            return False

        try:
            from google.cloud.storage import Client

            self._gcs_bucket = Client().bucket(self.bucket_name)
            self._gcs_available = True
            logger.info(f"GCS cache enabled: gs://{self.bucket_name}")
        except Exception as e:
            logger.warning(f"GCS cache unavailable (falling back to local): {e}")
            self._gcs_available = False

        return self._gcs_available

    def get_text(self, key: str) -> str | None:
        """Get cached text by key.

        Checks local first, then GCS. On GCS hit, backfills local.
        """
        local = self.local_path(key)
        if local.exists():
            return local.read_text(encoding="utf-8")

        if self._init_gcs() and self._gcs_bucket is not None:
            try:
                blob = self._gcs_bucket.blob(key)
                if blob.exists():
                    content: str = blob.download_as_text()
                    self._write_local(local, content)
                    logger.debug(f"Cache backfill from GCS: {key}")
                    return content
            except Exception as e:
                logger.warning(f"GCS read failed for {key}: {e}")

        return None

    def put_text(self, key: str, content: str) -> None:
        """Write text to both layers. Failures are logged, never raised."""
        self._write_local(self.local_path(key), content)

        if self._init_gcs() and self._gcs_bucket is not None:
            try:
                blob = self._gcs_bucket.blob(key)
                blob.upload_from_string(content, content_type="application/xml")
                logger.debug(f"Cache uploaded to GCS: {key}")
            except Exception as e:
                logger.warning(f"GCS write failed for {key}: {e}")

    def has_local(self, key: str) -> bool:
        """Check whether a key exists in the local cache."""
        return self.local_path(key).exists()

    def local_path(self, key: str) -> Path:
        """Return the local filesystem path for a cache key."""
        return self.local_root / key

    def _write_local(self, path: Path, content: str) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.warning(f"Local cache write failed for {path}: {e}")


def get_pipeline_cache() -> PipelineCache:
    """Factory that reads settings and returns a configured PipelineCache."""
    from app.config import settings

    return PipelineCache(
        local_root=Path(settings.cache_dir),
        bucket_name=settings.gcs_cache_bucket,
    )
