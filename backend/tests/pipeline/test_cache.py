"""Tests for PipelineCache (local + optional GCS backing)."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pipeline.cache import PipelineCache


@pytest.fixture
def tmp_cache(tmp_path: Path) -> PipelineCache:
    """Create a local-only PipelineCache in a temp dir."""
    return PipelineCache(local_root=tmp_path, bucket_name=None)


def _with_mock_bucket(cache: PipelineCache) -> MagicMock:
    bucket = MagicMock()
    cache._gcs_available = True
    cache._gcs_bucket = bucket
    return bucket


class TestLocalOnly:
    """Tests for local-only caching (no GCS)."""

    def test_put_and_get_text(self, tmp_cache: PipelineCache) -> None:
        tmp_cache.put_text("ecfr/full/2024-01-02/390.5.xml", "<DIV8/>")
        assert tmp_cache.get_text("ecfr/full/2024-01-02/390.5.xml") == "<DIV8/>"

    def test_get_text_miss(self, tmp_cache: PipelineCache) -> None:
        assert tmp_cache.get_text("ecfr/full/2024-01-02/missing.xml") is None

    def test_has_local(self, tmp_cache: PipelineCache) -> None:
        assert not tmp_cache.has_local("thing.xml")
        tmp_cache.put_text("thing.xml", "hello")
        assert tmp_cache.has_local("thing.xml")

    def test_local_path(self, tmp_cache: PipelineCache) -> None:
        path = tmp_cache.local_path("ecfr/full/d/385-appA.xml")
        assert path == tmp_cache.local_root / "ecfr" / "full" / "d" / "385-appA.xml"

    def test_no_gcs_when_bucket_unset(self, tmp_cache: PipelineCache) -> None:
        assert tmp_cache._init_gcs() is False
        assert tmp_cache._gcs_available is False

    def test_local_write_failure_is_logged(self, tmp_cache: PipelineCache) -> None:
        with patch.object(Path, "write_text", side_effect=OSError("disk full")):
            tmp_cache.put_text("x.xml", "content")
        assert tmp_cache.get_text("x.xml") is None


class TestGCSIntegration:
    """Tests for GCS-backed caching with a mocked bucket."""

    def test_get_text_gcs_hit_backfills_local(self, tmp_path: Path) -> None:
        cache = PipelineCache(local_root=tmp_path, bucket_name="test-bucket")
        bucket = _with_mock_bucket(cache)
        blob = MagicMock()
        blob.exists.return_value = True
        blob.download_as_text.return_value = "<DIV8/>"
        bucket.blob.return_value = blob

        assert cache.get_text("ecfr/full/d/390.5.xml") == "<DIV8/>"
        assert cache.has_local("ecfr/full/d/390.5.xml")

    def test_get_text_gcs_miss(self, tmp_path: Path) -> None:
        cache = PipelineCache(local_root=tmp_path, bucket_name="test-bucket")
        bucket = _with_mock_bucket(cache)
        bucket.blob.return_value.exists.return_value = False

        assert cache.get_text("missing.xml") is None

    def test_put_text_uploads(self, tmp_path: Path) -> None:
        cache = PipelineCache(local_root=tmp_path, bucket_name="test-bucket")
        bucket = _with_mock_bucket(cache)

        cache.put_text("k.xml", "<P/>")

        bucket.blob.assert_called_once_with("k.xml")
        bucket.blob.return_value.upload_from_string.assert_called_once_with(
            "<P/>", content_type="application/xml"
        )

    def test_gcs_errors_do_not_raise(self, tmp_path: Path) -> None:
        cache = PipelineCache(local_root=tmp_path, bucket_name="test-bucket")
        bucket = _with_mock_bucket(cache)
        bucket.blob.side_effect = RuntimeError("network down")

        cache.put_text("k.xml", "<P/>")
        assert cache.get_text("k.xml") == "<P/>"
        assert cache.get_text("other.xml") is None
