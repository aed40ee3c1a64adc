"""Tests for section and part API endpoints."""

from datetime import date
from unittest.mock import AsyncMock, MagicMock, patch

from fastapi.testclient import TestClient

from app.api.v1.deps import get_ecfr_client
from app.main import app
from app.schemas.regulation import (
    AdjacentSectionsSchema,
    PartTocSchema,
    RegNodeSchema,
    SectionHistorySchema,
    SectionSchema,
    TocEntrySchema,
    TocGroupSchema,
)
from pipeline.ecfr.diff_engine import DiffResult, DiffStatus, HistoricalDiff, diff_text
from pipeline.ecfr.errors import SectionNotFoundError, TransientFetchError
from pipeline.ecfr.nodes import Node, NodeKind


def _override_client(client_mock: MagicMock) -> None:
    app.dependency_overrides[get_ecfr_client] = lambda: client_mock


# ---------------------------------------------------------------------------
# GET /api/v1/sections/{section_id}
# ---------------------------------------------------------------------------


@patch("app.api.v1.sections.get_section", new_callable=AsyncMock)
def test_get_section_success(mock_get: AsyncMock, client: TestClient) -> None:
    """Section endpoint returns anchored content nodes."""
    mock_get.return_value = SectionSchema(
        part="390",
        section="390.5",
        title="Definitions.",
        subpart_label="B",
        subpart_title="General Requirements and Information",
        source_version=date(2024, 1, 2),
        content=[
            RegNodeSchema(
                id="p-0", type=NodeKind.PARAGRAPH, label="a", text="Definitions.",
                level=1, anchor="390.5-a",
            ),
            RegNodeSchema(
                id="t-1", type=NodeKind.TABLE, headers=["Class"], rows=[["1"]]
            ),
        ],
    )

    response = client.get("/api/v1/sections/390.5")
    assert response.status_code == 200

    data = response.json()
    assert data["section"] == "390.5"
    assert data["source_version"] == "2024-01-02"
    assert data["content"][0]["type"] == "paragraph"
    assert data["content"][0]["anchor"] == "390.5-a"
    assert data["content"][1]["rows"] == [["1"]]
    mock_get.assert_awaited_once()
    assert mock_get.await_args.args[1] == "390.5"


@patch("app.api.v1.sections.get_section", new_callable=AsyncMock)
def test_get_appendix(mock_get: AsyncMock, client: TestClient) -> None:
    """Appendix slugs are accepted as section ids."""
    mock_get.return_value = SectionSchema(
        part="385", section="385-appA", title="Appendix A to Part 385", content=[]
    )
    response = client.get("/api/v1/sections/385-appA")
    assert response.status_code == 200
    assert response.json()["content"] == []


@patch("app.api.v1.sections.get_section", new_callable=AsyncMock)
def test_get_section_not_cached(mock_get: AsyncMock, client: TestClient) -> None:
    """Uncached sections return 404."""
    mock_get.return_value = None
    response = client.get("/api/v1/sections/390.999")
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# GET /api/v1/sections/{section_id}/adjacent
# ---------------------------------------------------------------------------


@patch("app.api.v1.sections.get_adjacent_sections", new_callable=AsyncMock)
def test_adjacent_sections(mock_adj: AsyncMock, client: TestClient) -> None:
    mock_adj.return_value = AdjacentSectionsSchema(
        section="390.5", prev="390.3", next=None
    )
    response = client.get("/api/v1/sections/390.5/adjacent")
    assert response.status_code == 200
    assert response.json() == {"section": "390.5", "prev": "390.3", "next": None}


# ---------------------------------------------------------------------------
# GET /api/v1/sections/{section_id}/history
# ---------------------------------------------------------------------------


@patch("app.api.v1.sections.get_section_history", new_callable=AsyncMock)
def test_history_uses_part_versions(mock_history: AsyncMock, client: TestClient) -> None:
    """History fetches the part's versions and maps appendix slugs upstream."""
    ecfr = MagicMock()
    ecfr.get_versions = AsyncMock(return_value=[])
    _override_client(ecfr)
    mock_history.return_value = SectionHistorySchema(
        section="385-appA", timeline=[], changelogs=[]
    )

    response = client.get("/api/v1/sections/385-appA/history")

    assert response.status_code == 200
    ecfr.get_versions.assert_awaited_once_with("385")
    args = mock_history.await_args.args
    assert args[1:] == ("385-appA", "Appendix A to Part 385", [])


def test_history_upstream_unavailable(client: TestClient) -> None:
    ecfr = MagicMock()
    ecfr.get_versions = AsyncMock(side_effect=TransientFetchError("url", 5))
    _override_client(ecfr)

    response = client.get("/api/v1/sections/390.5/history")
    assert response.status_code == 502


# ---------------------------------------------------------------------------
# GET /api/v1/sections/{section_id}/diff
# ---------------------------------------------------------------------------


@patch("app.api.v1.sections.HistoricalDiffEngine")
def test_diff_success(mock_engine_cls: MagicMock, client: TestClient) -> None:
    """Diff endpoint returns per-node entries and word segments."""
    _override_client(MagicMock())
    old = Node(id="p-0", kind=NodeKind.PARAGRAPH, label="a", text="Driver means...", level=1)
    new = Node(id="p-0", kind=NodeKind.PARAGRAPH, label="a", text="Driver means any person.", level=1)
    mock_engine_cls.return_value.diff = AsyncMock(
        return_value=HistoricalDiff(
            section_id="390.5",
            date="2015-01-01",
            results=[
                DiffResult(DiffStatus.MODIFIED, old, new, diff_text(old.text, new.text))
            ],
        )
    )

    response = client.get("/api/v1/sections/390.5/diff", params={"date": "2015-01-01"})

    assert response.status_code == 200
    data = response.json()
    assert data["summary"]["modified"] == 1
    entry = data["entries"][0]
    assert entry["status"] == "modified"
    assert entry["old_node"]["text"] == "Driver means..."
    assert [s["op"] for s in entry["segments"]] == ["equal", "delete", "insert"]


def test_diff_rejects_bad_date(client: TestClient) -> None:
    _override_client(MagicMock())
    response = client.get("/api/v1/sections/390.5/diff", params={"date": "Jan 2015"})
    assert response.status_code == 422


@patch("app.api.v1.sections.HistoricalDiffEngine")
def test_diff_section_not_found(mock_engine_cls: MagicMock, client: TestClient) -> None:
    _override_client(MagicMock())
    mock_engine_cls.return_value.diff = AsyncMock(
        side_effect=SectionNotFoundError("390.5", "2015-01-01")
    )
    response = client.get("/api/v1/sections/390.5/diff", params={"date": "2015-01-01"})
    assert response.status_code == 404


@patch("app.api.v1.sections.HistoricalDiffEngine")
def test_diff_upstream_failure(mock_engine_cls: MagicMock, client: TestClient) -> None:
    _override_client(MagicMock())
    mock_engine_cls.return_value.diff = AsyncMock(
        side_effect=TransientFetchError("url", 5)
    )
    response = client.get("/api/v1/sections/390.5/diff", params={"date": "2015-01-01"})
    assert response.status_code == 502


# ---------------------------------------------------------------------------
# GET /api/v1/parts/{part}/toc
# ---------------------------------------------------------------------------


@patch("app.api.v1.parts.get_part_toc", new_callable=AsyncMock)
def test_part_toc(mock_toc: AsyncMock, client: TestClient) -> None:
    mock_toc.return_value = PartTocSchema(
        part="385",
        title="Safety Fitness Procedures",
        subparts=[
            TocGroupSchema(
                label="",
                title="General",
                sections=[TocEntrySchema(section="385.1", title="Purpose and scope.")],
            ),
            TocGroupSchema(
                label="A",
                title="General",
                sections=[
                    TocEntrySchema(section="385-appA", title="Explanation", is_appendix=True)
                ],
            ),
        ],
    )
    response = client.get("/api/v1/parts/385/toc")
    assert response.status_code == 200
    data = response.json()
    assert [g["label"] for g in data["subparts"]] == ["", "A"]
    assert data["subparts"][1]["sections"][0]["is_appendix"] is True


@patch("app.api.v1.parts.get_part_toc", new_callable=AsyncMock)
def test_part_toc_not_cached(mock_toc: AsyncMock, client: TestClient) -> None:
    mock_toc.return_value = None
    assert client.get("/api/v1/parts/399/toc").status_code == 404
