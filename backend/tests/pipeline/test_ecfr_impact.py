"""Tests for flagging annotations on changed sections."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from pipeline.ecfr.impact import ANNOTATION_TABLES, AnnotationImpactPropagator


def _session(rowcounts: list[int | None]) -> AsyncMock:
    session = AsyncMock()
    session.execute.side_effect = [MagicMock(rowcount=n) for n in rowcounts]
    return session


class TestFlagSection:
    """Tests for AnnotationImpactPropagator.flag_section."""

    @pytest.mark.asyncio
    async def test_counts_across_annotation_tables(self) -> None:
        session = _session([2, 1, 0])

        flagged = await AnnotationImpactPropagator(session).flag_section("390.5")

        assert flagged == 3
        assert session.execute.await_count == len(ANNOTATION_TABLES)
        session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_deferred_commit(self) -> None:
        session = _session([1, 0, 0])

        await AnnotationImpactPropagator(session).flag_section("390.5", commit=False)

        session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rerun_flags_nothing(self) -> None:
        session = _session([0, 0, None])
        assert await AnnotationImpactPropagator(session).flag_section("390.5") == 0

    @pytest.mark.asyncio
    async def test_only_unflagged_rows_targeted(self) -> None:
        session = _session([0, 0, 0])

        await AnnotationImpactPropagator(session).flag_section("390.5")

        statement = session.execute.await_args_list[0].args[0]
        sql = str(statement)
        assert "impacted_by_change" in sql
        assert "section_id" in sql
        assert statement.table.name == "highlight"
