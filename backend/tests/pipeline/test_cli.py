"""Tests for the offline CLI commands."""

import json
from pathlib import Path

import pytest

from pipeline.cli import parse_command

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


class TestParseCommand:
    """Tests for `parse`."""

    def test_outline(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert parse_command(FIXTURES_DIR / "section_390_5.xml", "390.5") == 0
        out = capsys.readouterr().out
        assert "§ 390.5 Definitions." in out
        assert "Subpart B: General Requirements and Information" in out
        assert "  (1) Driver means" in out
        assert "[table 2 cols x 2 rows]" in out

    def test_json(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert parse_command(FIXTURES_DIR / "appendix_385_A.xml", "385-appA", as_json=True) == 0
        nodes = json.loads(capsys.readouterr().out)
        assert [n["type"] for n in nodes] == ["paragraph", "table", "image"]

    def test_missing_file(self, tmp_path: Path) -> None:
        assert parse_command(tmp_path / "nope.xml", "390.5") == 1
