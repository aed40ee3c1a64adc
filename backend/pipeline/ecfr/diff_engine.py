"""Paragraph-level diff between two versions of a section.

Nodes are aligned with a longest-common-subsequence over ``(label, kind)``
keys, so a paragraph keeps its identity when others are inserted or removed
around it. Aligned pairs whose content differs are MODIFIED; paragraph
modifications also carry a word-level diff of their text. Tables and headings
are compared as whole nodes. Images are ignored: graphic file names churn
between releases without any change to the rule.

Alignment is deterministic. Within a gap between aligned nodes, removed nodes
are reported before added ones.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Hashable, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, TypeVar

from pipeline.ecfr.client import ECFRClient
from pipeline.ecfr.errors import SectionNotFoundError
from pipeline.ecfr.nodes import Node, NodeKind, nodes_from_json
from pipeline.ecfr.parser import parse_section_xml
from pipeline.ecfr.store import RegulationStore
from pipeline.ecfr.structure import part_of

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TOKEN_PATTERN = re.compile(r"\w+|\s+|[^\w\s]+")


class DiffStatus(str, Enum):
    UNCHANGED = "unchanged"
    MODIFIED = "modified"
    ADDED = "added"
    REMOVED = "removed"


class SegmentOp(str, Enum):
    EQUAL = "equal"
    DELETE = "delete"
    INSERT = "insert"


@dataclass
class DiffSegment:
    """A run of text that is common, deleted or inserted."""

    op: SegmentOp
    text: str


@dataclass
class DiffResult:
    """One aligned (or unaligned) node in a section diff."""

    status: DiffStatus
    old_node: Node | None = None
    new_node: Node | None = None
    segments: list[DiffSegment] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "old_node": self.old_node.to_dict() if self.old_node else None,
            "new_node": self.new_node.to_dict() if self.new_node else None,
            "segments": [{"op": s.op.value, "text": s.text} for s in self.segments],
        }


# =============================================================================
# LCS alignment
# =============================================================================


def _align(
    old: Sequence[T], new: Sequence[T], key: Callable[[T], Hashable]
) -> list[tuple[int | None, int | None]]:
    """Align two sequences by LCS over ``key``.

    Returns index pairs in order: ``(i, j)`` for a match, ``(i, None)`` for an
    old-only item, ``(None, j)`` for a new-only item. Within each gap every
    old-only item precedes every new-only item.
    """
    old_keys = [key(item) for item in old]
    new_keys = [key(item) for item in new]
    n, m = len(old_keys), len(new_keys)

    # lengths[i][j] = LCS length of old[i:] and new[j:]
    lengths = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lengths[i], lengths[i + 1]
        for j in range(m - 1, -1, -1):
            if old_keys[i] == new_keys[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    pairs: list[tuple[int | None, int | None]] = []
    removed: list[int] = []
    added: list[int] = []

    def flush() -> None:
        pairs.extend((i, None) for i in removed)
        pairs.extend((None, j) for j in added)
        removed.clear()
        added.clear()

    i = j = 0
    while i < n and j < m:
        if old_keys[i] == new_keys[j]:
            flush()
            pairs.append((i, j))
            i += 1
            j += 1
        elif lengths[i + 1][j] >= lengths[i][j + 1]:
            removed.append(i)
            i += 1
        else:
            added.append(j)
            j += 1
    removed.extend(range(i, n))
    added.extend(range(j, m))
    flush()
    return pairs


# =============================================================================
# Text diff
# =============================================================================


def _merge(segments: list[DiffSegment]) -> list[DiffSegment]:
    merged: list[DiffSegment] = []
    for segment in segments:
        if not segment.text:
            continue
        if merged and merged[-1].op == segment.op:
            merged[-1] = DiffSegment(segment.op, merged[-1].text + segment.text)
        else:
            merged.append(segment)
    return merged


def diff_text(old_text: str, new_text: str) -> list[DiffSegment]:
    """Word-granularity diff of two strings.

    Concatenating EQUAL and DELETE segments rebuilds ``old_text``; EQUAL and
    INSERT segments rebuild ``new_text``.
    """
    if old_text == new_text:
        return [DiffSegment(SegmentOp.EQUAL, old_text)] if old_text else []

    old_tokens = _TOKEN_PATTERN.findall(old_text)
    new_tokens = _TOKEN_PATTERN.findall(new_text)

    prefix = 0
    while (
        prefix < len(old_tokens)
        and prefix < len(new_tokens)
        and old_tokens[prefix] == new_tokens[prefix]
    ):
        prefix += 1
    suffix = 0
    while (
        suffix < len(old_tokens) - prefix
        and suffix < len(new_tokens) - prefix
        and old_tokens[-1 - suffix] == new_tokens[-1 - suffix]
    ):
        suffix += 1

    old_mid = old_tokens[prefix : len(old_tokens) - suffix]
    new_mid = new_tokens[prefix : len(new_tokens) - suffix]

    segments = [DiffSegment(SegmentOp.EQUAL, "".join(old_tokens[:prefix]))]
    for i, j in _align(old_mid, new_mid, key=lambda token: token):
        if i is not None and j is not None:
            segments.append(DiffSegment(SegmentOp.EQUAL, old_mid[i]))
        elif i is not None:
            segments.append(DiffSegment(SegmentOp.DELETE, old_mid[i]))
        elif j is not None:
            segments.append(DiffSegment(SegmentOp.INSERT, new_mid[j]))
    segments.append(
        DiffSegment(SegmentOp.EQUAL, "".join(old_tokens[len(old_tokens) - suffix :]))
    )
    return _merge(segments)


# =============================================================================
# Section diff
# =============================================================================


def _node_key(node: Node) -> tuple[str | None, str]:
    return (node.label, node.kind.value)


def nodes_equal(a: Node, b: Node) -> bool:
    """Content equality, ignoring ids and levels."""
    if a.kind != b.kind or a.text != b.text:
        return False
    if a.kind == NodeKind.TABLE:
        return a.headers == b.headers and a.rows == b.rows
    if a.kind == NodeKind.HEADING:
        return a.heading_level == b.heading_level
    return True


def diff_sections(old_nodes: list[Node], new_nodes: list[Node]) -> list[DiffResult]:
    """Diff two node lists of the same section.

    Args:
        old_nodes: Earlier version.
        new_nodes: Later version.

    Returns:
        Results in document order of the later version, with removed nodes at
        their position in the earlier one.
    """
    old = [n for n in old_nodes if n.kind != NodeKind.IMAGE]
    new = [n for n in new_nodes if n.kind != NodeKind.IMAGE]

    results: list[DiffResult] = []
    for i, j in _align(old, new, key=_node_key):
        if i is not None and j is not None:
            before, after = old[i], new[j]
            if nodes_equal(before, after):
                results.append(DiffResult(DiffStatus.UNCHANGED, before, after))
            elif before.kind == NodeKind.PARAGRAPH:
                results.append(
                    DiffResult(
                        DiffStatus.MODIFIED,
                        before,
                        after,
                        diff_text(before.text, after.text),
                    )
                )
            else:
                results.append(DiffResult(DiffStatus.MODIFIED, before, after))
        elif i is not None:
            results.append(DiffResult(DiffStatus.REMOVED, old_node=old[i]))
        elif j is not None:
            results.append(DiffResult(DiffStatus.ADDED, new_node=new[j]))
    return results


def summarize_diff(results: list[DiffResult]) -> dict[str, int]:
    """Count results per status."""
    summary = {status.value: 0 for status in DiffStatus}
    for result in results:
        summary[result.status.value] += 1
    return summary


# =============================================================================
# Historical comparison
# =============================================================================


@dataclass
class HistoricalDiff:
    """Cached section compared with its text as of an earlier date."""

    section_id: str
    date: str
    results: list[DiffResult]

    @property
    def summary(self) -> dict[str, int]:
        return summarize_diff(self.results)


class HistoricalDiffEngine:
    """Diffs a cached section against an upstream snapshot."""

    def __init__(self, client: ECFRClient, store: RegulationStore) -> None:
        self.client = client
        self.store = store

    async def diff(self, section_id: str, date: str) -> HistoricalDiff:
        """Compare the section as of ``date`` (old) with the cached copy (new).

        Raises:
            SectionNotFoundError: No cached copy, or none upstream on ``date``.
            TransientFetchError: Upstream unavailable.
        """
        cached = await self.store.get_section(section_id)
        if cached is None:
            raise SectionNotFoundError(section_id)

        xml = await self.client.get_section_xml(section_id, date)
        historical = parse_section_xml(xml, part_of(section_id), section_id)
        results = diff_sections(historical.content, nodes_from_json(cached.content))
        logger.info(f"Diffed {section_id} against {date}: {summarize_diff(results)}")
        return HistoricalDiff(section_id=section_id, date=date, results=results)
