"""eCFR ingestion: parse, sync and diff Title 49 regulation text.

This module turns eCFR full-text XML into flat, level-annotated node lists,
keeps a cache of them in step with upstream versions, and reports
paragraph-level changes between versions.
"""

from pipeline.ecfr.diff_engine import (
    DiffResult,
    DiffSegment,
    DiffStatus,
    HistoricalDiffEngine,
    SegmentOp,
    diff_sections,
    diff_text,
    summarize_diff,
)
from pipeline.ecfr.errors import (
    CacheWriteFailure,
    ECFRError,
    ImageBlockedError,
    ImageNotFoundError,
    InvalidImagePathError,
    SectionNotFoundError,
    TransientFetchError,
)
from pipeline.ecfr.images import ImageCache, ImageSyncReport, image_paths
from pipeline.ecfr.labels import LabelClass, LevelState, assign_levels, level_for_label
from pipeline.ecfr.nodes import (
    PARAGRAPH_ID_SCHEME_VERSION,
    Node,
    NodeKind,
    ParsedSection,
    make_paragraph_id,
)
from pipeline.ecfr.parser import parse_section_xml
from pipeline.ecfr.splitter import split_packed_paragraph
from pipeline.ecfr.structure import PartToc, build_part_toc

__all__ = [
    # Parsing
    "LabelClass",
    "LevelState",
    "Node",
    "NodeKind",
    "PARAGRAPH_ID_SCHEME_VERSION",
    "ParsedSection",
    "assign_levels",
    "level_for_label",
    "make_paragraph_id",
    "parse_section_xml",
    "split_packed_paragraph",
    # Structure
    "PartToc",
    "build_part_toc",
    # Diff
    "DiffResult",
    "DiffSegment",
    "DiffStatus",
    "HistoricalDiffEngine",
    "SegmentOp",
    "diff_sections",
    "diff_text",
    "summarize_diff",
    # Images
    "ImageCache",
    "ImageSyncReport",
    "image_paths",
    # Errors
    "CacheWriteFailure",
    "ECFRError",
    "ImageBlockedError",
    "ImageNotFoundError",
    "InvalidImagePathError",
    "SectionNotFoundError",
    "TransientFetchError",
]
