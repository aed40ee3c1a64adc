"""CLI for parsing and syncing FMCSR regulation content."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from pipeline.ecfr.parser import parse_section_xml
from pipeline.ecfr.structure import part_of

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pipeline.ecfr.sync import PartSyncReport, SectionSyncCoordinator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)-5.5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


def _build_coordinator(session: AsyncSession) -> SectionSyncCoordinator:
    from app.config import settings
    from pipeline.cache import get_pipeline_cache
    from pipeline.ecfr.client import ECFRClient
    from pipeline.ecfr.impact import AnnotationImpactPropagator
    from pipeline.ecfr.store import RegulationStore
    from pipeline.ecfr.sync import SectionSyncCoordinator

    return SectionSyncCoordinator(
        client=ECFRClient.from_settings(cache=get_pipeline_cache()),
        store=RegulationStore(session),
        propagator=AnnotationImpactPropagator(session),
        request_delay=settings.sync_request_delay,
    )


def _install_stop_handler(coordinator: SectionSyncCoordinator) -> None:
    """Let Ctrl-C finish the current section instead of aborting mid-write."""
    loop = asyncio.get_running_loop()

    def request_stop() -> None:
        logger.warning("Interrupt received, stopping after the current section")
        coordinator.stop()

    try:
        loop.add_signal_handler(signal.SIGINT, request_stop)
    except NotImplementedError:
        # add_signal_handler is unavailable on Windows event loops
        pass


def _print_report(report: PartSyncReport) -> None:
    counts = ", ".join(f"{name}={n}" for name, n in report.counts.items())
    print(f"Part {report.part} (as of {report.as_of or 'unknown'}): {counts}")
    for result in report.results:
        if result.error:
            print(f"  {result.section_id}: {result.outcome.value} ({result.error})")
        elif result.annotations_flagged:
            print(
                f"  {result.section_id}: {result.outcome.value}, "
                f"{result.annotations_flagged} annotations flagged"
            )
    if report.stopped:
        print("  (stopped early)")


def parse_command(xml_path: Path, section: str, as_json: bool = False) -> int:
    """Parse a saved full-text XML file and print the node list.

    Args:
        xml_path: Path to an eCFR full-text XML response.
        section: Section id the file holds (e.g. 390.5 or 385-appA).
        as_json: Print stored JSON instead of an outline.

    Returns:
        0 on success, 1 on failure.
    """
    if not xml_path.exists():
        logger.error(f"File not found: {xml_path}")
        return 1

    parsed = parse_section_xml(xml_path.read_text(encoding="utf-8"), part_of(section), section)

    if as_json:
        print(json.dumps(parsed.content_json(), indent=2, ensure_ascii=False))
        return 0

    print(f"\n§ {parsed.section} {parsed.title}")
    if parsed.subpart_label or parsed.subpart_title:
        print(f"  Subpart {parsed.subpart_label or '?'}: {parsed.subpart_title or ''}")
    print(f"  Nodes: {len(parsed.content)}\n")
    for node in parsed.content:
        indent = "  " * node.level
        if node.kind.value == "paragraph":
            label = f"({node.label}) " if node.label else ""
            print(f"{indent}{label}{node.text[:100]}")
        elif node.kind.value == "table":
            print(f"{indent}[table {len(node.headers)} cols x {len(node.rows)} rows]")
        elif node.kind.value == "image":
            print(f"{indent}[image {node.src}]")
        else:
            print(f"{indent}## {node.text}")
    return 0


async def sync_structure_command(parts: list[str]) -> int:
    """Rebuild the cached TOC of each part."""
    from app.models.base import async_session_maker

    async with async_session_maker() as session:
        coordinator = _build_coordinator(session)
        counts = await coordinator.sync_structure(parts)

    for part, count in counts.items():
        print(f"Part {part}: {'FAILED' if count is None else f'{count} sections'}")
    return 0 if all(count is not None for count in counts.values()) else 1


async def sync_part_command(part: str) -> int:
    """Run one incremental sync pass over a part."""
    from app.models.base import async_session_maker
    from pipeline.ecfr.sync import SyncOutcome

    async with async_session_maker() as session:
        coordinator = _build_coordinator(session)
        _install_stop_handler(coordinator)
        report = await coordinator.sync_part(part)

    _print_report(report)
    return 1 if report.count(SyncOutcome.FAILED) else 0


async def sync_all_command(parts: list[str]) -> int:
    """Sync every part in turn."""
    from app.models.base import async_session_maker
    from pipeline.ecfr.sync import SyncOutcome

    async with async_session_maker() as session:
        coordinator = _build_coordinator(session)
        _install_stop_handler(coordinator)
        reports = await coordinator.sync_all(parts)

    for report in reports:
        _print_report(report)
    failed = sum(report.count(SyncOutcome.FAILED) for report in reports)
    return 1 if failed else 0


async def check_command(part: str) -> int:
    """Report stale and missing sections of a part. Exit 2 when stale."""
    from app.models.base import async_session_maker

    async with async_session_maker() as session:
        report = await _build_coordinator(session).check_staleness(part)

    print(f"Part {part} (as of {report.as_of or 'unknown'}): {report.up_to_date} up to date")
    if report.stale:
        print(f"  Stale: {', '.join(report.stale)}")
    if report.missing:
        print(f"  Missing: {', '.join(report.missing)}")
    return 2 if report.is_stale else 0


async def reparse_command(part: str | None) -> int:
    """Re-parse cached raw XML without fetching anything."""
    from app.models.base import async_session_maker

    async with async_session_maker() as session:
        count = await _build_coordinator(session).reparse_cached(part)

    print(f"Re-parsed {count} sections")
    return 0


async def sync_images_command(part: str | None) -> int:
    """Download images referenced by cached sections that are not yet stored."""
    from app.config import settings
    from app.models.base import async_session_maker
    from pipeline.cache import get_pipeline_cache
    from pipeline.ecfr.client import ECFRClient
    from pipeline.ecfr.images import ImageCache
    from pipeline.ecfr.store import RegulationStore

    async with async_session_maker() as session:
        cache = ImageCache(
            ECFRClient.from_settings(cache=get_pipeline_cache()),
            RegulationStore(session),
            request_delay=settings.image_request_delay,
        )
        report = await cache.sync(part)

    print(
        f"Images: {report.found} referenced, {report.already_cached} already cached, "
        f"{len(report.cached)} fetched, {len(report.failed)} failed"
    )
    for path, error in report.failed.items():
        print(f"  {path}: {error}")
    return 1 if report.failed else 0


async def diff_command(section: str, date: str) -> int:
    """Print the diff between a section as of ``date`` and the cached copy."""
    from app.models.base import async_session_maker
    from pipeline.cache import get_pipeline_cache
    from pipeline.ecfr.client import ECFRClient
    from pipeline.ecfr.diff_engine import DiffStatus, HistoricalDiffEngine, SegmentOp
    from pipeline.ecfr.errors import ECFRError
    from pipeline.ecfr.store import RegulationStore

    async with async_session_maker() as session:
        engine = HistoricalDiffEngine(
            ECFRClient.from_settings(cache=get_pipeline_cache()), RegulationStore(session)
        )
        try:
            diff = await engine.diff(section, date)
        except ECFRError as e:
            logger.error(str(e))
            return 1

    print(f"{section}: {date} -> cached  {diff.summary}")
    markers = {
        DiffStatus.ADDED: "+",
        DiffStatus.REMOVED: "-",
        DiffStatus.MODIFIED: "~",
        DiffStatus.UNCHANGED: " ",
    }
    for result in diff.results:
        if result.status == DiffStatus.UNCHANGED:
            continue
        node = result.new_node or result.old_node
        assert node is not None
        label = f"({node.label}) " if node.label else ""
        if result.segments:
            text = "".join(
                s.text
                if s.op == SegmentOp.EQUAL
                else f"[-{s.text}-]"
                if s.op == SegmentOp.DELETE
                else f"{{+{s.text}+}}"
                for s in result.segments
            )
        else:
            text = node.text or f"[{node.kind.value}]"
        print(f"{markers[result.status]} {label}{text}")
    return 0


def main() -> int:
    """Main entry point for CLI."""
    from app.config import settings

    parser = argparse.ArgumentParser(description="FMCSR regulation sync pipeline CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Parse command
    parse_parser = subparsers.add_parser("parse", help="Parse a saved section XML file")
    parse_parser.add_argument("file", type=Path, help="Path to full-text XML")
    parse_parser.add_argument(
        "--section",
        required=True,
        help="Section id the file holds (e.g. 390.5, 385-appA)",
    )
    parse_parser.add_argument(
        "--json",
        action="store_true",
        help="Print stored JSON instead of an outline",
    )

    # Sync commands
    structure_parser = subparsers.add_parser(
        "sync-structure", help="Rebuild cached part TOCs"
    )
    structure_parser.add_argument(
        "--parts",
        nargs="+",
        default=settings.fmcsr_parts,
        help="Parts to rebuild (default: all FMCSR parts)",
    )

    part_parser = subparsers.add_parser("sync-part", help="Sync one part's sections")
    part_parser.add_argument("part", help="Part number (e.g. 390)")

    all_parser = subparsers.add_parser("sync-all", help="Sync every part's sections")
    all_parser.add_argument(
        "--parts",
        nargs="+",
        default=settings.fmcsr_parts,
        help="Parts to sync (default: all FMCSR parts)",
    )

    check_parser = subparsers.add_parser(
        "check", help="Report stale sections of a part without fetching text"
    )
    check_parser.add_argument("part", help="Part number (e.g. 390)")

    reparse_parser = subparsers.add_parser(
        "reparse", help="Re-parse cached raw XML without fetching"
    )
    reparse_parser.add_argument("--part", help="Limit to one part")

    images_parser = subparsers.add_parser(
        "sync-images", help="Download images referenced by cached sections"
    )
    images_parser.add_argument("--part", help="Limit to one part")

    diff_parser = subparsers.add_parser(
        "diff", help="Diff a cached section against an earlier date"
    )
    diff_parser.add_argument("section", help="Section id (e.g. 390.5)")
    diff_parser.add_argument("date", help="Earlier as-of date (YYYY-MM-DD)")

    args = parser.parse_args()

    if args.command == "parse":
        return parse_command(args.file, args.section, as_json=args.json)
    elif args.command == "sync-structure":
        return asyncio.run(sync_structure_command(args.parts))
    elif args.command == "sync-part":
        return asyncio.run(sync_part_command(args.part))
    elif args.command == "sync-all":
        return asyncio.run(sync_all_command(args.parts))
    elif args.command == "check":
        return asyncio.run(check_command(args.part))
    elif args.command == "reparse":
        return asyncio.run(reparse_command(args.part))
    elif args.command == "sync-images":
        return asyncio.run(sync_images_command(args.part))
    elif args.command == "diff":
        return asyncio.run(diff_command(args.section, args.date))
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
