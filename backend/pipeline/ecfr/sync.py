"""Incremental sync of cached sections against eCFR.

One pass over a part:

1. Fetch the title's latest as-of date and the part's version history (one
   request each).
2. For every section in the part's TOC, compare the cached version with the
   section's latest amendment date. Up-to-date sections are skipped without
   any request.
3. Stale or missing sections are fetched, parsed and compared with the cached
   raw XML:
     - no cached row  -> CREATED (stored, no changelog)
     - identical XML  -> UNCHANGED (only the cached version advances)
     - different XML  -> CHANGED (stored, changelog appended, annotations
       flagged for review, all in one transaction)
   A failed fetch or write leaves the cached row exactly as it was, so the
   next pass retries it.

Sections are processed one at a time with a short pause after each fetch to
stay under upstream rate limits, and only one pass per part runs at a time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import ClassVar

import httpx
from sqlalchemy.exc import SQLAlchemyError

from app.models.enums import ChangelogChangeType
from pipeline.ecfr.client import ECFRClient
from pipeline.ecfr.errors import CacheWriteFailure, ECFRError, TransientFetchError
from pipeline.ecfr.impact import AnnotationImpactPropagator
from pipeline.ecfr.parser import parse_fr_citation, parse_section_xml
from pipeline.ecfr.store import RegulationStore
from pipeline.ecfr.structure import PartToc, build_part_toc, upstream_identifier
from pipeline.ecfr.versions import VersionRecord, latest_by_identifier

logger = logging.getLogger(__name__)


class SyncOutcome(str, Enum):
    """What happened to one section during a sync pass."""

    SKIPPED = "skipped"
    CREATED = "created"
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    FAILED = "failed"


@dataclass
class SectionSyncResult:
    """Outcome of syncing one section."""

    section_id: str
    outcome: SyncOutcome
    version: date | None = None
    annotations_flagged: int = 0
    error: str | None = None


@dataclass
class PartSyncReport:
    """Outcome of one sync pass over a part."""

    part: str
    as_of: str | None
    results: list[SectionSyncResult] = field(default_factory=list)
    stopped: bool = False
    elapsed_seconds: float = 0.0

    def count(self, outcome: SyncOutcome) -> int:
        return sum(1 for r in self.results if r.outcome == outcome)

    @property
    def counts(self) -> dict[str, int]:
        return {outcome.value: self.count(outcome) for outcome in SyncOutcome}

    @property
    def changed_sections(self) -> list[str]:
        return [r.section_id for r in self.results if r.outcome == SyncOutcome.CHANGED]


@dataclass
class StalenessReport:
    """Which cached sections of a part are behind upstream."""

    part: str
    as_of: str | None
    stale: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    up_to_date: int = 0

    @property
    def is_stale(self) -> bool:
        return bool(self.stale or self.missing)


class SectionSyncCoordinator:
    """Keeps the section cache in step with eCFR, one part at a time."""

    # One pass per part across every coordinator in the process
    _part_locks: ClassVar[dict[str, asyncio.Lock]] = {}

    def __init__(
        self,
        client: ECFRClient,
        store: RegulationStore,
        propagator: AnnotationImpactPropagator,
        request_delay: float = 0.1,
    ) -> None:
        self.client = client
        self.store = store
        self.propagator = propagator
        self.request_delay = request_delay
        self._stop_requested = False

    @classmethod
    def _lock_for(cls, part: str) -> asyncio.Lock:
        lock = cls._part_locks.get(part)
        if lock is None:
            lock = cls._part_locks[part] = asyncio.Lock()
        return lock

    def stop(self) -> None:
        """Finish the section in progress, then end the pass."""
        self._stop_requested = True

    async def _pause(self) -> None:
        if self.request_delay > 0:
            await asyncio.sleep(self.request_delay)

    async def _latest_date(self) -> str | None:
        try:
            return await self.client.get_latest_date()
        except (ECFRError, httpx.HTTPError) as e:
            logger.warning(f"Could not fetch latest eCFR date: {e}")
            return None

    async def _latest_versions(self, part: str) -> dict[str, VersionRecord]:
        try:
            records = await self.client.get_versions(part)
        except (ECFRError, httpx.HTTPError) as e:
            logger.warning(f"Could not fetch version history for part {part}: {e}")
            return {}
        return latest_by_identifier(records)

    # =========================================================================
    # Structure
    # =========================================================================

    async def _sync_part_structure(self, part: str, as_of: str | None) -> PartToc:
        structure = await self.client.get_part_structure(part, as_of or "current")
        toc = build_part_toc(structure, part)
        await self.store.save_part_toc(toc, source_version=as_of)
        await self.store.commit(f"part {part}")
        return toc

    async def sync_structure(self, parts: list[str]) -> dict[str, int | None]:
        """Rebuild the cached TOC of every part.

        Returns:
            Section count per part; None for a part that failed.
        """
        as_of = await self._latest_date()
        counts: dict[str, int | None] = {}
        for part in parts:
            try:
                toc = await self._sync_part_structure(part, as_of)
            except (ECFRError, httpx.HTTPError) as e:
                logger.error(f"Structure sync failed for part {part}: {e}")
                counts[part] = None
            else:
                counts[part] = len(toc.section_ids())
                logger.info(f"Part {part}: {counts[part]} sections in TOC")
            await self._pause()
        return counts

    # =========================================================================
    # Sections
    # =========================================================================

    async def sync_part(self, part: str) -> PartSyncReport:
        """Run one incremental pass over a part's sections."""
        async with self._lock_for(part):
            start = time.monotonic()
            as_of = await self._latest_date()
            latest = await self._latest_versions(part)

            toc = await self.store.get_part_toc(part)
            if toc is None:
                logger.info(f"No cached TOC for part {part}, fetching structure")
                toc = await self._sync_part_structure(part, as_of)

            report = PartSyncReport(part=part, as_of=as_of)
            for section_id in toc.section_ids():
                if self._stop_requested:
                    logger.info(f"Stop requested, ending part {part} sync early")
                    report.stopped = True
                    break
                record = latest.get(upstream_identifier(section_id))
                result = await self.sync_section(part, section_id, record, as_of)
                report.results.append(result)

            report.elapsed_seconds = time.monotonic() - start
            logger.info(
                f"Part {part} sync: "
                + ", ".join(f"{n} {name}" for name, n in report.counts.items() if n)
                + f" ({report.elapsed_seconds:.1f}s)"
            )
            return report

    async def sync_section(
        self,
        part: str,
        section_id: str,
        record: VersionRecord | None,
        as_of: str | None,
    ) -> SectionSyncResult:
        """Bring one section up to date.

        Args:
            part: Part the section belongs to.
            section_id: Section id or appendix slug.
            record: Latest upstream version of the section, if known.
            as_of: Title's latest as-of date, if known.
        """
        cached = await self.store.get_section(section_id)
        latest_amendment = record.amendment_date if record else None

        if cached is not None:
            if latest_amendment is None:
                return SectionSyncResult(section_id, SyncOutcome.SKIPPED, cached.source_version)
            if cached.source_version and cached.source_version >= latest_amendment:
                return SectionSyncResult(section_id, SyncOutcome.SKIPPED, cached.source_version)

        fetch_date = as_of or (latest_amendment.isoformat() if latest_amendment else None)
        if fetch_date is None:
            logger.warning(f"No version date available for {section_id}, not fetching")
            return SectionSyncResult(
                section_id, SyncOutcome.FAILED, error="no upstream version date"
            )

        try:
            xml = await self.client.get_section_xml(section_id, fetch_date)
        except (ECFRError, httpx.HTTPError) as e:
            if isinstance(e, TransientFetchError):
                logger.warning(f"Giving up on {section_id} for this pass: {e}")
            else:
                logger.error(f"Fetch failed for {section_id}: {e}")
            await self._pause()
            return SectionSyncResult(section_id, SyncOutcome.FAILED, error=str(e))
        await self._pause()

        version = date.fromisoformat(fetch_date)
        try:
            parsed = parse_section_xml(xml, part, section_id, source_version=version)
        except Exception as e:
            logger.exception(f"Parse failed for {section_id}, keeping previous version")
            return SectionSyncResult(section_id, SyncOutcome.FAILED, error=f"parse error: {e}")

        try:
            if cached is None:
                await self.store.save_section(parsed, xml)
                await self.store.commit(section_id)
                logger.info(f"Cached {section_id} ({len(parsed.content)} nodes)")
                return SectionSyncResult(section_id, SyncOutcome.CREATED, version)

            if cached.raw_xml == xml:
                await self.store.touch_section_version(section_id, version)
                await self.store.commit(section_id)
                return SectionSyncResult(section_id, SyncOutcome.UNCHANGED, version)

            await self.store.save_section(parsed, xml)
            substantive = record.substantive if record else True
            await self.store.append_changelog(
                section_id,
                version_date=latest_amendment or version,
                change_type=(
                    ChangelogChangeType.SUBSTANTIVE
                    if substantive
                    else ChangelogChangeType.EDITORIAL
                ),
                effective_date=record.effective_date if record else None,
                summary=record.name if record else None,
                federal_reg_citation=parse_fr_citation(xml),
            )
            flagged = await self.propagator.flag_section(section_id, commit=False)
            await self.store.commit(section_id)
        except (CacheWriteFailure, SQLAlchemyError) as e:
            logger.error(f"Could not store {section_id}, keeping previous version: {e}")
            await self.store.rollback()
            return SectionSyncResult(section_id, SyncOutcome.FAILED, error=str(e))

        logger.info(f"{section_id} changed upstream; {flagged} annotations flagged")
        return SectionSyncResult(
            section_id, SyncOutcome.CHANGED, version, annotations_flagged=flagged
        )

    async def sync_all(self, parts: list[str]) -> list[PartSyncReport]:
        """Sync parts one after another until done or stopped."""
        reports = []
        for part in parts:
            if self._stop_requested:
                break
            reports.append(await self.sync_part(part))
        return reports

    # =========================================================================
    # Read-only passes
    # =========================================================================

    async def check_staleness(self, part: str) -> StalenessReport:
        """Compare cached versions with upstream without fetching any text."""
        as_of = await self._latest_date()
        latest = await self._latest_versions(part)
        cached = {row.section: row for row in await self.store.list_sections(part)}

        toc = await self.store.get_part_toc(part)
        section_ids = toc.section_ids() if toc is not None else sorted(cached)

        report = StalenessReport(part=part, as_of=as_of)
        for section_id in section_ids:
            row = cached.get(section_id)
            if row is None:
                report.missing.append(section_id)
                continue
            record = latest.get(upstream_identifier(section_id))
            amended = record.amendment_date if record else None
            if amended and (row.source_version is None or row.source_version < amended):
                report.stale.append(section_id)
            else:
                report.up_to_date += 1
        return report

    async def reparse_cached(self, part: str | None = None) -> int:
        """Rebuild parsed content from stored raw XML, without network access.

        Returns:
            Number of sections re-parsed.
        """
        count = 0
        for row in await self.store.list_sections(part):
            if not row.raw_xml:
                continue
            try:
                parsed = parse_section_xml(
                    row.raw_xml, row.part, row.section, source_version=row.source_version
                )
            except Exception:
                logger.exception(f"Re-parse failed for {row.section}, left as is")
                continue
            await self.store.update_parsed_content(row, parsed)
            count += 1
        await self.store.commit(f"reparse {part or 'all'}")
        logger.info(f"Re-parsed {count} cached sections")
        return count
