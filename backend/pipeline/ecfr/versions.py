"""eCFR content version records.

The versions endpoint lists, per part, every date on which a section's text
changed::

    {"content_versions": [
        {"date": "2017-12-18", "amendment_date": "2017-12-18",
         "issue_date": "2017-12-18", "identifier": "390.5",
         "name": "§ 390.5 Definitions.", "part": "390", "subpart": "B",
         "substantive": true, "removed": false, "type": "section"},
        ...
    ]}

``date`` is the effective date of the version; ``amendment_date`` is the date
the amendment was published. A section is stale when its cached version is
older than its latest ``amendment_date``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Any

logger = logging.getLogger(__name__)


def _parse_date(value: Any) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        logger.warning(f"Unparseable version date: {value!r}")
        return None


@dataclass(frozen=True)
class VersionRecord:
    """One upstream version of one section or appendix."""

    identifier: str
    effective_date: date | None
    amendment_date: date | None
    issue_date: date | None = None
    substantive: bool = True
    removed: bool = False
    name: str | None = None
    part: str | None = None
    subpart: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> VersionRecord:
        """Create from one ``content_versions`` item."""
        return cls(
            identifier=str(data.get("identifier", "")),
            effective_date=_parse_date(data.get("date")),
            amendment_date=_parse_date(data.get("amendment_date")),
            issue_date=_parse_date(data.get("issue_date")),
            substantive=bool(data.get("substantive", True)),
            removed=bool(data.get("removed", False)),
            name=data.get("name"),
            part=str(data["part"]) if data.get("part") is not None else None,
            subpart=data.get("subpart"),
        )

    @property
    def sort_date(self) -> date:
        return self.amendment_date or self.effective_date or date.min


def parse_versions(payload: dict[str, Any]) -> list[VersionRecord]:
    """Parse a versions response, dropping items without an identifier."""
    records = [
        VersionRecord.from_api_response(item)
        for item in payload.get("content_versions") or []
    ]
    return [record for record in records if record.identifier]


def latest_by_identifier(records: list[VersionRecord]) -> dict[str, VersionRecord]:
    """Return the most recently amended record for each identifier.

    Ties on amendment date go to the later effective date.
    """
    latest: dict[str, VersionRecord] = {}
    for record in records:
        current = latest.get(record.identifier)
        if current is None or (record.sort_date, record.effective_date or date.min) > (
            current.sort_date,
            current.effective_date or date.min,
        ):
            latest[record.identifier] = record
    return latest


def versions_for(records: list[VersionRecord], identifier: str) -> list[VersionRecord]:
    """All versions of one identifier, newest effective date first."""
    matching = [record for record in records if record.identifier == identifier]
    return sorted(
        matching, key=lambda r: r.effective_date or date.min, reverse=True
    )
