"""Pydantic schemas module.

This module contains Pydantic models used for API request/response
validation.

Naming convention:
- Schema suffix to distinguish from SQLAlchemy models
- Request/Response suffix for endpoint bodies
"""

from app.schemas.annotation import (
    AnnotationListSchema,
    AnnotationSchema,
    DismissImpactRequest,
    DismissImpactResponse,
)
from app.schemas.regulation import (
    AdjacentSectionsSchema,
    ChangelogEntrySchema,
    DiffEntrySchema,
    DiffSegmentSchema,
    PartSyncReportSchema,
    PartTocSchema,
    RegNodeSchema,
    SectionDiffSchema,
    SectionHistorySchema,
    SectionSchema,
    SectionSyncResultSchema,
    StalenessSchema,
    StructureSyncSchema,
    TocEntrySchema,
    TocGroupSchema,
    VersionTimelineEntrySchema,
)

__all__ = [
    # Annotations
    "AnnotationListSchema",
    "AnnotationSchema",
    "DismissImpactRequest",
    "DismissImpactResponse",
    # Regulation content
    "AdjacentSectionsSchema",
    "ChangelogEntrySchema",
    "DiffEntrySchema",
    "DiffSegmentSchema",
    "PartTocSchema",
    "RegNodeSchema",
    "SectionDiffSchema",
    "SectionHistorySchema",
    "SectionSchema",
    "TocEntrySchema",
    "TocGroupSchema",
    "VersionTimelineEntrySchema",
    # Sync
    "PartSyncReportSchema",
    "SectionSyncResultSchema",
    "StalenessSchema",
    "StructureSyncSchema",
]
