"""Data models for repolens."""

from .schemas import (
    AccountHandle,
    AccountKind,
    CacheEntry,
    CatalogStats,
    CommitRecord,
    ContentStatus,
    ContentTab,
    Contributor,
    ReleaseNote,
    Repository,
    TabContentState,
    TabPayload,
    TocEntry,
    time_ago,
    utcnow,
)

__all__ = [
    "AccountHandle",
    "AccountKind",
    "CacheEntry",
    "CatalogStats",
    "CommitRecord",
    "ContentStatus",
    "ContentTab",
    "Contributor",
    "ReleaseNote",
    "Repository",
    "TabContentState",
    "TabPayload",
    "TocEntry",
    "time_ago",
    "utcnow",
]
