"""Repository catalog.

The catalog is the list shown in navigation: always sorted by last update
(newest first), persisted to the local cache after every successful refresh
and rehydrated from it before any network call. A failed refresh keeps
whatever was shown before.
"""

from collections import Counter
from enum import Enum
from typing import Optional

import structlog
from pydantic import TypeAdapter, ValidationError

from repolens.cache import KeyValueCache
from repolens.exceptions import AccountResolutionError, CacheDecodeError, CacheUnavailableError
from repolens.models import CatalogStats, Repository
from repolens.resolver import AccountResolver


logger = structlog.get_logger(__name__)

# Bump the version when Repository changes shape; older blobs are then ignored
CATALOG_CACHE_KEY = "catalog:v1"

_REPOSITORY_LIST = TypeAdapter(list[Repository])


class CatalogStatus(str, Enum):
    """Lifecycle of the catalog."""

    EMPTY = "empty"
    LOADING = "loading"
    POPULATED = "populated"
    FAILED = "failed"


def sort_by_recency(repositories: list[Repository]) -> list[Repository]:
    """Newest ``updated_at`` first; ties keep their incoming order."""
    return sorted(repositories, key=lambda r: r.updated_at, reverse=True)


def encode_catalog(repositories: list[Repository]) -> str:
    return _REPOSITORY_LIST.dump_json(repositories).decode("utf-8")


def decode_catalog(raw: Optional[str]) -> Optional[list[Repository]]:
    """Decode a persisted catalog.

    Returns:
        The repositories, or None when nothing is stored.

    Raises:
        CacheDecodeError: If the blob is not a valid repository list.
    """
    if raw is None:
        return None
    try:
        return _REPOSITORY_LIST.validate_json(raw)
    except ValidationError as e:
        raise CacheDecodeError(CATALOG_CACHE_KEY, f"{e.error_count()} validation errors") from e


class RepositoryCatalog:
    """The in-memory, cache-backed collection of repositories.

    Usage:
        catalog = RepositoryCatalog(resolver, cache)
        await catalog.start("botxlab")
        for repo in catalog.filter("bot"):
            ...
    """

    def __init__(self, resolver: AccountResolver, cache: KeyValueCache) -> None:
        self.resolver = resolver
        self.cache = cache
        self._repositories: list[Repository] = []
        self.status = CatalogStatus.EMPTY
        self.last_error: Optional[str] = None

    @property
    def repositories(self) -> list[Repository]:
        return list(self._repositories)

    def __len__(self) -> int:
        return len(self._repositories)

    @property
    def is_empty(self) -> bool:
        return not self._repositories

    def rehydrate(self) -> bool:
        """Load the cached collection, if a valid one exists.

        Returns:
            Whether anything was loaded.
        """
        try:
            cached = decode_catalog(self.cache.get_raw(CATALOG_CACHE_KEY))
        except CacheDecodeError as e:
            logger.warning("catalog_cache_unreadable", error=str(e))
            return False

        if not cached:
            return False

        self._repositories = sort_by_recency(cached)
        self.status = CatalogStatus.POPULATED
        logger.debug("catalog_rehydrated", repositories=len(cached))
        return True

    async def refresh(self, handle: str) -> bool:
        """Fetch the collection of ``handle`` and persist it.

        Never raises; on failure the previous collection is kept and
        ``last_error`` says why.

        Returns:
            Whether the refresh succeeded.
        """
        self.status = CatalogStatus.LOADING
        try:
            fetched = await self.resolver.resolve(handle)
        except AccountResolutionError as e:
            self.status = CatalogStatus.FAILED
            self.last_error = str(e)
            logger.warning("catalog_refresh_failed", handle=handle, error=str(e), kept=len(self._repositories))
            return False

        self._repositories = sort_by_recency(fetched)
        self.last_error = None
        self.status = CatalogStatus.POPULATED
        try:
            self.cache.set_raw(CATALOG_CACHE_KEY, encode_catalog(self._repositories))
        except CacheUnavailableError as e:
            # The fetched collection still stands; only persistence is lost
            logger.warning("catalog_not_persisted", handle=handle, error=str(e))
        logger.info("catalog_refreshed", handle=handle, repositories=len(fetched))
        return True

    async def start(self, handle: str) -> None:
        """Rehydrate, then refresh only if there is still nothing to show."""
        self.rehydrate()
        if self.is_empty:
            await self.refresh(handle)

    def invalidate(self) -> None:
        """Forget the collection in memory and in the cache."""
        self._repositories = []
        self.status = CatalogStatus.EMPTY
        self.last_error = None
        try:
            self.cache.delete(CATALOG_CACHE_KEY)
        except CacheUnavailableError as e:
            logger.warning("catalog_not_persisted", error=str(e))

    def filter(self, term: str) -> list[Repository]:
        """Repositories whose name contains ``term``, case-insensitively."""
        needle = term.strip().lower()
        if not needle:
            return self.repositories
        return [r for r in self._repositories if needle in r.name.lower()]

    def find(self, full_name: str) -> Optional[Repository]:
        wanted = full_name.lower()
        for repository in self._repositories:
            if repository.full_name.lower() == wanted:
                return repository
        return None

    def stats(self) -> CatalogStats:
        """Totals and the most used language.

        Equal language counts go to the language seen first in catalog
        order, i.e. the one on the most recently updated repository.
        """
        languages = Counter(r.primary_language for r in self._repositories if r.primary_language)
        top = languages.most_common(1)
        return CatalogStats(
            total=len(self._repositories),
            stars=sum(r.star_count for r in self._repositories),
            top_language=top[0][0] if top else None,
            languages=dict(languages.most_common()),
        )
