"""Tab content loading.

One ``TabContentState`` is current at a time. Every ``load`` bumps a
generation counter; a fetch only gets to publish its result if no newer
load started while it was in flight, so a slow response for a repository
the user already left can never replace what is on screen.
"""

from typing import Awaitable, Callable, Optional

import structlog

from repolens.exceptions import EmptyResultError, RepoLensError
from repolens.logging import selection_context
from repolens.models import ContentTab, Repository, TabContentState, TabPayload
from repolens.parsers.github import COMMIT_PAGE_SIZE, GitHubClient


logger = structlog.get_logger(__name__)

README_NOT_FOUND = "README not found"
NO_RELEASES = "No releases found"
NO_CONTRIBUTORS = "No contributors found"

StateListener = Callable[[TabContentState], None]


class ContentLoader:
    """Fetches the content of the selected (repository, tab) pair.

    Usage:
        loader = ContentLoader(client, on_change=render)
        state = await loader.load(repo, ContentTab.RELEASES)
    """

    def __init__(self, client: GitHubClient, on_change: Optional[StateListener] = None) -> None:
        self.client = client
        self.on_change = on_change
        self._generation = 0
        self._current = TabContentState.idle()

    @property
    def current(self) -> TabContentState:
        """The state that is visible right now."""
        return self._current

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def reset(self) -> None:
        """Drop the visible state and orphan any fetch in flight."""
        self._generation += 1
        self._publish(TabContentState.idle(self._current.tab))

    async def load(self, repository: Repository, tab: ContentTab) -> TabContentState:
        """Fetch ``tab`` of ``repository`` and make it current.

        Returns:
            The resulting state. It is only applied (and reported to
            ``on_change``) if no newer load started in the meantime.
        """
        self._generation += 1
        generation = self._generation
        key = repository.full_name

        with selection_context(key, tab.value, generation=generation):
            self._publish(TabContentState.loading(key, tab))

            try:
                payload = await self._fetch(repository, tab)
            except RepoLensError as e:
                state = TabContentState.failed(key, tab, str(e))
                logger.info("content_failed", reason=str(e))
            else:
                state = TabContentState.ready(key, tab, payload)

            if not self.is_current(generation):
                logger.debug("content_discarded_stale", current_generation=self._generation)
                return state

            self._publish(state)
            return state

    async def _fetch(self, repository: Repository, tab: ContentTab) -> TabPayload:
        fetchers: dict[ContentTab, Callable[[Repository], Awaitable[TabPayload]]] = {
            ContentTab.README: self._fetch_readme,
            ContentTab.RELEASES: self._fetch_releases,
            ContentTab.COMMITS: self._fetch_commits,
            ContentTab.CONTRIBUTORS: self._fetch_contributors,
        }
        return await fetchers[tab](repository)

    async def _fetch_readme(self, repository: Repository) -> str:
        readme = await self.client.get_readme(repository.full_name)
        if readme is None:
            raise EmptyResultError(README_NOT_FOUND)
        return readme

    async def _fetch_releases(self, repository: Repository) -> list:
        releases = await self.client.list_releases(repository.full_name)
        if not releases:
            raise EmptyResultError(NO_RELEASES)
        return releases

    async def _fetch_commits(self, repository: Repository) -> list:
        # An empty history is a valid, empty result
        return await self.client.list_commits(repository.full_name, per_page=COMMIT_PAGE_SIZE)

    async def _fetch_contributors(self, repository: Repository) -> list:
        contributors = await self.client.list_contributors(repository.full_name)
        if not contributors:
            raise EmptyResultError(NO_CONTRIBUTORS)
        return contributors

    def _publish(self, state: TabContentState) -> None:
        self._current = state
        if self.on_change is not None:
            self.on_change(state)
