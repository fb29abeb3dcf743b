"""Application state.

``AppState`` owns everything a host needs: the API client, the resolver,
the catalog, the content loader and the current selection. Lifecycle is
``init -> ready -> (reconfigure) -> closed``; reconfiguring to another
account or credential invalidates the cached catalog.
"""

from enum import Enum
from typing import Optional

import structlog

from repolens.cache import KeyValueCache
from repolens.catalog import RepositoryCatalog
from repolens.config import RepoLensConfig
from repolens.content import ContentLoader, StateListener
from repolens.models import ContentTab, Repository, TabContentState, TocEntry
from repolens.parsers.github import GitHubClient, RateLimitInfo
from repolens.parsers.links import LinkRewriter
from repolens.parsers.toc import TableOfContentsExtractor
from repolens.resolver import AccountResolver


logger = structlog.get_logger(__name__)


class SessionPhase(str, Enum):
    INIT = "init"
    READY = "ready"
    CLOSED = "closed"


class AppState:
    """Everything the dashboard and CLI share for one session."""

    def __init__(
        self,
        config: RepoLensConfig,
        cache: KeyValueCache,
        on_content: Optional[StateListener] = None,
        base_url: str = GitHubClient.BASE_URL,
    ) -> None:
        self.config = config
        self.cache = cache
        self.base_url = base_url
        self.phase = SessionPhase.INIT
        self.selected: Optional[Repository] = None
        self.tab = _tab_or_default(config.default_tab)
        self.toc_extractor = TableOfContentsExtractor()
        self._on_content = on_content
        self._wire()

    def _wire(self) -> None:
        self.client = GitHubClient(token=self.config.credential, base_url=self.base_url)
        self.resolver = AccountResolver(self.client)
        self.catalog = RepositoryCatalog(self.resolver, self.cache)
        self.loader = ContentLoader(self.client, on_change=self._on_content)

    @property
    def handle(self) -> str:
        return self.config.handle

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        return self.client.rate_limit

    @property
    def content(self) -> TabContentState:
        return self.loader.current

    async def start(self) -> None:
        """Rehydrate the catalog and fetch it if nothing was cached."""
        await self.catalog.start(self.handle)
        self.phase = SessionPhase.READY

    async def refresh(self) -> bool:
        return await self.catalog.refresh(self.handle)

    async def reconfigure(self, config: RepoLensConfig) -> bool:
        """Switch to new settings.

        Returns:
            Whether the account or credential changed, in which case the
            catalog was invalidated and fetched again.
        """
        changed = self.config.account_changed(config)
        self.config = config
        if not changed:
            return False

        logger.info("account_changed", handle=config.handle)
        await self.client.aclose()
        self.loader.reset()
        self.catalog.invalidate()
        self.selected = None
        self._wire()
        await self.catalog.start(self.handle)
        return True

    async def select(self, repository: Repository, tab: Optional[ContentTab] = None) -> TabContentState:
        """Make ``repository`` (and optionally ``tab``) current and load it."""
        self.selected = repository
        if tab is not None:
            self.tab = tab
        return await self.loader.load(repository, self.tab)

    async def switch_tab(self, tab: ContentTab) -> Optional[TabContentState]:
        self.tab = tab
        if self.selected is None:
            return None
        return await self.loader.load(self.selected, tab)

    def rendered_readme(self, state: Optional[TabContentState] = None) -> str:
        """README of ``state`` with links made absolute for the selection."""
        state = state or self.content
        repository = self._repository_for(state)
        if repository is None or not state.readme:
            return state.readme
        return LinkRewriter.for_repository(repository).rewrite_markdown(state.readme)

    def table_of_contents(self, state: Optional[TabContentState] = None) -> list[TocEntry]:
        return self.toc_extractor.for_state(state or self.content)

    def _repository_for(self, state: TabContentState) -> Optional[Repository]:
        if self.selected is not None and self.selected.full_name == state.repository:
            return self.selected
        if state.repository:
            return self.catalog.find(state.repository)
        return None

    async def aclose(self) -> None:
        self.loader.reset()
        await self.client.aclose()
        self.phase = SessionPhase.CLOSED


def _tab_or_default(value: str) -> ContentTab:
    try:
        return ContentTab(value)
    except ValueError:
        return ContentTab.README
