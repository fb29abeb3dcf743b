"""Main repolens TUI application."""

import math
from typing import Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.widgets import (
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    ListItem,
    ListView,
    Markdown,
    OptionList,
    Rule,
    Static,
    TabbedContent,
    TabPane,
)
from textual.widgets.option_list import Option

from repolens.cache import KeyValueCache
from repolens.config import RepoLensConfig
from repolens.models import (
    CatalogStats,
    ContentStatus,
    ContentTab,
    Repository,
    TabContentState,
    time_ago,
)
from repolens.parsers.github import GitHubClient, RateLimitInfo
from repolens.parsers.links import LinkRewriter
from repolens.state import AppState


# Pane ids of the repository tabs
TAB_PANES = {
    ContentTab.README: "tab-readme",
    ContentTab.RELEASES: "tab-releases",
    ContentTab.COMMITS: "tab-commits",
    ContentTab.CONTRIBUTORS: "tab-contributors",
}
PANE_TABS = {pane: tab for tab, pane in TAB_PANES.items()}

# Palette for the language dot next to each repository
LANGUAGE_COLORS = ["#58a6ff", "#3fb950", "#d29922", "#db6d28", "#f85149", "#a371f7"]


def language_color(language: Optional[str]) -> str:
    """Stable color for a language name."""
    if not language:
        return "#30363d"
    value = 0
    for char in language:
        value = (ord(char) + ((value << 5) - value)) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return LANGUAGE_COLORS[abs(value) % len(LANGUAGE_COLORS)]


def format_rate(rate: RateLimitInfo) -> str:
    """Rate limit as remaining/limit, plus the wait once the budget is used up."""
    text = f"{rate.remaining}/{rate.limit}"
    if rate.is_exhausted:
        minutes = math.ceil(rate.seconds_until_reset / 60)
        text += f" (resets in {minutes}m)" if minutes else " (resetting)"
    return text


class RepositoryListItem(ListItem):
    """A repository in the sidebar list."""

    def __init__(self, repository: Repository) -> None:
        super().__init__()
        self.repository = repository

    def compose(self) -> ComposeResult:
        color = language_color(self.repository.primary_language)
        yield Label(f"[{color}]●[/] {self.repository.name}", id="repo-label")


class SyncStatusWidget(Static):
    """Widget showing catalog sync status and rate limit info."""

    status: reactive[str] = reactive("Ready")
    rate: reactive[str] = reactive("-")

    def compose(self) -> ComposeResult:
        yield Label(f"Status: {self.status}", id="sync-status-label")
        yield Label(f"Rate: {self.rate}", id="rate-label")

    def watch_status(self, value: str) -> None:
        if self.is_mounted:
            self.query_one("#sync-status-label", Label).update(f"Status: {value}")

    def watch_rate(self, value: str) -> None:
        if self.is_mounted:
            self.query_one("#rate-label", Label).update(f"Rate: {value}")


class StatsWidget(Static):
    """Widget showing catalog statistics."""

    def show(self, stats: CatalogStats) -> None:
        self.update(
            f"📊 {stats.total} repos | ⭐ {stats.stars:,} | 💻 {stats.top_language or 'None'}"
        )


class RepositoryDetailPanel(Vertical):
    """Header with the selected repository's metadata."""

    repository: reactive[Optional[Repository]] = reactive(None)

    def compose(self) -> ComposeResult:
        yield Label("Select a repository", id="repo-title", classes="title")
        yield Static("", id="repo-info", markup=True)
        yield Rule()

    def watch_repository(self, repository: Optional[Repository]) -> None:
        if not self.is_mounted:
            return
        if repository is None:
            self.query_one("#repo-title", Label).update("Select a repository")
            self.query_one("#repo-info", Static).update("")
            return

        self.query_one("#repo-title", Label).update(f"📁 {repository.full_name}")

        info_lines = []
        if repository.description:
            info_lines.append(f"📝 {repository.description}")
        facts = [f"⭐ {repository.star_count:,}", f"🌿 {repository.default_branch}"]
        if repository.primary_language:
            facts.append(f"💻 {repository.primary_language}")
        if repository.license:
            facts.append(f"⚖️ {repository.license}")
        facts.append(f"🐛 {repository.open_issue_count}")
        facts.append(f"🕐 {time_ago(repository.updated_at)}")
        info_lines.append("  ".join(facts))
        if repository.topics:
            info_lines.append("🏷️ " + ", ".join(sorted(repository.topics)))
        links = [f"🔗 [@click=app.open_url('{repository.web_url}')]{repository.web_url}[/]"]
        if repository.homepage:
            links.append(f"🌐 [@click=app.open_url('{repository.homepage}')]{repository.homepage}[/]")
        info_lines.append("  ".join(links))
        info_lines.append(f"[dim]$ {repository.clone_command}[/]")

        self.query_one("#repo-info", Static).update("\n".join(info_lines))


class RepoLensApp(App):
    """Dashboard for browsing one account's repositories."""

    TITLE = "repolens"
    SUB_TITLE = "GitHub account dashboard"
    AUTO_FOCUS = "#repo-list"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
        width: 100%;
    }

    #sidebar {
        width: 25%;
        min-width: 30;
        max-width: 60;
        height: 100%;
        border-right: solid $primary;
    }

    #search-input {
        margin: 0 0 1 0;
    }

    #stats-bar {
        height: 1;
        color: $text-muted;
        padding: 0 1;
    }

    #repo-list {
        height: 1fr;
        scrollbar-gutter: stable;
    }

    SyncStatusWidget {
        height: auto;
        padding: 0 1;
        background: $surface;
        border-top: solid $primary;
    }

    #main-content {
        width: 1fr;
        height: 100%;
        padding: 0 1;
    }

    RepositoryDetailPanel {
        height: auto;
    }

    .title {
        text-style: bold;
        color: $primary;
        padding: 1 0 0 0;
    }

    #content-status {
        height: auto;
        color: $warning;
    }

    #readme-scroll {
        width: 1fr;
    }

    #toc-list {
        width: 32;
        border-left: solid $primary;
    }

    #releases-table {
        width: 1fr;
    }

    #release-notes-scroll {
        width: 1fr;
        border-left: solid $primary;
    }
    """

    BINDINGS = [
        Binding("q", "quit", "Quit", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("/", "search", "Search", show=True),
        Binding("o", "open_github", "Open GitHub", show=True),
        Binding("c", "copy_clone", "Copy clone cmd", show=True),
        Binding("escape", "clear_search", "Clear Search", show=False),
    ]

    def __init__(
        self,
        config: Optional[RepoLensConfig] = None,
        cache: Optional[KeyValueCache] = None,
        base_url: str = GitHubClient.BASE_URL,
    ):
        super().__init__()
        self._config = config or RepoLensConfig.load()
        self._owns_cache = cache is None
        if cache is None:
            cache = KeyValueCache.from_path(self._config.cache_path())
        self.state = AppState(self._config, cache, on_content=self._show_content, base_url=base_url)
        if self._config.theme in self.available_themes:
            self.theme = self._config.theme

    def compose(self) -> ComposeResult:
        yield Header()

        with Horizontal(id="main-layout"):
            with Vertical(id="sidebar"):
                yield Input(placeholder="🔍 Search repositories...", id="search-input")
                yield StatsWidget("", id="stats-bar")
                yield ListView(id="repo-list")
                yield SyncStatusWidget()

            with Vertical(id="main-content"):
                yield RepositoryDetailPanel(id="repo-detail")
                yield Static("", id="content-status")
                with TabbedContent(id="repo-tabs", initial=TAB_PANES[self.state.tab]):
                    with TabPane("README", id="tab-readme"):
                        with Horizontal():
                            yield VerticalScroll(Markdown("", id="readme-view"), id="readme-scroll")
                            yield OptionList(id="toc-list")
                    with TabPane("Releases", id="tab-releases"):
                        with Horizontal():
                            yield DataTable(id="releases-table")
                            yield VerticalScroll(Markdown("", id="release-notes"), id="release-notes-scroll")
                    with TabPane("Commits", id="tab-commits"):
                        yield DataTable(id="commits-table")
                    with TabPane("Contributors", id="tab-contributors"):
                        yield DataTable(id="contributors-table")

        yield Footer()

    def on_mount(self) -> None:
        self.sub_title = self.state.handle

        releases_table = self.query_one("#releases-table", DataTable)
        releases_table.add_columns("Tag", "Name", "Type", "Published")
        releases_table.cursor_type = "row"

        commits_table = self.query_one("#commits-table", DataTable)
        commits_table.add_columns("SHA", "Summary", "Author", "When")
        commits_table.cursor_type = "row"

        contributors_table = self.query_one("#contributors-table", DataTable)
        contributors_table.add_columns("Contributor", "Contributions", "Profile")
        contributors_table.cursor_type = "row"

        # Last known catalog first; only go to the network when there is none
        if self.state.catalog.rehydrate():
            self.query_one(SyncStatusWidget).status = "Cached"
        self.load_repositories()
        if self.state.catalog.is_empty:
            self.refresh_catalog()

    async def on_unmount(self) -> None:
        # Widgets are going away; nothing left to render into
        self.state.loader.on_change = None
        await self.state.aclose()
        if self._owns_cache:
            self.state.cache.close()

    # -------------------------------------------------------------------------
    # Catalog
    # -------------------------------------------------------------------------

    def load_repositories(self, search: str = "") -> None:
        """Fill the sidebar from the catalog, filtered by name."""
        repo_list = self.query_one("#repo-list", ListView)
        repo_list.clear()
        repo_list.extend(RepositoryListItem(repo) for repo in self.state.catalog.filter(search))
        self.query_one(StatsWidget).show(self.state.catalog.stats())

    @work(exclusive=True, group="catalog")
    async def refresh_catalog(self) -> None:
        """Fetch the repository list of the configured account."""
        sync_status = self.query_one(SyncStatusWidget)
        sync_status.status = "Syncing"

        ok = await self.state.refresh()

        self._update_rate()
        if ok:
            sync_status.status = "Synced"
            self.load_repositories(self.query_one("#search-input", Input).value)
        else:
            sync_status.status = "Failed"
            self.notify(
                self.state.catalog.last_error or "Refresh failed",
                title="Sync Failed",
                severity="error",
            )

    @on(Input.Changed, "#search-input")
    def filter_repositories(self, event: Input.Changed) -> None:
        self.load_repositories(event.value)

    @on(ListView.Selected, "#repo-list")
    def on_repository_selected(self, event: ListView.Selected) -> None:
        if not isinstance(event.item, RepositoryListItem):
            return
        repository = event.item.repository
        self.state.selected = repository
        self.query_one("#repo-detail", RepositoryDetailPanel).repository = repository

        tabs = self.query_one("#repo-tabs", TabbedContent)
        readme_pane = TAB_PANES[ContentTab.README]
        if tabs.active != readme_pane:
            # Activation loads the tab
            tabs.active = readme_pane
        else:
            self.load_content(repository, ContentTab.README)

    # -------------------------------------------------------------------------
    # Content
    # -------------------------------------------------------------------------

    @on(TabbedContent.TabActivated, "#repo-tabs")
    def on_tab_activated(self, event: TabbedContent.TabActivated) -> None:
        tab = PANE_TABS.get(event.pane.id or "")
        if tab is None:
            return
        self.state.tab = tab
        if self.state.selected is not None:
            self.load_content(self.state.selected, tab)

    @work(exclusive=True, group="content")
    async def load_content(self, repository: Repository, tab: ContentTab) -> None:
        """Load one tab; a newer selection cancels this one."""
        await self.state.select(repository, tab)
        self._update_rate()

    def _show_content(self, state: TabContentState) -> None:
        """Render the current content state (called by the loader)."""
        status = self.query_one("#content-status", Static)
        if state.status is ContentStatus.LOADING:
            status.update("⏳ Loading...")
        elif state.status is ContentStatus.FAILED:
            status.update(f"⚠️ {state.reason}")
        else:
            status.update("")

        renderers = {
            ContentTab.README: self._render_readme,
            ContentTab.RELEASES: self._render_releases,
            ContentTab.COMMITS: self._render_commits,
            ContentTab.CONTRIBUTORS: self._render_contributors,
        }
        renderers[state.tab](state)

    def _render_readme(self, state: TabContentState) -> None:
        self.query_one("#readme-view", Markdown).update(self.state.rendered_readme(state))
        toc_list = self.query_one("#toc-list", OptionList)
        toc_list.clear_options()
        toc_list.add_options(
            Option(f"{'  ' * (entry.level - 1)}{entry.text}", id=entry.id)
            for entry in self.state.table_of_contents(state)
        )

    def _render_releases(self, state: TabContentState) -> None:
        table = self.query_one("#releases-table", DataTable)
        table.clear()
        self.query_one("#release-notes", Markdown).update("")
        for release in state.items:
            kind = "⚠️ prerelease" if release.is_prerelease else "✅ release"
            published = release.published_at.strftime("%Y-%m-%d") if release.published_at else "-"
            table.add_row(
                f"🏷️ {release.tag}",
                release.display_name[:35],
                kind,
                published,
                key=str(release.id),
            )
        if state.items:
            self._show_release_notes(state.items[0].id)

    def _render_commits(self, state: TabContentState) -> None:
        table = self.query_one("#commits-table", DataTable)
        table.clear()
        if state.is_ready and not state.items:
            table.add_row("-", "(No commits yet)", "-", "-", key="empty")
            return
        for commit in state.items:
            table.add_row(
                f"[link={commit.web_url}]{commit.short_sha}[/]",
                commit.summary[:70],
                commit.author_name,
                time_ago(commit.authored_at),
                key=commit.sha,
            )

    def _render_contributors(self, state: TabContentState) -> None:
        table = self.query_one("#contributors-table", DataTable)
        table.clear()
        for contributor in state.items:
            table.add_row(
                f"👤 {contributor.login}",
                str(contributor.contribution_count),
                f"[link={contributor.profile_url}]🔗 GitHub[/]",
                key=str(contributor.id),
            )

    @on(DataTable.RowHighlighted, "#releases-table")
    def on_release_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if event.row_key is not None and event.row_key.value:
            self._show_release_notes(int(event.row_key.value))

    def _show_release_notes(self, release_id: int) -> None:
        state = self.state.content
        repository = self.state.selected
        if state.tab is not ContentTab.RELEASES or repository is None:
            return
        for release in state.items:
            if release.id == release_id:
                body = LinkRewriter.for_repository(repository).rewrite_markdown(release.body)
                self.query_one("#release-notes", Markdown).update(
                    f"# {release.display_name}\n\n{body or '_No release notes_'}"
                )
                return

    @on(OptionList.OptionSelected, "#toc-list")
    def on_toc_selected(self, event: OptionList.OptionSelected) -> None:
        if event.option.id:
            self.query_one("#readme-view", Markdown).goto_anchor(event.option.id)

    def _update_rate(self) -> None:
        rate = self.state.rate_limit
        if rate is not None:
            self.query_one(SyncStatusWidget).rate = format_rate(rate)

    # -------------------------------------------------------------------------
    # Actions
    # -------------------------------------------------------------------------

    def action_refresh(self) -> None:
        """Refresh the repository list from GitHub."""
        self.refresh_catalog()

    def action_search(self) -> None:
        self.query_one("#search-input", Input).focus()

    def action_clear_search(self) -> None:
        search = self.query_one("#search-input", Input)
        search.value = ""
        self.query_one("#repo-list", ListView).focus()

    def action_open_url(self, url: str) -> None:
        """Open URL in browser."""
        import webbrowser
        webbrowser.open(url)

    def action_open_github(self) -> None:
        repository = self.state.selected
        if repository is None:
            self.notify("No repository selected", severity="warning")
            return
        self.notify(f"Opening {repository.web_url[:50]}...")
        self.action_open_url(repository.web_url)

    def action_copy_clone(self) -> None:
        repository = self.state.selected
        if repository is None:
            self.notify("No repository selected", severity="warning")
            return
        self.copy_to_clipboard(repository.clone_command)
        self.notify(f"Copied: {repository.clone_command}")
