"""Click CLI for repolens."""

import asyncio
from typing import Optional

import click
from trogon import tui

from repolens import __version__
from repolens.cache import KeyValueCache
from repolens.catalog import CATALOG_CACHE_KEY, RepositoryCatalog
from repolens.config import (
    AVAILABLE_TABS,
    DEFAULT_LOG_FORMAT,
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT_OPTIONS,
    SETTABLE_KEYS,
    RepoLensConfig,
)
from repolens.exceptions import CacheUnavailableError
from repolens.logging import configure_logging
from repolens.models import ContentTab, TabContentState, time_ago
from repolens.state import AppState


TAB_CHOICES = [value for value, _ in AVAILABLE_TABS]
FORMAT_CHOICES = [value for value, _ in LOG_FORMAT_OPTIONS]
LEVEL_CHOICES = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def open_cache(config: RepoLensConfig) -> KeyValueCache:
    """Open the cache database for ``config``."""
    return KeyValueCache.from_path(config.cache_path())


async def _with_state(config: RepoLensConfig, action):
    state = AppState(config, open_cache(config))
    try:
        return await action(state)
    finally:
        await state.aclose()
        state.cache.close()


def run_with_state(config: RepoLensConfig, action):
    """Run ``action(state)`` on a fresh AppState and close it afterwards."""
    return asyncio.run(_with_state(config, action))


@tui()
@click.group()
@click.version_option(version=__version__, prog_name="repolens")
@click.option("--log-level", default=None, help="DEBUG, INFO, WARNING, ERROR or CRITICAL")
@click.option("--log-format", type=click.Choice(FORMAT_CHOICES), default=None, help="Log rendering")
@click.pass_context
def cli(ctx: click.Context, log_level: Optional[str], log_format: Optional[str]) -> None:
    """repolens - browse a GitHub account's repositories.

    README, releases, commits and contributors of any repository of one
    organization or user, from the terminal.

    Quick start:
        repolens dashboard              Launch interactive TUI dashboard
        repolens repos list             List the account's repositories
        repolens show owner/repo        Print a repository's README
        repolens config set handle X    Browse another account
    """
    config = RepoLensConfig.load()
    if log_level is None:
        log_level = _configured(config, "log_level", str(config.log_level).upper() in LEVEL_CHOICES, DEFAULT_LOG_LEVEL)
    if log_format is None:
        log_format = _configured(config, "log_format", config.log_format in FORMAT_CHOICES, DEFAULT_LOG_FORMAT)
    try:
        configure_logging(log_level, log_format)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--log-level")
    ctx.meta["log_level"] = log_level
    ctx.meta["log_format"] = log_format
    ctx.obj = config


def _configured(config: RepoLensConfig, key: str, valid: bool, default: str) -> str:
    """The saved value of ``key``, or ``default`` with a warning if it is invalid."""
    value = getattr(config, key)
    if valid:
        return value
    click.echo(
        f"Ignoring invalid {key} '{value}' in {config.get_config_path()}; using {default}. "
        f"Fix it with: repolens config set {key} VALUE",
        err=True,
    )
    return default


@cli.command()
@click.pass_context
def dashboard(ctx: click.Context) -> None:
    """Launch the interactive TUI dashboard.

    Repository list with search, README with table of contents, releases,
    commits and contributors of the selected repository.

    Keyboard shortcuts:
        q - Quit
        r - Refresh repositories
        / - Search
        o - Open repository in browser
        c - Copy clone command
    """
    from repolens.tui import RepoLensApp

    config: RepoLensConfig = ctx.obj
    # Records go to a file; the dashboard owns the terminal
    config.log_path().parent.mkdir(parents=True, exist_ok=True)
    configure_logging(ctx.meta["log_level"], ctx.meta["log_format"], log_file=config.log_path(), stderr=False)

    app = RepoLensApp(config=config)
    app.run()


# =============================================================================
# Repos Commands - The account's repository catalog
# =============================================================================


@cli.group()
def repos() -> None:
    """Inspect the repository catalog of the configured account."""
    pass


@repos.command("list")
@click.option("--filter", "-f", "term", default="", help="Only names containing this text")
@click.option("--refresh", "-r", is_flag=True, help="Fetch from GitHub even if cached")
@click.option("--verbose", "-v", is_flag=True, help="Show description and topics")
@click.pass_obj
def repos_list(config: RepoLensConfig, term: str, refresh: bool, verbose: bool) -> None:
    """List repositories, most recently updated first."""

    async def action(state: AppState) -> RepositoryCatalog:
        if refresh:
            state.catalog.rehydrate()
            await state.refresh()
        else:
            await state.start()
        return state.catalog

    catalog = run_with_state(config, action)
    _report_catalog_error(catalog)
    repositories = catalog.filter(term)
    if not repositories:
        click.echo("No repositories found.")
        return

    click.echo(f"\n📁 Repositories of {config.handle}:")
    click.echo("=" * 50)
    for repo in repositories:
        language = repo.primary_language or "-"
        click.echo(f"  {repo.name:<32} ⭐ {repo.star_count:<6} {language:<12} {time_ago(repo.updated_at)}")
        if verbose:
            if repo.description:
                click.echo(f"      {repo.description}")
            if repo.topics:
                click.echo(f"      🏷️  {', '.join(sorted(repo.topics))}")
    click.echo(f"\n{len(repositories)} repositories")


@repos.command("stats")
@click.pass_obj
def repos_stats(config: RepoLensConfig) -> None:
    """Show repository count, total stars and top language."""

    async def action(state: AppState) -> RepositoryCatalog:
        await state.start()
        return state.catalog

    catalog = run_with_state(config, action)
    _report_catalog_error(catalog)
    stats = catalog.stats()
    click.echo(f"📊 Repositories: {stats.total}")
    click.echo(f"⭐ Stars: {stats.stars:,}")
    click.echo(f"💻 Top language: {stats.top_language or 'None'}")


def _report_catalog_error(catalog: RepositoryCatalog) -> None:
    if catalog.last_error:
        click.echo(f"Refresh failed: {catalog.last_error}", err=True)
        if catalog.is_empty:
            raise SystemExit(1)


# =============================================================================
# Show Command - One tab of one repository
# =============================================================================


@cli.command()
@click.argument("full_name")
@click.option("--tab", "-t", type=click.Choice(TAB_CHOICES), default=None, help="Content to show (default: configured tab)")
@click.option("--toc", is_flag=True, help="Print the README outline instead of its body")
@click.pass_obj
def show(config: RepoLensConfig, full_name: str, tab: Optional[str], toc: bool) -> None:
    """Print README, releases, commits or contributors of a repository.

    FULL_NAME: owner/name, or just the name for the configured account.
    """
    if "/" not in full_name:
        full_name = f"{config.handle}/{full_name}"

    async def action(state: AppState):
        repository = None
        if state.catalog.rehydrate():
            repository = state.catalog.find(full_name)
        if repository is None:
            # Nothing cached, or the cache predates the repository
            await state.refresh()
            repository = state.catalog.find(full_name)
        if repository is None:
            return None, None, None
        content = await state.select(repository, ContentTab(tab) if tab else None)
        return repository, content, state

    repository, content, state = run_with_state(config, action)
    if repository is None:
        click.echo(f"Repository not found in {config.handle}'s catalog: {full_name}", err=True)
        raise SystemExit(1)

    if content.is_failed:
        click.echo(content.reason, err=True)
        raise SystemExit(1)

    click.echo(f"📁 {repository.full_name}  ⭐ {repository.star_count}  🌿 {repository.default_branch}")
    if repository.description:
        click.echo(f"📝 {repository.description}")
    click.echo("=" * 50)
    _echo_content(state, content, toc)


def _echo_content(state: AppState, content: TabContentState, toc: bool) -> None:
    if content.tab is ContentTab.README:
        if toc:
            for entry in state.table_of_contents(content):
                click.echo(f"{'  ' * (entry.level - 1)}- {entry.text}  (#{entry.id})")
        else:
            click.echo(state.rendered_readme(content))
    elif content.tab is ContentTab.RELEASES:
        for release in content.items:
            kind = "⚠️ prerelease" if release.is_prerelease else "✅ release"
            published = release.published_at.strftime("%Y-%m-%d") if release.published_at else "-"
            click.echo(f"🏷️  {release.tag:<16} {release.display_name:<32} {kind:<14} {published}")
    elif content.tab is ContentTab.COMMITS:
        if not content.items:
            click.echo("No commits yet.")
        for commit in content.items:
            click.echo(f"{commit.short_sha}  {commit.summary[:60]:<60}  {commit.author_name}  {time_ago(commit.authored_at)}")
    else:
        for contributor in content.items:
            click.echo(f"👤 {contributor.login:<24} {contributor.contribution_count:>6} contributions")


# =============================================================================
# Config Commands - Persistent settings
# =============================================================================


@cli.group("config")
def config_group() -> None:
    """View and change persistent settings."""
    pass


@config_group.command("show")
@click.pass_obj
def config_show(config: RepoLensConfig) -> None:
    """Show the current settings."""
    click.echo(f"📄 {config.get_config_path()}")
    for key in SETTABLE_KEYS:
        value = getattr(config, key)
        if key == "token" and value:
            value = f"{value[:4]}…"
        click.echo(f"  {key:<12} {value if value is not None else '-'}")
    source = "config" if config.token else ("environment" if config.credential else "none")
    click.echo(f"  {'credential':<12} {source}")


@config_group.command("set")
@click.argument("key", type=click.Choice(SETTABLE_KEYS))
@click.argument("value")
@click.pass_obj
def config_set(config: RepoLensConfig, key: str, value: str) -> None:
    """Change one setting.

    Changing the handle or token drops the cached repository list.
    """
    if key == "default_tab" and value not in TAB_CHOICES:
        click.echo(f"Unknown tab: {value} (choose from {', '.join(TAB_CHOICES)})", err=True)
        raise SystemExit(1)
    if key == "log_level" and value.upper() not in LEVEL_CHOICES:
        click.echo(f"Unknown log level: {value} (choose from {', '.join(LEVEL_CHOICES)})", err=True)
        raise SystemExit(1)
    if key == "log_format" and value not in FORMAT_CHOICES:
        click.echo(f"Unknown log format: {value} (choose from {', '.join(FORMAT_CHOICES)})", err=True)
        raise SystemExit(1)

    previous = RepoLensConfig(**{k: getattr(config, k) for k in SETTABLE_KEYS})
    if key == "token":
        config.token = value or None
    else:
        setattr(config, key, value)
    config.save()
    click.echo(f"Set {key}")

    if previous.account_changed(config) and _forget_catalog(config):
        click.echo("Cached repository list cleared")


@config_group.command("reset")
@click.confirmation_option(prompt="Reset all settings to defaults?")
@click.pass_obj
def config_reset(config: RepoLensConfig) -> None:
    """Reset settings to defaults."""
    config.reset()
    config.save()
    _forget_catalog(config)
    click.echo("Settings reset")


def _forget_catalog(config: RepoLensConfig) -> bool:
    cache = open_cache(config)
    try:
        cache.delete(CATALOG_CACHE_KEY)
    except CacheUnavailableError as e:
        click.echo(f"Could not clear cached repository list: {e}", err=True)
        return False
    finally:
        cache.close()
    return True


# =============================================================================
# Cache Commands
# =============================================================================


@cli.group()
def cache() -> None:
    """Manage the local cache."""
    pass


@cache.command("clear")
@click.pass_obj
def cache_clear(config: RepoLensConfig) -> None:
    """Forget the cached repository list."""
    store = open_cache(config)
    try:
        store.clear()
    except CacheUnavailableError as e:
        click.echo(str(e), err=True)
        raise SystemExit(1)
    finally:
        store.close()
    click.echo("Cache cleared")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
