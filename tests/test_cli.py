"""Tests for repolens CLI."""

import json

import pytest
import respx
from click.testing import CliRunner
from httpx import Response

from conftest import API, commit_payload, release_payload, repo_payload
from repolens.cache import KeyValueCache
from repolens.catalog import CATALOG_CACHE_KEY, encode_catalog
from repolens.cli import cli
from repolens.config import RepoLensConfig
from repolens.models import Repository


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def acme_config() -> RepoLensConfig:
    config = RepoLensConfig(handle="acme")
    config.save()
    return config


def seed_catalog(*payloads) -> None:
    cache = KeyValueCache.from_path(RepoLensConfig.cache_path())
    try:
        cache.set_raw(CATALOG_CACHE_KEY, encode_catalog([Repository.from_api(p) for p in payloads]))
    finally:
        cache.close()


def cached_catalog() -> str | None:
    cache = KeyValueCache.from_path(RepoLensConfig.cache_path())
    try:
        return cache.get_raw(CATALOG_CACHE_KEY)
    finally:
        cache.close()


class TestCLI:
    """Tests for the main CLI."""

    def test_cli_version(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_cli_help(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "repolens" in result.output
        for command in ("dashboard", "repos", "show", "config", "cache"):
            assert command in result.output

    def test_invalid_log_level(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["--log-level", "LOUD", "repos", "stats"])
        assert result.exit_code != 0
        assert "Invalid log level" in result.output

    def test_invalid_saved_log_level_falls_back(self, runner: CliRunner) -> None:
        RepoLensConfig(handle="acme", log_level="LOUD").save()
        result = runner.invoke(cli, ["config", "set", "log_level", "info"])
        assert result.exit_code == 0, result.output
        assert "Ignoring invalid log_level 'LOUD'" in result.output
        assert "config.json" in result.output
        assert "--log-level" not in result.output
        assert RepoLensConfig.load().log_level == "info"

    def test_invalid_saved_log_format_falls_back(self, runner: CliRunner) -> None:
        RepoLensConfig(handle="acme", log_format="xml").save()
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0, result.output
        assert "Ignoring invalid log_format 'xml'" in result.output

    def test_dashboard_help_shows_shortcuts(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["dashboard", "--help"])
        assert result.exit_code == 0
        assert "Keyboard shortcuts" in result.output
        assert "Quit" in result.output
        assert "Copy clone command" in result.output


class TestReposCommand:
    """Tests for the repos command group."""

    def test_list_fetches_when_nothing_cached(self, runner: CliRunner, acme_config) -> None:
        with respx.mock:
            route = respx.get(f"{API}/orgs/acme/repos").mock(
                return_value=Response(
                    200,
                    json=[
                        repo_payload("older", updated_at="2023-01-01T00:00:00Z"),
                        repo_payload("newer", updated_at="2024-01-01T00:00:00Z", stars=9),
                    ],
                )
            )
            result = runner.invoke(cli, ["repos", "list"])

        assert result.exit_code == 0, result.output
        assert route.call_count == 1
        assert "Repositories of acme" in result.output
        assert result.output.index("newer") < result.output.index("older")
        assert "2 repositories" in result.output
        assert cached_catalog() is not None

    def test_list_uses_cache(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("cached"))
        with respx.mock:
            route = respx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(200, json=[]))
            result = runner.invoke(cli, ["repos", "list", "--verbose"])

        assert result.exit_code == 0, result.output
        assert not route.called
        assert "cached" in result.output
        assert "The cached project" in result.output

    def test_list_refresh_failure_keeps_cache(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("cached"))
        with respx.mock:
            respx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(500))
            result = runner.invoke(cli, ["repos", "list", "--refresh"])

        assert result.exit_code == 0, result.output
        assert "Refresh failed" in result.output
        assert "cached" in result.output

    def test_list_failure_without_cache(self, runner: CliRunner, acme_config) -> None:
        with respx.mock:
            respx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(404))
            respx.get(f"{API}/users/acme/repos").mock(return_value=Response(404))
            result = runner.invoke(cli, ["repos", "list"])

        assert result.exit_code == 1
        assert "Refresh failed" in result.output

    def test_list_filter(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"), repo_payload("gadgets"))
        result = runner.invoke(cli, ["repos", "list", "-f", "WID"])
        assert "widgets" in result.output
        assert "gadgets" not in result.output
        assert "1 repositories" in result.output

    def test_list_filter_no_match(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        result = runner.invoke(cli, ["repos", "list", "-f", "zzz"])
        assert result.exit_code == 0
        assert "No repositories found." in result.output

    def test_stats(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(
            repo_payload("a", stars=1000, language="Go"),
            repo_payload("b", stars=5, language="Rust"),
            repo_payload("c", stars=0, language="Rust"),
        )
        result = runner.invoke(cli, ["repos", "stats"])
        assert result.exit_code == 0, result.output
        assert "Repositories: 3" in result.output
        assert "Stars: 1,005" in result.output
        assert "Top language: Rust" in result.output


class TestShowCommand:
    """Tests for the show command."""

    def test_show_readme_rewrites_links(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/readme").mock(
                return_value=Response(200, text="# Widgets\n\n![shot](docs/shot.png)\n")
            )
            result = runner.invoke(cli, ["show", "widgets"])

        assert result.exit_code == 0, result.output
        assert "acme/widgets" in result.output
        assert "https://raw.githubusercontent.com/acme/widgets/main/docs/shot.png" in result.output

    def test_show_toc(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/readme").mock(
                return_value=Response(200, text="# Widgets\n\n## Install\n")
            )
            result = runner.invoke(cli, ["show", "acme/widgets", "--toc"])

        assert result.exit_code == 0, result.output
        assert "- Widgets  (#widgets)" in result.output
        assert "  - Install  (#install)" in result.output

    def test_show_releases(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/releases").mock(
                return_value=Response(200, json=[release_payload(1, "v1.2.0", "Spring")])
            )
            result = runner.invoke(cli, ["show", "widgets", "--tab", "releases"])

        assert result.exit_code == 0, result.output
        assert "v1.2.0" in result.output
        assert "Spring" in result.output

    def test_show_commits_empty_repository(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/commits").mock(return_value=Response(409))
            result = runner.invoke(cli, ["show", "widgets", "-t", "commits"])

        assert result.exit_code == 0, result.output
        assert "No commits yet." in result.output

    def test_show_commits(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/commits").mock(
                return_value=Response(200, json=[commit_payload("feedface123", "Add feature\n\ndetails")])
            )
            result = runner.invoke(cli, ["show", "widgets", "-t", "commits"])

        assert "feedfac" in result.output
        assert "Add feature" in result.output

    def test_show_missing_readme(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/repos/acme/widgets/readme").mock(return_value=Response(404))
            result = runner.invoke(cli, ["show", "widgets", "-t", "readme"])

        assert result.exit_code == 1
        assert "README not found" in result.output

    def test_show_unknown_repository(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        with respx.mock:
            respx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(200, json=[repo_payload("widgets")]))
            result = runner.invoke(cli, ["show", "nothing-here"])

        assert result.exit_code == 1
        assert "Repository not found" in result.output


class TestConfigCommand:
    """Tests for the config command group."""

    def test_show(self, runner: CliRunner, acme_config) -> None:
        result = runner.invoke(cli, ["config", "show"])
        assert result.exit_code == 0
        assert "acme" in result.output
        assert "credential" in result.output

    def test_show_masks_token(self, runner: CliRunner) -> None:
        RepoLensConfig(handle="acme", token="ghp_supersecret").save()
        result = runner.invoke(cli, ["config", "show"])
        assert "ghp_supersecret" not in result.output
        assert "ghp_" in result.output

    def test_set_theme_keeps_catalog(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        result = runner.invoke(cli, ["config", "set", "theme", "nord"])
        assert result.exit_code == 0
        assert "Set theme" in result.output
        assert RepoLensConfig.load().theme == "nord"
        assert cached_catalog() is not None

    def test_set_handle_drops_catalog(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        result = runner.invoke(cli, ["config", "set", "handle", "other"])
        assert result.exit_code == 0
        assert "Cached repository list cleared" in result.output
        assert RepoLensConfig.load().handle == "other"
        assert cached_catalog() is None

    def test_set_invalid_tab(self, runner: CliRunner, acme_config) -> None:
        result = runner.invoke(cli, ["config", "set", "default_tab", "wiki"])
        assert result.exit_code == 1
        assert "Unknown tab" in result.output

    def test_set_invalid_log_format(self, runner: CliRunner, acme_config) -> None:
        result = runner.invoke(cli, ["config", "set", "log_format", "xml"])
        assert result.exit_code == 1
        assert "Unknown log format" in result.output
        assert RepoLensConfig.load().log_format == "console"

    def test_set_unknown_key(self, runner: CliRunner) -> None:
        result = runner.invoke(cli, ["config", "set", "colour", "red"])
        assert result.exit_code != 0

    def test_reset(self, runner: CliRunner, acme_config) -> None:
        result = runner.invoke(cli, ["config", "reset", "--yes"])
        assert result.exit_code == 0
        assert "Settings reset" in result.output
        data = json.loads(RepoLensConfig.get_config_path().read_text())
        assert data["handle"] == RepoLensConfig().handle


class TestCacheCommand:
    def test_clear(self, runner: CliRunner, acme_config) -> None:
        seed_catalog(repo_payload("widgets"))
        result = runner.invoke(cli, ["cache", "clear"])
        assert result.exit_code == 0
        assert "Cache cleared" in result.output
        assert cached_catalog() is None

    def test_corrupt_cache_file_is_replaced(self, runner: CliRunner, acme_config) -> None:
        cache_path = RepoLensConfig.cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_bytes(b"this is not sqlite at all" * 100)

        result = runner.invoke(cli, ["cache", "clear"])
        assert result.exit_code == 0, result.output
        assert "Cache cleared" in result.output


class TestCorruptCache:
    def test_list_fetches_and_rebuilds_cache(self, runner: CliRunner, acme_config) -> None:
        cache_path = RepoLensConfig.cache_path()
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        cache_path.write_bytes(b"this is not sqlite at all" * 100)

        with respx.mock:
            respx.get(f"{API}/orgs/acme/repos").mock(return_value=Response(200, json=[repo_payload("widgets")]))
            result = runner.invoke(cli, ["repos", "list"])

        assert result.exit_code == 0, result.output
        assert "widgets" in result.output
        assert cached_catalog() is not None
