"""Tests for repolens configuration."""

import json

from repolens.config import (
    DEFAULT_HANDLE,
    DEFAULT_TAB,
    RepoLensConfig,
    get_home,
)


class TestRepoLensConfig:
    """Tests for loading and saving settings."""

    def test_home_override(self, repolens_home):
        assert get_home() == repolens_home
        assert RepoLensConfig.get_config_path() == repolens_home / "config.json"
        assert RepoLensConfig.cache_path() == repolens_home / "cache.db"

    def test_defaults_when_missing(self):
        config = RepoLensConfig.load()
        assert config.handle == DEFAULT_HANDLE
        assert config.token is None
        assert config.default_tab == DEFAULT_TAB

    def test_save_and_load(self):
        config = RepoLensConfig(handle="acme", default_tab="commits")
        config.save()

        loaded = RepoLensConfig.load()
        assert loaded.handle == "acme"
        assert loaded.default_tab == "commits"

    def test_unknown_keys_ignored(self, repolens_home):
        repolens_home.mkdir(parents=True)
        (repolens_home / "config.json").write_text(json.dumps({"handle": "acme", "retired": True}))
        assert RepoLensConfig.load().handle == "acme"

    def test_invalid_file_gives_defaults(self, repolens_home):
        repolens_home.mkdir(parents=True)
        (repolens_home / "config.json").write_text("{broken")
        assert RepoLensConfig.load().handle == DEFAULT_HANDLE

    def test_reset(self):
        config = RepoLensConfig(handle="acme", token="t", log_level="DEBUG")
        config.reset()
        assert config == RepoLensConfig()

    def test_credential_prefers_configured_token(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "from-env")
        assert RepoLensConfig(token="from-config").credential == "from-config"
        assert RepoLensConfig().credential == "from-env"

    def test_credential_absent(self):
        assert RepoLensConfig().credential is None

    def test_account_changed(self):
        base = RepoLensConfig(handle="acme")
        assert not base.account_changed(RepoLensConfig(handle="acme", theme="nord"))
        assert base.account_changed(RepoLensConfig(handle="other"))
        assert base.account_changed(RepoLensConfig(handle="acme", token="t"))
