"""Shared fixtures for repolens tests."""

import logging
import zlib

import pytest
import structlog

from repolens.cache import KeyValueCache
from repolens.models import Repository


API = "https://api.github.com"


def repo_payload(
    name: str,
    owner: str = "acme",
    updated_at: str = "2024-05-01T12:00:00Z",
    stars: int = 0,
    language: str | None = "Python",
    **extra,
) -> dict:
    """A ``/repos`` listing item as GitHub returns it."""
    payload = {
        "id": zlib.crc32(f"{owner}/{name}".encode()),
        "name": name,
        "full_name": f"{owner}/{name}",
        "description": f"The {name} project",
        "stargazers_count": stars,
        "updated_at": updated_at,
        "language": language,
        "html_url": f"https://github.com/{owner}/{name}",
        "default_branch": "main",
        "homepage": None,
        "license": {"spdx_id": "MIT"},
        "open_issues_count": 3,
        "topics": ["cli"],
    }
    payload.update(extra)
    return payload


def release_payload(release_id: int, tag: str, name: str | None = None, prerelease: bool = False) -> dict:
    return {
        "id": release_id,
        "name": name,
        "tag_name": tag,
        "prerelease": prerelease,
        "published_at": "2024-04-01T09:30:00Z",
        "html_url": f"https://github.com/acme/widgets/releases/tag/{tag}",
        "body": "See [changelog](CHANGELOG.md)",
    }


def commit_payload(sha: str, message: str, author: str = "Ada") -> dict:
    return {
        "sha": sha,
        "html_url": f"https://github.com/acme/widgets/commit/{sha}",
        "commit": {
            "message": message,
            "author": {"name": author, "date": "2024-04-02T10:00:00Z"},
        },
    }


def contributor_payload(user_id: int, login: str, contributions: int) -> dict:
    return {
        "id": user_id,
        "login": login,
        "avatar_url": f"https://avatars.githubusercontent.com/u/{user_id}",
        "html_url": f"https://github.com/{login}",
        "contributions": contributions,
    }


@pytest.fixture(autouse=True)
def repolens_home(tmp_path, monkeypatch):
    """Keep config, cache and logs of every test inside tmp_path."""
    home = tmp_path / "repolens-home"
    monkeypatch.setenv("REPOLENS_HOME", str(home))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    return home


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers a CLI run attached to the root logger."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


@pytest.fixture
def cache():
    store = KeyValueCache.in_memory()
    yield store
    store.close()


@pytest.fixture
def widgets() -> Repository:
    return Repository.from_api(repo_payload("widgets", stars=42))
