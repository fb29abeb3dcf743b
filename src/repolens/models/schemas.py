"""Data models for repolens.

GitHub payloads are mapped into frozen pydantic models at the client
boundary; the rest of the package never touches raw API dictionaries.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field as PydanticField
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def time_ago(moment: datetime, now: Optional[datetime] = None) -> str:
    """Render a timestamp as a short relative age ("3d ago")."""
    now = now or utcnow()
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    seconds = int((now - moment).total_seconds())

    for span, suffix in (
        (31536000, "y"),
        (2592000, "mo"),
        (86400, "d"),
        (3600, "h"),
        (60, "m"),
    ):
        if seconds > span:
            return f"{seconds // span}{suffix} ago"
    return "Just now"


class AccountKind(str, Enum):
    """What an account handle turned out to be."""

    ORGANIZATION = "organization"
    USER = "user"
    UNRESOLVED = "unresolved"


class ContentTab(str, Enum):
    """Content views available for a selected repository."""

    README = "readme"
    RELEASES = "releases"
    COMMITS = "commits"
    CONTRIBUTORS = "contributors"


class ContentStatus(str, Enum):
    """Lifecycle of a tab's content."""

    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


# ---------------------------------------------------------------------------
# GitHub entities
# ---------------------------------------------------------------------------


class Repository(BaseModel):
    """A repository of the browsed account."""

    model_config = ConfigDict(frozen=True)

    id: int
    full_name: str
    name: str
    description: Optional[str] = None
    star_count: int = 0
    updated_at: datetime
    primary_language: Optional[str] = None
    web_url: str
    default_branch: str = "main"
    homepage: Optional[str] = None
    license: Optional[str] = None
    open_issue_count: int = 0
    topics: frozenset[str] = frozenset()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Repository":
        """Build from a GitHub ``/repos`` listing item."""
        license_info = data.get("license") or {}
        return cls(
            id=data["id"],
            full_name=data["full_name"],
            name=data["name"],
            description=data.get("description"),
            star_count=data.get("stargazers_count") or 0,
            updated_at=data["updated_at"],
            primary_language=data.get("language"),
            web_url=data.get("html_url") or f"https://github.com/{data['full_name']}",
            default_branch=data.get("default_branch") or "main",
            homepage=data.get("homepage") or None,
            license=license_info.get("spdx_id"),
            open_issue_count=data.get("open_issues_count") or 0,
            topics=frozenset(data.get("topics") or []),
        )

    @property
    def owner(self) -> str:
        return self.full_name.split("/", 1)[0]

    @property
    def clone_command(self) -> str:
        return f"gh repo clone {self.full_name}"


class ReleaseNote(BaseModel):
    """A published (or pre-) release."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: Optional[str] = None
    tag: str
    is_prerelease: bool = False
    published_at: Optional[datetime] = None
    web_url: str
    body: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ReleaseNote":
        return cls(
            id=data["id"],
            name=data.get("name") or None,
            tag=data["tag_name"],
            is_prerelease=bool(data.get("prerelease")),
            published_at=data.get("published_at"),
            web_url=data["html_url"],
            body=data.get("body") or "",
        )

    @property
    def display_name(self) -> str:
        """Release name, falling back to the tag."""
        return self.name or self.tag


class CommitRecord(BaseModel):
    """One commit of the default branch."""

    model_config = ConfigDict(frozen=True)

    sha: str
    web_url: str
    message: str
    author_name: str
    authored_at: datetime

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "CommitRecord":
        commit = data["commit"]
        author = commit.get("author") or {}
        return cls(
            sha=data["sha"],
            web_url=data["html_url"],
            message=commit.get("message") or "",
            author_name=author.get("name") or "unknown",
            authored_at=author["date"],
        )

    @property
    def summary(self) -> str:
        """First line of the message."""
        return self.message.split("\n", 1)[0]

    @property
    def detail(self) -> str:
        """Everything after the first line."""
        parts = self.message.split("\n", 1)
        return parts[1].strip() if len(parts) > 1 else ""

    @property
    def short_sha(self) -> str:
        return self.sha[:7]


class Contributor(BaseModel):
    """A contributor of a repository."""

    model_config = ConfigDict(frozen=True)

    id: int
    login: str
    avatar_url: str
    profile_url: str
    contribution_count: int = PydanticField(default=0, ge=0)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Contributor":
        return cls(
            id=data["id"],
            login=data["login"],
            avatar_url=data.get("avatar_url") or "",
            profile_url=data.get("html_url") or f"https://github.com/{data['login']}",
            contribution_count=data.get("contributions") or 0,
        )


class TocEntry(BaseModel):
    """One line of a README outline."""

    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    level: int = PydanticField(ge=1, le=6)


# ---------------------------------------------------------------------------
# Session state
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccountHandle:
    """An account handle and what it resolved to."""

    name: str
    kind: AccountKind = AccountKind.UNRESOLVED


TabPayload = Union[str, list[ReleaseNote], list[CommitRecord], list[Contributor], None]


@dataclass(frozen=True)
class TabContentState:
    """The current content of one (repository, tab) selection."""

    tab: ContentTab
    repository: Optional[str] = None  # full_name
    status: ContentStatus = ContentStatus.IDLE
    payload: TabPayload = None
    reason: Optional[str] = None

    @classmethod
    def idle(cls, tab: ContentTab = ContentTab.README) -> "TabContentState":
        return cls(tab=tab)

    @classmethod
    def loading(cls, repository: str, tab: ContentTab) -> "TabContentState":
        return cls(tab=tab, repository=repository, status=ContentStatus.LOADING)

    @classmethod
    def ready(cls, repository: str, tab: ContentTab, payload: TabPayload) -> "TabContentState":
        return cls(tab=tab, repository=repository, status=ContentStatus.READY, payload=payload)

    @classmethod
    def failed(cls, repository: str, tab: ContentTab, reason: str) -> "TabContentState":
        return cls(tab=tab, repository=repository, status=ContentStatus.FAILED, reason=reason)

    @property
    def is_loading(self) -> bool:
        return self.status is ContentStatus.LOADING

    @property
    def is_ready(self) -> bool:
        return self.status is ContentStatus.READY

    @property
    def is_failed(self) -> bool:
        return self.status is ContentStatus.FAILED

    @property
    def readme(self) -> str:
        if self.tab is ContentTab.README and isinstance(self.payload, str):
            return self.payload
        return ""

    @property
    def items(self) -> list:
        """Records of a list tab (releases, commits, contributors)."""
        if isinstance(self.payload, list):
            return self.payload
        return []


@dataclass(frozen=True)
class CatalogStats:
    """Aggregates shown above the repository list."""

    total: int = 0
    stars: int = 0
    top_language: Optional[str] = None
    languages: dict[str, int] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


class CacheEntry(SQLModel, table=True):
    """One JSON blob of the local key-value cache."""

    __tablename__ = "cache_entry"

    key: str = Field(primary_key=True)
    value: str
    updated_at: datetime = Field(default_factory=utcnow)
