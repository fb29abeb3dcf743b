"""GitHub REST client for repolens.

This module provides functionality to:
- List the repositories of an organization or a user
- Fetch a repository's raw README, releases, recent commits and contributors
- Track rate limit headers for display

Every failure leaves the client as a ``RepoLensError``; httpx exceptions
never escape. Requests are not retried.
"""

import time
from dataclasses import dataclass
from typing import Any, Optional, TypeVar

import httpx
import structlog

from repolens.exceptions import MalformedResponseError, StatusError, TransportError
from repolens.models import CommitRecord, Contributor, ReleaseNote, Repository


logger = structlog.get_logger(__name__)

# Fixed page sizes; pagination is not followed
REPO_PAGE_SIZE = 100
COMMIT_PAGE_SIZE = 20

T = TypeVar("T")


def _parse(model: type[T], items: list[dict]) -> list[T]:
    """Map API items onto ``model`` via its ``from_api`` constructor."""
    try:
        return [model.from_api(item) for item in items]
    except (KeyError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"Unexpected {model.__name__} payload: {e}") from e


@dataclass
class RateLimitInfo:
    """GitHub API rate limit information."""

    limit: int = 60
    remaining: int = 60
    reset_at: float = 0.0

    @classmethod
    def from_headers(cls, headers: httpx.Headers) -> "RateLimitInfo":
        """Parse rate limit info from response headers."""
        return cls(
            limit=int(headers.get("x-ratelimit-limit", 60)),
            remaining=int(headers.get("x-ratelimit-remaining", 60)),
            reset_at=float(headers.get("x-ratelimit-reset", 0)),
        )

    @property
    def is_exhausted(self) -> bool:
        """Check if rate limit is exhausted."""
        return self.remaining <= 0

    @property
    def seconds_until_reset(self) -> float:
        """Seconds until rate limit resets."""
        return max(0, self.reset_at - time.time())


class GitHubClient:
    """Async client for the GitHub REST API."""

    BASE_URL = "https://api.github.com"
    JSON_ACCEPT = "application/vnd.github+json"
    RAW_ACCEPT = "application/vnd.github.raw"

    def __init__(
        self,
        token: Optional[str] = None,
        base_url: str = BASE_URL,
        timeout: float = 30.0,
    ):
        """Initialize GitHub client.

        Args:
            token: Optional GitHub personal access token for higher rate limits
                   and access to private repositories.
            base_url: API root, for GitHub Enterprise or tests.
            timeout: Transport timeout in seconds.
        """
        self.token = token
        self.base_url = base_url
        self.timeout = timeout
        self._client: Optional[httpx.AsyncClient] = None
        self._rate_limit: Optional[RateLimitInfo] = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {
                "Accept": self.JSON_ACCEPT,
                "User-Agent": "repolens-dashboard",
            }
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
                follow_redirects=True,
            )
        return self._client

    @property
    def rate_limit(self) -> Optional[RateLimitInfo]:
        """Rate limit reported by the last response, if any."""
        return self._rate_limit

    async def aclose(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def get(
        self,
        path: str,
        params: Optional[dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> httpx.Response:
        """Make a GET request and return any 2xx response.

        Raises:
            TransportError: If the API could not be reached.
            StatusError: If the API answered with a non-success status.
        """
        headers = {"Accept": accept} if accept else None
        try:
            response = await self.client.get(path, params=params, headers=headers)
        except httpx.TransportError as e:
            logger.warning("github_unreachable", path=path, error=str(e))
            raise TransportError(str(e) or e.__class__.__name__) from e

        if "x-ratelimit-limit" in response.headers:
            self._rate_limit = RateLimitInfo.from_headers(response.headers)

        logger.debug("github_response", path=path, status=response.status_code)
        if not response.is_success:
            raise StatusError(response.status_code, str(response.url), response.reason_phrase)
        return response

    async def _get_list(self, path: str, params: Optional[dict[str, Any]] = None) -> list[dict]:
        response = await self.get(path, params=params)
        # 204 No Content is how empty collections (e.g. contributors) come back
        if response.status_code == 204 or not response.content:
            return []
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(f"Invalid JSON from {path}") from e
        if not isinstance(data, list):
            raise MalformedResponseError(f"Expected a list from {path}")
        return data

    async def list_org_repos(self, org: str) -> list[Repository]:
        """List repositories of an organization, most recently updated first.

        Args:
            org: GitHub organization name

        Returns:
            List of Repository objects (first page only)
        """
        data = await self._get_list(f"/orgs/{org}/repos", params=self._listing_params())
        return _parse(Repository, data)

    async def list_user_repos(self, username: str) -> list[Repository]:
        """List repositories of a user, most recently updated first.

        Args:
            username: GitHub username

        Returns:
            List of Repository objects (first page only)
        """
        data = await self._get_list(f"/users/{username}/repos", params=self._listing_params())
        return _parse(Repository, data)

    @staticmethod
    def _listing_params() -> dict[str, Any]:
        return {"sort": "updated", "per_page": REPO_PAGE_SIZE, "type": "all"}

    async def get_readme(self, full_name: str) -> Optional[str]:
        """Fetch the raw README of the default branch.

        Args:
            full_name: Repository in owner/name form

        Returns:
            README text, or None if the repository has no README
        """
        try:
            response = await self.get(f"/repos/{full_name}/readme", accept=self.RAW_ACCEPT)
        except StatusError as e:
            if e.code == 404:
                return None
            raise
        return response.text

    async def list_releases(self, full_name: str) -> list[ReleaseNote]:
        """Fetch the repository's releases, newest first."""
        data = await self._get_list(f"/repos/{full_name}/releases")
        return _parse(ReleaseNote, data)

    async def list_commits(self, full_name: str, per_page: int = COMMIT_PAGE_SIZE) -> list[CommitRecord]:
        """Fetch the most recent commits of the default branch.

        An empty repository answers 409; that is reported as no commits.
        """
        try:
            data = await self._get_list(f"/repos/{full_name}/commits", params={"per_page": per_page})
        except StatusError as e:
            if e.code == 409:
                return []
            raise
        return _parse(CommitRecord, data)

    async def list_contributors(self, full_name: str) -> list[Contributor]:
        """Fetch the repository's contributors, most active first."""
        data = await self._get_list(f"/repos/{full_name}/contributors")
        return _parse(Contributor, data)
