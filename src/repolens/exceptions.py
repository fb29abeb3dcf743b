"""Exception hierarchy for repolens.

Every error raised by the package derives from ``RepoLensError`` so hosts
can map the whole family onto a failed state with a single ``except``.
"""

from typing import Optional


class RepoLensError(Exception):
    """Base exception for all repolens errors."""


# ---------------------------------------------------------------------------
# Upstream (GitHub API) errors
# ---------------------------------------------------------------------------


class TransportError(RepoLensError):
    """Raised when the API could not be reached at all."""


class StatusError(RepoLensError):
    """Raised when the API answered with a non-success status."""

    def __init__(self, code: int, url: str = "", reason: str = "") -> None:
        self.code = code
        self.url = url
        message = f"API error: {code}"
        if reason:
            message = f"{message} {reason}"
        super().__init__(message)


class MalformedResponseError(RepoLensError):
    """Raised when a success response does not have the expected shape."""


class EmptyResultError(RepoLensError):
    """Raised when a request succeeded but there is nothing to show."""


class AccountResolutionError(RepoLensError):
    """Raised when a handle resolves to neither an organization nor a user."""

    def __init__(self, handle: str, status: Optional[int] = None, message: Optional[str] = None) -> None:
        self.handle = handle
        self.status = status
        if message is None:
            if status is None:
                message = f"Could not reach GitHub while resolving '{handle}'"
            else:
                message = f"API error: {status} while resolving '{handle}'"
        super().__init__(message)


# ---------------------------------------------------------------------------
# Local cache errors
# ---------------------------------------------------------------------------


class CacheDecodeError(RepoLensError):
    """Raised when a persisted value cannot be decoded."""

    def __init__(self, key: str, detail: str = "") -> None:
        self.key = key
        message = f"Cached value for '{key}' is unreadable"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class CacheUnavailableError(RepoLensError):
    """Raised when the cache database cannot be written."""

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        message = f"Cache {operation} failed"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)
