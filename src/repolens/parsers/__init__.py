"""GitHub access and markdown post-processing for repolens."""

from .github import COMMIT_PAGE_SIZE, REPO_PAGE_SIZE, GitHubClient, RateLimitInfo
from .links import LinkRewriter, rewrite_url
from .toc import RenderedHeading, TableOfContentsExtractor, slugify

__all__ = [
    "COMMIT_PAGE_SIZE",
    "GitHubClient",
    "LinkRewriter",
    "REPO_PAGE_SIZE",
    "RateLimitInfo",
    "RenderedHeading",
    "TableOfContentsExtractor",
    "rewrite_url",
    "slugify",
]
