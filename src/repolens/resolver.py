"""Account resolution.

A handle may name an organization or a user; GitHub serves their
repositories from different endpoints. The organization endpoint is tried
first and a 404 falls back to the user endpoint exactly once.
"""

import structlog

from repolens.exceptions import AccountResolutionError, RepoLensError, StatusError, TransportError
from repolens.models import AccountHandle, AccountKind, Repository
from repolens.parsers.github import GitHubClient


logger = structlog.get_logger(__name__)


class AccountResolver:
    """Resolves a handle to its repository collection.

    The bearer credential, if any, travels with the client. What each handle
    resolved to is remembered for the lifetime of the resolver.
    """

    def __init__(self, client: GitHubClient) -> None:
        self.client = client
        self._kinds: dict[str, AccountKind] = {}

    def resolution(self, handle: str) -> AccountHandle:
        """What ``handle`` is known to be so far."""
        return AccountHandle(handle, self._kinds.get(handle, AccountKind.UNRESOLVED))

    def forget(self) -> None:
        self._kinds.clear()

    async def resolve(self, handle: str) -> list[Repository]:
        """Fetch the repositories of ``handle``.

        Raises:
            AccountResolutionError: If neither endpoint answers with a
                listing, or GitHub could not be reached.
        """
        handle = handle.strip()
        if not handle:
            raise AccountResolutionError(handle, message="No account handle configured")

        if self._kinds.get(handle) is AccountKind.USER:
            return await self._list_user(handle)

        try:
            repositories = await self.client.list_org_repos(handle)
        except StatusError as e:
            if e.code != 404:
                raise AccountResolutionError(handle, e.code) from e
            logger.info("org_not_found_trying_user", handle=handle)
            return await self._list_user(handle)
        except RepoLensError as e:
            raise _unreachable(handle, e) from e

        self._remember(handle, AccountKind.ORGANIZATION, len(repositories))
        return repositories

    async def _list_user(self, handle: str) -> list[Repository]:
        try:
            repositories = await self.client.list_user_repos(handle)
        except StatusError as e:
            raise AccountResolutionError(handle, e.code) from e
        except RepoLensError as e:
            raise _unreachable(handle, e) from e

        self._remember(handle, AccountKind.USER, len(repositories))
        return repositories

    def _remember(self, handle: str, kind: AccountKind, count: int) -> None:
        self._kinds[handle] = kind
        logger.info("account_resolved", handle=handle, kind=kind.value, repositories=count)


def _unreachable(handle: str, error: RepoLensError) -> AccountResolutionError:
    if isinstance(error, TransportError):
        return AccountResolutionError(handle, None, f"Could not reach GitHub: {error}")
    return AccountResolutionError(handle, None, str(error))
