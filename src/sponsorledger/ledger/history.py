"""Commit history used as the dedup ledger."""

import logging

import httpx

from ..client import GitHubClient
from ..errors import RepositoryAccessError

logger = logging.getLogger(__name__)

# Records older than the most recent HISTORY_WINDOW commits are not seen, so a
# ledger that outgrows the window can be recorded twice.
HISTORY_WINDOW = 100


class HistoryLedger:
    """Membership test over the repository's recent commit messages."""

    def __init__(
        self,
        client: GitHubClient,
        owner: str,
        repo: str,
        branch: str | None = None,
        window: int = HISTORY_WINDOW,
    ) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self.branch = branch
        self.window = window
        self._recorded: set[str] = set()

    async def list_messages(self) -> list[str]:
        """List the messages of the most recent commits, newest first.

        Raises:
            RepositoryAccessError: If the history cannot be listed.
        """
        try:
            response = await self._client.list_commits(
                self.owner, self.repo, per_page=self.window, sha=self.branch
            )
        except httpx.TimeoutException:
            raise RepositoryAccessError(
                f"Listing commits of {self.owner}/{self.repo} timed out after {self._client.timeout}s"
            ) from None
        except httpx.RequestError as e:
            raise RepositoryAccessError(f"Listing commits failed: {e}") from e

        if not response.is_success:
            raise RepositoryAccessError(
                f"Listing commits of {self.owner}/{self.repo} failed: "
                f"HTTP {response.status_code} {response.reason_phrase}"
            )

        try:
            commits = response.json()
        except ValueError as e:
            raise RepositoryAccessError(f"Commit list is not valid JSON: {e}") from e
        if not isinstance(commits, list):
            raise RepositoryAccessError("Commit list has an unexpected shape")

        messages = []
        for item in commits[: self.window]:
            commit = item.get("commit") if isinstance(item, dict) else None
            if not isinstance(commit, dict) or not isinstance(commit.get("message"), str):
                raise RepositoryAccessError("Commit entry is missing commit.message")
            messages.append(commit["message"])
        return messages

    async def has_record(self, message: str) -> bool:
        """Check whether a commit with exactly this message exists."""
        if message in self._recorded:
            return True
        messages = await self.list_messages()
        found = message in messages
        logger.debug("History check for %r: %s", message, "found" if found else "absent")
        return found

    def record(self, message: str) -> None:
        """Remember a message committed during this run."""
        self._recorded.add(message)
