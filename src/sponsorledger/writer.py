"""Writes one sponsorship record and commits it to the ledger."""

import json
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import CommitAuthor
from .errors import (
    DuplicateRecordError,
    PersistenceError,
    RepositoryAccessError,
    SponsorLedgerError,
)
from .ledger import GitRepository, HistoryLedger
from .logging import JSONLLogger, get_logger
from .models import SponsorshipFact

logger = logging.getLogger(__name__)


class OutcomeStatus(Enum):
    """Result of attempting to record one fact."""

    COMMITTED = "committed"
    DUPLICATE = "duplicate"
    FAILED = "failed"


@dataclass
class FactOutcome:
    """Per-fact entry of a run report."""

    fact: SponsorshipFact
    commit_message: str
    path: str
    status: OutcomeStatus
    error: SponsorLedgerError | None = None

    @property
    def committed(self) -> bool:
        return self.status is OutcomeStatus.COMMITTED


def write_artifact(fact: SponsorshipFact, path: Path) -> None:
    """Serialize a fact as pretty-printed JSON, replacing any existing file.

    Raises:
        PersistenceError: If the file cannot be written.
    """
    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(fact.to_artifact(), f, indent=2)
    except OSError as e:
        raise PersistenceError(f"Could not write {path}: {e}") from e


class RecordWriter:
    """Records facts in the ledger, at most one commit per canonical message."""

    def __init__(
        self,
        repository: GitRepository,
        history: HistoryLedger,
        author: CommitAuthor | None = None,
        run_logger: JSONLLogger | None = None,
    ) -> None:
        self.repository = repository
        self.history = history
        self.author = author or CommitAuthor()
        self._run_logger = run_logger

    @property
    def run_logger(self) -> JSONLLogger:
        if self._run_logger is None:
            self._run_logger = get_logger()
        return self._run_logger

    async def write_if_absent(
        self,
        fact: SponsorshipFact,
        commit_message: str,
        path: str,
    ) -> FactOutcome:
        """Write the artifact and commit it unless the message is already recorded.

        Errors are captured in the returned outcome instead of raised, so one
        fact's failure never stops the others.

        Args:
            fact: The sponsorship to record.
            commit_message: Canonical message, also the dedup key.
            path: Artifact path relative to the working copy.

        Returns:
            FactOutcome with status COMMITTED, DUPLICATE or FAILED.
        """
        try:
            outcome = await self._write(fact, commit_message, path)
        except (PersistenceError, RepositoryAccessError) as e:
            logger.error("Recording %r failed: %s", commit_message, e)
            outcome = FactOutcome(fact, commit_message, path, OutcomeStatus.FAILED, error=e)

        self.run_logger.log_outcome(
            outcome.status.value,
            commit_message,
            path,
            error=str(outcome.error) if outcome.error else None,
        )
        return outcome

    async def _write(self, fact: SponsorshipFact, commit_message: str, path: str) -> FactOutcome:
        write_artifact(fact, self.repository.workdir / path)

        if await self.history.has_record(commit_message):
            logger.warning("Duplicate commit found: %s", commit_message)
            return FactOutcome(
                fact,
                commit_message,
                path,
                OutcomeStatus.DUPLICATE,
                error=DuplicateRecordError(commit_message),
            )

        await self.repository.add(path)
        await self.repository.commit(commit_message, path, self.author)
        sha = await self.repository.head()
        try:
            await self.repository.push()
        except PersistenceError:
            await self._undo_unpushed(sha, commit_message)
            raise
        self.history.record(commit_message)

        logger.info("Committed %s", commit_message)
        return FactOutcome(fact, commit_message, path, OutcomeStatus.COMMITTED)

    async def _undo_unpushed(self, sha: str, commit_message: str) -> None:
        """Remove a commit whose push failed so a later push cannot publish it."""
        try:
            await self.repository.undo_commit(sha)
        except PersistenceError as e:
            # The commit stays local and goes out with the next push, so the
            # message must not be committed a second time this run.
            logger.error("Could not undo unpushed commit %s: %s", sha, e)
            self.history.record(commit_message)
        else:
            logger.info("Undid unpushed commit %s (%s)", sha, commit_message)
