"""Git working copy driven through asyncio subprocesses."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from ..config import CommitAuthor
from ..errors import PersistenceError
from ..logging import JSONLLogger, get_logger

logger = logging.getLogger(__name__)


@dataclass
class ExecResult:
    """Result of a git invocation."""

    exit_code: int
    output: str
    duration_ms: float
    argv: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


class GitRepository:
    """A local working copy. Not safe for concurrent operations."""

    def __init__(
        self,
        workdir: Path,
        timeout: float = 30.0,
        git: str = "git",
        run_logger: JSONLLogger | None = None,
    ) -> None:
        self.workdir = Path(workdir)
        self.timeout = timeout
        self._git = git
        self._run_logger = run_logger

    @property
    def run_logger(self) -> JSONLLogger:
        if self._run_logger is None:
            self._run_logger = get_logger()
        return self._run_logger

    async def run(self, *args: str) -> ExecResult:
        """Run git with the given arguments in the working copy.

        Raises:
            PersistenceError: If git cannot be started or exceeds the timeout.
        """
        argv = [self._git, *args]
        start_time = time.monotonic()

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                cwd=self.workdir,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
            )
        except OSError as e:
            raise PersistenceError(f"Could not start git: {e}", argv=argv) from e

        try:
            output, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            duration_ms = (time.monotonic() - start_time) * 1000
            self.run_logger.log_command(argv, -1, duration_ms)
            raise PersistenceError(
                f"{' '.join(argv)} timed out after {self.timeout}s", argv=argv, exit_code=-1
            ) from None

        duration_ms = (time.monotonic() - start_time) * 1000
        exit_code = proc.returncode if proc.returncode is not None else -1
        self.run_logger.log_command(argv, exit_code, duration_ms)

        return ExecResult(
            exit_code=exit_code,
            output=output.decode("utf-8", errors="replace"),
            duration_ms=duration_ms,
            argv=argv,
        )

    async def _check(self, *args: str) -> ExecResult:
        result = await self.run(*args)
        if not result.ok:
            logger.error("%s exited %d: %s", " ".join(result.argv), result.exit_code, result.output.strip())
            raise PersistenceError(
                f"{' '.join(result.argv)} failed with exit code {result.exit_code}: "
                f"{result.output.strip()}",
                argv=result.argv,
                exit_code=result.exit_code,
            )
        return result

    async def add(self, path: str) -> ExecResult:
        """Stage a single path."""
        return await self._check("add", "--", path)

    async def commit(self, message: str, path: str, author: CommitAuthor) -> ExecResult:
        """Commit only `path` with `message`, attributed to `author`.

        The identity is passed with -c so repository and global config are
        left untouched. The artifact is usually byte-identical to last
        month's, so the commit is allowed to carry no changes.
        """
        return await self._check(
            "-c", f"user.name={author.name}",
            "-c", f"user.email={author.email}",
            "commit", "--allow-empty", "--message", message, "--", path,
        )

    async def head(self) -> str:
        """SHA of the current HEAD commit."""
        result = await self._check("rev-parse", "HEAD")
        return result.output.strip()

    async def undo_commit(self, sha: str) -> None:
        """Drop commit `sha` from the branch, keeping its changes staged.

        Raises:
            PersistenceError: If HEAD has moved past `sha` or the reset fails.
        """
        current = await self.head()
        if current != sha:
            raise PersistenceError(f"Refusing to undo {sha}: HEAD is now {current}")

        parent = await self.run("rev-parse", "--verify", "--quiet", f"{sha}^")
        if parent.ok:
            await self._check("reset", "--soft", parent.output.strip())
        else:
            # root commit: leave the branch unborn again
            await self._check("update-ref", "-d", "HEAD")

    async def push(self) -> ExecResult:
        """Push the current branch to its upstream."""
        return await self._check("push")
