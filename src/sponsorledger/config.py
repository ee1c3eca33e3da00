"""Run configuration loaded from the process environment.

The action runs inside a GitHub workflow, so most values come from the
variables the runner already exports (GITHUB_TOKEN, GITHUB_REPOSITORY, ...).
Tuning knobs use the SPONSOR_LEDGER_ prefix.
"""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.github.com"
DEFAULT_LOG_DIR = Path.home() / ".sponsor-ledger" / "logs"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CommitAuthor:
    """Identity recorded on every ledger commit."""

    name: str = "github-actions[bot]"
    email: str = "github-actions[bot]@users.noreply.github.com"


@dataclass
class LedgerConfig:
    """Configuration for one reconciliation run.

    Attributes:
        token: Bearer credential for the GitHub API.
        owner: Owner half of GITHUB_REPOSITORY.
        repo: Repository half of GITHUB_REPOSITORY.
        branch: Branch whose history is scanned (API default branch if None).
        api_url: Base URL of the GitHub REST/GraphQL API.
        workdir: Local working copy where artifacts are written and committed.
        http_timeout: Seconds allowed for each API request.
        git_timeout: Seconds allowed for each git subprocess.
        fail_on_duplicate: Whether a detected duplicate fails the run.
        log_dir: Directory for the JSONL run log.
        author: Commit identity passed to every commit.
    """

    token: str
    owner: str
    repo: str
    branch: str | None = None
    api_url: str = DEFAULT_API_URL
    workdir: Path = field(default_factory=Path.cwd)
    http_timeout: float = 10.0
    git_timeout: float = 30.0
    fail_on_duplicate: bool = True
    log_dir: Path = DEFAULT_LOG_DIR
    author: CommitAuthor = field(default_factory=CommitAuthor)

    def __post_init__(self) -> None:
        if not self.token:
            raise ConfigurationError("GITHUB_TOKEN is not defined")
        if not self.owner or not self.repo:
            raise ConfigurationError("GITHUB_REPOSITORY is not defined")
        if self.http_timeout <= 0 or self.git_timeout <= 0:
            raise ConfigurationError("timeouts must be positive")

    @property
    def repository(self) -> str:
        """Repository in owner/repo form."""
        return f"{self.owner}/{self.repo}"


def parse_repository(value: str | None) -> tuple[str, str]:
    """Split an 'owner/repo' string.

    Raises:
        ConfigurationError: If the value is missing or not in owner/repo form.
    """
    if not value:
        raise ConfigurationError("GITHUB_REPOSITORY is not defined")
    owner, sep, repo = value.strip().partition("/")
    if not sep or not owner or not repo or "/" in repo:
        raise ConfigurationError(
            f"GITHUB_REPOSITORY must be in owner/repo form, got {value!r}"
        )
    return owner, repo


def branch_from_env(env: Mapping[str, str]) -> str | None:
    """Branch whose history is scanned, or None for the default branch.

    GITHUB_REF_NAME is only a branch when GITHUB_REF is under refs/heads/;
    on pull_request events it is "<n>/merge", which the commits API rejects.
    """
    ref = env.get("GITHUB_REF", "")
    if ref.startswith("refs/heads/"):
        return ref[len("refs/heads/"):]
    if ref:
        return None
    return env.get("GITHUB_REF_NAME") or None


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def load_config(env: Mapping[str, str] | None = None) -> LedgerConfig:
    """Build a LedgerConfig from environment variables.

    Args:
        env: Mapping to read from. Uses os.environ if None.

    Returns:
        Validated LedgerConfig.

    Raises:
        ConfigurationError: If a required variable is missing or malformed.
    """
    env = os.environ if env is None else env

    token = env.get("GITHUB_TOKEN", "").strip()
    if not token:
        raise ConfigurationError("GITHUB_TOKEN is not defined")
    owner, repo = parse_repository(env.get("GITHUB_REPOSITORY"))

    workspace = env.get("GITHUB_WORKSPACE")
    workdir = Path(workspace) if workspace else Path.cwd()

    log_dir = env.get("SPONSOR_LEDGER_LOG_DIR")

    author = CommitAuthor(
        name=env.get("SPONSOR_LEDGER_AUTHOR_NAME") or CommitAuthor.name,
        email=env.get("SPONSOR_LEDGER_AUTHOR_EMAIL") or CommitAuthor.email,
    )

    config = LedgerConfig(
        token=token,
        owner=owner,
        repo=repo,
        branch=branch_from_env(env),
        api_url=(env.get("GITHUB_API_URL") or DEFAULT_API_URL).rstrip("/"),
        workdir=workdir,
        http_timeout=_get_float(env, "SPONSOR_LEDGER_HTTP_TIMEOUT", 10.0),
        git_timeout=_get_float(env, "SPONSOR_LEDGER_GIT_TIMEOUT", 30.0),
        fail_on_duplicate=_get_bool(env, "SPONSOR_LEDGER_FAIL_ON_DUPLICATE", True),
        log_dir=Path(log_dir).expanduser() if log_dir else DEFAULT_LOG_DIR,
        author=author,
    )
    logger.debug("Loaded config for %s (workdir=%s)", config.repository, workdir)
    return config
