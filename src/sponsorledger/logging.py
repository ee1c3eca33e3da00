"""JSONL run log for reconciliation runs."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    run_id: str | None = None
    commit_message: str | None = None
    path: str | None = None
    argv: list[str] | None = None
    duration_ms: float | None = None
    exit_code: int | None = None
    status: str | None = None
    error: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values."""
        data = asdict(self)
        return {k: v for k, v in data.items() if v is not None and v != {} and v != []}


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "runs.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".sponsor-ledger" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)
        self._current_run_id: str | None = None

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def set_run_id(self, run_id: str | None) -> None:
        """Set the current run_id for all subsequent logs."""
        self._current_run_id = run_id

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict()) + "\n")

    def log(
        self,
        event: str,
        *,
        run_id: str | None = None,
        commit_message: str | None = None,
        path: str | None = None,
        argv: list[str] | None = None,
        duration_ms: float | None = None,
        exit_code: int | None = None,
        status: str | None = None,
        error: str | None = None,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            run_id=run_id or self._current_run_id,
            commit_message=commit_message,
            path=path,
            argv=argv,
            duration_ms=duration_ms,
            exit_code=exit_code,
            status=status,
            error=error,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_fetch(self, count: int, *, error: str | None = None) -> None:
        """Log the result of the sponsorship fetch."""
        self.log("fetch", status="error" if error else "ok", error=error, count=count)

    def log_command(
        self,
        argv: list[str],
        exit_code: int,
        duration_ms: float,
    ) -> None:
        """Log a git subprocess execution."""
        self.log(
            "command",
            argv=argv,
            exit_code=exit_code,
            duration_ms=duration_ms,
        )

    def log_outcome(
        self,
        status: str,
        commit_message: str,
        path: str,
        *,
        error: str | None = None,
    ) -> None:
        """Log the outcome of one fact's write."""
        self.log(
            "outcome",
            status=status,
            commit_message=commit_message,
            path=path,
            error=error,
        )

    def log_run_complete(self, *, failed: bool, committed: int, duplicates: int, errors: int) -> None:
        """Log when a run finishes."""
        self.log(
            "run_complete",
            status="failed" if failed else "ok",
            committed=committed,
            duplicates=duplicates,
            errors=errors,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
