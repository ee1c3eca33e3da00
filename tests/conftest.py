"""Shared fixtures."""

from pathlib import Path

import pytest

from sponsorledger import logging as run_logging


@pytest.fixture(autouse=True)
def isolated_run_log(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Keep the global JSONL logger out of the home directory."""
    monkeypatch.setattr(run_logging, "_logger", run_logging.JSONLLogger(log_dir=tmp_path / "run-logs"))
    yield
