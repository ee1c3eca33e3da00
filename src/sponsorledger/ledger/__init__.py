"""Commit history and git working copy."""

from .git import ExecResult, GitRepository
from .history import HISTORY_WINDOW, HistoryLedger

__all__ = ["ExecResult", "GitRepository", "HISTORY_WINDOW", "HistoryLedger"]
