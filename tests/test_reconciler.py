"""Tests for the reconciliation run."""

import asyncio
import json
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from sponsorledger.config import CommitAuthor
from sponsorledger.errors import PersistenceError, UpstreamError
from sponsorledger.logging import JSONLLogger
from sponsorledger.models import Period, SponsorshipFact
from sponsorledger.reconciler import Reconciler, RunReport
from sponsorledger.source import FetchResult, SponsorshipSource
from sponsorledger.writer import OutcomeStatus, RecordWriter

MARCH_2024 = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)
APRIL_2024 = datetime(2024, 4, 1, 0, 5, tzinfo=timezone.utc)


class FakeRemote:
    """Commit log shared by the fake history and working copy."""

    def __init__(self, messages: list[str] | None = None) -> None:
        self.messages = list(messages or [])


class FakeHistory:
    def __init__(self, remote: FakeRemote) -> None:
        self.remote = remote
        self.checks: list[str] = []

    async def has_record(self, message: str) -> bool:
        self.checks.append(message)
        await asyncio.sleep(0)
        return message in self.remote.messages[-100:]

    def record(self, message: str) -> None:
        pass


class FakeRepository:
    """Working copy that pushes straight into a FakeRemote."""

    def __init__(self, workdir: Path, remote: FakeRemote, fail_paths: set[str] | None = None) -> None:
        self.workdir = workdir
        self.remote = remote
        self.fail_paths = fail_paths or set()
        self.events: list[str] = []
        self._pending: str | None = None
        self._busy = False

    async def add(self, path: str) -> None:
        assert not self._busy, "git operations interleaved"
        self._busy = True
        self.events.append(f"add {path}")
        await asyncio.sleep(0)

    async def commit(self, message: str, path: str, author: CommitAuthor) -> None:
        await asyncio.sleep(0)
        if path in self.fail_paths:
            self._busy = False
            raise PersistenceError(f"commit of {path} failed", argv=["git", "commit"], exit_code=1)
        self.events.append(f"commit {path}")
        self._pending = message

    async def head(self) -> str:
        return f"fake-{len(self.remote.messages)}"

    async def push(self) -> None:
        await asyncio.sleep(0)
        self.events.append("push")
        assert self._pending is not None
        self.remote.messages.append(self._pending)
        self._pending = None
        self._busy = False


def _fact(login: str, amount: int = 10) -> SponsorshipFact:
    return SponsorshipFact(sponsor_login=login, amount=amount, created_at="2023-01-05T00:00:00Z")


def _source(result: FetchResult) -> MagicMock:
    source = MagicMock(spec=SponsorshipSource)
    source.fetch = AsyncMock(return_value=result)
    return source


@pytest.fixture
def run_logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")


@pytest.fixture
def workdir(tmp_path: Path) -> Path:
    path = tmp_path / "work"
    path.mkdir()
    return path


def _reconciler(
    facts: list[SponsorshipFact],
    repository: FakeRepository,
    run_logger: JSONLLogger,
    now: datetime = MARCH_2024,
    fail_on_duplicate: bool = True,
) -> Reconciler:
    writer = RecordWriter(repository, FakeHistory(repository.remote), run_logger=run_logger)  # type: ignore[arg-type]
    return Reconciler(
        _source(FetchResult(facts=facts)),
        writer,
        clock=lambda: now,
        fail_on_duplicate=fail_on_duplicate,
        run_logger=run_logger,
    )


@pytest.mark.asyncio
class TestRun:
    async def test_concrete_scenario(self, workdir: Path, run_logger: JSONLLogger) -> None:
        remote = FakeRemote(["Initial commit"])
        repository = FakeRepository(workdir, remote)

        report = await _reconciler([_fact("alice")], repository, run_logger).run()

        assert report.failed is False
        assert report.period == Period(3, 2024)
        assert remote.messages[-1] == "10 USD sponsorship paid to @alice for March 2024"
        artifact = json.loads((workdir / "sponsoredProfile_1.json").read_text())
        assert artifact == {
            "sponsorLogin": "alice",
            "sponsorshipAmount": 10,
            "currency": "USD",
            "createdAt": "2023-01-05T00:00:00Z",
        }

        # same month again: duplicate, no new commit
        report = await _reconciler([_fact("alice")], repository, run_logger).run()
        assert [o.status for o in report.outcomes] == [OutcomeStatus.DUPLICATE]
        assert report.failed is True
        assert len(remote.messages) == 2

        # next month: new record
        report = await _reconciler([_fact("alice")], repository, run_logger, now=APRIL_2024).run()
        assert report.committed == 1
        assert remote.messages[-1] == "10 USD sponsorship paid to @alice for April 2024"

    async def test_idempotent_within_month(self, workdir: Path, run_logger: JSONLLogger) -> None:
        remote = FakeRemote()
        repository = FakeRepository(workdir, remote)
        facts = [_fact("alice"), _fact("bob", 5), _fact("acme", 100)]

        first = await _reconciler(facts, repository, run_logger).run()
        second = await _reconciler(facts, repository, run_logger).run()

        assert first.committed == 3
        assert second.committed == 0
        assert second.duplicates == 3
        assert len(remote.messages) == 3

    async def test_failure_does_not_stop_later_facts(self, workdir: Path, run_logger: JSONLLogger) -> None:
        remote = FakeRemote()
        repository = FakeRepository(workdir, remote, fail_paths={"sponsoredProfile_2.json"})
        facts = [_fact("alice"), _fact("bob"), _fact("carol")]

        report = await _reconciler(facts, repository, run_logger).run()

        assert [o.status for o in report.outcomes] == [
            OutcomeStatus.COMMITTED,
            OutcomeStatus.FAILED,
            OutcomeStatus.COMMITTED,
        ]
        assert isinstance(report.outcomes[1].error, PersistenceError)
        assert report.failed is True
        assert report.failure_message() == "commit of sponsoredProfile_2.json failed"
        assert remote.messages == [
            "10 USD sponsorship paid to @alice for March 2024",
            "10 USD sponsorship paid to @carol for March 2024",
        ]

    async def test_writes_are_serialized_in_fetch_order(self, workdir: Path, run_logger: JSONLLogger) -> None:
        repository = FakeRepository(workdir, FakeRemote())
        facts = [_fact(name) for name in ("zed", "amy", "mia")]

        await _reconciler(facts, repository, run_logger).run()

        assert repository.events == [
            "add sponsoredProfile_1.json", "commit sponsoredProfile_1.json", "push",
            "add sponsoredProfile_2.json", "commit sponsoredProfile_2.json", "push",
            "add sponsoredProfile_3.json", "commit sponsoredProfile_3.json", "push",
        ]

    async def test_positional_artifact_names(self, workdir: Path, run_logger: JSONLLogger) -> None:
        repository = FakeRepository(workdir, FakeRemote())

        report = await _reconciler([_fact("alice"), _fact("bob")], repository, run_logger).run()

        assert [o.path for o in report.outcomes] == ["sponsoredProfile_1.json", "sponsoredProfile_2.json"]

    async def test_empty_input(self, workdir: Path, run_logger: JSONLLogger) -> None:
        repository = FakeRepository(workdir, FakeRemote())

        report = await _reconciler([], repository, run_logger).run()

        assert report.outcomes == []
        assert report.failed is False
        assert report.failure_message() is None
        assert repository.events == []
        assert list(workdir.iterdir()) == []

    async def test_fetch_error_writes_nothing(self, workdir: Path, run_logger: JSONLLogger) -> None:
        repository = FakeRepository(workdir, FakeRemote())
        writer = MagicMock(spec=RecordWriter)
        writer.write_if_absent = AsyncMock()
        error = UpstreamError("HTTP 401 Unauthorized")
        reconciler = Reconciler(
            _source(FetchResult.failure(error)), writer, clock=lambda: MARCH_2024, run_logger=run_logger
        )

        report = await reconciler.run()

        assert report.fetch_error is error
        assert report.failed is True
        assert "HTTP 401" in report.failure_message()
        writer.write_if_absent.assert_not_awaited()
        assert list(workdir.iterdir()) == []

    async def test_duplicate_not_fatal_when_disabled(self, workdir: Path, run_logger: JSONLLogger) -> None:
        message = "10 USD sponsorship paid to @alice for March 2024"
        repository = FakeRepository(workdir, FakeRemote([message]))

        report = await _reconciler([_fact("alice")], repository, run_logger, fail_on_duplicate=False).run()

        assert report.duplicates == 1
        assert report.failed is False

    async def test_duplicate_beyond_window_is_recorded_again(self, workdir: Path, run_logger: JSONLLogger) -> None:
        message = "10 USD sponsorship paid to @alice for March 2024"
        remote = FakeRemote([message] + [f"chore {i}" for i in range(100)])
        repository = FakeRepository(workdir, remote)

        report = await _reconciler([_fact("alice")], repository, run_logger).run()

        assert report.committed == 1
        assert remote.messages.count(message) == 2

    async def test_run_is_logged(self, workdir: Path, run_logger: JSONLLogger) -> None:
        repository = FakeRepository(workdir, FakeRemote())

        await _reconciler([_fact("alice")], repository, run_logger).run()

        events = [json.loads(line)["event"] for line in run_logger.log_path.read_text().splitlines()]
        assert events[0] == "fetch"
        assert "outcome" in events
        assert events[-1] == "run_complete"


class TestRunReport:
    def test_completed_only_is_success(self) -> None:
        report = RunReport(period=Period(3, 2024))
        assert report.failed is False
        assert report.committed == report.duplicates == report.errors == 0
