"""Reconciliation run: fetch sponsorships, record each unseen one."""

import asyncio
import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from .errors import UpstreamError
from .logging import JSONLLogger, get_logger
from .models import Period, SponsorshipFact, artifact_name, canonical_message
from .source import SponsorshipSource
from .writer import FactOutcome, OutcomeStatus, RecordWriter

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class RunReport:
    """Per-fact outcomes of one run."""

    period: Period
    outcomes: list[FactOutcome] = field(default_factory=list)
    fetch_error: UpstreamError | None = None
    fail_on_duplicate: bool = True
    completed_at: datetime | None = None

    def _count(self, status: OutcomeStatus) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status is status)

    @property
    def committed(self) -> int:
        return self._count(OutcomeStatus.COMMITTED)

    @property
    def duplicates(self) -> int:
        return self._count(OutcomeStatus.DUPLICATE)

    @property
    def errors(self) -> int:
        return self._count(OutcomeStatus.FAILED)

    @property
    def failed(self) -> bool:
        """Whether the run should be reported as failed to the host."""
        if self.fetch_error is not None or self.errors:
            return True
        return self.fail_on_duplicate and self.duplicates > 0

    def failure_message(self) -> str | None:
        """Message of the first reportable problem, or None."""
        if self.fetch_error is not None:
            return f"Error fetching sponsored profiles: {self.fetch_error}"
        for outcome in self.outcomes:
            if outcome.status is OutcomeStatus.FAILED:
                return str(outcome.error)
        if self.fail_on_duplicate:
            for outcome in self.outcomes:
                if outcome.status is OutcomeStatus.DUPLICATE:
                    return str(outcome.error)
        return None


class Reconciler:
    """Drives one run from fetch through every per-fact write."""

    def __init__(
        self,
        source: SponsorshipSource,
        writer: RecordWriter,
        clock: Callable[[], datetime] = _utcnow,
        fail_on_duplicate: bool = True,
        run_logger: JSONLLogger | None = None,
    ) -> None:
        self.source = source
        self.writer = writer
        self.clock = clock
        self.fail_on_duplicate = fail_on_duplicate
        self._run_logger = run_logger
        # The working copy accepts one git operation sequence at a time.
        self._working_copy = asyncio.Lock()

    @property
    def run_logger(self) -> JSONLLogger:
        if self._run_logger is None:
            self._run_logger = get_logger()
        return self._run_logger

    async def run(self) -> RunReport:
        """Run one reconciliation and report every fact's outcome."""
        self.run_logger.set_run_id(f"run-{uuid.uuid4().hex[:8]}")

        result = await self.source.fetch()
        period = Period.from_datetime(self.clock())
        report = RunReport(period=period, fail_on_duplicate=self.fail_on_duplicate)

        self.run_logger.log_fetch(
            len(result.facts), error=str(result.error) if result.error else None
        )
        if not result.ok:
            report.fetch_error = result.error
        elif not result.facts:
            logger.info("No sponsorships found")
        else:
            tasks = [
                asyncio.create_task(self._record(index, fact, period))
                for index, fact in enumerate(result.facts, start=1)
            ]
            report.outcomes = list(await asyncio.gather(*tasks))

        report.completed_at = self.clock()
        self.run_logger.log_run_complete(
            failed=report.failed,
            committed=report.committed,
            duplicates=report.duplicates,
            errors=report.errors,
        )
        return report

    async def _record(self, index: int, fact: SponsorshipFact, period: Period) -> FactOutcome:
        message = canonical_message(fact, period)
        path = artifact_name(index)
        # asyncio.Lock wakes waiters in FIFO order, so facts commit in fetch order.
        async with self._working_copy:
            return await self.writer.write_if_absent(fact, message, path)
