"""sponsor-ledger entry point."""

import asyncio
import logging
import sys
from datetime import datetime

from dotenv import find_dotenv, load_dotenv

from .action import ActionContext
from .client import GitHubClient
from .config import LedgerConfig, load_config
from .errors import ConfigurationError
from .ledger import GitRepository, HistoryLedger
from .logging import configure_logger
from .reconciler import Reconciler, RunReport
from .source import SponsorshipSource
from .writer import OutcomeStatus, RecordWriter

logger = logging.getLogger(__name__)


def _time_string(moment: datetime) -> str:
    """Local time of day with zone, e.g. '14:03:22 GMT+0000 (UTC)'."""
    local = moment.astimezone()
    return local.strftime("%H:%M:%S GMT%z (%Z)")


async def reconcile(config: LedgerConfig) -> RunReport:
    """Wire up the components from config and run one reconciliation."""
    run_logger = configure_logger(config.log_dir)
    async with GitHubClient(config.token, config.api_url, config.http_timeout) as client:
        history = HistoryLedger(client, config.owner, config.repo, branch=config.branch)
        repository = GitRepository(config.workdir, timeout=config.git_timeout, run_logger=run_logger)
        writer = RecordWriter(repository, history, author=config.author, run_logger=run_logger)
        reconciler = Reconciler(
            SponsorshipSource(client),
            writer,
            fail_on_duplicate=config.fail_on_duplicate,
            run_logger=run_logger,
        )
        return await reconciler.run()


def _print_report(report: RunReport) -> None:
    print(f"Sponsorships for {report.period.label}:")
    if not report.outcomes and report.fetch_error is None:
        print("  (none)")
    for outcome in report.outcomes:
        line = f"  [{outcome.status.value}] {outcome.commit_message} ({outcome.path})"
        if outcome.error is not None and outcome.status is OutcomeStatus.FAILED:
            line += f": {outcome.error}"
        print(line)


def run(action: ActionContext | None = None) -> int:
    """Run the action once and return the process exit code."""
    action = action or ActionContext()

    ms = action.get_input("milliseconds")
    # Accepted for compatibility with existing workflows; nothing waits on it.
    action.debug(f"Waiting {ms} milliseconds ...")

    try:
        config = load_config()
    except ConfigurationError as e:
        action.set_failed(str(e))
        action.set_output("time", _time_string(datetime.now()))
        return action.exit_code

    report = asyncio.run(reconcile(config))
    _print_report(report)

    message = report.failure_message()
    if report.failed and message:
        action.set_failed(message)

    action.set_output("time", _time_string(report.completed_at or datetime.now()))
    return action.exit_code


def main() -> None:
    """Main entry point."""
    load_dotenv(find_dotenv(usecwd=True))

    action = ActionContext()
    logging.basicConfig(
        level=logging.DEBUG if action.is_debug() else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    sys.exit(run(action))


if __name__ == "__main__":
    main()
