"""Exception types raised across the reconciliation run."""


class SponsorLedgerError(Exception):
    """Base class for all sponsor-ledger errors."""


class ConfigurationError(SponsorLedgerError):
    """Required environment or identity is missing or invalid."""


class UpstreamError(SponsorLedgerError):
    """The sponsorship query failed or returned a malformed shape."""


class RepositoryAccessError(SponsorLedgerError):
    """Commit history could not be listed."""


class DuplicateRecordError(SponsorLedgerError):
    """The canonical message already exists in the scanned history window."""

    def __init__(self, message: str) -> None:
        super().__init__(f"Duplicate commit found: {message}")
        self.commit_message = message


class PersistenceError(SponsorLedgerError):
    """A local file write or git subprocess failed."""

    def __init__(
        self,
        message: str,
        argv: list[str] | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.argv = argv
        self.exit_code = exit_code
