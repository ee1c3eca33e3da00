"""sponsor-ledger: record sponsorship payments as commits, once per month."""

from .errors import (
    ConfigurationError,
    DuplicateRecordError,
    PersistenceError,
    RepositoryAccessError,
    SponsorLedgerError,
    UpstreamError,
)
from .models import Period, SponsorshipFact, canonical_message
from .reconciler import Reconciler, RunReport
from .source import FetchResult, SponsorshipSource
from .writer import FactOutcome, OutcomeStatus, RecordWriter

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "DuplicateRecordError",
    "FactOutcome",
    "FetchResult",
    "OutcomeStatus",
    "Period",
    "PersistenceError",
    "Reconciler",
    "RecordWriter",
    "RepositoryAccessError",
    "RunReport",
    "SponsorLedgerError",
    "SponsorshipFact",
    "SponsorshipSource",
    "UpstreamError",
    "canonical_message",
]
