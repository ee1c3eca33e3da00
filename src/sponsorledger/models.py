"""Data models for sponsorship facts and ledger records."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

# monthlyPriceInDollars is the only price the API exposes
DEFAULT_CURRENCY = "USD"


@dataclass(frozen=True)
class Period:
    """Calendar month a run records sponsorships for."""

    month: int
    year: int

    def __post_init__(self) -> None:
        if not 1 <= self.month <= 12:
            raise ValueError(f"month out of range: {self.month}")

    @classmethod
    def from_datetime(cls, moment: datetime) -> "Period":
        """Period containing the given moment."""
        return cls(month=moment.month, year=moment.year)

    @property
    def label(self) -> str:
        """Full month name and 4-digit year, e.g. 'March 2024'."""
        return f"{datetime(self.year, self.month, 1):%B} {self.year:04d}"


@dataclass(frozen=True)
class SponsorshipFact:
    """One sponsorship relationship observed at fetch time.

    Attributes:
        sponsor_login: Login of the sponsored user or organization.
        amount: Monthly tier price.
        created_at: ISO-8601 timestamp when the sponsorship began.
        currency: Currency code, fixed by convention.
    """

    sponsor_login: str
    amount: int | float
    created_at: str
    currency: str = DEFAULT_CURRENCY

    def __post_init__(self) -> None:
        if not self.sponsor_login:
            raise ValueError("sponsor_login must be non-empty")
        if isinstance(self.amount, bool) or not isinstance(self.amount, (int, float)):
            raise ValueError(f"amount must be a number, got {self.amount!r}")
        if self.amount < 0:
            raise ValueError(f"amount must be non-negative, got {self.amount}")

    def to_artifact(self) -> dict[str, Any]:
        """Fields written to the per-fact JSON artifact."""
        return {
            "sponsorLogin": self.sponsor_login,
            "sponsorshipAmount": self.amount,
            "currency": self.currency,
            "createdAt": self.created_at,
        }


def format_amount(amount: int | float) -> str:
    """Render an amount without a trailing '.0' for whole numbers."""
    if isinstance(amount, float) and amount.is_integer():
        return str(int(amount))
    return str(amount)


def canonical_message(fact: SponsorshipFact, period: Period) -> str:
    """Commit message that doubles as the dedup key for a fact in a period."""
    return (
        f"{format_amount(fact.amount)} {fact.currency} sponsorship paid to "
        f"@{fact.sponsor_login} for {period.label}"
    )


def artifact_name(index: int) -> str:
    """File name for the fact at 1-based position `index` in a run."""
    if index < 1:
        raise ValueError("artifact index is 1-based")
    return f"sponsoredProfile_{index}.json"
