"""Sponsorship source backed by the GitHub GraphQL API."""

import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from .client import GitHubClient
from .errors import UpstreamError
from .models import DEFAULT_CURRENCY, SponsorshipFact

logger = logging.getLogger(__name__)

# Only the first page is read; sponsorships past the 100th are not recorded.
MAX_SPONSORSHIPS = 100

SPONSORSHIPS_QUERY = """
query {
  viewer {
    sponsorshipsAsSponsor(first: %d) {
      nodes {
        sponsorable {
          ... on User {
            login
          }
          ... on Organization {
            login
          }
        }
        tier {
          monthlyPriceInDollars
        }
        createdAt
      }
    }
  }
}
""" % MAX_SPONSORSHIPS


@dataclass
class FetchResult:
    """Outcome of a sponsorship fetch.

    Exactly one of the two variants is meaningful: `error` is None when the
    fetch succeeded (possibly with zero facts), otherwise `facts` is empty.
    """

    facts: list[SponsorshipFact] = field(default_factory=list)
    error: UpstreamError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: UpstreamError) -> "FetchResult":
        return cls(facts=[], error=error)


def _require(mapping: Any, key: str, where: str) -> Any:
    """Return mapping[key], raising UpstreamError if it is absent or null."""
    if not isinstance(mapping, dict):
        raise UpstreamError(f"Malformed response: {where} is not an object")
    value = mapping.get(key)
    if value is None:
        raise UpstreamError(f"Malformed response: missing {where}.{key}")
    return value


def parse_sponsorships(payload: Any) -> list[SponsorshipFact]:
    """Map a GraphQL response body to facts.

    Fails on the first incomplete node rather than emitting a partial fact.

    Raises:
        UpstreamError: If the payload reports errors or is missing fields.
    """
    if isinstance(payload, dict) and payload.get("errors"):
        messages = "; ".join(
            str(err.get("message", err)) if isinstance(err, dict) else str(err)
            for err in payload["errors"]
        )
        raise UpstreamError(f"GraphQL query failed: {messages}")

    data = _require(payload, "data", "response")
    viewer = _require(data, "viewer", "data")
    sponsorships = _require(viewer, "sponsorshipsAsSponsor", "viewer")
    nodes = _require(sponsorships, "nodes", "sponsorshipsAsSponsor")
    if not isinstance(nodes, list):
        raise UpstreamError("Malformed response: nodes is not a list")

    facts: list[SponsorshipFact] = []
    for position, node in enumerate(nodes, start=1):
        where = f"nodes[{position - 1}]"
        # User and Organization both expose `login`
        sponsorable = _require(node, "sponsorable", where)
        login = _require(sponsorable, "login", f"{where}.sponsorable")
        tier = _require(node, "tier", where)
        amount = _require(tier, "monthlyPriceInDollars", f"{where}.tier")
        created_at = _require(node, "createdAt", where)

        try:
            fact = SponsorshipFact(
                sponsor_login=login,
                amount=amount,
                created_at=created_at,
                currency=DEFAULT_CURRENCY,
            )
        except ValueError as e:
            raise UpstreamError(f"Invalid sponsorship at {where}: {e}") from e
        facts.append(fact)

    return facts


class SponsorshipSource:
    """Fetches the authenticated viewer's outbound sponsorships."""

    def __init__(self, client: GitHubClient) -> None:
        self._client = client

    async def fetch(self) -> FetchResult:
        """Fetch current sponsorship facts.

        Never raises for upstream failures; they are returned as
        FetchResult.error so callers can tell "none" from "failed".
        """
        try:
            response = await self._client.graphql(SPONSORSHIPS_QUERY)
        except httpx.TimeoutException:
            return self._fail(f"Sponsorship query timed out after {self._client.timeout}s")
        except httpx.RequestError as e:
            return self._fail(f"Sponsorship query failed: {e}")

        if not response.is_success:
            return self._fail(
                f"Sponsorship query failed: HTTP {response.status_code} {response.reason_phrase}"
            )

        try:
            payload = response.json()
        except ValueError as e:
            return self._fail(f"Sponsorship query returned invalid JSON: {e}")

        try:
            facts = parse_sponsorships(payload)
        except UpstreamError as e:
            logger.error("Error fetching sponsored profiles: %s", e)
            return FetchResult.failure(e)

        if len(facts) >= MAX_SPONSORSHIPS:
            logger.warning(
                "Fetched %d sponsorships; any beyond the first %d are not recorded",
                len(facts),
                MAX_SPONSORSHIPS,
            )
        logger.info("Fetched %d sponsorship(s)", len(facts))
        return FetchResult(facts=facts)

    def _fail(self, message: str) -> FetchResult:
        logger.error("Error fetching sponsored profiles: %s", message)
        return FetchResult.failure(UpstreamError(message))
