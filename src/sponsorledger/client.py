"""Thin async GitHub API client over httpx."""

from typing import Any

import httpx

from .config import DEFAULT_API_URL


class GitHubClient:
    """Authenticated client for the GitHub GraphQL and REST APIs.

    Owns one httpx.AsyncClient; use as an async context manager or call
    aclose() when done.
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._http = httpx.AsyncClient(
            base_url=api_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"bearer {token}",
                "Accept": "application/vnd.github+json",
                "User-Agent": "sponsor-ledger",
            },
        )

    @property
    def timeout(self) -> float:
        return self._timeout

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._http.aclose()

    async def graphql(self, query: str, variables: dict[str, Any] | None = None) -> httpx.Response:
        """POST a GraphQL query."""
        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables
        return await self._http.post("/graphql", json=payload)

    async def list_commits(
        self,
        owner: str,
        repo: str,
        per_page: int = 100,
        sha: str | None = None,
    ) -> httpx.Response:
        """GET the most recent commits of a repository."""
        params: dict[str, Any] = {"per_page": per_page}
        if sha:
            params["sha"] = sha
        return await self._http.get(f"/repos/{owner}/{repo}/commits", params=params)
