"""GitHub REST client used by the network-backed tools.

Thin async wrapper over httpx: one shared AsyncClient, the access token
attached per request by an auth flow that exposes it only while the header
is built, and every non-2xx answer turned into a RemoteError. No retries.
"""

from __future__ import annotations

from collections.abc import Generator
from typing import Any
from urllib.parse import quote

import httpx
import orjson
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from devtoolbox.foundation.errors import ErrorCode, RemoteError
from devtoolbox.foundation.logging import get_logger
from devtoolbox.foundation.secrets import Secrets

log = get_logger("devtoolbox.github")


# ─────────────────────────────────────────────────────────────────────────────
# Response Models
# ─────────────────────────────────────────────────────────────────────────────


class _GitHubModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class Organization(_GitHubModel):
    login: str
    url: str = ""
    email: str | None = None
    website_url: str | None = None


class SearchResponse(_GitHubModel):
    total_count: int = 0
    items: list[Organization] = Field(default_factory=list)


class Asset(_GitHubModel):
    name: str


class Release(_GitHubModel):
    tag_name: str
    assets: list[Asset] = Field(default_factory=list)


class Repository(_GitHubModel):
    name: str
    stargazers_count: int = 0
    language: str | None = None
    created_at: str = ""
    updated_at: str = ""
    pushed_at: str | None = None
    description: str | None = None
    releases: list[Release] = Field(default_factory=list)


_REPOS = TypeAdapter(list[Repository])
_RELEASES = TypeAdapter(list[Release])


# ─────────────────────────────────────────────────────────────────────────────
# Client
# ─────────────────────────────────────────────────────────────────────────────


class TokenAuth(httpx.Auth):
    """Attach `Authorization: token ...` from Secrets, if a token is present."""

    def __init__(self, secrets: Secrets) -> None:
        self._secrets = secrets

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        if not self._secrets.is_empty:
            with self._secrets.exposed() as token:
                request.headers["Authorization"] = f"token {token}"
        yield request


class GitHubClient:
    """Async GitHub API client.

    Example:
        >>> client = GitHubClient("https://api.github.com", secrets)
        >>> repos = await client.list_repos("octocat")
        >>> await client.aclose()
    """

    __slots__ = ("_client", "_base_url")

    def __init__(
        self,
        base_url: str,
        secrets: Secrets,
        *,
        timeout: float = 30.0,
        user_agent: str = "Dev-Toolbox/1.0",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not base_url.startswith("https://"):
            raise ValueError(f"GitHub base URL must be https: {base_url}")
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            auth=TokenAuth(secrets),
            headers={"User-Agent": user_agent, "Accept": "application/vnd.github+json"},
            timeout=timeout,
            follow_redirects=True,
            transport=transport,
        )

    async def _get(self, path: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
        except httpx.TimeoutException as e:
            raise RemoteError(f"Request timed out: {path}", code=ErrorCode.TIMEOUT) from e
        except httpx.TransportError as e:
            raise RemoteError(f"Network error: {e}", code=ErrorCode.NETWORK_ERROR) from e

        if not response.is_success:
            log.warning("github request failed", path=path, status=response.status_code)
            raise RemoteError(
                f"GitHub API error: {response.status_code} {response.reason_phrase}".rstrip(),
                status_code=response.status_code,
            )
        try:
            return orjson.loads(response.content)
        except orjson.JSONDecodeError as e:
            raise RemoteError(f"Malformed response from {path}", code=ErrorCode.PARSE_ERROR) from e

    async def search_orgs(self, query: str) -> list[Organization]:
        """Search organizations (`/search/users?q=<query> type:org`)."""
        data = await self._get("/search/users", {"q": f"{query} type:org"})
        try:
            return SearchResponse.model_validate(data).items
        except ValidationError as e:
            raise RemoteError("Unexpected search response shape", code=ErrorCode.PARSE_ERROR) from e

    async def list_repos(self, user: str) -> list[Repository]:
        data = await self._get(f"/users/{quote(user, safe='')}/repos")
        try:
            return _REPOS.validate_python(data)
        except ValidationError as e:
            raise RemoteError("Unexpected repository list shape", code=ErrorCode.PARSE_ERROR) from e

    async def list_releases(self, owner: str, repo: str) -> list[Release]:
        data = await self._get(f"/repos/{quote(owner, safe='')}/{quote(repo, safe='')}/releases")
        try:
            return _RELEASES.validate_python(data)
        except ValidationError as e:
            raise RemoteError("Unexpected release list shape", code=ErrorCode.PARSE_ERROR) from e

    async def aclose(self) -> None:
        await self._client.aclose()
