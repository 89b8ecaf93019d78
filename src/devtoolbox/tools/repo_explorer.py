"""Repository explorer: list a user's repositories with recent releases.

Fetched repositories are kept for the session and written to the cache
store at shutdown; Ctrl+L reads them back for the typed username.
"""

from __future__ import annotations

from pathlib import Path

import orjson
from pydantic import Field, ValidationError
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from devtoolbox.foundation.errors import InputError, RemoteError, StorageError
from devtoolbox.io.github import GitHubClient, Repository
from devtoolbox.io.store import CacheStore, RepoRecord, cached_repos, upsert_repos
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent

from .base import FormState, Tool, ToolMetadata, export_json, field_panel

EXPORT_FILE = "repo_results.json"


class RepoExplorerState(FormState):
    text_fields = ("username",)

    username: str = ""
    owner: str = ""
    results: list[Repository] = Field(default_factory=list)


class RepoExplorer(Tool[RepoExplorerState]):
    """Enter fetches repos, Ctrl+L loads cached repos, Ctrl+E exports."""

    metadata = ToolMetadata(
        name="repo_explorer",
        title="Repo Explorer",
        description="Browse a user's repositories and releases",
    )
    state_schema = RepoExplorerState

    def __init__(
        self,
        github: GitHubClient,
        store: CacheStore,
        export_dir: Path = Path("."),
        *,
        release_fetch_limit: int = 5,
    ) -> None:
        super().__init__()
        self._github = github
        self._store = store
        self._export_dir = export_dir
        self._release_fetch_limit = release_fetch_limit
        # owner -> repos fetched this session, written by save_cache
        self._fetched: dict[str, list[Repository]] = {}

    async def _handle(self, event: InputEvent, state: RepoExplorerState) -> str:
        if not isinstance(event, KeyEvent):
            return ""
        if event.is_ctrl("e"):
            await export_json(self._export_dir, EXPORT_FILE, [r.model_dump() for r in state.results])
            return f"Exported to {EXPORT_FILE}"
        if event.is_ctrl("l"):
            owner = self._username(state)
            state.results = await self._load_cached(owner)
            state.owner = owner
            return f"Loaded {len(state.results)} cached repositories"
        if event.code is Key.ENTER:
            owner = self._username(state)
            repos = await self._fetch(owner)
            state.results, state.owner = repos, owner
            self._fetched[owner] = repos
            return f"Fetched {len(repos)} repositories"
        return state.edit(event) or ""

    @staticmethod
    def _username(state: RepoExplorerState) -> str:
        if not (owner := state.username.strip()):
            raise InputError("Username required")
        return owner

    async def _fetch(self, owner: str) -> list[Repository]:
        repos = await self._github.list_repos(owner)
        for repo in repos[: self._release_fetch_limit]:
            try:
                repo.releases = await self._github.list_releases(owner, repo.name)
            except RemoteError as e:
                # HTTP errors on a release list leave that repo without releases
                if e.status_code is None:
                    raise
                self._log.debug("releases unavailable", repo=repo.name, status=e.status_code)
        self._log.info("repos fetched", owner=owner, count=len(repos))
        return repos

    async def _load_cached(self, owner: str) -> list[Repository]:
        records = await self._store.arun(cached_repos, owner)
        try:
            return [Repository.model_validate_json(r.payload) for r in records]
        except ValidationError as e:
            raise StorageError.from_exc(e, "corrupt cached repository") from e

    def save_cache(self) -> None:
        """Upsert every repository fetched this session."""
        records = [
            RepoRecord(owner=owner, name=repo.name, payload=orjson.dumps(repo.model_dump()).decode())
            for owner, repos in self._fetched.items()
            for repo in repos
        ]
        written = upsert_repos(self._store, records)
        self._log.info("repo cache saved", rows=written)

    def _render(self, state: RepoExplorerState) -> RenderableType:
        table = Table(title=f"Repositories of {state.owner}" if state.owner else "Repositories", expand=True)
        table.add_column("Name", style="bold")
        table.add_column("Stars", justify="right")
        table.add_column("Language")
        table.add_column("Updated")
        table.add_column("Releases")
        for repo in state.results:
            releases = ", ".join(
                f"{r.tag_name} ({len(r.assets)} assets)" if r.assets else r.tag_name for r in repo.releases
            )
            table.add_row(
                repo.name, str(repo.stargazers_count), repo.language or "-", repo.updated_at[:10], releases or "-",
            )
        hint = Text("Enter: fetch  Ctrl+L: load cached  Ctrl+E: export", style="dim")
        return Group(field_panel("GitHub Username", state.username, focused=True), table, hint)
