"""Organization research: search GitHub organizations, optionally under a parent org."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.text import Text

from devtoolbox.foundation.errors import InputError
from devtoolbox.io.github import GitHubClient, Organization
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent

from .base import FormState, Tool, ToolMetadata, export_json, field_panel, toggle_panel

EXPORT_FILE = "org_results.json"


class OrgResearchState(FormState):
    text_fields = ("parent_org", "search_term")

    parent_org: str = ""
    search_term: str = ""
    allow_no_parent: bool = False
    results: list[Organization] = Field(default_factory=list)

    def query(self) -> str:
        """Search query. Without a parent org the toggle must be on."""
        parent, term = self.parent_org.strip(), self.search_term.strip()
        if parent:
            return f"org:{parent} {term}".rstrip()
        if not self.allow_no_parent:
            raise InputError("Parent org required (Ctrl+A allows searching without one)")
        if not term:
            raise InputError("Search term required")
        return term


class OrgResearch(Tool[OrgResearchState]):
    """Search organizations. Enter searches, Ctrl+A toggles "allow no parent", Ctrl+E exports."""

    metadata = ToolMetadata(
        name="org_research",
        title="Org Research",
        description="Search GitHub organizations",
    )
    state_schema = OrgResearchState

    def __init__(self, github: GitHubClient, export_dir: Path = Path(".")) -> None:
        super().__init__()
        self._github = github
        self._export_dir = export_dir

    async def _handle(self, event: InputEvent, state: OrgResearchState) -> str:
        if not isinstance(event, KeyEvent):
            return ""
        if event.is_ctrl("a"):
            state.allow_no_parent = not state.allow_no_parent
            return f"Allow No Parent: {state.allow_no_parent}"
        if event.is_ctrl("e"):
            await export_json(self._export_dir, EXPORT_FILE, [o.model_dump() for o in state.results])
            return f"Exported to {EXPORT_FILE}"
        if event.code is Key.ENTER:
            query = state.query()
            state.results = await self._github.search_orgs(query)
            self._log.info("orgs searched", query=query, found=len(state.results))
            return f"Found {len(state.results)} organizations"
        return state.edit(event) or ""

    def _render(self, state: OrgResearchState) -> RenderableType:
        results = Text("\n".join(org.login for org in state.results))
        return Group(
            field_panel("Parent Org", state.parent_org, focused=state.focus == 0),
            field_panel("Search Term", state.search_term, focused=state.focus == 1),
            toggle_panel("Allow No Parent", state.allow_no_parent),
            Panel(results, title=Text("Org Results", style="green"), title_align="left"),
        )
