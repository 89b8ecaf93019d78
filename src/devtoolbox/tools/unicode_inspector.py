"""Unicode inspector: grapheme analysis and codepoint/name lookup.

Reference data is imported in the background when the tool is constructed.
Until the import finishes the tool renders a loading indicator and refuses
lookups with NotReadyError.
"""

from __future__ import annotations

from pathlib import Path

import regex
from pydantic import Field
from rich.console import Group, RenderableType
from rich.table import Table
from rich.text import Text

from devtoolbox.foundation.errors import InputError, NotReadyError
from devtoolbox.io.store import (
    CacheStore,
    CodepointRecord,
    lookup_codepoint,
    lookup_codepoints,
    normalize_codepoint,
    search_codepoints,
)
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent
from devtoolbox.runtime.importer import BackgroundImporter, ImportHandle

from .base import FormState, Tool, ToolMetadata, export_json, field_panel, toggle_panel

EXPORT_FILE = "unicode_results.json"
LOADING = "Loading Unicode Database..."

_GRAPHEME = regex.compile(r"\X")


def graphemes(text: str) -> list[str]:
    """Split text into extended grapheme clusters."""
    return _GRAPHEME.findall(text)


def utf8_hex(codepoint: int) -> str:
    return chr(codepoint).encode("utf-8", "surrogatepass").hex(" ").upper()


def utf16_hex(codepoint: int) -> str:
    raw = chr(codepoint).encode("utf-16-be", "surrogatepass").hex().upper()
    return " ".join(raw[i:i + 4] for i in range(0, len(raw), 4))


class UnicodeInspectorState(FormState):
    text_fields = ("text", "codepoint", "name")

    text: str = ""
    codepoint: str = ""
    name: str = ""
    sequential: bool = False
    results: list[CodepointRecord] = Field(default_factory=list)


class UnicodeInspector(Tool[UnicodeInspectorState]):
    """Enter analyzes text, Ctrl+L looks up by codepoint or name, Ctrl+A toggles sequential mode.

    In sequential mode every codepoint of a grapheme cluster is reported;
    otherwise only the first (base) codepoint of each cluster.
    """

    metadata = ToolMetadata(
        name="unicode_inspector",
        title="Unicode Inspector",
        description="Inspect graphemes and look up Unicode characters",
    )
    state_schema = UnicodeInspectorState

    def __init__(
        self,
        store: CacheStore,
        unicode_data_path: Path,
        blocks_path: Path | None = None,
        export_dir: Path = Path("."),
    ) -> None:
        super().__init__()
        self._store = store
        self._export_dir = export_dir
        self._importer = BackgroundImporter(store)
        self.import_handle: ImportHandle = self._importer.spawn(unicode_data_path, blocks_path)

    @property
    def ready(self) -> bool:
        return self._importer.readiness.is_ready

    @property
    def loading_message(self) -> str | None:
        return None if self.ready else LOADING

    def _require_ready(self) -> None:
        if not self.ready:
            raise NotReadyError("Unicode database is still loading")

    async def _handle(self, event: InputEvent, state: UnicodeInspectorState) -> str:
        if not isinstance(event, KeyEvent):
            return ""
        if event.is_ctrl("a"):
            state.sequential = not state.sequential
            return f"Sequential Mode: {state.sequential}"
        if event.is_ctrl("e"):
            await export_json(self._export_dir, EXPORT_FILE, [r.model_dump() for r in state.results])
            return f"Exported to {EXPORT_FILE}"
        if event.is_ctrl("l"):
            return await self._lookup(state)
        if event.code is Key.ENTER:
            return await self._analyze(state)
        return state.edit(event) or ""

    async def _analyze(self, state: UnicodeInspectorState) -> str:
        self._require_ready()
        clusters = graphemes(state.text)
        wanted: list[str] = []
        for cluster in clusters:
            codepoints = [f"{ord(ch):04X}" for ch in cluster]
            wanted.extend(codepoints if state.sequential else codepoints[:1])
        state.results = await self._store.arun(lookup_codepoints, wanted)
        return f"Analyzed {len(clusters)} graphemes"

    async def _lookup(self, state: UnicodeInspectorState) -> str:
        self._require_ready()
        if raw := state.codepoint.strip():
            try:
                key = normalize_codepoint(raw)
            except ValueError as e:
                raise InputError(f"Invalid codepoint: {raw}") from e
            state.results = await self._store.arun(lookup_codepoint, key)
        elif fragment := state.name.strip():
            state.results = await self._store.arun(search_codepoints, fragment)
        else:
            return "No lookup input"
        return f"Found {len(state.results)} characters"

    def _render(self, state: UnicodeInspectorState) -> RenderableType:
        table = Table(expand=True)
        table.add_column("Codepoint", style="bold")
        table.add_column("Char", justify="center")
        table.add_column("Name")
        table.add_column("Block")
        table.add_column("UTF-8")
        table.add_column("UTF-16")
        for rec in state.results:
            value = rec.value
            glyph = chr(value) if chr(value).isprintable() else ""
            table.add_row(f"U+{rec.codepoint}", glyph, rec.name, rec.block, utf8_hex(value), utf16_hex(value))

        parts: list[RenderableType] = [
            field_panel("Text Input", state.text, focused=state.focus == 0),
            field_panel("Codepoint Lookup", state.codepoint, focused=state.focus == 1),
            field_panel("Name Search", state.name, focused=state.focus == 2),
            toggle_panel("Sequential Mode", state.sequential),
        ]
        outcome = self.import_handle.outcome
        if outcome is not None and outcome.error is not None:
            parts.append(Text(f"Reference data unavailable: {outcome.error.message}", style="red"))
        parts.append(table)
        return Group(*parts)
