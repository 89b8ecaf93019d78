"""Core tool abstraction: Tool, ToolMetadata and form-state helpers.

A tool owns a pydantic state model. `handle_input` is the only mutation
entry point; it runs the subclass's `_handle` against a deep copy of the
state and swaps the copy in only if `_handle` returns, so a failed step never
leaves partially updated state visible to `render`.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

import orjson
from pydantic import BaseModel, ConfigDict, Field
from rich.align import Align
from rich.console import RenderableType
from rich.layout import Layout
from rich.panel import Panel
from rich.text import Text

from devtoolbox.foundation.logging import BoundLogger, get_logger
from devtoolbox.runtime.events import InputEvent, Key, KeyEvent

log = get_logger("devtoolbox.tools")


class ToolMetadata(BaseModel):
    """Identity of a tool.

    Attributes:
        name: Stable identifier (snake_case, e.g., "repo_explorer"), used in logs
        title: Tab label (e.g., "Repo Explorer")
        description: One line shown under the status line while the tool is active
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., pattern=r"^[a-z][a-z0-9_]*$")
    title: str = Field(..., min_length=1)
    description: str = Field(default="")


class FormState(BaseModel):
    """State with a set of text fields and one focused field.

    Subclasses list their editable string attributes in `text_fields`.
    """

    text_fields: ClassVar[tuple[str, ...]] = ()

    focus: int = 0

    @property
    def focused(self) -> str:
        return self.text_fields[self.focus]

    def edit(self, event: KeyEvent) -> str | None:
        """Apply a typing/navigation key to the fields. Returns a status, or None if not an edit key."""
        if not self.text_fields:
            return None
        match event:
            case KeyEvent(code=Key.CHAR, ctrl=False, char=char) if char:
                setattr(self, self.focused, getattr(self, self.focused) + char)
                return "Input updated"
            case KeyEvent(code=Key.BACKSPACE):
                setattr(self, self.focused, getattr(self, self.focused)[:-1])
                return "Removed character"
            case KeyEvent(code=Key.UP):
                self.focus = max(self.focus - 1, 0)
                return "Switched field"
            case KeyEvent(code=Key.DOWN):
                self.focus = min(self.focus + 1, len(self.text_fields) - 1)
                return "Switched field"
            case _:
                return None


TState = TypeVar("TState", bound=BaseModel)


class Tool(ABC, Generic[TState]):
    """Abstract base class for all tools.

    Subclasses must:
    - Define `metadata` class variable with ToolMetadata
    - Define `state_schema` class variable with the state model type
    - Implement `_handle(event, state)` returning a status string
    - Implement `_render(state)` returning a rich renderable

    Optional overrides:
    - `save_cache()` to persist session results at shutdown (default no-op)
    - `loading_message` to show a loading indicator instead of `_render`

    Example:
        >>> class EchoState(FormState):
        ...     text_fields = ("text",)
        ...     text: str = ""
        ...
        >>> class Echo(Tool[EchoState]):
        ...     metadata = ToolMetadata(name="echo", title="Echo")
        ...     state_schema = EchoState
        ...
        ...     async def _handle(self, event, state):
        ...         return state.edit(event) or ""
        ...
        ...     def _render(self, state):
        ...         return Text(state.text)
    """

    metadata: ClassVar[ToolMetadata]
    state_schema: ClassVar[type[BaseModel]]

    def __init__(self) -> None:
        self._state: TState = self.state_schema()  # type: ignore[assignment]
        self._busy = False
        self._log: BoundLogger = log.bind_tool(self.metadata.name)

    # ─────────────────────────────────────────────────────────────────
    # Identity & State
    # ─────────────────────────────────────────────────────────────────

    def name(self) -> str:
        """Display name used for the tab label."""
        return self.metadata.title

    @property
    def state(self) -> TState:
        return self._state

    @property
    def busy(self) -> bool:
        """True while a dispatch to this tool is in flight."""
        return self._busy

    # ─────────────────────────────────────────────────────────────────
    # Input
    # ─────────────────────────────────────────────────────────────────

    async def handle_input(self, event: InputEvent) -> str:
        """Handle one event. Returns a status; raises on failure with state unchanged."""
        working = self._state.model_copy(deep=True)
        self._busy = True
        try:
            status = await self._handle(event, working)
        finally:
            self._busy = False
        self._state = working
        return status

    @abstractmethod
    async def _handle(self, event: InputEvent, state: TState) -> str:
        """Mutate `state` (a private copy) in response to `event` and return a status."""
        ...

    # ─────────────────────────────────────────────────────────────────
    # Rendering
    # ─────────────────────────────────────────────────────────────────

    @property
    def loading_message(self) -> str | None:
        """Shown instead of the tool's view while background work is outstanding."""
        return None

    def render(self, region: Layout) -> None:
        """Draw the current state into `region`. Reads state only."""
        if (message := self.loading_message) is not None:
            region.update(loading_panel(message))
        elif self._busy:
            region.update(loading_panel(f"{self.name()}: working..."))
        else:
            region.update(self._render(self._state))

    @abstractmethod
    def _render(self, state: TState) -> RenderableType: ...

    # ─────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────

    def save_cache(self) -> None:
        """Persist session results to the cache store. Default: nothing to save."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.metadata.name!r})"


# ─────────────────────────────────────────────────────────────────────────────
# Shared Helpers
# ─────────────────────────────────────────────────────────────────────────────


def loading_panel(message: str) -> Panel:
    return Panel(Align.center(Text(message, style="bold yellow"), vertical="middle"))


def field_panel(title: str, value: str, *, focused: bool = False) -> Panel:
    """Bordered single-line input; the focused field gets a cursor and a highlighted border."""
    return Panel(
        Text(value + ("█" if focused else "")),
        title=Text(title, style="green"),
        title_align="left",
        border_style="cyan" if focused else "white",
        height=3,
    )


def toggle_panel(title: str, on: bool) -> Panel:
    return Panel(Text("Yes" if on else "No"), title=Text(title, style="green"), title_align="left", height=3)


async def export_json(directory: Path, filename: str, payload: Any) -> Path:
    """Write `payload` as indented JSON to `directory/filename` off the event loop."""
    path = directory / filename
    data = orjson.dumps(payload, option=orjson.OPT_INDENT_2)
    await asyncio.to_thread(path.write_bytes, data)
    return path
