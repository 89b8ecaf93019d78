"""Tool registry and dispatcher.

The registry holds the tools in tab order plus the active-tool cursor.
Tools are registered at startup only; `freeze()` is called when the event
loop starts, after which the sequence is immutable.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from devtoolbox.foundation.errors import ToolboxError, classify_exception, status_from_exception
from devtoolbox.foundation.logging import get_logger, log_context

from .events import Binding, InputEvent, PointerEvent, match_binding, tab_at

if TYPE_CHECKING:
    from devtoolbox.tools.base import Tool

log = get_logger("devtoolbox.registry")


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """Outcome of one dispatch.

    `status` is None when the status line should keep its previous text.
    `binding` is set when a global binding intercepted the event.
    """

    status: str | None = None
    binding: Binding | None = None
    failed: bool = False


class ToolRegistry:
    """Ordered tools plus the active cursor.

    Example:
        >>> registry = ToolRegistry()
        >>> registry.register(JwtDecoder())
        >>> registry.freeze()
        >>> result = await registry.dispatch(KeyEvent(Key.ENTER))
    """

    __slots__ = ("_tools", "_active", "_frozen")

    def __init__(self) -> None:
        self._tools: list[Tool] = []
        self._active = 0
        self._frozen = False

    def register(self, tool: Tool) -> None:
        """Append a tool (tab order = registration order). Startup only."""
        if self._frozen:
            raise RuntimeError("registry is frozen; tools are registered at startup only")
        name = tool.metadata.name
        if any(t.metadata.name == name for t in self._tools):
            raise ValueError(f"Tool '{name}' already registered")
        self._tools.append(tool)

    def freeze(self) -> None:
        if not self._tools:
            raise RuntimeError("no tools registered")
        self._frozen = True

    # ─────────────────────────────────────────────────────────────────
    # Cursor
    # ─────────────────────────────────────────────────────────────────

    @property
    def index(self) -> int:
        return self._active

    def active(self) -> Tool:
        return self._tools[self._active]

    def advance(self) -> int:
        """Move to the next tool, wrapping to the first. Returns the new index."""
        self._active = (self._active + 1) % len(self._tools)
        return self._active

    def select_at(self, position: int) -> int:
        """Activate the tool at `position`, clamped to a valid index."""
        self._active = min(max(position, 0), len(self._tools) - 1)
        return self._active

    def names(self) -> list[str]:
        return [t.name() for t in self._tools]

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[Tool]:
        return iter(self._tools)

    def __getitem__(self, index: int) -> Tool:
        return self._tools[index]

    # ─────────────────────────────────────────────────────────────────
    # Dispatch
    # ─────────────────────────────────────────────────────────────────

    async def dispatch(self, event: InputEvent, *, width: int | None = None) -> DispatchResult:
        """Route `event` to the active tool unless a global binding claims it.

        Tab switching (key or tab-bar click, given the terminal `width`) is
        handled here; quit and copy-status are returned to the caller. Tool
        failures become the status text and never propagate. Recoverable toolbox
        errors are logged as warnings, anything else with its traceback.
        """
        binding = match_binding(event)
        match binding:
            case Binding.NEXT_TOOL:
                self.advance()
                return self._switched(binding)
            case Binding.SELECT_TAB if width and isinstance(event, PointerEvent):
                self.select_at(tab_at(event.x, width, len(self._tools)))
                return self._switched(binding)
            case Binding.QUIT | Binding.COPY_STATUS:
                return DispatchResult(binding=binding)

        tool = self.active()
        try:
            with log_context(tool=tool.metadata.name):
                status = await tool.handle_input(event)
        except Exception as e:
            fields = {"tool": tool.metadata.name, "code": str(classify_exception(e)), "error": str(e)}
            if isinstance(e, ToolboxError) and e.recoverable:
                log.warning("dispatch failed", **fields)
            else:
                log.exception("dispatch failed unexpectedly", **fields)
            return DispatchResult(status=status_from_exception(e), failed=True)
        return DispatchResult(status=status or None)

    def _switched(self, binding: Binding) -> DispatchResult:
        tool = self.active()
        log.debug("tool switched", tool=tool.metadata.name, index=self._active)
        return DispatchResult(status=f"Switched to {tool.name()}", binding=binding)
