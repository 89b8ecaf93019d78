"""The top-level event loop.

Reads input, dispatches it through the registry, and redraws. One dispatch
is in flight at a time; while it runs the loop keeps redrawing on every tick
(so busy and loading indicators update) but does not read more input.

States: IDLE (waiting for input), HANDLING (dispatch in flight) and the
terminal SHUTTING_DOWN, entered only through the quit binding.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum, auto
from typing import Protocol

from devtoolbox.foundation.errors import status_from_exception
from devtoolbox.foundation.logging import get_logger
from devtoolbox.io.clipboard import Clipboard

from .events import Binding, InputEvent
from .registry import DispatchResult, ToolRegistry

log = get_logger("devtoolbox.loop")

WELCOME = "Welcome to Dev-Toolbox! Press Ctrl+Q to quit, Tab to switch tools."


class LoopState(StrEnum):
    IDLE = auto()
    HANDLING = auto()
    SHUTTING_DOWN = auto()


class InputSource(Protocol):
    async def read(self, timeout: float) -> InputEvent | None:
        """Next event, or None if nothing arrived within `timeout` seconds."""
        ...


class Surface(Protocol):
    @property
    def width(self) -> int: ...

    def draw(self, registry: ToolRegistry, status: str) -> None: ...


class EventLoop:
    """Drive input -> dispatch -> redraw until quit.

    Example:
        >>> loop = EventLoop(registry, terminal, terminal, clipboard)
        >>> await loop.run()
        >>> save_caches(registry)
    """

    __slots__ = ("_registry", "_source", "_surface", "_clipboard", "_tick", "_state", "status")

    def __init__(
        self,
        registry: ToolRegistry,
        source: InputSource,
        surface: Surface,
        clipboard: Clipboard,
        *,
        tick_interval: float = 0.25,
    ) -> None:
        self._registry = registry
        self._source = source
        self._surface = surface
        self._clipboard = clipboard
        self._tick = tick_interval
        self._state = LoopState.IDLE
        self.status = WELCOME

    @property
    def state(self) -> LoopState:
        return self._state

    async def run(self) -> None:
        """Run until the quit binding. The caller saves caches afterwards."""
        self._registry.freeze()
        self._draw()
        log.info("event loop started", tools=len(self._registry))
        while self._state is not LoopState.SHUTTING_DOWN:
            event = await self._source.read(self._tick)
            if event is None:
                self._draw()
                continue
            self._state = LoopState.HANDLING
            result = await self._dispatch(event)
            self._apply(result)
            self._draw()
        log.info("event loop stopped")

    async def _dispatch(self, event: InputEvent) -> DispatchResult:
        task = asyncio.create_task(self._registry.dispatch(event, width=self._surface.width))
        while not task.done():
            await asyncio.wait({task}, timeout=self._tick)
            self._draw()
        return task.result()

    def _apply(self, result: DispatchResult) -> None:
        match result.binding:
            case Binding.QUIT:
                self._state = LoopState.SHUTTING_DOWN
                return
            case Binding.COPY_STATUS:
                try:
                    self._clipboard.copy(self.status)
                    self.status = "Copied to clipboard!"
                except OSError as e:
                    self.status = status_from_exception(e)
            case _ if result.status is not None:
                self.status = result.status
        self._state = LoopState.IDLE

    def _draw(self) -> None:
        self._surface.draw(self._registry, self.status)


def save_caches(registry: ToolRegistry) -> list[tuple[str, Exception]]:
    """Call `save_cache()` on every tool in registry order.

    A failing tool is logged and skipped; the remaining tools still run.
    Returns (tool name, error) for each failure.
    """
    failures: list[tuple[str, Exception]] = []
    for tool in registry:
        try:
            tool.save_cache()
        except Exception as e:
            log.error("cache save failed", tool=tool.metadata.name, error=str(e))
            failures.append((tool.metadata.name, e))
        else:
            log.debug("cache saved", tool=tool.metadata.name)
    return failures
