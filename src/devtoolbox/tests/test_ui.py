"""Tests for frame composition and terminal input translation."""

from __future__ import annotations

import io

import pytest
from prompt_toolkit.key_binding import KeyPress
from prompt_toolkit.keys import Keys
from rich.console import Console, RenderableType

from devtoolbox.runtime.events import Key, KeyEvent, MouseButton, PointerEvent, PointerKind
from devtoolbox.runtime.registry import ToolRegistry
from devtoolbox.tools import JwtDecoder
from devtoolbox.tools.base import ToolMetadata
from devtoolbox.tools.jwt_decoder import JwtDecoderState
from devtoolbox.ui.terminal import parse_sgr_mouse, translate_key
from devtoolbox.ui.view import compose_frame


class BrokenView(JwtDecoder):
    metadata = ToolMetadata(name="broken_view", title="Broken View")

    def _render(self, state: JwtDecoderState) -> RenderableType:
        raise ValueError("cannot draw")


def _screen(registry: ToolRegistry, status: str) -> str:
    console = Console(file=io.StringIO(), width=100, height=24, color_system=None)
    console.print(compose_frame(registry, status))
    return console.file.getvalue()


def _registry(*tools: JwtDecoder) -> ToolRegistry:
    registry = ToolRegistry()
    for tool in tools:
        registry.register(tool)
    registry.freeze()
    return registry


# ─────────────────────────────────────────────────────────────────────────────
# Frame
# ─────────────────────────────────────────────────────────────────────────────


def test_frame_shows_tabs_and_status() -> None:
    screen = _screen(_registry(JwtDecoder(), BrokenView()), "Decoded JWT")
    assert "Dev-Toolbox" in screen
    assert "JWT Decoder" in screen and "Broken View" in screen
    assert "Decoded JWT" in screen


def test_status_bar_shows_active_tool_description() -> None:
    registry = _registry(JwtDecoder(), BrokenView())
    assert "Decode JWT header and payload" in _screen(registry, "ready")
    registry.advance()
    assert "Decode JWT header and payload" not in _screen(registry, "ready")


def test_render_failure_becomes_error_panel() -> None:
    registry = _registry(JwtDecoder(), BrokenView())
    registry.advance()
    screen = _screen(registry, "Switched to Broken View")
    assert "Render error" in screen
    assert "Error: cannot draw" in screen


# ─────────────────────────────────────────────────────────────────────────────
# Input Translation
# ─────────────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("key", "expected"),
    [
        (Keys.ControlI, KeyEvent(Key.TAB)),
        (Keys.ControlM, KeyEvent(Key.ENTER)),
        (Keys.ControlH, KeyEvent(Key.BACKSPACE)),
        (Keys.Down, KeyEvent(Key.DOWN)),
        (Keys.ControlQ, KeyEvent.ctrl_key("q")),
        (Keys.ControlE, KeyEvent.ctrl_key("e")),
        ("a", KeyEvent.text("a")),
        (Keys.F5, KeyEvent(Key.OTHER)),
    ],
)
def test_translate_key(key: str, expected: KeyEvent) -> None:
    assert translate_key(KeyPress(key)) == expected


def test_translate_mouse_press() -> None:
    event = translate_key(KeyPress(Keys.Vt100MouseEvent, "\x1b[<0;66;2M"))
    assert event == PointerEvent(65, 1, PointerKind.DOWN, MouseButton.LEFT)


@pytest.mark.parametrize(
    ("data", "kind", "button"),
    [
        ("\x1b[<0;1;1m", PointerKind.UP, MouseButton.LEFT),
        ("\x1b[<2;1;1M", PointerKind.DOWN, MouseButton.RIGHT),
        ("\x1b[<32;1;1M", PointerKind.MOVE, MouseButton.LEFT),
        ("\x1b[<64;1;1M", PointerKind.SCROLL, MouseButton.NONE),
    ],
)
def test_parse_sgr_mouse(data: str, kind: PointerKind, button: MouseButton) -> None:
    event = parse_sgr_mouse(data)
    assert event is not None
    assert (event.x, event.y, event.kind, event.button) == (0, 0, kind, button)


def test_parse_sgr_mouse_ignores_other_sequences() -> None:
    assert parse_sgr_mouse("\x1b[M !!") is None
