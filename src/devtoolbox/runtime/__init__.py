"""Runtime: input events, background import, tool registry and the event loop."""

from .events import (
    Binding,
    InputEvent,
    Key,
    KeyEvent,
    MouseButton,
    PointerEvent,
    PointerKind,
    match_binding,
    tab_at,
)
from .importer import (
    BackgroundImporter,
    ImportHandle,
    ImportOutcome,
    ImportState,
    ReadinessFlag,
    import_reference_data,
    parse_blocks,
    parse_chars,
)
from .loop import EventLoop, InputSource, LoopState, Surface, save_caches
from .registry import DispatchResult, ToolRegistry

__all__ = [
    # Events
    "Key", "KeyEvent", "PointerEvent", "PointerKind", "MouseButton", "InputEvent",
    "Binding", "match_binding", "tab_at",
    # Importer
    "ImportState", "ReadinessFlag", "ImportOutcome", "ImportHandle", "BackgroundImporter",
    "import_reference_data", "parse_chars", "parse_blocks",
    # Registry & loop
    "ToolRegistry", "DispatchResult", "EventLoop", "LoopState", "InputSource", "Surface", "save_caches",
]
