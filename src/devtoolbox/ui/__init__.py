"""Terminal UI: frame composition and the real terminal surface."""

from .terminal import Terminal, parse_sgr_mouse, translate_key
from .view import compose_frame, create_layout, status_bar, tab_bar

__all__ = [
    "Terminal", "translate_key", "parse_sgr_mouse",
    "compose_frame", "create_layout", "tab_bar", "status_bar",
]
