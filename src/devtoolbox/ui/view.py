"""Frame composition: tab bar, active tool body, status line."""

from __future__ import annotations

from rich.layout import Layout
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from devtoolbox.foundation.errors import status_from_exception
from devtoolbox.foundation.logging import get_logger
from devtoolbox.runtime.registry import ToolRegistry

log = get_logger("devtoolbox.ui")

TITLE = "Dev-Toolbox"
TAB_HEIGHT = 3
STATUS_HEIGHT = 3


def create_layout() -> Layout:
    layout = Layout(name="root")
    layout.split_column(
        Layout(name="tabs", size=TAB_HEIGHT),
        Layout(name="body"),
        Layout(name="status", size=STATUS_HEIGHT),
    )
    return layout


def tab_bar(names: list[str], active: int) -> Panel:
    """Equal-width tabs, so a click column maps to `x // (width // count)`."""
    grid = Table.grid(expand=True)
    for _ in names:
        grid.add_column(ratio=1, justify="center")
    grid.add_row(*(
        Text(name, style="bold yellow" if i == active else "cyan") for i, name in enumerate(names)
    ))
    return Panel(grid, title=Text(TITLE, style="green"), title_align="left", padding=0)


def status_bar(status: str, hint: str = "") -> Panel:
    """Status line; `hint` (the active tool's description) sits in the bottom border."""
    return Panel(
        Text(status, no_wrap=True, overflow="ellipsis"),
        title=Text("Status", style="magenta"),
        title_align="left",
        subtitle=Text(hint, style="dim") if hint else None,
        subtitle_align="right",
    )


def compose_frame(registry: ToolRegistry, status: str) -> Layout:
    """Build the whole screen for the active tool. Tool render failures become an error panel."""
    layout = create_layout()
    layout["tabs"].update(tab_bar(registry.names(), registry.index))
    tool = registry.active()
    try:
        tool.render(layout["body"])
    except Exception as e:
        log.exception("render failed", tool=tool.metadata.name)
        layout["body"].update(Panel(Text(status_from_exception(e), style="red"), title="Render error"))
    layout["status"].update(status_bar(status, tool.metadata.description))
    return layout
