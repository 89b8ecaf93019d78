"""Dev-Toolbox - a terminal toolbox of swappable tools over a shared local cache.

Tools (organization research, repository explorer, Unicode inspector, JWT
decoder) implement one `Tool` contract, are held in tab order by a
`ToolRegistry`, and are driven by a single `EventLoop`. A SQLite-backed
`CacheStore` is shared by every tool and by the background importer that
seeds the Unicode reference tables.

Quick Start:
    $ export GITHUB_TOKEN=ghp_...
    $ dev-toolbox            # or: python -m devtoolbox

Embedding:
    >>> from devtoolbox import ToolRegistry, JwtDecoder, KeyEvent, Key
    >>> registry = ToolRegistry()
    >>> registry.register(JwtDecoder())
    >>> result = await registry.dispatch(KeyEvent(Key.ENTER))
"""

__version__ = "0.2.0"

from .foundation import (
    ErrorCode,
    InputError,
    NotReadyError,
    ReferenceImportError,
    RemoteError,
    Secrets,
    StartupError,
    StorageError,
    ToolboxError,
    ToolboxSettings,
    configure_logging,
    get_logger,
    get_settings,
)
from .io import CacheStore, GitHubClient
from .runtime import (
    BackgroundImporter,
    Binding,
    DispatchResult,
    EventLoop,
    ImportState,
    Key,
    KeyEvent,
    PointerEvent,
    ReadinessFlag,
    ToolRegistry,
    save_caches,
)
from .tools import JwtDecoder, OrgResearch, RepoExplorer, Tool, ToolMetadata, UnicodeInspector

__all__ = [
    "__version__",
    # Foundation
    "ErrorCode", "ToolboxError", "InputError", "StorageError", "ReferenceImportError",
    "RemoteError", "NotReadyError", "StartupError",
    "ToolboxSettings", "get_settings", "Secrets", "configure_logging", "get_logger",
    # I/O
    "CacheStore", "GitHubClient",
    # Runtime
    "Key", "KeyEvent", "PointerEvent", "Binding", "ToolRegistry", "DispatchResult",
    "EventLoop", "save_caches", "BackgroundImporter", "ReadinessFlag", "ImportState",
    # Tools
    "Tool", "ToolMetadata", "OrgResearch", "RepoExplorer", "UnicodeInspector", "JwtDecoder",
]
