"""Application wiring: startup, the event loop session, and ordered shutdown.

Startup failures (no token, store cannot be opened, no terminal) raise
StartupError before the loop starts. After quit, every tool's cache is saved
in registry order, then the HTTP client and the store are closed, then the
terminal is released.
"""

from __future__ import annotations

from devtoolbox.foundation.errors import StartupError, StorageError
from devtoolbox.foundation.logging import get_logger
from devtoolbox.foundation.secrets import TOKEN_HELP_URL, Secrets
from devtoolbox.foundation.settings import ToolboxSettings, config_dir
from devtoolbox.io.github import GitHubClient
from devtoolbox.io.store import CacheStore
from devtoolbox.runtime.loop import EventLoop, save_caches
from devtoolbox.runtime.registry import ToolRegistry
from devtoolbox.tools import JwtDecoder, OrgResearch, RepoExplorer, UnicodeInspector
from devtoolbox.ui.terminal import Terminal

log = get_logger("devtoolbox.app")


def token_help() -> str:
    return "\n".join([
        "To use this tool, please:",
        "1. Set the GITHUB_TOKEN environment variable.",
        "2. OR create a .env file in the current directory.",
        f"3. OR create a .env file at: {config_dir() / '.env'}",
        "",
        f"You can generate a token at: {TOKEN_HELP_URL}",
    ])


def require_token(secrets: Secrets) -> Secrets:
    if secrets.is_empty:
        raise StartupError("GITHUB_TOKEN not found.", hint=token_help())
    return secrets


def open_store(settings: ToolboxSettings) -> CacheStore:
    try:
        return CacheStore.open(settings.cache_db_path)
    except StorageError as e:
        raise StartupError(f"Cannot open cache store: {e.message}") from e


def build_registry(settings: ToolboxSettings, store: CacheStore, github: GitHubClient) -> ToolRegistry:
    """All tools in tab order. Constructing the Unicode inspector starts its background import."""
    registry = ToolRegistry()
    registry.register(OrgResearch(github, settings.export_dir))
    registry.register(
        RepoExplorer(github, store, settings.export_dir, release_fetch_limit=settings.http.release_fetch_limit)
    )
    registry.register(UnicodeInspector(store, settings.unicode_data_path, settings.blocks_path, settings.export_dir))
    registry.register(JwtDecoder())
    return registry


def create_github_client(settings: ToolboxSettings, secrets: Secrets) -> GitHubClient:
    return GitHubClient(
        settings.github_api_base_url,
        secrets,
        timeout=settings.http.timeout,
        user_agent=settings.http.user_agent,
    )


async def run(settings: ToolboxSettings, secrets: Secrets, terminal: Terminal | None = None) -> list[tuple[str, Exception]]:
    """Run one interactive session. Returns the tools whose cache save failed."""
    require_token(secrets)
    store = open_store(settings)
    github = create_github_client(settings, secrets)
    failures: list[tuple[str, Exception]] = []
    try:
        registry = build_registry(settings, store, github)
        terminal = terminal or Terminal()
        with terminal.session():
            try:
                await EventLoop(
                    registry, terminal, terminal, terminal.clipboard(), tick_interval=settings.ui.tick_interval,
                ).run()
            finally:
                failures = save_caches(registry)
                await github.aclose()
                store.close()
    finally:
        # Idempotent; also reached when the session fails to start
        await github.aclose()
        store.close()
    log.info("shutdown complete", cache_failures=len(failures))
    return failures
