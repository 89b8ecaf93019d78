"""Tests for startup checks and the command line entry point."""

from __future__ import annotations

from pathlib import Path

import pytest

from devtoolbox.app import build_registry, create_github_client, open_store, require_token
from devtoolbox.cli import main
from devtoolbox.foundation.errors import StartupError
from devtoolbox.foundation.secrets import Secrets
from devtoolbox.foundation.settings import ToolboxSettings


def test_require_token_rejects_empty() -> None:
    with pytest.raises(StartupError, match="GITHUB_TOKEN not found") as info:
        require_token(Secrets.from_token(""))
    assert "https://github.com/settings/tokens" in info.value.hint
    assert not info.value.recoverable


def test_open_store_failure_is_startup_error(tmp_path: Path) -> None:
    blocker = tmp_path / "file"
    blocker.write_text("x")
    with pytest.raises(StartupError, match="Cannot open cache store"):
        open_store(ToolboxSettings(cache_db_path=blocker / "cache.db"))


@pytest.mark.asyncio
async def test_registry_tab_order(tmp_path: Path, secrets: Secrets, seed_files: tuple[Path, Path]) -> None:
    chars, blocks = seed_files
    settings = ToolboxSettings(unicode_data_path=chars, blocks_path=blocks, cache_db_path=tmp_path / "c.db")
    store = open_store(settings)
    github = create_github_client(settings, secrets)
    try:
        registry = build_registry(settings, store, github)
        assert registry.names() == ["Org Research", "Repo Explorer", "Unicode Inspector", "JWT Decoder"]
        assert registry[2].import_handle.join(timeout=5) is not None
    finally:
        await github.aclose()
        store.close()


def test_cli_without_token_exits_with_help(capsys: pytest.CaptureFixture[str]) -> None:
    assert main([]) == 1
    err = capsys.readouterr().err
    assert "Error: GITHUB_TOKEN not found." in err
    assert "GITHUB_TOKEN environment variable" in err


def test_cli_version(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as info:
        main(["--version"])
    assert info.value.code == 0
    assert "dev-toolbox" in capsys.readouterr().out
