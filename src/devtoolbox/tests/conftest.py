"""Shared fixtures: isolated directories, an in-memory store, seed files, a mocked GitHub."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import httpx
import pytest

from devtoolbox.foundation.logging import configure_logging
from devtoolbox.foundation.secrets import Secrets
from devtoolbox.foundation.settings import clear_settings_cache
from devtoolbox.io.github import GitHubClient
from devtoolbox.io.store import MEMORY, CacheStore

CHARS = "0041;LATIN CAPITAL LETTER A;Basic Latin\n0042;LATIN CAPITAL LETTER B;Basic Latin\n"
BLOCKS = "# Blocks-15.1.0.txt\n\n0000..007F; Basic Latin\n0080..00FF; Latin-1 Supplement\n"

Handler = Callable[[httpx.Request], httpx.Response]


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep config, data and tokens of the developer's machine out of every test."""
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)
    monkeypatch.chdir(tmp_path)
    configure_logging("none")
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def store() -> Iterator[CacheStore]:
    with CacheStore.open(MEMORY) as s:
        yield s


@pytest.fixture
def seed_files(tmp_path: Path) -> tuple[Path, Path]:
    chars, blocks = tmp_path / "UnicodeData.txt", tmp_path / "Blocks.txt"
    chars.write_text(CHARS, encoding="utf-8")
    blocks.write_text(BLOCKS, encoding="utf-8")
    return chars, blocks


@pytest.fixture
def secrets() -> Iterator[Secrets]:
    with Secrets.from_token("ghp_test") as s:
        yield s


@pytest.fixture
def make_github(secrets: Secrets) -> Callable[[Handler], GitHubClient]:
    """Build a GitHubClient whose requests are answered by `handler`."""

    def factory(handler: Handler) -> GitHubClient:
        return GitHubClient("https://api.github.test", secrets, transport=httpx.MockTransport(handler))

    return factory
