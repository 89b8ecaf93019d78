"""Tests for errors, structured logging, settings, and secrets."""

from __future__ import annotations

import io
import json
import sqlite3
from pathlib import Path

import pytest
from pydantic import ValidationError

from devtoolbox.foundation.errors import (
    ErrorCode,
    InputError,
    RemoteError,
    StorageError,
    classify_exception,
    status_from_exception,
)
from devtoolbox.foundation.logging import configure_logging, get_logger, log_context
from devtoolbox.foundation.secrets import Secrets
from devtoolbox.foundation.settings import (
    ToolboxSettings,
    config_file,
    get_settings,
    load_settings,
    write_default_config,
)

# ─────────────────────────────────────────────────────────────────────────────
# Errors
# ─────────────────────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    ("exc", "code"),
    [
        (InputError("bad"), ErrorCode.INVALID_INPUT),
        (RemoteError("nope", status_code=404), ErrorCode.REMOTE_ERROR),
        (RemoteError("slow", code=ErrorCode.TIMEOUT), ErrorCode.TIMEOUT),
        (TimeoutError("read timeout"), ErrorCode.TIMEOUT),
        (sqlite3.OperationalError("database is locked"), ErrorCode.STORAGE_ERROR),
        (json.JSONDecodeError("Expecting value", "", 0), ErrorCode.PARSE_ERROR),
        (KeyError("x"), ErrorCode.UNKNOWN),
    ],
)
def test_classify_exception(exc: BaseException, code: ErrorCode) -> None:
    assert classify_exception(exc) is code


def test_status_from_exception() -> None:
    assert status_from_exception(InputError("Username required")) == "Username required"
    assert status_from_exception(ValueError("first line\nsecond line")) == "Error: first line"
    assert status_from_exception(RuntimeError()) == "Error: RuntimeError"


def test_from_exc_keeps_cause() -> None:
    cause = OSError("disk gone")
    err = StorageError.from_exc(cause, "open failed")
    assert err.message == "open failed: disk gone"
    assert err.__cause__ is cause and err.recoverable


# ─────────────────────────────────────────────────────────────────────────────
# Logging
# ─────────────────────────────────────────────────────────────────────────────


def test_json_logging_merges_context() -> None:
    out = io.StringIO()
    configure_logging("json", "DEBUG", output=out)
    log = get_logger("devtoolbox.test").bind_tool("jwt_decoder")
    with log_context(session="s1"):
        log.debug("decoded", parts=3)

    entry = json.loads(out.getvalue())
    assert entry["event"] == "decoded" and entry["level"] == "debug"
    assert entry["logger"] == "devtoolbox.test"
    assert (entry["tool"], entry["session"], entry["parts"]) == ("jwt_decoder", "s1", 3)


def test_level_filters_entries() -> None:
    out = io.StringIO()
    configure_logging("console", "WARNING", output=out)
    log = get_logger("devtoolbox.test")
    log.info("hidden")
    log.warning("shown", reason="x")
    assert "hidden" not in out.getvalue()
    assert "[warning] shown" in out.getvalue() and 'reason="x"' in out.getvalue()


def test_unknown_log_format() -> None:
    with pytest.raises(ValueError, match="Unknown format"):
        configure_logging("xml")


# ─────────────────────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────────────────────


def test_defaults() -> None:
    settings = ToolboxSettings()
    assert settings.github_api_base_url == "https://api.github.com"
    assert settings.http.release_fetch_limit == 5
    assert settings.unicode_data_path == Path("UnicodeData.txt")


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEVTOOLBOX_HTTP__TIMEOUT", "7.5")
    monkeypatch.setenv("DEVTOOLBOX_GITHUB_API_BASE_URL", "https://ghe.example.com/api/v3/")
    settings = ToolboxSettings()
    assert settings.http.timeout == 7.5
    assert settings.github_api_base_url == "https://ghe.example.com/api/v3"


def test_base_url_must_be_https() -> None:
    with pytest.raises(ValidationError, match="https"):
        ToolboxSettings(github_api_base_url="http://api.github.com")


def test_load_writes_default_config() -> None:
    path = config_file()
    assert not path.exists()

    settings = load_settings()

    assert path.is_file()
    text = path.read_text(encoding="utf-8")
    assert "[http]" in text and 'github_api_base_url = "https://api.github.com"' in text
    assert settings == ToolboxSettings()


def test_config_file_values_are_read() -> None:
    write_default_config(config_file(), ToolboxSettings(http={"release_fetch_limit": 2}))
    assert get_settings().http.release_fetch_limit == 2
    assert get_settings() is get_settings()


# ─────────────────────────────────────────────────────────────────────────────
# Secrets
# ─────────────────────────────────────────────────────────────────────────────


def test_secrets_never_print_token() -> None:
    secrets = Secrets.from_token("ghp_secret")
    assert "ghp_secret" not in repr(secrets)
    assert "ghp_secret" not in str(secrets)
    with secrets.exposed() as token:
        assert token == "ghp_secret"


def test_dispose_clears_token() -> None:
    with Secrets.from_token("ghp_secret") as secrets:
        pass
    assert secrets.is_empty
    secrets.dispose()
    with pytest.raises(RuntimeError, match="disposed"):
        with secrets.exposed():
            pass


def test_load_from_env_file(tmp_path: Path) -> None:
    env = tmp_path / "custom.env"
    env.write_text("GITHUB_TOKEN=ghp_from_file\n", encoding="utf-8")
    with Secrets.load(env) as secrets, secrets.exposed() as token:
        assert token == "ghp_from_file"


def test_environment_beats_env_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    (tmp_path / ".env").write_text("GITHUB_TOKEN=ghp_from_file\n", encoding="utf-8")
    monkeypatch.setenv("GITHUB_TOKEN", "ghp_from_env")
    with Secrets.load() as secrets, secrets.exposed() as token:
        assert token == "ghp_from_env"


def test_missing_token_is_empty() -> None:
    assert Secrets.load().is_empty
