"""Access token handling.

The GitHub token is read once at startup and shared by reference with the
tools that call the API. Its plaintext lives in a mutable buffer that
`dispose()` overwrites; call sites see it only inside `exposed()`.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Self

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .settings import config_dir

TOKEN_HELP_URL = "https://github.com/settings/tokens"


class _TokenSettings(BaseSettings):
    """GITHUB_TOKEN from the environment, falling back to a dotenv file."""

    model_config = SettingsConfigDict(extra="ignore", env_file_encoding="utf-8")

    github_token: SecretStr = Field(default=SecretStr(""), validation_alias="GITHUB_TOKEN")


class Secrets:
    """Process-lifetime credential holder with explicit disposal.

    Example:
        >>> with Secrets.from_token("ghp_example") as secrets:
        ...     with secrets.exposed() as token:
        ...         headers = {"Authorization": f"token {token}"}
    """

    __slots__ = ("_buffer", "_disposed")

    def __init__(self, token: SecretStr) -> None:
        self._buffer = bytearray(token.get_secret_value().encode("utf-8"))
        self._disposed = False

    @classmethod
    def from_token(cls, token: str) -> Self:
        return cls(SecretStr(token))

    @classmethod
    def load(cls, env_file: str | Path = ".env") -> Self:
        """Load GITHUB_TOKEN: process env first, then `env_file`, then the config-dir .env."""
        candidates = [Path(env_file), config_dir() / ".env"]
        dotenv = next((p for p in candidates if p.is_file()), None)
        settings = _TokenSettings(_env_file=dotenv)  # type: ignore[call-arg]
        return cls(settings.github_token)

    @property
    def is_empty(self) -> bool:
        return self._disposed or not self._buffer

    @contextmanager
    def exposed(self) -> Iterator[str]:
        """Yield the plaintext token for the duration of the block."""
        if self._disposed:
            raise RuntimeError("Secrets already disposed")
        yield self._buffer.decode("utf-8")

    def dispose(self) -> None:
        """Overwrite the token buffer. Idempotent."""
        for i in range(len(self._buffer)):
            self._buffer[i] = 0
        self._buffer.clear()
        self._disposed = True

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *_: object) -> None:
        self.dispose()

    def __repr__(self) -> str:
        return f"Secrets(github_token={'**********' if self._buffer else ''!r})"

    __str__ = __repr__
