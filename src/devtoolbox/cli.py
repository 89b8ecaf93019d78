"""`dev-toolbox` command line entry point."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence
from typing import TextIO

from pydantic import ValidationError

from devtoolbox import __version__
from devtoolbox.app import run
from devtoolbox.foundation.errors import StartupError
from devtoolbox.foundation.logging import configure_logging, get_logger
from devtoolbox.foundation.secrets import Secrets
from devtoolbox.foundation.settings import ToolboxSettings, get_settings

log = get_logger("devtoolbox.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dev-toolbox",
        description="A modular terminal toolbox for GitHub and Unicode analysis",
    )
    parser.add_argument("--env", metavar="ENV_FILE", default=".env", help="Path to .env file (default: .env)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def open_log(settings: ToolboxSettings) -> TextIO | None:
    """Send logs to the configured file; the terminal belongs to the UI."""
    if settings.logging.format == "none":
        configure_logging("none")
        return None
    path = settings.logging.file
    path.parent.mkdir(parents=True, exist_ok=True)
    stream = path.open("a", encoding="utf-8")
    configure_logging(settings.logging.format, settings.logging.level, output=stream)
    return stream


def fail(message: str, hint: str = "") -> int:
    print(f"Error: {message}", file=sys.stderr)
    if hint:
        print(f"\n{hint}", file=sys.stderr)
    return 1


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        settings = get_settings()
    except (ValidationError, OSError) as e:
        return fail(f"Invalid configuration: {e}")
    try:
        stream = open_log(settings)
    except OSError as e:
        return fail(f"Cannot open log file: {e}")

    try:
        with Secrets.load(args.env) as secrets:
            failures = asyncio.run(run(settings, secrets))
    except StartupError as e:
        log.error("startup failed", error=e.message)
        return fail(e.message, e.hint)
    except KeyboardInterrupt:
        return 130
    finally:
        if stream is not None:
            stream.close()
    for name, error in failures:
        print(f"Warning: saving cache for {name} failed: {error}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main())
