"""One-shot background import of Unicode reference data into the cache store.

The import is idempotent (a non-empty `unicode_chars` table means there is
nothing to do) and atomic (everything is written in one transaction, so an
aborted attempt leaves the tables exactly as they were). Completion is
published through a `ReadinessFlag` that is set once and never cleared.

Example:
    >>> handle = BackgroundImporter(store).spawn(Path("UnicodeData.txt"), Path("Blocks.txt"))
    >>> handle.readiness.is_ready    # polled by the render path
    False
    >>> handle.join()
    ImportOutcome(rows=..., ...)
"""

from __future__ import annotations

import asyncio
import bisect
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import StrEnum, auto
from pathlib import Path

from devtoolbox.foundation.errors import ErrorCode, ReferenceImportError, StorageError
from devtoolbox.foundation.logging import get_logger
from devtoolbox.io.store import (
    BlockRecord,
    CacheStore,
    CodepointRecord,
    Transaction,
    count_codepoints,
    insert_blocks,
    insert_codepoints,
)

log = get_logger("devtoolbox.importer")

NO_BLOCK = "No_Block"


class ImportState(StrEnum):
    PENDING = auto()
    RUNNING = auto()
    DONE = auto()


class ReadinessFlag:
    """Write-once "import finished" flag, safe to read from any thread."""

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def is_ready(self) -> bool:
        return self._event.is_set()

    def mark_done(self) -> None:
        self._event.set()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"ReadinessFlag(ready={self.is_ready})"


@dataclass(frozen=True, slots=True)
class ImportOutcome:
    """What one import attempt did."""

    rows: int = 0
    blocks: int = 0
    skipped: bool = False
    error: ReferenceImportError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ─────────────────────────────────────────────────────────────────────────────
# Seed Parsing
# ─────────────────────────────────────────────────────────────────────────────


def _hex(field: str, lineno: int, source: str) -> int:
    try:
        return int(field.strip(), 16)
    except ValueError:
        raise ReferenceImportError(
            f"{source}:{lineno}: invalid codepoint {field.strip()!r}", code=ErrorCode.PARSE_ERROR,
        ) from None


def parse_blocks(lines: Iterable[str], source: str = "blocks") -> list[BlockRecord]:
    """Parse `Blocks.txt` lines (`0000..007F; Basic Latin`). Comments and blanks are skipped.

    Raises:
        ReferenceImportError: a line is not a valid `start..end; name` range
    """
    blocks: list[BlockRecord] = []
    for lineno, raw in enumerate(lines, 1):
        line = raw.split("#", 1)[0].strip()
        if not line:
            continue
        span, sep, name = line.partition(";")
        start, dots, end = span.partition("..")
        if not sep or not dots or not name.strip():
            raise ReferenceImportError(f"{source}:{lineno}: malformed block line", code=ErrorCode.PARSE_ERROR)
        lo, hi = _hex(start, lineno, source), _hex(end, lineno, source)
        blocks.append(BlockRecord(name=name.strip(), range_start=f"{lo:04X}", range_end=f"{hi:04X}"))
    return blocks


class _BlockIndex:
    """Codepoint -> block name by binary search over sorted range starts."""

    __slots__ = ("_starts", "_blocks", "_names")

    def __init__(self, blocks: Iterable[BlockRecord]) -> None:
        self._blocks = sorted(blocks, key=lambda b: int(b.range_start, 16))
        self._starts = [int(b.range_start, 16) for b in self._blocks]
        self._names = {b.name for b in self._blocks}

    def __bool__(self) -> bool:
        return bool(self._blocks)

    def is_block(self, name: str) -> bool:
        return name in self._names

    def resolve(self, codepoint: int) -> str:
        i = bisect.bisect_right(self._starts, codepoint) - 1
        if i >= 0 and self._blocks[i].contains(codepoint):
            return self._blocks[i].name
        return NO_BLOCK


def parse_chars(
    lines: Iterable[str], blocks: Iterable[BlockRecord] = (), source: str = "chars",
) -> Iterator[CodepointRecord]:
    """Parse `code;name;group;...` lines.

    Blank lines and lines with fewer than three fields are skipped. When block
    ranges are given and the third field is not a known block name (real
    UnicodeData.txt carries the general category there), the block is taken
    from the ranges.

    Raises:
        ReferenceImportError: the code field is not hexadecimal
    """
    index = _BlockIndex(blocks)
    for lineno, raw in enumerate(lines, 1):
        fields = raw.rstrip("\r\n").split(";")
        if len(fields) < 3:
            continue
        value = _hex(fields[0], lineno, source)
        group = fields[2].strip()
        if index and not index.is_block(group):
            group = index.resolve(value)
        yield CodepointRecord(codepoint=f"{value:04X}", name=fields[1].strip(), block=group)


# ─────────────────────────────────────────────────────────────────────────────
# Import
# ─────────────────────────────────────────────────────────────────────────────


def import_reference_data(store: CacheStore, chars_path: Path, blocks_path: Path | None = None) -> ImportOutcome:
    """Populate the reference tables if empty. Never raises; failures are in the outcome.

    The emptiness check is repeated inside the write transaction, so of two
    importers racing on one store only the first writes.
    """
    try:
        existing = count_codepoints(store)
    except StorageError as e:
        return _aborted(ReferenceImportError.from_exc(e, "cannot read reference table"))
    if existing > 0:
        return _skipped(existing)

    if not chars_path.is_file():
        return _aborted(ReferenceImportError(f"Unicode data file not found: {chars_path}"))
    if blocks_path is not None and not blocks_path.is_file():
        log.warning("blocks file not found, importing characters only", path=str(blocks_path))
        blocks_path = None

    def body(tx: Transaction) -> ImportOutcome:
        if (present := count_codepoints(tx)) > 0:
            return _skipped(present)
        blocks: list[BlockRecord] = []
        if blocks_path is not None:
            with blocks_path.open(encoding="utf-8") as fh:
                blocks = parse_blocks(fh, source=blocks_path.name)
            insert_blocks(tx, blocks)
        with chars_path.open(encoding="utf-8") as fh:
            rows = insert_codepoints(tx, parse_chars(fh, blocks, source=chars_path.name))
        return ImportOutcome(rows=rows, blocks=len(blocks))

    log.info("import started", chars=str(chars_path), blocks=str(blocks_path) if blocks_path else None)
    try:
        outcome = store.transaction(body)
    except ReferenceImportError as e:
        return _aborted(e)
    except (OSError, UnicodeDecodeError, StorageError) as e:
        return _aborted(ReferenceImportError.from_exc(e, "reference import failed"))
    if not outcome.skipped:
        log.info("import committed", rows=outcome.rows, blocks=outcome.blocks)
    return outcome


def _skipped(existing: int) -> ImportOutcome:
    log.info("import skipped", existing=existing)
    return ImportOutcome(skipped=True)


def _aborted(error: ReferenceImportError) -> ImportOutcome:
    log.error("import aborted", error=error.message, code=str(error.code))
    return ImportOutcome(error=error)


# ─────────────────────────────────────────────────────────────────────────────
# Background Runner
# ─────────────────────────────────────────────────────────────────────────────


class ImportHandle:
    """Handle to a running import: state, readiness and the eventual outcome."""

    __slots__ = ("_thread", "_outcome", "_state", "readiness")

    def __init__(self, readiness: ReadinessFlag) -> None:
        self.readiness = readiness
        self._thread: threading.Thread | None = None
        self._outcome: ImportOutcome | None = None
        self._state = ImportState.PENDING

    @property
    def state(self) -> ImportState:
        return self._state

    @property
    def outcome(self) -> ImportOutcome | None:
        return self._outcome

    def join(self, timeout: float | None = None) -> ImportOutcome | None:
        """Block until the import finishes (or timeout). Returns the outcome if done."""
        self.readiness.wait(timeout)
        return self._outcome

    async def wait(self) -> ImportOutcome | None:
        return await asyncio.to_thread(self.join)


class BackgroundImporter:
    """Runs `import_reference_data` once, on a daemon thread.

    Only one import may run per importer; a second `spawn` raises.
    """

    __slots__ = ("_store", "_readiness", "_handle", "_lock")

    def __init__(self, store: CacheStore, readiness: ReadinessFlag | None = None) -> None:
        self._store = store
        self._readiness = readiness or ReadinessFlag()
        self._handle: ImportHandle | None = None
        self._lock = threading.Lock()

    @property
    def readiness(self) -> ReadinessFlag:
        return self._readiness

    def spawn(self, chars_path: Path, blocks_path: Path | None = None) -> ImportHandle:
        """Start the import and return immediately."""
        with self._lock:
            if self._handle is not None:
                raise RuntimeError("reference import already started")
            handle = self._handle = ImportHandle(self._readiness)

        def run() -> None:
            handle._state = ImportState.RUNNING
            try:
                handle._outcome = import_reference_data(self._store, chars_path, blocks_path)
            finally:
                handle._state = ImportState.DONE
                self._readiness.mark_done()

        handle._thread = threading.Thread(target=run, name="devtoolbox-import", daemon=True)
        handle._thread.start()
        return handle
