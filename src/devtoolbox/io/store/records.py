"""Typed rows of the cache store and the statements that read and write them.

Helpers take any `Queryable` so the same code runs directly against the
store (one locked statement) or inside a transaction body.
"""

from __future__ import annotations

from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from .store import Queryable

MAX_CODEPOINT = 0x10FFFF
DEFAULT_SEARCH_LIMIT = 200


class RepoRecord(BaseModel):
    """Cached repository payload. Unique on (owner, name); last write wins."""

    model_config = ConfigDict(frozen=True)

    owner: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    payload: str


class CodepointRecord(BaseModel):
    """Reference row for one codepoint. `codepoint` is upper-case hex, at least 4 digits."""

    model_config = ConfigDict(frozen=True)

    codepoint: str
    name: str
    block: str

    @property
    def value(self) -> int:
        return int(self.codepoint, 16)


class BlockRecord(BaseModel):
    """Named codepoint range (inclusive)."""

    model_config = ConfigDict(frozen=True)

    name: str
    range_start: str
    range_end: str

    def contains(self, codepoint: int) -> bool:
        return int(self.range_start, 16) <= codepoint <= int(self.range_end, 16)


def normalize_codepoint(text: str) -> str:
    """Canonical key for a codepoint: `U+41`, `0x41` and `0041` all become `0041`.

    Raises:
        ValueError: text is not a hexadecimal codepoint in range
    """
    raw = text.strip().upper()
    for prefix in ("U+", "0X"):
        raw = raw.removeprefix(prefix)
    if not raw:
        raise ValueError(f"empty codepoint: {text!r}")
    value = int(raw, 16)
    if not 0 <= value <= MAX_CODEPOINT:
        raise ValueError(f"codepoint out of range: {text!r}")
    return f"{value:04X}"


# ─────────────────────────────────────────────────────────────────────────────
# Repositories
# ─────────────────────────────────────────────────────────────────────────────


def upsert_repos(db: Queryable, records: Iterable[RepoRecord]) -> int:
    rows = [(r.owner, r.name, r.payload) for r in records]
    if not rows:
        return 0
    db.executemany("INSERT OR REPLACE INTO repos (username, name, data) VALUES (?, ?, ?)", rows)
    return len(rows)


def cached_repos(db: Queryable, owner: str) -> list[RepoRecord]:
    rows = db.query("SELECT username, name, data FROM repos WHERE username = ? ORDER BY name", (owner,))
    return [RepoRecord(owner=r[0], name=r[1], payload=r[2]) for r in rows]


# ─────────────────────────────────────────────────────────────────────────────
# Unicode Reference Data
# ─────────────────────────────────────────────────────────────────────────────


def count_codepoints(db: Queryable) -> int:
    return int(db.scalar("SELECT COUNT(*) FROM unicode_chars") or 0)


def insert_codepoints(db: Queryable, records: Iterable[CodepointRecord]) -> int:
    rows = [(r.codepoint, r.name, r.block) for r in records]
    if rows:
        db.executemany("INSERT OR REPLACE INTO unicode_chars (codepoint, name, block) VALUES (?, ?, ?)", rows)
    return len(rows)


def insert_blocks(db: Queryable, records: Iterable[BlockRecord]) -> int:
    rows = [(r.name, r.range_start, r.range_end) for r in records]
    if rows:
        db.executemany(
            "INSERT OR REPLACE INTO unicode_blocks (name, range_start, range_end) VALUES (?, ?, ?)", rows,
        )
    return len(rows)


def lookup_codepoint(db: Queryable, codepoint: str) -> list[CodepointRecord]:
    rows = db.query("SELECT codepoint, name, block FROM unicode_chars WHERE codepoint = ?", (codepoint,))
    return [CodepointRecord(codepoint=r[0], name=r[1], block=r[2]) for r in rows]


def lookup_codepoints(db: Queryable, codepoints: Iterable[str]) -> list[CodepointRecord]:
    """Look up several codepoints, preserving request order (duplicates included)."""
    wanted = list(codepoints)
    if not wanted:
        return []
    marks = ",".join("?" * len(set(wanted)))
    rows = db.query(
        f"SELECT codepoint, name, block FROM unicode_chars WHERE codepoint IN ({marks})", tuple(set(wanted)),
    )
    found = {r[0]: CodepointRecord(codepoint=r[0], name=r[1], block=r[2]) for r in rows}
    return [found[cp] for cp in wanted if cp in found]


def search_codepoints(db: Queryable, fragment: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[CodepointRecord]:
    """Codepoints whose name contains `fragment` (case-insensitive for ASCII)."""
    escaped = fragment.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    rows = db.query(
        "SELECT codepoint, name, block FROM unicode_chars WHERE name LIKE ? ESCAPE '\\' "
        "ORDER BY length(codepoint), codepoint LIMIT ?",
        (f"%{escaped}%", limit),
    )
    return [CodepointRecord(codepoint=r[0], name=r[1], block=r[2]) for r in rows]


def all_blocks(db: Queryable) -> list[BlockRecord]:
    rows = db.query("SELECT name, range_start, range_end FROM unicode_blocks")
    return sorted(
        (BlockRecord(name=r[0], range_start=r[1], range_end=r[2]) for r in rows),
        key=lambda b: int(b.range_start, 16),
    )


def block_for(db: Queryable, codepoint: int) -> BlockRecord | None:
    return next((b for b in all_blocks(db) if b.contains(codepoint)), None)
