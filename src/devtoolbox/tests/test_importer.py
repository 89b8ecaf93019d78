"""Tests for the background reference-data importer."""

from __future__ import annotations

import threading
from pathlib import Path

import pytest

from devtoolbox.foundation.errors import ErrorCode, ReferenceImportError
from devtoolbox.io.store import CacheStore, all_blocks, count_codepoints, lookup_codepoint
from devtoolbox.runtime import importer as importer_module
from devtoolbox.runtime.importer import (
    NO_BLOCK,
    BackgroundImporter,
    ImportState,
    ReadinessFlag,
    import_reference_data,
    parse_blocks,
    parse_chars,
)


def _changes(store: CacheStore) -> int:
    return store.scalar("SELECT total_changes()")


# ─────────────────────────────────────────────────────────────────────────────
# Parsing
# ─────────────────────────────────────────────────────────────────────────────


def test_parse_chars_skips_short_and_blank_lines() -> None:
    lines = ["41;LATIN CAPITAL LETTER A;Basic Latin", "", "junk", "42;only-two", "1F600;GRINNING FACE;So;0"]
    records = list(parse_chars(lines))
    assert [(r.codepoint, r.name, r.block) for r in records] == [
        ("0041", "LATIN CAPITAL LETTER A", "Basic Latin"),
        ("1F600", "GRINNING FACE", "So"),
    ]


def test_parse_chars_rejects_non_hex() -> None:
    with pytest.raises(ReferenceImportError, match="invalid codepoint") as info:
        list(parse_chars(["0041;A;Basic Latin", "ZZZZ;BAD;Basic Latin"]))
    assert info.value.code is ErrorCode.PARSE_ERROR


def test_parse_chars_resolves_block_from_ranges() -> None:
    blocks = parse_blocks(["0000..007F; Basic Latin", "0080..00FF; Latin-1 Supplement"])
    lines = ["0041;LATIN CAPITAL LETTER A;Lu;0;L", "00E9;LATIN SMALL LETTER E WITH ACUTE;Ll", "0100;X;Lu"]
    assert [r.block for r in parse_chars(lines, blocks)] == ["Basic Latin", "Latin-1 Supplement", NO_BLOCK]


def test_parse_blocks_skips_comments() -> None:
    blocks = parse_blocks(["# header", "", "0000..007F; Basic Latin  # trailing"])
    assert [(b.name, b.range_start, b.range_end) for b in blocks] == [("Basic Latin", "0000", "007F")]


@pytest.mark.parametrize("line", ["0000-007F; Basic Latin", "0000..007F", "0000..GGGG; Bad"])
def test_parse_blocks_rejects_malformed(line: str) -> None:
    with pytest.raises(ReferenceImportError):
        parse_blocks([line])


# ─────────────────────────────────────────────────────────────────────────────
# Import
# ─────────────────────────────────────────────────────────────────────────────


def test_end_to_end_lookup(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    chars, blocks = seed_files
    outcome = import_reference_data(store, chars, blocks)

    assert outcome.ok and outcome.rows == 2 and outcome.blocks == 2
    found = lookup_codepoint(store, "0041")
    assert len(found) == 1 and found[0].name == "LATIN CAPITAL LETTER A"
    assert lookup_codepoint(store, "0099") == []


def test_second_import_writes_nothing(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    chars, blocks = seed_files
    import_reference_data(store, chars, blocks)
    before = _changes(store)

    outcome = import_reference_data(store, chars, blocks)

    assert outcome.skipped and outcome.rows == 0
    assert _changes(store) == before


def test_malformed_line_aborts_whole_import(store: CacheStore, tmp_path: Path) -> None:
    chars = tmp_path / "bad.txt"
    chars.write_text("0041;A;Basic Latin\n0042;B;Basic Latin\nNOPE;C;Basic Latin\n0044;D;Basic Latin\n")

    outcome = import_reference_data(store, chars)

    assert not outcome.ok
    assert outcome.error is not None and outcome.error.code is ErrorCode.PARSE_ERROR
    assert count_codepoints(store) == 0


def test_malformed_blocks_abort_characters_too(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    chars, blocks = seed_files
    blocks.write_text("0000..007F; Basic Latin\nbroken line\n")

    outcome = import_reference_data(store, chars, blocks)

    assert not outcome.ok
    assert count_codepoints(store) == 0
    assert all_blocks(store) == []


def test_racing_imports_write_once(
    store: CacheStore, seed_files: tuple[Path, Path], monkeypatch: pytest.MonkeyPatch,
) -> None:
    chars, blocks = seed_files
    both_checked = threading.Barrier(2)
    real_count = importer_module.count_codepoints

    def count_then_wait(db: object) -> int:
        n = real_count(db)
        # Hold both importers after the unlocked emptiness check
        if isinstance(db, CacheStore):
            both_checked.wait(timeout=5)
        return n

    monkeypatch.setattr(importer_module, "count_codepoints", count_then_wait)
    outcomes = []
    threads = [
        threading.Thread(target=lambda: outcomes.append(import_reference_data(store, chars, blocks)))
        for _ in range(2)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=10)

    assert sorted(o.skipped for o in outcomes) == [False, True]
    assert sum(o.rows for o in outcomes) == 2
    assert all(o.ok for o in outcomes)
    assert count_codepoints(store) == 2


def test_missing_chars_file_is_import_error(store: CacheStore, tmp_path: Path) -> None:
    outcome = import_reference_data(store, tmp_path / "absent.txt")
    assert outcome.error is not None and outcome.error.code is ErrorCode.IMPORT_ERROR
    assert count_codepoints(store) == 0


def test_missing_blocks_file_is_optional(store: CacheStore, seed_files: tuple[Path, Path], tmp_path: Path) -> None:
    chars, _ = seed_files
    outcome = import_reference_data(store, chars, tmp_path / "absent-blocks.txt")
    assert outcome.ok and outcome.rows == 2 and outcome.blocks == 0


# ─────────────────────────────────────────────────────────────────────────────
# Background Runner
# ─────────────────────────────────────────────────────────────────────────────


def test_readiness_flag_is_write_once() -> None:
    flag = ReadinessFlag()
    assert not flag.is_ready
    flag.mark_done()
    flag.mark_done()
    assert flag.is_ready and flag.wait(0)


def test_spawn_sets_readiness(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    importer = BackgroundImporter(store)
    handle = importer.spawn(*seed_files)

    outcome = handle.join(timeout=5)

    assert outcome is not None and outcome.rows == 2
    assert handle.state is ImportState.DONE
    assert all(importer.readiness.is_ready for _ in range(100))


def test_failed_import_still_marks_ready(store: CacheStore, tmp_path: Path) -> None:
    handle = BackgroundImporter(store).spawn(tmp_path / "absent.txt")
    outcome = handle.join(timeout=5)
    assert handle.readiness.is_ready
    assert outcome is not None and outcome.error is not None


def test_spawn_is_not_reentrant(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    importer = BackgroundImporter(store)
    importer.spawn(*seed_files).join(timeout=5)
    with pytest.raises(RuntimeError, match="already started"):
        importer.spawn(*seed_files)


def test_spawn_does_not_block_caller(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    importer = BackgroundImporter(store)
    # Holding the store lock keeps the import from finishing
    with store._lock:
        handle = importer.spawn(*seed_files)
        assert not handle.readiness.is_ready
        assert handle.state in (ImportState.PENDING, ImportState.RUNNING)
    assert handle.join(timeout=5) is not None


@pytest.mark.asyncio
async def test_wait_from_event_loop(store: CacheStore, seed_files: tuple[Path, Path]) -> None:
    handle = BackgroundImporter(store).spawn(*seed_files)
    outcome = await handle.wait()
    assert outcome is not None and outcome.ok
