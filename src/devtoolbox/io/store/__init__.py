"""Local persistent cache store.

- CacheStore: the single lock-guarded SQLite connection
- Transaction: scoped handle for atomic bodies
- Records: RepoRecord, CodepointRecord, BlockRecord and their statements
"""

from .records import (
    BlockRecord,
    CodepointRecord,
    RepoRecord,
    all_blocks,
    block_for,
    cached_repos,
    count_codepoints,
    insert_blocks,
    insert_codepoints,
    lookup_codepoint,
    lookup_codepoints,
    normalize_codepoint,
    search_codepoints,
    upsert_repos,
)
from .store import MEMORY, SCHEMA, CacheStore, Queryable, Row, Transaction

__all__ = [
    "CacheStore", "Transaction", "Queryable", "Row", "SCHEMA", "MEMORY",
    "RepoRecord", "CodepointRecord", "BlockRecord",
    "upsert_repos", "cached_repos",
    "count_codepoints", "insert_codepoints", "insert_blocks",
    "lookup_codepoint", "lookup_codepoints", "search_codepoints",
    "all_blocks", "block_for", "normalize_codepoint",
]
