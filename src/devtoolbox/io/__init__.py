"""I/O collaborators: cache store, GitHub client, clipboard."""

from .clipboard import Clipboard, MemoryClipboard, Osc52Clipboard
from .github import GitHubClient, Organization, Release, Repository
from .store import CacheStore, Transaction

__all__ = [
    "CacheStore", "Transaction",
    "GitHubClient", "Organization", "Repository", "Release",
    "Clipboard", "Osc52Clipboard", "MemoryClipboard",
]
