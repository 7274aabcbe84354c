"""
Versioned document storage built on chains of binary deltas.

Provides:
- PatchStore: append-only SQLite persistence for documents and patches
- VersionCache: memoized reconstructed content per (document, patch)
- ChainReconstructor: replays tagged patch chains to a timestamp
- BaseSelector: windowed search for the cheapest delta base
- VersionStore: orchestration of the above
"""

from .base_selection import BaseSelector
from .patch_store import MEMORY_PATH, PatchStore
from .reconstruct import ChainReconstructor, base_position
from .version_cache import VersionCache
from .version_store import VersionStore

__all__ = [
    "MEMORY_PATH",
    "BaseSelector",
    "ChainReconstructor",
    "PatchStore",
    "VersionCache",
    "VersionStore",
    "base_position",
]
