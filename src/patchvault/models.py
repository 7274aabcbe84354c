from datetime import UTC, datetime

from msgspec import Struct


def now_ms() -> int:
    """Current UTC time as epoch milliseconds, the timestamp unit used throughout."""
    return int(datetime.now(UTC).timestamp() * 1000)


class Document(Struct, frozen=True):
    id: str
    name: str
    created_at: int


class Patch(Struct, frozen=True):
    """
    A persisted delta for one version of a document.

    `delta is None` means the version equals its base verbatim.
    """

    id: str
    document_id: str
    timestamp: int
    delta: bytes | None = None


class DocumentStats(Struct, frozen=True):
    patch_count: int
    total_delta_bytes: int
    total_uncompressed_bytes: int
    compression_ratio: float


class CacheStats(Struct, frozen=True):
    entries: int
    hits: int
    misses: int
    max_entries: int | None = None
