from __future__ import annotations

import logging
import threading
import uuid
from types import TracebackType
from typing import Self

from patchvault.config import Settings
from patchvault.consts import DEFAULT_WINDOW
from patchvault.delta import BinaryDeltaCodec, DeltaCodec
from patchvault.exceptions import EncodingError, InvalidInputError, NoChangeError, TimestampConflictError
from patchvault.models import CacheStats, Document, DocumentStats, now_ms

from .base_selection import BaseSelector
from .patch_store import PatchStore
from .reconstruct import ChainReconstructor
from .version_cache import VersionCache

logger = logging.getLogger(__name__)


class VersionStore:
    """
    Orchestrates document and patch creation, loading and statistics.

    Composes a PatchStore, a DeltaCodec, a VersionCache, a ChainReconstructor and a
    BaseSelector. Each collaborator takes its own lock per operation. Commits to one
    document are additionally serialized by a per-document lock held from reading the
    current version to inserting the patch, since a patch's tag is only valid for the
    history it was computed against. That lock is never taken by the collaborators,
    so nested reconstruction cannot deadlock.
    """

    store: PatchStore
    codec: DeltaCodec
    cache: VersionCache
    reconstructor: ChainReconstructor
    selector: BaseSelector
    window: int
    compress: bool
    _document_locks: dict[str, threading.Lock]
    _document_locks_guard: threading.Lock

    def __init__(
        self,
        store: PatchStore,
        codec: DeltaCodec | None = None,
        cache: VersionCache | None = None,
        window: int = DEFAULT_WINDOW,
        compress: bool = True,
    ) -> None:
        if window < 1:
            raise ValueError(f"Base-selection window must be at least 1, got {window}.")
        self.store = store
        self.codec = codec if codec is not None else BinaryDeltaCodec()
        self.cache = cache if cache is not None else VersionCache()
        self.reconstructor = ChainReconstructor(self.store, self.codec, self.cache)
        self.selector = BaseSelector(self.store, self.codec, self.reconstructor)
        self.window = window
        self.compress = compress
        self._document_locks = {}
        self._document_locks_guard = threading.Lock()

    @classmethod
    def open(cls, settings: Settings) -> VersionStore:
        """Builds the full stack from resolved settings."""
        return cls(
            PatchStore(settings.db_path),
            BinaryDeltaCodec(),
            VersionCache(settings.cache_max_entries),
            window=settings.window,
            compress=settings.compress,
        )

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    # ---------- Documents ----------

    def create_document(self, name: str) -> str:
        if not name.strip():
            raise InvalidInputError("Document name must not be empty.")

        document_id = str(uuid.uuid4())
        self.store.insert_document(document_id, name, now_ms())
        logger.info("Created document %s (%s)", document_id, name)
        return document_id

    def get_document(self, document_id: str) -> Document:
        return self.store.get_document(document_id)

    def list_documents(self) -> list[Document]:
        return self.store.list_documents()

    # ---------- Patches ----------

    def create_patch(self, document_id: str, new_content: str | bytes, timestamp: int | None = None) -> str:
        """
        Records `new_content` as the version of the document at `timestamp` (default: now, epoch ms).

        Raises NotFoundError for an unknown document, NoChangeError when the content
        equals the current version, and TimestampConflictError when `timestamp` does
        not come after the document's latest patch. Returns the new patch id.
        """
        content = new_content.encode("utf-8") if isinstance(new_content, str) else bytes(new_content)

        _ = self.store.get_document(document_id)

        with self._document_lock(document_id):
            ts = now_ms() if timestamp is None else timestamp

            current = self.reconstructor.reconstruct(document_id, ts)
            if current == content:
                raise NoChangeError()

            latest = self.store.latest_patch_timestamp(document_id)
            if latest is not None and ts <= latest:
                raise TimestampConflictError(
                    f"Timestamp {ts} must be later than the latest patch of document '{document_id}' ({latest})."
                )

            tag, delta = self.selector.select_base(document_id, content, ts, self.window, self.compress)

            patch_id = str(uuid.uuid4())
            # Re-checks atomically that no writer outside this instance appended meanwhile
            self.store.append_patch(patch_id, document_id, ts, delta, expected_latest=latest)
            # Content is already known; skip decoding the delta we just wrote
            self.cache.put(document_id, patch_id, content)

        logger.info(
            "Created patch %s for %s at %d (tag %d, %d delta bytes for %d content bytes)",
            patch_id,
            document_id,
            ts,
            tag,
            len(delta),
            len(content),
        )
        return patch_id

    def list_patch_timestamps(self, document_id: str) -> list[int]:
        return self.store.list_patch_timestamps(document_id)

    def _document_lock(self, document_id: str) -> threading.Lock:
        with self._document_locks_guard:
            return self._document_locks.setdefault(document_id, threading.Lock())

    # ---------- Loading ----------

    def load(self, document_id: str, timestamp: int | None = None) -> bytes:
        """
        Content of the latest version at or before `timestamp` (default: now).
        """
        return self.reconstructor.reconstruct(document_id, now_ms() if timestamp is None else timestamp)

    def load_text(self, document_id: str, timestamp: int | None = None) -> str:
        content = self.load(document_id, timestamp)
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingError(f"Document '{document_id}' is not valid UTF-8 text: {e}") from e

    # ---------- Cache & statistics ----------

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    def get_document_stats(self, document_id: str) -> DocumentStats:
        _ = self.store.get_document(document_id)

        patch_count, total_delta_bytes = self.store.aggregate_patch_stats(document_id)
        timestamps = self.store.list_patch_timestamps(document_id)
        # One reconstruction per version; cache-accelerated on repeated calls
        total_uncompressed_bytes = sum(len(self.reconstructor.reconstruct(document_id, ts)) for ts in timestamps)

        compression_ratio = total_uncompressed_bytes / total_delta_bytes if total_delta_bytes > 0 else 1.0
        return DocumentStats(
            patch_count=patch_count,
            total_delta_bytes=total_delta_bytes,
            total_uncompressed_bytes=total_uncompressed_bytes,
            compression_ratio=compression_ratio,
        )
