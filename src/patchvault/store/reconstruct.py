"""
Chain reconstruction: replays a document's patches in timestamp order to
materialize its exact content as of a given timestamp.

Each patch names its base implicitly through the tag in its delta: tag N means
"N + 1 versions back" among the patches of the same document, so the base of the
patch at ascending position p sits at position p - N - 1 (empty content when
that is negative).
"""

import logging

from patchvault.delta import DeltaCodec
from patchvault.exceptions import DecodeError
from patchvault.models import Patch

from .patch_store import PatchStore
from .version_cache import VersionCache

logger = logging.getLogger(__name__)


def base_position(position: int, tag: int) -> int | None:
    """
    Ascending position of the base for the patch at `position`, or None for the empty base.
    """
    base = position - tag - 1
    return base if base >= 0 else None


class ChainReconstructor:
    """
    Resolves document content at a timestamp, consulting and filling the VersionCache.

    Reconstruction is a pure function of (document_id, timestamp) for a fixed store:
    the cache only short-circuits work, it never changes the result.
    """

    store: PatchStore
    codec: DeltaCodec
    cache: VersionCache

    def __init__(self, store: PatchStore, codec: DeltaCodec, cache: VersionCache) -> None:
        self.store = store
        self.codec = codec
        self.cache = cache

    def reconstruct(self, document_id: str, as_of_timestamp: int) -> bytes:
        """
        Returns the content of the latest version at or before `as_of_timestamp`.

        A document with no such version reconstructs to empty content.
        Raises DecodeError if any patch in the chain fails to decode; entries cached
        for patches resolved before the failure stay valid.
        """
        # The store lock is held only for this query; decoding runs unlocked.
        patches = self.store.query_patches_upto(document_id, as_of_timestamp)
        if not patches:
            return b""

        resolved: list[bytes] = []
        hits = 0
        for position, patch in enumerate(patches):
            cached = self.cache.get(document_id, patch.id)
            if cached is not None:
                resolved.append(cached)
                hits += 1
                continue

            content = self._resolve_patch(patch, position, resolved)
            resolved.append(content)
            self.cache.put(document_id, patch.id, content)

        logger.debug(
            "Reconstructed %s at %d: %d patches, %d cache hits, %d bytes",
            document_id,
            as_of_timestamp,
            len(patches),
            hits,
            len(resolved[-1]),
        )
        return resolved[-1]

    def _resolve_patch(self, patch: Patch, position: int, resolved: list[bytes]) -> bytes:
        tag = self.codec.get_tag(patch.delta)
        base_pos = base_position(position, tag)
        base = resolved[base_pos] if base_pos is not None else b""

        if patch.delta is None:
            return base

        try:
            return self.codec.decode(base, patch.delta)
        except DecodeError as e:
            raise DecodeError(f"Failed to decode patch {patch.id} (timestamp {patch.timestamp}): {e.message}") from e
        except ValueError as e:
            raise DecodeError(f"Failed to decode patch {patch.id} (timestamp {patch.timestamp}): {e}") from e
