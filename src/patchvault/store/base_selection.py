import logging

from patchvault.consts import DEFAULT_WINDOW
from patchvault.delta import DeltaCodec

from .patch_store import PatchStore
from .reconstruct import ChainReconstructor

logger = logging.getLogger(__name__)


class BaseSelector:
    """
    Picks the prior version that yields the smallest delta for new content.

    Candidates are the `window` most recent versions strictly before the target
    timestamp; a candidate's index in that most-recent-first list is its tag.
    Ties go to the lowest tag.
    """

    store: PatchStore
    codec: DeltaCodec
    reconstructor: ChainReconstructor

    def __init__(self, store: PatchStore, codec: DeltaCodec, reconstructor: ChainReconstructor) -> None:
        self.store = store
        self.codec = codec
        self.reconstructor = reconstructor

    def select_base(
        self,
        document_id: str,
        new_content: bytes,
        as_of_timestamp: int,
        window: int = DEFAULT_WINDOW,
        compress: bool = True,
    ) -> tuple[int, bytes]:
        """
        Returns (tag, delta) for the cheapest encoding of `new_content`.

        With no prior versions the content is encoded against the empty base with tag 0.
        """
        if window < 1:
            raise ValueError(f"Base-selection window must be at least 1, got {window}.")

        candidates = self.store.query_recent_patch_timestamps(document_id, as_of_timestamp, window)
        if not candidates:
            return 0, self.codec.encode(0, b"", new_content, compress)

        best_tag = 0
        best_delta: bytes | None = None
        for tag, timestamp in enumerate(candidates):
            base = self.reconstructor.reconstruct(document_id, timestamp)
            delta = self.codec.encode(tag, base, new_content, compress)
            logger.debug("Candidate tag %d (timestamp %d): %d bytes", tag, timestamp, len(delta))
            # Strict comparison keeps the first (lowest-tag) minimum
            if best_delta is None or len(delta) < len(best_delta):
                best_tag = tag
                best_delta = delta

        assert best_delta is not None
        logger.debug(
            "Selected base tag %d of %d candidates for %s (%d bytes)",
            best_tag,
            len(candidates),
            document_id,
            len(best_delta),
        )
        return best_tag, best_delta
