# pyright: standard
from collections.abc import Sequence

from patchvault.delta import BinaryDeltaCodec
from patchvault.store import PatchStore, VersionStore

CODEC = BinaryDeltaCodec()


def commit_versions(store: VersionStore, document_id: str, versions: Sequence[tuple[int, str | bytes]]) -> list[str]:
    """Commits (timestamp, content) pairs in order and returns the patch ids."""
    return [store.create_patch(document_id, content, ts) for ts, content in versions]


def insert_tagged_patch(
    store: PatchStore,
    document_id: str,
    patch_id: str,
    timestamp: int,
    tag: int,
    base: bytes,
    target: bytes,
) -> None:
    """Writes a patch encoded against an explicit base, bypassing base selection."""
    store.insert_patch(patch_id, document_id, timestamp, CODEC.encode(tag, base, target, True))


def text_block(prefix: str, lines: int = 30) -> str:
    """Multi-line text whose lines are unique to `prefix`."""
    return "".join(f"{prefix} line {i}: {prefix * 3} {i * i}\n" for i in range(lines))
