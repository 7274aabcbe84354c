"""
Computes the copy/insert operations that rebuild a target byte string from a base.

Matching runs line-wise first (cheap, and lines are good anchors for text), then
refines each replaced region byte-wise when the region is small enough for
`difflib.SequenceMatcher` to stay fast.
"""

import difflib
from itertools import accumulate

from msgspec import Struct

MIN_COPY_LENGTH = 4
# Upper bound on len(base_region) * len(target_region) for byte-level refinement.
REFINE_LIMIT = 1_000_000


class CopyOp(Struct, frozen=True):
    """Copy base[offset : offset + length] to the output."""

    offset: int
    length: int


class AddOp(Struct, frozen=True):
    """Append literal bytes to the output."""

    data: bytes


type DeltaOp = CopyOp | AddOp


class _OpBuilder:
    """Accumulates ops, merging adjacent literals and contiguous copies."""

    def __init__(self, base: bytes, min_copy: int) -> None:
        self._base: bytes = base
        self._min_copy: int = min_copy
        self._ops: list[DeltaOp] = []
        self._literal: bytearray = bytearray()

    def add(self, data: bytes) -> None:
        self._literal.extend(data)

    def copy(self, offset: int, length: int) -> None:
        if length <= 0:
            return
        if length < self._min_copy:
            # Too short to pay for a COPY header
            self._literal.extend(self._base[offset : offset + length])
            return

        self._flush_literal()
        match self._ops[-1:]:
            case [CopyOp(offset=prev_offset, length=prev_length)] if prev_offset + prev_length == offset:
                self._ops[-1] = CopyOp(offset=prev_offset, length=prev_length + length)
            case _:
                self._ops.append(CopyOp(offset=offset, length=length))

    def finish(self) -> list[DeltaOp]:
        self._flush_literal()
        return self._ops

    def _flush_literal(self) -> None:
        if self._literal:
            self._ops.append(AddOp(data=bytes(self._literal)))
            self._literal.clear()


def _line_offsets(lines: list[bytes]) -> list[int]:
    """Start offset of every line, followed by the total length."""
    return [0, *accumulate(len(line) for line in lines)]


def _refine_region(builder: _OpBuilder, base: bytes, a_start: int, a_end: int, chunk: bytes) -> None:
    region = base[a_start:a_end]
    if not region or len(region) * len(chunk) > REFINE_LIMIT:
        builder.add(chunk)
        return

    matcher = difflib.SequenceMatcher(None, region, chunk, autojunk=False)
    pos = 0
    for block in matcher.get_matching_blocks():
        if block.b > pos:
            builder.add(chunk[pos : block.b])
        builder.copy(a_start + block.a, block.size)
        pos = block.b + block.size
    if pos < len(chunk):
        builder.add(chunk[pos:])


def compute_ops(base: bytes, target: bytes, min_copy: int = MIN_COPY_LENGTH) -> list[DeltaOp]:
    """
    Returns the ops that turn `base` into `target`.

    Applying the ops in order (COPY from base, ADD literal) yields `target` exactly.
    """
    if not target:
        return []
    if not base:
        return [AddOp(data=target)]

    builder = _OpBuilder(base, min_copy)
    base_lines = base.splitlines(keepends=True)
    target_lines = target.splitlines(keepends=True)
    a_off = _line_offsets(base_lines)
    b_off = _line_offsets(target_lines)

    matcher = difflib.SequenceMatcher(None, base_lines, target_lines, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        match tag:
            case "equal":
                builder.copy(a_off[i1], a_off[i2] - a_off[i1])
            case "insert":
                builder.add(target[b_off[j1] : b_off[j2]])
            case "replace":
                _refine_region(builder, base, a_off[i1], a_off[i2], target[b_off[j1] : b_off[j2]])
            case _:
                # "delete": nothing from the base survives
                pass

    return builder.finish()

