"""
Binary delta encoding for document versions.

Provides:
- DeltaCodec protocol consumed by the version store
- BinaryDeltaCodec, the default difflib + zlib implementation
- Op computation helpers (CopyOp / AddOp)
"""

from .codec import BinaryDeltaCodec, DeltaCodec, DeltaHeader, parse_header
from .matching import MIN_COPY_LENGTH, AddOp, CopyOp, DeltaOp, compute_ops

__all__ = [
    "MIN_COPY_LENGTH",
    "AddOp",
    "BinaryDeltaCodec",
    "CopyOp",
    "DeltaCodec",
    "DeltaHeader",
    "DeltaOp",
    "compute_ops",
    "parse_header",
]
