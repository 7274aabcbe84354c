"""
Binary delta format.

Layout:
    magic       b"PVD"
    version     1 byte (FORMAT_VERSION)
    flags       1 byte (FLAG_COMPRESSED: body is zlib-compressed)
    tag         unsigned LEB128 varint, how many versions back the base sits
    target_len  unsigned LEB128 varint
    crc32       4 bytes big-endian, CRC-32 of the target
    body        command stream, possibly compressed

Commands:
    END   0x00
    COPY  0x01 offset:varint length:varint
    ADD   0x02 length:varint data
"""

import struct
import zlib
from typing import Protocol

from msgspec import Struct

from patchvault.exceptions import DecodeError

from .matching import MIN_COPY_LENGTH, AddOp, CopyOp, DeltaOp, compute_ops

MAGIC = b"PVD"
FORMAT_VERSION = 1
FLAG_COMPRESSED = 0x01

CMD_END = 0x00
CMD_COPY = 0x01
CMD_ADD = 0x02

_CRC = struct.Struct(">I")
_MAX_VARINT_BYTES = 10


class DeltaCodec(Protocol):
    """Stateless binary diff/patch primitive used by the version store."""

    def encode(self, tag: int, base: bytes, target: bytes, compress: bool) -> bytes: ...

    def decode(self, base: bytes, delta: bytes) -> bytes: ...

    def get_tag(self, delta: bytes | None) -> int: ...


class DeltaHeader(Struct, frozen=True):
    tag: int
    flags: int
    target_length: int
    crc: int
    body_offset: int

    @property
    def compressed(self) -> bool:
        return bool(self.flags & FLAG_COMPRESSED)


def _write_varint(out: bytearray, value: int) -> None:
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return


def _read_varint(data: bytes, pos: int) -> tuple[int, int]:
    """Returns (value, new_pos)."""
    value = 0
    for i in range(_MAX_VARINT_BYTES):
        if pos >= len(data):
            raise DecodeError("Truncated varint in delta.")
        byte = data[pos]
        pos += 1
        value |= (byte & 0x7F) << (7 * i)
        if not byte & 0x80:
            return value, pos
    raise DecodeError("Varint in delta is too long.")


def parse_header(delta: bytes) -> DeltaHeader:
    if len(delta) < len(MAGIC) + 2 or not delta.startswith(MAGIC):
        raise DecodeError("Not a patchvault delta (bad magic).")

    pos = len(MAGIC)
    version = delta[pos]
    if version != FORMAT_VERSION:
        raise DecodeError(f"Unsupported delta format version {version}.")
    flags = delta[pos + 1]
    pos += 2

    tag, pos = _read_varint(delta, pos)
    target_length, pos = _read_varint(delta, pos)
    if pos + _CRC.size > len(delta):
        raise DecodeError("Truncated delta header.")
    (crc,) = _CRC.unpack_from(delta, pos)
    pos += _CRC.size

    return DeltaHeader(tag=tag, flags=flags, target_length=target_length, crc=crc, body_offset=pos)


def _encode_ops(ops: list[DeltaOp]) -> bytes:
    out = bytearray()
    for op in ops:
        match op:
            case CopyOp(offset=offset, length=length):
                out.append(CMD_COPY)
                _write_varint(out, offset)
                _write_varint(out, length)
            case AddOp(data=data):
                out.append(CMD_ADD)
                _write_varint(out, len(data))
                out.extend(data)
    out.append(CMD_END)
    return bytes(out)


def _apply_body(base: bytes, body: bytes) -> bytes:
    out = bytearray()
    pos = 0
    while True:
        if pos >= len(body):
            raise DecodeError("Delta body ended without END command.")
        cmd = body[pos]
        pos += 1
        if cmd == CMD_END:
            return bytes(out)
        elif cmd == CMD_COPY:
            offset, pos = _read_varint(body, pos)
            length, pos = _read_varint(body, pos)
            if offset + length > len(base):
                raise DecodeError(
                    f"COPY range {offset}:{offset + length} is outside the base ({len(base)} bytes)."
                )
            out.extend(base[offset : offset + length])
        elif cmd == CMD_ADD:
            length, pos = _read_varint(body, pos)
            if pos + length > len(body):
                raise DecodeError("Truncated ADD literal in delta body.")
            out.extend(body[pos : pos + length])
            pos += length
        else:
            raise DecodeError(f"Unknown delta command 0x{cmd:02x} at body offset {pos - 1}.")


class BinaryDeltaCodec:
    """
    Default DeltaCodec: difflib-based copy/add ops with optional zlib compression.

    The tag is stored in the header so it can be read without decoding the body.
    """

    min_copy: int
    compression_level: int

    def __init__(self, min_copy: int = MIN_COPY_LENGTH, compression_level: int = 9) -> None:
        self.min_copy = min_copy
        self.compression_level = compression_level

    def encode(self, tag: int, base: bytes, target: bytes, compress: bool = True) -> bytes:
        if tag < 0:
            raise ValueError(f"Delta tag must be non-negative, got {tag}.")

        body = _encode_ops(compute_ops(base, target, self.min_copy))
        flags = 0
        if compress:
            packed = zlib.compress(body, self.compression_level)
            if len(packed) < len(body):
                body = packed
                flags |= FLAG_COMPRESSED

        out = bytearray(MAGIC)
        out.append(FORMAT_VERSION)
        out.append(flags)
        _write_varint(out, tag)
        _write_varint(out, len(target))
        out.extend(_CRC.pack(zlib.crc32(target)))
        out.extend(body)
        return bytes(out)

    def decode(self, base: bytes, delta: bytes) -> bytes:
        header = parse_header(delta)
        body = delta[header.body_offset :]
        if header.compressed:
            try:
                body = zlib.decompress(body)
            except zlib.error as e:
                raise DecodeError(f"Corrupt compressed delta body: {e}") from e

        result = _apply_body(base, body)
        if len(result) != header.target_length:
            raise DecodeError(f"Decoded length {len(result)} does not match expected {header.target_length}.")
        if zlib.crc32(result) != header.crc:
            raise DecodeError("Checksum mismatch: delta does not apply to this base.")
        return result

    def get_tag(self, delta: bytes | None) -> int:
        if not delta:
            return 0
        try:
            return parse_header(delta).tag
        except DecodeError:
            return 0
