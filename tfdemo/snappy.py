"""Decoder for the raw (unframed) snappy compression format."""

from __future__ import annotations

from .bitstream import ParseError

_U32_MAX = 0xFFFFFFFF


def _read_preamble(data: bytes) -> tuple[int, int]:
    value = 0
    for position, byte in enumerate(data[:5]):
        value |= (byte & 0x7F) << (7 * position)
        if not byte & 0x80:
            if value > _U32_MAX:
                raise ParseError("snappy header length does not fit in 32 bits")
            return value, position + 1
    raise ParseError("snappy header is truncated or too long")


def decompress_len(data: bytes) -> int:
    """The decompressed length stated in the header."""
    return _read_preamble(bytes(data))[0]


def _take(data: bytes, pos: int, count: int) -> int:
    if pos + count > len(data):
        raise ParseError("snappy data is truncated")
    return int.from_bytes(data[pos:pos + count], "little")


def _copy(out: bytearray, offset: int, length: int) -> None:
    if offset == 0 or offset > len(out):
        raise ParseError(f"snappy copy offset {offset} is invalid at output length {len(out)}")
    start = len(out) - offset
    if offset >= length:
        out += out[start:start + length]
    else:
        pattern = bytes(out[start:])
        out += (pattern * (length // offset + 1))[:length]


def decompress(data: bytes) -> bytes:
    """Decompress a raw snappy block."""
    data = bytes(data)
    expected, pos = _read_preamble(data)
    out = bytearray()
    while pos < len(data):
        tag = data[pos]
        pos += 1
        kind = tag & 3
        if kind == 0:
            length = tag >> 2
            if length >= 60:
                extra = length - 59
                length = _take(data, pos, extra)
                pos += extra
            length += 1
            if pos + length > len(data):
                raise ParseError("snappy literal is truncated")
            out += data[pos:pos + length]
            pos += length
        elif kind == 1:
            length = ((tag >> 2) & 7) + 4
            offset = ((tag >> 5) << 8) | _take(data, pos, 1)
            pos += 1
            _copy(out, offset, length)
        elif kind == 2:
            length = (tag >> 2) + 1
            offset = _take(data, pos, 2)
            pos += 2
            _copy(out, offset, length)
        else:
            length = (tag >> 2) + 1
            offset = _take(data, pos, 4)
            pos += 4
            _copy(out, offset, length)
        if len(out) > expected:
            raise ParseError("snappy output is longer than its header states")
    if len(out) != expected:
        raise ParseError(
            f"snappy output has {len(out)} bytes, header states {expected}"
        )
    return bytes(out)