"""Variable length integers and small integer helpers used by the wire format."""

from __future__ import annotations

from .bitstream import BitReader, BitWriter

_U32_MAX = 0xFFFFFFFF


def log_base2(num: int) -> int:
    """Floor of log2, with 0 for an input of 0."""
    if num < 0:
        raise ValueError(f"log_base2 needs a non-negative number, got {num}")
    return max(num.bit_length() - 1, 0)


def read_var_int(reader: BitReader) -> int:
    """Read a base-128 integer of at most five bytes, truncated to 32 bits."""
    result = 0
    for shift in range(0, 35, 7):
        byte = reader.read_int(8)
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
    return result & _U32_MAX


def _check_u32(value: int) -> None:
    if not 0 <= value <= _U32_MAX:
        raise ValueError(f"{value} is not an unsigned 32-bit integer")


def write_var_int(value: int, writer: BitWriter) -> None:
    """Write a base-128 integer in as few bytes as possible."""
    _check_u32(value)
    while value > 0x7F:
        writer.write_int((value & 0x7F) | 0x80, 8)
        value >>= 7
    writer.write_int(value, 8)


def encode_var_int_fixed(value: int) -> int:
    """Encode a var int that always takes exactly 40 bits; the low 40 bits hold it."""
    _check_u32(value)
    out = 0
    for shift in range(0, 32, 8):
        out |= ((value & 0x7F) | 0x80) << shift
        value >>= 7
    return out | (value << 32)