"""Little-endian bit streams for reading and writing demo data."""

from __future__ import annotations

import struct
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


class ParseError(Exception):
    """Raised when demo data cannot be parsed or encoded."""


class BitError(ParseError):
    """Raised on low-level bit stream failures such as reading past the end."""


class BitReader:
    """A read cursor over a window of bits, least significant bit first."""

    __slots__ = ("_data", "_offset", "_length", "_pos")

    def __init__(self, data, bit_length=None):
        self._data = bytes(data)
        total = len(self._data) * 8
        if bit_length is None:
            bit_length = total
        if not 0 <= bit_length <= total:
            raise BitError(f"bit length {bit_length} does not fit in {total} bits of data")
        self._offset = 0
        self._length = bit_length
        self._pos = 0

    @classmethod
    def _window(cls, data: bytes, offset: int, length: int, pos: int = 0) -> "BitReader":
        reader = cls.__new__(cls)
        reader._data = data
        reader._offset = offset
        reader._length = length
        reader._pos = pos
        return reader

    @property
    def pos(self) -> int:
        return self._pos

    @property
    def bit_length(self) -> int:
        return self._length

    @property
    def bits_left(self) -> int:
        return self._length - self._pos

    def _peek(self, start: int, count: int) -> int:
        absolute = self._offset + start
        first = absolute // 8
        last = (absolute + count + 7) // 8
        value = int.from_bytes(self._data[first:last], "little") >> (absolute % 8)
        return value & ((1 << count) - 1)

    def _ensure(self, count: int) -> None:
        if count < 0:
            raise BitError(f"cannot read a negative number of bits ({count})")
        if count > self.bits_left:
            raise BitError(
                f"not enough data: {count} bits requested, {self.bits_left} bits left"
            )

    def _take(self, count: int) -> int:
        self._ensure(count)
        value = self._peek(self._pos, count)
        self._pos += count
        return value

    def read_bool(self) -> bool:
        return self._take(1) == 1

    def read_int(self, bits: int) -> int:
        """Read an unsigned integer of the given width."""
        return self._take(bits)

    def read_signed(self, bits: int) -> int:
        """Read a two's complement integer of the given width."""
        value = self._take(bits)
        if bits and value >> (bits - 1):
            value -= 1 << bits
        return value

    def read_float(self) -> float:
        """Read a 32-bit IEEE float."""
        return struct.unpack("<f", self._take(32).to_bytes(4, "little"))[0]

    def read_bytes(self, count: int) -> bytes:
        if count < 0:
            raise BitError(f"cannot read a negative number of bytes ({count})")
        return self._take(count * 8).to_bytes(count, "little")

    def read_string(self, byte_length: Optional[int] = None) -> str:
        """Read a null-terminated string, or a fixed-size one cut at its first null."""
        if byte_length is not None:
            raw = self.read_bytes(byte_length).split(b"\0", 1)[0]
        else:
            raw = self._read_terminated()
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as error:
            raise BitError(f"string is not valid utf-8: {raw!r}") from error

    def _read_terminated(self) -> bytes:
        absolute = self._offset + self._pos
        if absolute % 8 == 0:
            start = absolute // 8
            limit = (self._offset + self._length) // 8
            end = self._data.find(b"\0", start, limit)
            if end < 0:
                raise BitError("not enough data: string is not terminated")
            self._pos += (end - start + 1) * 8
            return self._data[start:end]
        collected = bytearray()
        while (byte := self._take(8)) != 0:
            collected.append(byte)
        return bytes(collected)

    def read_bits(self, count: int) -> "BitReader":
        """Split off the next ``count`` bits as a reader of their own."""
        self._ensure(count)
        reader = BitReader._window(self._data, self._offset + self._pos, count)
        self._pos += count
        return reader

    def skip_bits(self, count: int) -> None:
        self._ensure(count)
        self._pos += count

    def set_pos(self, pos: int) -> None:
        if not 0 <= pos <= self._length:
            raise BitError(f"position {pos} is outside of 0..{self._length}")
        self._pos = pos

    def to_bytes(self) -> bytes:
        """All bits of this reader's window, padded with zero bits to whole bytes."""
        return self._peek(0, self._length).to_bytes((self._length + 7) // 8, "little")

    def __copy__(self) -> "BitReader":
        return BitReader._window(self._data, self._offset, self._length, self._pos)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BitReader):
            return NotImplemented
        return (
            self._length == other._length
            and self._pos == other._pos
            and self._peek(0, self._length) == other._peek(0, other._length)
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"BitReader(bit_length={self._length}, pos={self._pos})"


@dataclass
class _Reservation:
    value: Optional[int] = None


class BitWriter:
    """An append-only bit sink, least significant bit first, with patchable fields."""

    def __init__(self):
        self._buffer = bytearray()
        self._length = 0

    @property
    def bit_length(self) -> int:
        return self._length

    def _put(self, pos: int, value: int, bits: int) -> None:
        if bits < 0:
            raise BitError(f"cannot write a negative number of bits ({bits})")
        if value < 0 or value >> bits:
            raise BitError(f"value {value} does not fit in {bits} bits")
        if bits == 0:
            return
        start = pos // 8
        shift = pos % 8
        end = (pos + bits + 7) // 8
        if len(self._buffer) < end:
            self._buffer.extend(bytes(end - len(self._buffer)))
        existing = int.from_bytes(self._buffer[start:end], "little")
        mask = ((1 << bits) - 1) << shift
        updated = (existing & ~mask) | (value << shift)
        self._buffer[start:end] = updated.to_bytes(end - start, "little")

    def write_bool(self, value: bool) -> None:
        self.write_int(1 if value else 0, 1)

    def write_int(self, value: int, bits: int) -> None:
        """Write an unsigned integer of the given width."""
        self._put(self._length, value, bits)
        self._length += bits

    def write_signed(self, value: int, bits: int) -> None:
        """Write a two's complement integer of the given width."""
        if bits <= 0 or not -(1 << (bits - 1)) <= value < (1 << (bits - 1)):
            raise BitError(f"value {value} does not fit in {bits} signed bits")
        self.write_int(value & ((1 << bits) - 1), bits)

    def write_float(self, value: float) -> None:
        """Write a 32-bit IEEE float."""
        self.write_int(int.from_bytes(struct.pack("<f", value), "little"), 32)

    def write_bytes(self, data: bytes) -> None:
        data = bytes(data)
        if self._length % 8 == 0 and len(self._buffer) * 8 == self._length:
            self._buffer.extend(data)
            self._length += len(data) * 8
        else:
            self.write_int(int.from_bytes(data, "little"), len(data) * 8)

    def write_string(self, text: str) -> None:
        """Write a string followed by a null terminator."""
        self.write_bytes(text.encode("utf-8") + b"\0")

    def write_bits(self, reader: BitReader) -> None:
        """Copy the bits a reader has left, without moving the reader."""
        count = reader.bits_left
        self.write_int(reader._peek(reader.pos, count), count)

    @contextmanager
    def reserve_length(self, bits: int) -> Iterator[None]:
        """Prefix the block's content with its length in bits."""
        start = self._length
        self.write_int(0, bits)
        yield
        self._put(start, self._length - start - bits, bits)

    @contextmanager
    def reserve_byte_length(self, bits: int) -> Iterator[None]:
        """Prefix the block's content, padded to whole bytes, with its length in bytes."""
        start = self._length
        self.write_int(0, bits)
        yield
        content = self._length - start - bits
        self.write_int(0, -content % 8)
        self._put(start, (self._length - start - bits) // 8, bits)

    @contextmanager
    def reserve_int(self, bits: int) -> Iterator[_Reservation]:
        """Reserve a field; the block sets ``value`` on the yielded slot to fill it."""
        start = self._length
        self.write_int(0, bits)
        slot = _Reservation()
        yield slot
        if slot.value is None:
            raise BitError("no value was given for the reserved field")
        self._put(start, slot.value, bits)

    def to_bytes(self) -> bytes:
        return bytes(self._buffer)

    def to_reader(self) -> BitReader:
        return BitReader(bytes(self._buffer), self._length)

    def __repr__(self) -> str:
        return f"BitWriter(bit_length={self._length})"


class Demo:
    """The raw bytes of a demo file."""

    def __init__(self, data):
        self._data = bytes(data)

    def get_stream(self) -> BitReader:
        """A fresh reader over the whole demo."""
        return BitReader(self._data)