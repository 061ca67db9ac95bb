"""String tables as stored in string table packets."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .bitstream import BitReader, BitWriter, ParseError

_U16_MAX = 0xFFFF


@dataclass(frozen=True)
class FixedUserDataSize:
    """Size of the user data when every entry of a table carries the same amount."""

    size: int
    bits: int

    @classmethod
    def read(cls, reader: BitReader) -> "FixedUserDataSize":
        size = reader.read_int(12)
        bits = reader.read_int(4)
        return cls(size=size, bits=bits)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.size, 12)
        writer.write_int(self.bits, 4)


@dataclass(frozen=True)
class StringTableMeta:
    """What is needed to decode updates to a string table."""

    max_entries: int
    fixed_userdata_size: Optional[FixedUserDataSize] = None


@dataclass
class ExtraData:
    """User data attached to a string table entry."""

    byte_len: int
    data: BitReader

    @classmethod
    def from_stream(cls, data: BitReader) -> "ExtraData":
        return cls(byte_len=(data.bit_length // 8) & _U16_MAX, data=data)

    @classmethod
    def read(cls, reader: BitReader) -> "ExtraData":
        byte_len = reader.read_int(16)
        data = reader.read_bits(min(byte_len * 8, _U16_MAX))
        return cls(byte_len=byte_len, data=data)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.byte_len, 16)
        writer.write_bits(self.data)


@dataclass
class StringTableEntry:
    """One entry of a string table: an optional text and optional user data."""

    text: Optional[str] = None
    extra_data: Optional[ExtraData] = None

    def display_text(self) -> str:
        """The entry's text, or an empty string when it has none."""
        return self.text if self.text is not None else ""

    @classmethod
    def read(cls, reader: BitReader) -> "StringTableEntry":
        text = reader.read_string()
        extra_data = ExtraData.read(reader) if reader.read_bool() else None
        return cls(text=text, extra_data=extra_data)

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.display_text())
        writer.write_bool(self.extra_data is not None)
        if self.extra_data is not None:
            self.extra_data.write(writer)

    def __str__(self) -> str:
        if self.extra_data is None:
            return f'StringTableEntry {{ text: "{self.display_text()}" }}'
        return (
            f'StringTableEntry{{ text: "{self.display_text()}" '
            f"extra_data: {self.extra_data.byte_len} bytes }}"
        )


@dataclass
class StringTable:
    """A named table of strings with optional user data."""

    name: str
    entries: list = field(default_factory=list)
    max_entries: int = 0
    fixed_user_data_size: Optional[FixedUserDataSize] = None
    client_entries: Optional[list] = None
    compressed: bool = field(default=False, compare=False)

    def table_meta(self) -> StringTableMeta:
        return StringTableMeta(
            max_entries=self.max_entries,
            fixed_userdata_size=self.fixed_user_data_size,
        )

    @classmethod
    def read(cls, reader: BitReader) -> "StringTable":
        name = reader.read_string()
        entry_count = reader.read_int(16)
        entries = [(index, StringTableEntry.read(reader)) for index in range(entry_count)]
        client_entries = None
        if reader.read_bool():
            count = reader.read_int(16)
            client_entries = [StringTableEntry.read(reader) for _ in range(count)]
        return cls(
            name=name,
            entries=entries,
            max_entries=entry_count,
            fixed_user_data_size=None,
            client_entries=client_entries,
            compressed=False,
        )

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.name)
        writer.write_int(len(self.entries), 16)
        for _, entry in self.entries:
            entry.write(writer)
        writer.write_bool(self.client_entries is not None)
        if self.client_entries is not None:
            writer.write_int(len(self.client_entries), 16)
            for entry in self.client_entries:
                entry.write(writer)


@dataclass
class StringTablePacket:
    """A packet holding the full contents of a number of string tables."""

    tick: int
    tables: list = field(default_factory=list)

    @classmethod
    def read(cls, reader: BitReader) -> "StringTablePacket":
        tick = reader.read_int(32)
        length = reader.read_int(32)
        packet_data = reader.read_bits(length * 8)
        count = packet_data.read_int(8)
        tables = [StringTable.read(packet_data) for _ in range(count)]
        if packet_data.bits_left > 7:
            raise ParseError(
                f"{packet_data.bits_left} bits of data left after string table packet"
            )
        return cls(tick=tick, tables=tables)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 32)
        with writer.reserve_byte_length(32):
            writer.write_int(len(self.tables), 8)
            for table in self.tables:
                table.write(writer)