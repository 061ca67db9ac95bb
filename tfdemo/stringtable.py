"""Messages that create and update string tables, and their entry encoding."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Optional, Sequence

from . import snappy
from .bitstream import BitReader, BitWriter, ParseError
from .tables import (
    ExtraData,
    FixedUserDataSize,
    StringTable,
    StringTableEntry,
    StringTableMeta,
)
from .varint import encode_var_int_fixed, log_base2, read_var_int

_HISTORY_SIZE = 32
_MAX_SIMILAR = 31
_MAX_COMPRESSED_SIZE = 10 * 1024 * 1024
_MAX_DECOMPRESSED_SIZE = 100 * 1024 * 1024


class TableHistory:
    """Entries read or written so far, with the last 32 kept for text reuse."""

    def __init__(self):
        self.entries: list[tuple[int, StringTableEntry]] = []
        self._history: list[int] = []

    def push(self, index: int, entry: StringTableEntry) -> None:
        if len(self._history) >= _HISTORY_SIZE:
            del self._history[0]
        self._history.append(len(self.entries))
        self.entries.append((index, entry))

    def get(self, index: int) -> Optional[StringTableEntry]:
        if 0 <= index < len(self._history):
            return self.entries[self._history[index]][1]
        return None

    def find_best(self, text: str) -> Optional[tuple[int, int]]:
        """The history slot sharing the longest prefix (at least 3 bytes) with ``text``."""
        best_index = None
        best_count = 0
        for history_index, entry_index in enumerate(self._history):
            entry = self.entries[entry_index][1]
            similar = min(_MAX_SIMILAR, count_similar_characters(entry.display_text(), text))
            if similar >= 3 and similar > best_count:
                best_index = history_index
                best_count = similar
        return None if best_index is None else (best_index, best_count)


def count_similar_characters(a: str, b: str) -> int:
    """Length in bytes of the common utf-8 prefix of two strings."""
    a_bytes = a.encode("utf-8")
    b_bytes = b.encode("utf-8")
    for position, (x, y) in enumerate(zip(a_bytes, b_bytes)):
        if x != y:
            return position
    return min(len(a_bytes), len(b_bytes))


def _write_reader_bits(writer: BitWriter, reader: BitReader, bits: int) -> None:
    writer.write_bits(copy.copy(reader).read_bits(bits))


def read_table_entry(
    reader: BitReader, table_meta: StringTableMeta, history: TableHistory
) -> StringTableEntry:
    text = None
    if reader.read_bool():
        if reader.read_bool():
            index = reader.read_int(5)
            bytes_to_copy = reader.read_int(5)
            rest = reader.read_string()
            previous = history.get(index)
            if previous is not None and previous.text is not None:
                combined = previous.text.encode("utf-8")[:bytes_to_copy] + rest.encode("utf-8")
                try:
                    text = combined.decode("utf-8")
                except UnicodeDecodeError as error:
                    raise ParseError(f"string table text is not valid utf-8: {combined!r}") from error
            else:
                # best guess; seen in some demos, only for unimportant tables
                text = rest
        else:
            text = reader.read_string()

    extra_data = None
    if reader.read_bool():
        fixed = table_meta.fixed_userdata_size
        if fixed is not None:
            data = reader.read_bits(fixed.bits)
        else:
            byte_count = reader.read_int(14)
            data = reader.read_bits(byte_count * 8)
        extra_data = ExtraData.from_stream(data)

    return StringTableEntry(text=text, extra_data=extra_data)


def write_table_entry(
    entry: StringTableEntry,
    writer: BitWriter,
    table_meta: StringTableMeta,
    history: TableHistory,
) -> None:
    writer.write_bool(entry.text is not None)
    if entry.text is not None:
        best = history.find_best(entry.text)
        writer.write_bool(best is not None)
        if best is not None:
            history_index, history_count = best
            writer.write_int(history_index, 5)
            writer.write_int(history_count, 5)
            writer.write_bytes(entry.text.encode("utf-8")[history_count:])
            writer.write_int(0, 8)
        else:
            writer.write_string(entry.text)

    writer.write_bool(entry.extra_data is not None)
    if entry.extra_data is not None:
        extra = entry.extra_data
        fixed = table_meta.fixed_userdata_size
        if fixed is not None:
            _write_reader_bits(writer, extra.data, fixed.bits)
        else:
            writer.write_int(extra.byte_len, 14)
            _write_reader_bits(writer, extra.data, extra.byte_len * 8)


def parse_string_table_update(
    reader: BitReader, table_meta: StringTableMeta, entry_count: int
) -> list[tuple[int, StringTableEntry]]:
    """Read ``entry_count`` changed entries of a table."""
    entry_bits = log_base2(table_meta.max_entries)
    history = TableHistory()
    last_entry = -1
    for _ in range(entry_count):
        if reader.read_bool():
            index = min(last_entry + 1, 0x7FFF)
        else:
            index = reader.read_int(entry_bits)
        last_entry = index
        entry = read_table_entry(reader, table_meta, history)
        history.push(index, entry)
    return history.entries


def write_string_table_update(
    entries: Sequence[tuple[int, StringTableEntry]],
    writer: BitWriter,
    table_meta: StringTableMeta,
) -> None:
    entry_bits = log_base2(table_meta.max_entries)
    history = TableHistory()
    last_entry = -1
    for index, entry in entries:
        if index == last_entry + 1:
            writer.write_bool(True)
        else:
            writer.write_bool(False)
            writer.write_int(index, entry_bits)
        last_entry = index
        write_table_entry(entry, writer, table_meta, history)
        history.push(index, entry)


def _read_table_length(reader: BitReader, protocol_version: int) -> int:
    if protocol_version > 23:
        return read_var_int(reader)
    return reader.read_int(20)


def _decompress_table(table_data: BitReader) -> BitReader:
    decompressed_size = table_data.read_int(32)
    compressed_size = table_data.read_int(32)
    if not 4 <= compressed_size <= _MAX_COMPRESSED_SIZE:
        raise ParseError("invalid compressed string table size")
    if decompressed_size > _MAX_DECOMPRESSED_SIZE:
        raise ParseError("invalid decompressed string table size")

    magic = table_data.read_string(4)
    if magic == "SNAP":
        compressed = table_data.read_bytes(compressed_size - 4)
        size_from_header = snappy.decompress_len(compressed)
        if size_from_header != decompressed_size:
            raise ParseError(
                f"unexpected decompressed size {size_from_header}, expected {decompressed_size}"
            )
        return BitReader(snappy.decompress(compressed))
    if magic == "LZSS":
        raise ParseError("LZSS compressed string tables are not supported")
    raise ParseError(f"unexpected compression type {magic!r}")


@dataclass
class CreateStringTableMessage:
    """Creates a string table along with its initial entries."""

    table: StringTable

    @classmethod
    def parse(cls, reader: BitReader, protocol_version: int) -> "CreateStringTableMessage":
        name = reader.read_string()
        max_entries = reader.read_int(16)
        entity_count = reader.read_int(log_base2(max_entries) + 1)
        length = _read_table_length(reader, protocol_version)
        fixed = FixedUserDataSize.read(reader) if reader.read_bool() else None
        compressed = reader.read_bool()

        table_data = reader.read_bits(length)
        if compressed:
            table_data = _decompress_table(table_data)

        meta = StringTableMeta(max_entries=max_entries, fixed_userdata_size=fixed)
        entries = parse_string_table_update(table_data, meta, entity_count)
        return cls(
            table=StringTable(
                name=name,
                entries=entries,
                max_entries=max_entries,
                fixed_user_data_size=fixed,
                client_entries=None,
                compressed=compressed,
            )
        )

    @classmethod
    def skip(cls, reader: BitReader, protocol_version: int) -> None:
        reader.read_string()
        max_entries = reader.read_int(16)
        reader.read_int(log_base2(max_entries) + 1)
        length = _read_table_length(reader, protocol_version)
        if reader.read_bool():
            FixedUserDataSize.read(reader)
        reader.read_bool()
        reader.skip_bits(length)

    def encode(self, writer: BitWriter) -> None:
        table = self.table
        writer.write_string(table.name)
        writer.write_int(table.max_entries, 16)
        writer.write_int(len(table.entries), log_base2(table.max_entries) + 1)
        with writer.reserve_int(40) as slot:
            writer.write_bool(table.fixed_user_data_size is not None)
            if table.fixed_user_data_size is not None:
                table.fixed_user_data_size.write(writer)
            writer.write_bool(False)  # written uncompressed
            start = writer.bit_length
            write_string_table_update(table.entries, writer, table.table_meta())
            slot.value = encode_var_int_fixed(writer.bit_length - start)


@dataclass
class UpdateStringTableMessage:
    """Changes entries of an existing string table."""

    entries: list = field(default_factory=list)
    table_id: int = 0

    @classmethod
    def parse(
        cls, reader: BitReader, tables: Sequence[StringTableMeta]
    ) -> "UpdateStringTableMessage":
        table_id = reader.read_int(5)
        changed = reader.read_int(16) if reader.read_bool() else 1
        length = reader.read_int(20)
        data = reader.read_bits(length)
        if table_id >= len(tables):
            raise ParseError(f"string table {table_id} not found")
        entries = parse_string_table_update(data, tables[table_id], changed)
        return cls(entries=entries, table_id=table_id)

    @classmethod
    def skip(cls, reader: BitReader) -> None:
        reader.read_int(5)
        if reader.read_bool():
            reader.read_int(16)
        length = reader.read_int(20)
        reader.skip_bits(length)

    def encode(self, writer: BitWriter, tables: Sequence[StringTableMeta]) -> None:
        writer.write_int(self.table_id, 5)
        if len(self.entries) == 1:
            writer.write_bool(False)
        else:
            writer.write_bool(True)
            writer.write_int(len(self.entries), 16)
        if self.table_id >= len(tables):
            raise ParseError(f"string table {self.table_id} not found")
        with writer.reserve_length(20):
            write_string_table_update(self.entries, writer, tables[self.table_id])