import pytest

from tfdemo.bitstream import BitReader, BitWriter, ParseError
from tfdemo.tables import (
    ExtraData,
    FixedUserDataSize,
    StringTable,
    StringTableEntry,
    StringTableMeta,
    StringTablePacket,
)


def _roundtrip(value):
    writer = BitWriter()
    value.write(writer)
    reader = writer.to_reader()
    parsed = type(value).read(reader)
    assert parsed == value
    assert reader.pos == writer.bit_length
    return writer


STRING_TABLES = [
    StringTable(name="foo", entries=[], max_entries=0),
    StringTable(
        name="foo",
        entries=[(0, StringTableEntry(text="bar"))],
        max_entries=1,
    ),
    StringTable(
        name="foo",
        entries=[(0, StringTableEntry(text="bar")), (1, StringTableEntry(text="asd"))],
        max_entries=2,
        client_entries=[StringTableEntry(text="client")],
    ),
]


@pytest.mark.parametrize("table", STRING_TABLES)
def test_string_table_roundtrip(table):
    _roundtrip(table)


def test_string_table_bytes_are_pinned():
    writer = BitWriter()
    StringTable(name="foo", entries=[], max_entries=0).write(writer)
    assert writer.bit_length == 49
    assert writer.to_bytes() == b"foo\x00\x00\x00\x00"


def test_string_table_equality_ignores_compressed():
    a = StringTable(name="t", max_entries=1, compressed=True)
    b = StringTable(name="t", max_entries=1, compressed=False)
    assert a == b


def test_table_meta():
    size = FixedUserDataSize(size=12, bits=4)
    table = StringTable(name="t", max_entries=16, fixed_user_data_size=size)
    assert table.table_meta() == StringTableMeta(max_entries=16, fixed_userdata_size=size)


@pytest.mark.parametrize(
    "packet",
    [
        StringTablePacket(tick=1, tables=[]),
        StringTablePacket(tick=1, tables=[StringTable(name="table1", max_entries=0)]),
        StringTablePacket(
            tick=1,
            tables=[
                StringTable(
                    name="table1",
                    entries=[(0, StringTableEntry(text="bar"))],
                    max_entries=1,
                ),
                StringTable(
                    name="table2",
                    entries=[
                        (0, StringTableEntry(text="bar")),
                        (1, StringTableEntry(text="asd")),
                    ],
                    max_entries=2,
                    client_entries=[StringTableEntry(text="client")],
                ),
            ],
        ),
    ],
)
def test_string_table_packet_roundtrip(packet):
    _roundtrip(packet)


def test_string_table_packet_rejects_remaining_data():
    writer = BitWriter()
    writer.write_int(7, 32)
    writer.write_int(2, 32)
    writer.write_int(0, 8)
    writer.write_int(0xAB, 8)
    with pytest.raises(ParseError):
        StringTablePacket.read(writer.to_reader())


def test_string_table_packet_length_is_in_bytes():
    writer = BitWriter()
    StringTablePacket(tick=5, tables=[]).write(writer)
    reader = writer.to_reader()
    assert reader.read_int(32) == 5
    assert reader.read_int(32) == 1


def test_fixed_user_data_size_roundtrip():
    writer = _roundtrip(FixedUserDataSize(size=4095, bits=15))
    assert writer.bit_length == 16


def test_extra_data_from_stream_counts_bytes():
    extra = ExtraData.from_stream(BitReader(b"\x01\x02\x03"))
    assert extra.byte_len == 3


def test_extra_data_roundtrip():
    _roundtrip(ExtraData.from_stream(BitReader(b"\x55\xaa")))


def test_string_table_entry_roundtrip_with_extra_data():
    entry = StringTableEntry(
        text="hello", extra_data=ExtraData.from_stream(BitReader(b"\x01\x02"))
    )
    _roundtrip(entry)


def test_display_text_defaults_to_empty():
    assert StringTableEntry().display_text() == ""
    assert StringTableEntry(text="abc").display_text() == "abc"


def test_entry_without_text_reads_back_empty_text():
    writer = BitWriter()
    StringTableEntry().write(writer)
    assert StringTableEntry.read(writer.to_reader()) == StringTableEntry(text="")


def test_entry_str_mentions_extra_bytes():
    entry = StringTableEntry(text="x", extra_data=ExtraData.from_stream(BitReader(b"ab")))
    assert str(entry) == 'StringTableEntry{ text: "x" extra_data: 2 bytes }'