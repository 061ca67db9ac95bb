import pytest
from hypothesis import given
from hypothesis import strategies as st

from tfdemo.bitstream import BitError, BitReader, BitWriter, ParseError
from tfdemo.messages import (
    ClassInfoEntry,
    ClassInfoMessage,
    CmdKeyValuesMessage,
    ConVar,
    EntityMessage,
    FileMessage,
    FixAngleMessage,
    GetCvarValueMessage,
    MenuMessage,
    MessageContext,
    MessageType,
    NetTickMessage,
    PreFetchMessage,
    PrintMessage,
    ServerInfoMessage,
    SetConVarMessage,
    SetPauseMessage,
    SetViewMessage,
    SignOnState,
    SignOnStateMessage,
    StringCmdMessage,
    message_type_of,
    read_message,
    skip_message,
    write_message,
)
from tfdemo.stringtable import CreateStringTableMessage, UpdateStringTableMessage
from tfdemo.tables import StringTable, StringTableEntry, StringTableMeta
from tfdemo.usermessage import TrainMessage
from tfdemo.voice import VoiceInitMessage


def roundtrip(message):
    writer = BitWriter()
    message.write(writer)
    reader = writer.to_reader()
    result = type(message).read(reader)
    return result, reader.pos, writer.bit_length


def message_roundtrip(message, context=None):
    writer = BitWriter()
    write_message(message, writer, context)
    reader = writer.to_reader()
    result = read_message(reader, context)
    return result, reader.pos, writer.bit_length


def server_info():
    return ServerInfoMessage(
        version=24,
        server_count=3,
        stv=True,
        dedicated=False,
        max_crc=123456,
        max_classes=300,
        map_hash=bytes(range(16)),
        player_slot=2,
        max_player_count=24,
        interval_per_tick=0.015625,
        platform="l",
        game="tf",
        map="cp_example",
        skybox="sky_day",
        server_name="Example server",
        replay=False,
    )


def test_class_info_create_roundtrip():
    message = ClassInfoMessage(count=8, create=True, entries=[])
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length


def test_class_info_entries_roundtrip():
    message = ClassInfoMessage(
        count=3,
        create=False,
        entries=[
            ClassInfoEntry(0, "foo1", "bar1"),
            ClassInfoEntry(1, "foo2", "bar2"),
            ClassInfoEntry(2, "foo3", "bar3"),
        ],
    )
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length


def test_set_con_var_empty_roundtrip():
    message = SetConVarMessage(length=0, vars=[])
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length


def test_set_con_var_roundtrip():
    message = SetConVarMessage(
        length=2, vars=[ConVar("foo1", "bar1"), ConVar("foo2", "bar2")]
    )
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length


def test_con_var_malformed_falls_back():
    writer = BitWriter()
    writer.write_bytes(b"abc")
    result = ConVar.read(writer.to_reader())
    assert result == ConVar("Malformed cvar name", "Malformed cvar value")


@pytest.mark.parametrize(
    "message",
    [
        FileMessage(7, "file.txt", True),
        NetTickMessage(1000, 15, 3),
        StringCmdMessage("say hello"),
        SignOnStateMessage(SignOnState.FULL, 2),
        PrintMessage("hello\n"),
        server_info(),
        SetPauseMessage(True),
        SetViewMessage(1234),
        FixAngleMessage(True, 1, 2, 3),
        EntityMessage(5, 300, 16, BitReader(b"\x12\x34")),
        PreFetchMessage(9000),
        MenuMessage(1, 2, BitReader(b"\xab\xcd")),
        GetCvarValueMessage(42, "sv_cheats"),
        CmdKeyValuesMessage(3, BitReader(b"abc")),
    ],
)
def test_message_roundtrip(message):
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length


@pytest.mark.parametrize(
    "message",
    [
        None,
        StringCmdMessage("status"),
        server_info(),
        SetConVarMessage(1, [ConVar("a", "b")]),
        TrainMessage(data=12),
        VoiceInitMessage("foo", 0, 11025),
        ClassInfoMessage(1, False, [ClassInfoEntry(0, "c", "t")]),
    ],
)
def test_dispatch_roundtrip(message):
    result, pos, length = message_roundtrip(message)
    assert result == message
    assert pos == length


def test_empty_message_is_six_zero_bits():
    writer = BitWriter()
    write_message(None, writer)
    assert writer.bit_length == 6
    assert writer.to_bytes() == b"\x00"


def test_create_string_table_dispatch():
    message = CreateStringTableMessage(
        table=StringTable(
            name="table1",
            entries=[(0, StringTableEntry(text="foo")), (1, StringTableEntry(text="bar"))],
            max_entries=16,
        )
    )
    result, pos, length = message_roundtrip(message, MessageContext(protocol_version=24))
    assert result == message
    assert pos == length


def test_update_string_table_dispatch():
    context = MessageContext(string_tables=[StringTableMeta(max_entries=16)])
    message = UpdateStringTableMessage(
        entries=[(2, StringTableEntry(text="foo")), (3, StringTableEntry(text="bar"))],
        table_id=0,
    )
    result, pos, length = message_roundtrip(message, context)
    assert result == message
    assert pos == length


@pytest.mark.parametrize(
    "message",
    [
        FileMessage(1, "x", False),
        server_info(),
        TrainMessage(data=3),
        SetConVarMessage(2, [ConVar("a", "1"), ConVar("b", "2")]),
        CreateStringTableMessage(
            table=StringTable(name="t", entries=[(0, StringTableEntry(text="abc"))], max_entries=8)
        ),
    ],
)
def test_skip_reaches_end(message):
    writer = BitWriter()
    write_message(message, writer)
    reader = writer.to_reader()
    message_type = MessageType(reader.read_int(6))
    skip_message(reader, message_type, MessageContext())
    assert message_type == message_type_of(message)
    assert reader.pos == writer.bit_length


def test_skipped_type_returns_none():
    writer = BitWriter()
    writer.write_int(int(MessageType.STRING_CMD), 6)
    writer.write_string("status")
    reader = writer.to_reader()
    context = MessageContext(skipped_types=frozenset({MessageType.STRING_CMD}))
    assert read_message(reader, context) is None
    assert reader.pos == writer.bit_length


def test_game_event_skipped_by_default():
    writer = BitWriter()
    writer.write_int(int(MessageType.GAME_EVENT), 6)
    writer.write_int(5, 11)
    writer.write_int(0b10101, 5)
    reader = writer.to_reader()
    assert read_message(reader) is None
    assert reader.pos == writer.bit_length


def test_packet_entities_skip():
    writer = BitWriter()
    writer.write_int(4, 11)
    writer.write_bool(True)
    writer.write_int(99, 32)
    writer.write_int(0, 12)
    writer.write_int(3, 20)
    writer.write_int(0b1111, 4)
    reader = writer.to_reader()
    skip_message(reader, MessageType.PACKET_ENTITIES, MessageContext())
    assert reader.pos == writer.bit_length


def test_temp_entities_skip_old_protocol():
    writer = BitWriter()
    writer.write_int(1, 8)
    writer.write_int(9, 17)
    writer.write_int(0, 9)
    reader = writer.to_reader()
    skip_message(reader, MessageType.TEMP_ENTITIES, MessageContext(protocol_version=23))
    assert reader.pos == writer.bit_length


def test_unsupported_type_raises():
    writer = BitWriter()
    writer.write_int(int(MessageType.GAME_EVENT), 6)
    writer.write_int(0, 11)
    with pytest.raises(ParseError):
        read_message(writer.to_reader(), MessageContext(skipped_types=frozenset()))


def test_unknown_type_raises():
    writer = BitWriter()
    writer.write_int(1, 6)
    writer.write_int(0, 8)
    with pytest.raises(BitError):
        read_message(writer.to_reader())


def test_unknown_sign_on_state_raises():
    writer = BitWriter()
    writer.write_int(9, 8)
    writer.write_int(0, 32)
    with pytest.raises(BitError):
        SignOnStateMessage.read(writer.to_reader())


def test_platform_too_long_raises():
    message = server_info()
    message.platform = "linux"
    with pytest.raises(BitError):
        message.write(BitWriter())


def test_message_type_of():
    assert message_type_of(None) is MessageType.EMPTY
    assert message_type_of(TrainMessage(data=1)) is MessageType.USER_MESSAGE
    assert message_type_of(server_info()) is MessageType.SERVER_INFO
    with pytest.raises(TypeError):
        message_type_of(object())


@given(
    st.booleans(),
    st.integers(0, 0xFFFF),
    st.integers(0, 0xFFFF),
    st.integers(0, 0xFFFF),
)
def test_fix_angle_property(relative, x, y, z):
    message = FixAngleMessage(relative, x, y, z)
    result, pos, length = message_roundtrip(message)
    assert result == message
    assert pos == length == 6 + 49


@given(st.integers(0, 0xFFFFFFFF), st.integers(0, 0xFFFF), st.integers(0, 0xFFFF))
def test_net_tick_property(tick, frame_time, std_dev):
    message = NetTickMessage(tick, frame_time, std_dev)
    result, pos, length = roundtrip(message)
    assert result == message
    assert pos == length == 64