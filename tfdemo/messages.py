"""Net messages carried inside message packets, and dispatch by message type."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, get_args

from .bitstream import BitError, BitReader, BitWriter, ParseError
from .stringtable import CreateStringTableMessage, UpdateStringTableMessage
from .usermessage import (
    UserMessage,
    read_user_message,
    skip_user_message,
    write_user_message,
)
from .varint import log_base2, read_var_int
from .voice import ParseSoundsMessage, VoiceDataMessage, VoiceInitMessage

_MESSAGE_TYPE_BITS = 6
_U16_MAX = 0xFFFF
_U32_MAX = 0xFFFFFFFF


def _read_maybe_utf8(reader: BitReader) -> str:
    """Read a null-terminated string; bytes that are not utf-8 survive a round trip."""
    collected = bytearray()
    while (byte := reader.read_int(8)) != 0:
        collected.append(byte)
    return bytes(collected).decode("utf-8", "surrogateescape")


def _write_maybe_utf8(text: str, writer: BitWriter) -> None:
    writer.write_bytes(text.encode("utf-8", "surrogateescape") + b"\0")


def _write_fixed_string(text: str, size: int, writer: BitWriter) -> None:
    raw = text.encode("utf-8")
    if len(raw) > size:
        raise BitError(f"string {text!r} does not fit in {size} bytes")
    writer.write_bytes(raw.ljust(size, b"\0"))


class MessageType(IntEnum):
    """The 6-bit type that precedes every net message."""

    EMPTY = 0
    FILE = 2
    NET_TICK = 3
    STRING_CMD = 4
    SET_CON_VAR = 5
    SIGN_ON_STATE = 6
    PRINT = 7
    SERVER_INFO = 8
    CLASS_INFO = 10
    SET_PAUSE = 11
    CREATE_STRING_TABLE = 12
    UPDATE_STRING_TABLE = 13
    VOICE_INIT = 14
    VOICE_DATA = 15
    PARSE_SOUNDS = 17
    SET_VIEW = 18
    FIX_ANGLE = 19
    BSP_DECAL = 21
    USER_MESSAGE = 23
    ENTITY_MESSAGE = 24
    GAME_EVENT = 25
    PACKET_ENTITIES = 26
    TEMP_ENTITIES = 27
    PRE_FETCH = 28
    MENU = 29
    GAME_EVENT_LIST = 30
    GET_CVAR_VALUE = 31
    CMD_KEY_VALUES = 32


# Message types whose bodies this package can skip but not decode.
_NOT_PARSED = frozenset(
    {
        MessageType.BSP_DECAL,
        MessageType.GAME_EVENT,
        MessageType.PACKET_ENTITIES,
        MessageType.TEMP_ENTITIES,
        MessageType.GAME_EVENT_LIST,
    }
)


@dataclass
class MessageContext:
    """Parser state that message decoding depends on."""

    protocol_version: int = 24
    string_tables: list = field(default_factory=list)
    skipped_types: frozenset = _NOT_PARSED


@dataclass
class FileMessage:
    transfer_id: int
    file_name: str
    requested: bool

    @classmethod
    def read(cls, reader: BitReader) -> "FileMessage":
        transfer_id = reader.read_int(32)
        file_name = reader.read_string()
        return cls(transfer_id, file_name, reader.read_bool())

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.transfer_id, 32)
        writer.write_string(self.file_name)
        writer.write_bool(self.requested)


@dataclass
class NetTickMessage:
    tick: int
    frame_time: int
    std_dev: int

    @classmethod
    def read(cls, reader: BitReader) -> "NetTickMessage":
        return cls(reader.read_int(32), reader.read_int(16), reader.read_int(16))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 32)
        writer.write_int(self.frame_time, 16)
        writer.write_int(self.std_dev, 16)


@dataclass
class StringCmdMessage:
    command: str

    @classmethod
    def read(cls, reader: BitReader) -> "StringCmdMessage":
        return cls(reader.read_string())

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.command)


class SignOnState(IntEnum):
    NONE = 0
    CHALLENGE = 1
    CONNECTED = 2
    NEW = 3
    PRE_SPAWN = 4
    SPAWN = 5
    FULL = 6
    CHANGE_LEVEL = 7


@dataclass
class SignOnStateMessage:
    state: SignOnState
    count: int

    @classmethod
    def read(cls, reader: BitReader) -> "SignOnStateMessage":
        raw = reader.read_int(8)
        try:
            state = SignOnState(raw)
        except ValueError:
            raise BitError(f"unmatched sign on state {raw}") from None
        return cls(state, reader.read_int(32))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(int(self.state), 8)
        writer.write_int(self.count, 32)


@dataclass
class PrintMessage:
    value: str

    @classmethod
    def read(cls, reader: BitReader) -> "PrintMessage":
        return cls(_read_maybe_utf8(reader))

    def write(self, writer: BitWriter) -> None:
        _write_maybe_utf8(self.value, writer)


@dataclass
class ServerInfoMessage:
    version: int
    server_count: int
    stv: bool
    dedicated: bool
    max_crc: int
    max_classes: int
    map_hash: bytes
    player_slot: int
    max_player_count: int
    interval_per_tick: float
    platform: str
    game: str
    map: str
    skybox: str
    server_name: str
    replay: bool

    @classmethod
    def read(cls, reader: BitReader) -> "ServerInfoMessage":
        return cls(
            version=reader.read_int(16),
            server_count=reader.read_int(32),
            stv=reader.read_bool(),
            dedicated=reader.read_bool(),
            max_crc=reader.read_int(32),
            max_classes=reader.read_int(16),
            map_hash=reader.read_bytes(16),
            player_slot=reader.read_int(8),
            max_player_count=reader.read_int(8),
            interval_per_tick=reader.read_float(),
            platform=reader.read_string(1),
            game=reader.read_string(),
            map=reader.read_string(),
            skybox=reader.read_string(),
            server_name=reader.read_string(),
            replay=reader.read_bool(),
        )

    def write(self, writer: BitWriter) -> None:
        if len(self.map_hash) != 16:
            raise BitError("a map hash needs exactly 16 bytes")
        writer.write_int(self.version, 16)
        writer.write_int(self.server_count, 32)
        writer.write_bool(self.stv)
        writer.write_bool(self.dedicated)
        writer.write_int(self.max_crc, 32)
        writer.write_int(self.max_classes, 16)
        writer.write_bytes(self.map_hash)
        writer.write_int(self.player_slot, 8)
        writer.write_int(self.max_player_count, 8)
        writer.write_float(self.interval_per_tick)
        _write_fixed_string(self.platform, 1, writer)
        writer.write_string(self.game)
        writer.write_string(self.map)
        writer.write_string(self.skybox)
        writer.write_string(self.server_name)
        writer.write_bool(self.replay)


@dataclass
class SetPauseMessage:
    pause: bool

    @classmethod
    def read(cls, reader: BitReader) -> "SetPauseMessage":
        return cls(reader.read_bool())

    def write(self, writer: BitWriter) -> None:
        writer.write_bool(self.pause)


@dataclass
class SetViewMessage:
    index: int

    @classmethod
    def read(cls, reader: BitReader) -> "SetViewMessage":
        return cls(reader.read_int(11))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.index, 11)


@dataclass
class FixAngleMessage:
    relative: bool
    x: int
    y: int
    z: int

    @classmethod
    def read(cls, reader: BitReader) -> "FixAngleMessage":
        relative = reader.read_bool()
        return cls(relative, reader.read_int(16), reader.read_int(16), reader.read_int(16))

    def write(self, writer: BitWriter) -> None:
        writer.write_bool(self.relative)
        writer.write_int(self.x, 16)
        writer.write_int(self.y, 16)
        writer.write_int(self.z, 16)


@dataclass
class EntityMessage:
    index: int
    class_id: int
    length: int
    data: BitReader

    @classmethod
    def read(cls, reader: BitReader) -> "EntityMessage":
        index = reader.read_int(11)
        class_id = reader.read_int(9)
        length = reader.read_int(11)
        return cls(index, class_id, length, reader.read_bits(length))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.index, 11)
        writer.write_int(self.class_id, 9)
        writer.write_int(self.length, 11)
        writer.write_bits(self.data)


@dataclass
class PreFetchMessage:
    index: int

    @classmethod
    def read(cls, reader: BitReader) -> "PreFetchMessage":
        return cls(reader.read_int(14))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.index, 14)


@dataclass
class MenuMessage:
    kind: int
    length: int
    index: BitReader

    @classmethod
    def read(cls, reader: BitReader) -> "MenuMessage":
        kind = reader.read_int(16)
        length = reader.read_int(16)
        return cls(kind, length, reader.read_bits(min(length * 8, _U16_MAX)))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.kind, 16)
        writer.write_int(self.length, 16)
        writer.write_bits(self.index)


@dataclass
class GetCvarValueMessage:
    cookie: int
    value: str

    @classmethod
    def read(cls, reader: BitReader) -> "GetCvarValueMessage":
        cookie = reader.read_int(32)
        return cls(cookie, reader.read_string())

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.cookie, 32)
        writer.write_string(self.value)


@dataclass
class CmdKeyValuesMessage:
    length: int
    data: BitReader

    @classmethod
    def read(cls, reader: BitReader) -> "CmdKeyValuesMessage":
        length = reader.read_int(32)
        return cls(length, reader.read_bits(min(length * 8, _U32_MAX)))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.length, 32)
        writer.write_bits(self.data)


@dataclass
class ClassInfoEntry:
    class_id: int
    class_name: str
    table_name: str


@dataclass
class ClassInfoMessage:
    count: int
    create: bool
    entries: list = field(default_factory=list)

    @classmethod
    def read(cls, reader: BitReader) -> "ClassInfoMessage":
        count = reader.read_int(16)
        create = reader.read_bool()
        entries = []
        if not create:
            bits = log_base2(count) + 1
            for _ in range(count):
                class_id = reader.read_int(bits)
                class_name = reader.read_string()
                table_name = reader.read_string()
                entries.append(ClassInfoEntry(class_id, class_name, table_name))
        return cls(count, create, entries)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.count, 16)
        writer.write_bool(self.create)
        if not self.create:
            bits = log_base2(len(self.entries)) + 1
            for entry in self.entries:
                writer.write_int(entry.class_id, bits)
                writer.write_string(entry.class_name)
                writer.write_string(entry.table_name)


@dataclass
class ConVar:
    key: str
    value: str

    @classmethod
    def read(cls, reader: BitReader) -> "ConVar":
        try:
            key = reader.read_string()
        except ParseError:
            key = "Malformed cvar name"
        try:
            value = reader.read_string()
        except ParseError:
            value = "Malformed cvar value"
        return cls(key, value)

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.key)
        writer.write_string(self.value)


@dataclass
class SetConVarMessage:
    length: int
    vars: list = field(default_factory=list)

    @classmethod
    def read(cls, reader: BitReader) -> "SetConVarMessage":
        length = reader.read_int(8)
        return cls(length, [ConVar.read(reader) for _ in range(length)])

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.length, 8)
        for var in self.vars:
            var.write(writer)


_SIMPLE = {
    MessageType.FILE: FileMessage,
    MessageType.NET_TICK: NetTickMessage,
    MessageType.STRING_CMD: StringCmdMessage,
    MessageType.SET_CON_VAR: SetConVarMessage,
    MessageType.SIGN_ON_STATE: SignOnStateMessage,
    MessageType.PRINT: PrintMessage,
    MessageType.SERVER_INFO: ServerInfoMessage,
    MessageType.CLASS_INFO: ClassInfoMessage,
    MessageType.SET_PAUSE: SetPauseMessage,
    MessageType.VOICE_INIT: VoiceInitMessage,
    MessageType.VOICE_DATA: VoiceDataMessage,
    MessageType.PARSE_SOUNDS: ParseSoundsMessage,
    MessageType.SET_VIEW: SetViewMessage,
    MessageType.FIX_ANGLE: FixAngleMessage,
    MessageType.ENTITY_MESSAGE: EntityMessage,
    MessageType.PRE_FETCH: PreFetchMessage,
    MessageType.MENU: MenuMessage,
    MessageType.GET_CVAR_VALUE: GetCvarValueMessage,
    MessageType.CMD_KEY_VALUES: CmdKeyValuesMessage,
}

_TYPE_OF_CLASS = {cls: message_type for message_type, cls in _SIMPLE.items()}
_TYPE_OF_CLASS[CreateStringTableMessage] = MessageType.CREATE_STRING_TABLE
_TYPE_OF_CLASS[UpdateStringTableMessage] = MessageType.UPDATE_STRING_TABLE
for _user_class in get_args(UserMessage):
    _TYPE_OF_CLASS[_user_class] = MessageType.USER_MESSAGE


def message_type_of(message) -> MessageType:
    """The type a message is sent with; ``None`` stands for an empty message."""
    if message is None:
        return MessageType.EMPTY
    try:
        return _TYPE_OF_CLASS[type(message)]
    except KeyError:
        raise TypeError(f"{type(message).__name__} is not a net message") from None


def _read_message_type(reader: BitReader) -> MessageType:
    raw = reader.read_int(_MESSAGE_TYPE_BITS)
    try:
        return MessageType(raw)
    except ValueError:
        raise BitError(f"unmatched message type {raw}") from None


def read_message(reader: BitReader, context: Optional[MessageContext] = None):
    """Read a message with its type.

    Returns ``None`` for an empty message or one whose type the context skips.
    """
    if context is None:
        context = MessageContext()
    message_type = _read_message_type(reader)
    if message_type is MessageType.EMPTY:
        return None
    if message_type in context.skipped_types:
        skip_message(reader, message_type, context)
        return None
    if message_type in _SIMPLE:
        return _SIMPLE[message_type].read(reader)
    if message_type is MessageType.CREATE_STRING_TABLE:
        return CreateStringTableMessage.parse(reader, context.protocol_version)
    if message_type is MessageType.UPDATE_STRING_TABLE:
        return UpdateStringTableMessage.parse(reader, context.string_tables)
    if message_type is MessageType.USER_MESSAGE:
        return read_user_message(reader)
    raise ParseError(f"decoding {message_type.name} messages is not supported")


def skip_message(
    reader: BitReader, message_type: MessageType, context: Optional[MessageContext] = None
) -> None:
    """Move past the body of a message whose type has already been read."""
    if context is None:
        context = MessageContext()
    message_type = MessageType(message_type)
    if message_type is MessageType.EMPTY:
        return
    if message_type in _SIMPLE:
        _SIMPLE[message_type].read(reader)
    elif message_type is MessageType.CREATE_STRING_TABLE:
        CreateStringTableMessage.skip(reader, context.protocol_version)
    elif message_type is MessageType.UPDATE_STRING_TABLE:
        UpdateStringTableMessage.skip(reader)
    elif message_type is MessageType.USER_MESSAGE:
        skip_user_message(reader)
    elif message_type is MessageType.GAME_EVENT:
        reader.skip_bits(reader.read_int(11))
    elif message_type is MessageType.PACKET_ENTITIES:
        reader.skip_bits(11)
        if reader.read_bool():
            reader.skip_bits(32)
        reader.skip_bits(12)
        length = reader.read_int(20)
        reader.skip_bits(length + 1)
    elif message_type is MessageType.TEMP_ENTITIES:
        reader.skip_bits(8)
        if context.protocol_version > 23:
            length = read_var_int(reader)
        else:
            length = reader.read_int(17)
        reader.skip_bits(length)
    elif message_type is MessageType.GAME_EVENT_LIST:
        reader.skip_bits(9)
        reader.skip_bits(reader.read_int(20))
    else:
        raise ParseError(f"skipping {message_type.name} messages is not supported")


def write_message(message, writer: BitWriter, context: Optional[MessageContext] = None) -> None:
    """Write a message with its type; ``None`` writes an empty message."""
    if context is None:
        context = MessageContext()
    message_type = message_type_of(message)
    writer.write_int(int(message_type), _MESSAGE_TYPE_BITS)
    if message is None:
        return
    if message_type is MessageType.CREATE_STRING_TABLE:
        message.encode(writer)
    elif message_type is MessageType.UPDATE_STRING_TABLE:
        message.encode(writer, context.string_tables)
    elif message_type is MessageType.USER_MESSAGE:
        write_user_message(message, writer)
    else:
        message.write(writer)