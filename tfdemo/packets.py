"""Demo packets: the top level records of a demo file."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Callable, Optional, TypeVar

from .bitstream import BitReader, BitWriter, ParseError
from .messages import MessageContext, read_message, write_message

_T = TypeVar("_T")


def _read_optional(reader: BitReader, read: Callable[[BitReader], _T]) -> Optional[_T]:
    return read(reader) if reader.read_bool() else None


def _write_optional(
    value: Optional[_T], writer: BitWriter, write: Callable[[_T, BitWriter], None]
) -> None:
    writer.write_bool(value is not None)
    if value is not None:
        write(value, writer)


class PacketType(IntEnum):
    """The byte that precedes every packet in a demo."""

    SIGNON = 1
    MESSAGE = 2
    SYNC_TICK = 3
    CONSOLE_CMD = 4
    USER_CMD = 5
    DATA_TABLES = 6
    STOP = 7
    STRING_TABLES = 8

    def as_str(self) -> str:
        return _NAMES[self]

    def as_lowercase_str(self) -> str:
        return _NAMES[self].lower()


_NAMES = {
    PacketType.SIGNON: "Signon",
    PacketType.MESSAGE: "Message",
    PacketType.SYNC_TICK: "SyncTick",
    PacketType.CONSOLE_CMD: "ConsoleCmd",
    PacketType.USER_CMD: "UserCmd",
    PacketType.DATA_TABLES: "DataTables",
    PacketType.STOP: "Stop",
    PacketType.STRING_TABLES: "StringTables",
}


@dataclass
class Vector:
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @classmethod
    def read(cls, reader: BitReader) -> "Vector":
        x = reader.read_float()
        y = reader.read_float()
        return cls(x, y, reader.read_float())

    def write(self, writer: BitWriter) -> None:
        writer.write_float(self.x)
        writer.write_float(self.y)
        writer.write_float(self.z)


@dataclass
class ViewAngles:
    origin: Vector = field(default_factory=Vector)
    angles: Vector = field(default_factory=Vector)
    local_angles: Vector = field(default_factory=Vector)

    @classmethod
    def read(cls, reader: BitReader) -> "ViewAngles":
        origin = Vector.read(reader)
        angles = Vector.read(reader)
        return cls(origin, angles, Vector.read(reader))

    def write(self, writer: BitWriter) -> None:
        self.origin.write(writer)
        self.angles.write(writer)
        self.local_angles.write(writer)


@dataclass
class MessagePacketMeta:
    flags: int = 0
    view_angles: tuple = field(default_factory=lambda: (ViewAngles(), ViewAngles()))
    sequence_in: int = 0
    sequence_out: int = 0

    @classmethod
    def read(cls, reader: BitReader) -> "MessagePacketMeta":
        flags = reader.read_int(32)
        view_angles = (ViewAngles.read(reader), ViewAngles.read(reader))
        sequence_in = reader.read_int(32)
        return cls(flags, view_angles, sequence_in, reader.read_int(32))

    def write(self, writer: BitWriter) -> None:
        if len(self.view_angles) != 2:
            raise ParseError("message packet meta needs exactly 2 view angles")
        writer.write_int(self.flags, 32)
        for angles in self.view_angles:
            angles.write(writer)
        writer.write_int(self.sequence_in, 32)
        writer.write_int(self.sequence_out, 32)


@dataclass
class MessagePacket:
    """A packet carrying a sequence of net messages."""

    tick: int = 0
    messages: list = field(default_factory=list)
    meta: MessagePacketMeta = field(default_factory=MessagePacketMeta)

    @classmethod
    def parse(
        cls, reader: BitReader, context: Optional[MessageContext] = None
    ) -> "MessagePacket":
        if context is None:
            context = MessageContext()
        tick = reader.read_int(32)
        meta = MessagePacketMeta.read(reader)
        length = reader.read_int(32)
        packet_data = reader.read_bits(length * 8)

        messages = []
        while packet_data.bits_left > 6:
            message = read_message(packet_data, context)
            if message is not None:
                messages.append(message)
        return cls(tick=tick, messages=messages, meta=meta)

    def encode(self, writer: BitWriter, context: Optional[MessageContext] = None) -> None:
        if context is None:
            context = MessageContext()
        writer.write_int(self.tick, 32)
        self.meta.write(writer)
        with writer.reserve_byte_length(32):
            for message in self.messages:
                write_message(message, writer, context)


@dataclass
class ConsoleCmdPacket:
    tick: int
    command: str

    @classmethod
    def read(cls, reader: BitReader) -> "ConsoleCmdPacket":
        tick = reader.read_int(32)
        length = reader.read_int(32)
        packet_data = reader.read_bits(length * 8)
        return cls(tick=tick, command=packet_data.read_string())

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 32)
        writer.write_int(len(self.command.encode("utf-8")) + 1, 32)
        writer.write_string(self.command)


@dataclass
class StopPacket:
    tick: int

    @classmethod
    def read(cls, reader: BitReader) -> "StopPacket":
        return cls(reader.read_int(24))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 24)


@dataclass
class SyncTickPacket:
    tick: int

    @classmethod
    def read(cls, reader: BitReader) -> "SyncTickPacket":
        return cls(reader.read_int(32))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 32)


@dataclass
class WeaponSelect:
    select: int
    subtype: Optional[int] = None

    @classmethod
    def read(cls, reader: BitReader) -> "WeaponSelect":
        select = reader.read_int(11)
        subtype = _read_optional(reader, lambda r: r.read_int(6))
        return cls(select, subtype)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.select, 11)
        _write_optional(self.subtype, writer, lambda value, w: w.write_int(value, 6))


def _read_u(bits: int) -> Callable[[BitReader], int]:
    return lambda reader: reader.read_int(bits)


def _write_u(bits: int) -> Callable[[int, BitWriter], None]:
    return lambda value, writer: writer.write_int(value, bits)


def _read_f(reader: BitReader) -> float:
    return reader.read_float()


def _write_f(value: float, writer: BitWriter) -> None:
    writer.write_float(value)


@dataclass
class UserCmd:
    """Player input for one tick; every field is optional on the wire."""

    command_number: Optional[int] = None
    tick_count: Optional[int] = None
    view_angles: tuple = (None, None, None)
    movement: tuple = (None, None, None)
    buttons: Optional[int] = None
    impulse: Optional[int] = None
    weapon_select: Optional[WeaponSelect] = None
    mouse_dx: Optional[int] = None
    mouse_dy: Optional[int] = None

    @classmethod
    def read(cls, reader: BitReader) -> "UserCmd":
        command_number = _read_optional(reader, _read_u(32))
        tick_count = _read_optional(reader, _read_u(32))
        view_angles = tuple(_read_optional(reader, _read_f) for _ in range(3))
        movement = tuple(_read_optional(reader, _read_f) for _ in range(3))
        buttons = _read_optional(reader, _read_u(32))
        impulse = _read_optional(reader, _read_u(8))
        weapon_select = _read_optional(reader, WeaponSelect.read)
        mouse_dx = _read_optional(reader, _read_u(16))
        mouse_dy = _read_optional(reader, _read_u(16))
        return cls(
            command_number=command_number,
            tick_count=tick_count,
            view_angles=view_angles,
            movement=movement,
            buttons=buttons,
            impulse=impulse,
            weapon_select=weapon_select,
            mouse_dx=mouse_dx,
            mouse_dy=mouse_dy,
        )

    def write(self, writer: BitWriter) -> None:
        if len(self.view_angles) != 3 or len(self.movement) != 3:
            raise ParseError("view angles and movement need exactly 3 components")
        _write_optional(self.command_number, writer, _write_u(32))
        _write_optional(self.tick_count, writer, _write_u(32))
        for value in self.view_angles:
            _write_optional(value, writer, _write_f)
        for value in self.movement:
            _write_optional(value, writer, _write_f)
        _write_optional(self.buttons, writer, _write_u(32))
        _write_optional(self.impulse, writer, _write_u(8))
        _write_optional(self.weapon_select, writer, lambda value, w: value.write(w))
        _write_optional(self.mouse_dx, writer, _write_u(16))
        _write_optional(self.mouse_dy, writer, _write_u(16))


@dataclass
class UserCmdPacket:
    tick: int
    sequence_out: int
    cmd: UserCmd = field(default_factory=UserCmd)

    @classmethod
    def read(cls, reader: BitReader) -> "UserCmdPacket":
        tick = reader.read_int(32)
        sequence_out = reader.read_int(32)
        length = reader.read_int(32)
        data = reader.read_bits(length * 8)
        return cls(tick=tick, sequence_out=sequence_out, cmd=UserCmd.read(data))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.tick, 32)
        writer.write_int(self.sequence_out, 32)
        with writer.reserve_byte_length(32):
            self.cmd.write(writer)