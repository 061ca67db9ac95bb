"""User messages: game specific messages carried inside a user message."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Optional, Union

from .bitstream import BitError, BitReader, BitWriter


def _read_maybe_utf8(reader: BitReader) -> str:
    """Read a null-terminated string; bytes that are not utf-8 survive a round trip."""
    collected = bytearray()
    while (byte := reader.read_int(8)) != 0:
        collected.append(byte)
    return bytes(collected).decode("utf-8", "surrogateescape")


def _write_maybe_utf8(text: str, writer: BitWriter) -> None:
    writer.write_bytes(text.encode("utf-8", "surrogateescape") + b"\0")


class UserMessageType(IntEnum):
    GEIGER = 0
    TRAIN = 1
    HUD_TEXT = 2
    SAY_TEXT = 3
    SAY_TEXT2 = 4
    TEXT_MSG = 5
    RESET_HUD = 6
    GAME_TITLE = 7
    ITEM_PICKUP = 8
    SHOW_MENU = 9
    SHAKE = 10
    FADE = 11
    VGUI_MENU = 12
    RUMBLE = 13
    CLOSE_CAPTION = 14
    SEND_AUDIO = 15
    VOICE_MASK = 16
    REQUEST_STATE = 17
    DAMAGE = 18
    HINT_TEXT = 19
    KEY_HINT_TEXT = 20
    HUD_MSG = 21
    AMMO_DENIED = 22
    ACHIEVEMENT_EVENT = 23
    UPDATE_RADAR = 24
    VOICE_SUBTITLE = 25
    HUD_NOTIFY = 26
    HUD_NOTIFY_CUSTOM = 27
    PLAYER_STATS_UPDATE = 28
    PLAYER_IGNITED = 29
    PLAYER_IGNITED_INV = 30
    HUD_ARENA_NOTIFY = 31
    UPDATE_ACHIEVEMENT = 32
    TRAINING_MSG = 33
    TRAINING_OBJECTIVE = 34
    DAMAGE_DODGED = 35
    PLAYER_JARATED = 36
    PLAYER_EXTINGUISHED = 37
    PLAYER_JARATED_FADE = 38
    PLAYER_SHIELD_BLOCKED = 39
    BREAK_MODEL = 40
    CHEAP_BREAK_MODEL = 41
    BREAK_MODEL_PUMPKIN = 42
    BREAK_MODEL_ROCKET_DUD = 43
    CALL_VOTE_FAILED = 44
    VOTE_START = 45
    VOTE_PASS = 46
    VOTE_FAILED = 47
    VOTE_SETUP = 48
    PLAYER_BONUS_POINTS = 49
    SPAWN_FLYING_BIRD = 50
    PLAYER_GOD_RAY_EFFECT = 51
    SP_HAP_WEAP_EVENT = 52
    HAP_DMG = 53
    HAP_PUNCH = 54
    HAP_SET_DRAG = 55
    HAP_SET = 56
    HAP_MELEE_CONTACT = 57
    UNKNOWN = 255


class ChatMessageKind(Enum):
    """The kind of a chat message; the value is its name on the wire."""

    CHAT_ALL = "TF_Chat_All"
    CHAT_TEAM = "TF_Chat_Team"
    CHAT_ALL_DEAD = "TF_Chat_AllDead"
    CHAT_TEAM_DEAD = "TF_Chat_Team_Dead"
    CHAT_ALL_SPEC = "TF_Chat_AllSpec"
    NAME_CHANGE = "#TF_Name_Change"
    EMPTY = ""

    @classmethod
    def read(cls, reader: BitReader) -> "ChatMessageKind":
        raw = reader.read_string()
        if raw == "":
            return cls.CHAT_ALL
        try:
            return cls(raw)
        except ValueError:
            return cls.CHAT_ALL

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.value)


def _remove_marked(text: str, marker: str, length: int) -> str:
    while (pos := text.find(marker)) >= 0:
        text = text[:pos] + text[pos + length:]
    return text


@dataclass
class SayText2Message:
    """A chat message, or a plain line of text when it has no sender."""

    client: int
    raw: int
    kind: ChatMessageKind
    sender: Optional[str]
    text: str

    def plain_text(self) -> str:
        """The text with color and formatting codes removed."""
        # 1: normal, 2: old colors, 3: team, 4: location, 5: achievement, 6: custom
        text = "".join(char for char in self.text if char > "\x06")
        text = _remove_marked(text, "\x07", 7)  # followed by 6 hex digits
        return _remove_marked(text, "\x09", 9)  # followed by 8 hex digits

    @classmethod
    def read(cls, reader: BitReader) -> "SayText2Message":
        client = reader.read_int(8)
        raw = reader.read_int(8)
        first = reader.read_int(8)
        reader.set_pos(reader.pos - 8)
        if first == 1:
            text = _read_maybe_utf8(reader)
            return cls(client, raw, ChatMessageKind.CHAT_ALL, None, text)
        kind = ChatMessageKind.read(reader)
        sender = _read_maybe_utf8(reader)
        text = _read_maybe_utf8(reader)
        if reader.bits_left >= 16:
            reader.read_int(16)
        return cls(client, raw, kind, sender, text)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.client & 0xFF, 8)
        writer.write_int(self.raw, 8)
        if self.sender is not None:
            self.kind.write(writer)
            _write_maybe_utf8(self.sender, writer)
            _write_maybe_utf8(self.text, writer)
            writer.write_int(0, 16)
        else:
            _write_maybe_utf8(self.text, writer)


class HudTextLocation(IntEnum):
    PRINT_NOTIFY = 1
    PRINT_CONSOLE = 2
    PRINT_TALK = 3
    PRINT_CENTER = 4


@dataclass
class TextMessage:
    location: HudTextLocation
    text: str
    substitute: tuple = ("", "", "", "")

    @classmethod
    def read(cls, reader: BitReader) -> "TextMessage":
        raw = reader.read_int(8)
        try:
            location = HudTextLocation(raw)
        except ValueError:
            raise BitError(f"unmatched hud text location {raw}") from None
        text = _read_maybe_utf8(reader)
        substitute = tuple(_read_maybe_utf8(reader) for _ in range(4))
        return cls(location, text, substitute)

    def write(self, writer: BitWriter) -> None:
        if len(self.substitute) != 4:
            raise BitError("a text message needs exactly 4 substitutes")
        writer.write_int(int(self.location), 8)
        _write_maybe_utf8(self.text, writer)
        for item in self.substitute:
            _write_maybe_utf8(item, writer)


@dataclass
class ResetHudMessage:
    data: int

    @classmethod
    def read(cls, reader: BitReader) -> "ResetHudMessage":
        return cls(reader.read_int(8))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.data, 8)


@dataclass
class TrainMessage:
    data: int

    @classmethod
    def read(cls, reader: BitReader) -> "TrainMessage":
        return cls(reader.read_int(8))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.data, 8)


@dataclass
class VoiceSubtitleMessage:
    client: int
    menu: int
    item: int

    @classmethod
    def read(cls, reader: BitReader) -> "VoiceSubtitleMessage":
        return cls(reader.read_int(8), reader.read_int(8), reader.read_int(8))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.client, 8)
        writer.write_int(self.menu, 8)
        writer.write_int(self.item, 8)


@dataclass
class ShakeMessage:
    command: int
    amplitude: float
    frequency: float
    duration: float

    @classmethod
    def read(cls, reader: BitReader) -> "ShakeMessage":
        command = reader.read_int(8)
        return cls(command, reader.read_float(), reader.read_float(), reader.read_float())

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.command, 8)
        writer.write_float(self.amplitude)
        writer.write_float(self.frequency)
        writer.write_float(self.duration)


@dataclass
class VGuiMenuMessageData:
    key: str
    data: str


@dataclass
class VGuiMenuMessage:
    name: str
    show: int
    data: list = field(default_factory=list)

    @classmethod
    def read(cls, reader: BitReader) -> "VGuiMenuMessage":
        name = _read_maybe_utf8(reader)
        show = reader.read_int(8)
        count = reader.read_int(8)
        data = [
            VGuiMenuMessageData(_read_maybe_utf8(reader), _read_maybe_utf8(reader))
            for _ in range(count)
        ]
        return cls(name, show, data)

    def write(self, writer: BitWriter) -> None:
        _write_maybe_utf8(self.name, writer)
        writer.write_int(self.show, 8)
        writer.write_int(len(self.data) & 0xFF, 8)
        for item in self.data:
            _write_maybe_utf8(item.key, writer)
            _write_maybe_utf8(item.data, writer)


@dataclass
class RumbleMessage:
    waveform_index: int
    rumble_data: int
    rumble_flags: int

    @classmethod
    def read(cls, reader: BitReader) -> "RumbleMessage":
        return cls(reader.read_int(8), reader.read_int(8), reader.read_int(8))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.waveform_index, 8)
        writer.write_int(self.rumble_data, 8)
        writer.write_int(self.rumble_flags, 8)


@dataclass
class FadeMessage:
    duration: int
    hold: int
    flags: int
    color: tuple = (0, 0, 0, 0)

    @classmethod
    def read(cls, reader: BitReader) -> "FadeMessage":
        duration = reader.read_int(16)
        hold = reader.read_int(16)
        flags = reader.read_int(16)
        color = tuple(reader.read_int(8) for _ in range(4))
        return cls(duration, hold, flags, color)

    def write(self, writer: BitWriter) -> None:
        if len(self.color) != 4:
            raise BitError("a fade color needs exactly 4 components")
        writer.write_int(self.duration, 16)
        writer.write_int(self.hold, 16)
        writer.write_int(self.flags, 16)
        for component in self.color:
            writer.write_int(component, 8)


@dataclass
class HapMeleeContactMessage:
    data: int

    @classmethod
    def read(cls, reader: BitReader) -> "HapMeleeContactMessage":
        return cls(reader.read_int(8))

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.data, 8)


@dataclass
class UnknownUserMessage:
    """A user message whose body is kept as raw bits."""

    raw_type: int
    data: BitReader


UserMessage = Union[
    SayText2Message,
    TextMessage,
    ResetHudMessage,
    TrainMessage,
    VoiceSubtitleMessage,
    ShakeMessage,
    VGuiMenuMessage,
    RumbleMessage,
    FadeMessage,
    HapMeleeContactMessage,
    UnknownUserMessage,
]

_CLASS_FOR_TYPE = {
    UserMessageType.SAY_TEXT2: SayText2Message,
    UserMessageType.TEXT_MSG: TextMessage,
    UserMessageType.RESET_HUD: ResetHudMessage,
    UserMessageType.TRAIN: TrainMessage,
    UserMessageType.VOICE_SUBTITLE: VoiceSubtitleMessage,
    UserMessageType.SHAKE: ShakeMessage,
    UserMessageType.VGUI_MENU: VGuiMenuMessage,
    UserMessageType.RUMBLE: RumbleMessage,
    UserMessageType.FADE: FadeMessage,
    UserMessageType.HAP_MELEE_CONTACT: HapMeleeContactMessage,
}
_TYPE_FOR_CLASS = {cls: message_type for message_type, cls in _CLASS_FOR_TYPE.items()}


def user_message_type(message) -> int:
    """The raw type byte a user message is sent with."""
    if isinstance(message, UnknownUserMessage):
        return message.raw_type
    try:
        return int(_TYPE_FOR_CLASS[type(message)])
    except KeyError:
        raise TypeError(f"{type(message).__name__} is not a user message") from None


def read_user_message(reader: BitReader):
    raw_type = reader.read_int(8)
    length = reader.read_int(11)
    data = reader.read_bits(length)
    try:
        message_class = _CLASS_FOR_TYPE.get(UserMessageType(raw_type))
    except ValueError:
        message_class = None
    if message_class is None:
        return UnknownUserMessage(raw_type=raw_type, data=data)
    return message_class.read(data)


def skip_user_message(reader: BitReader) -> None:
    reader.skip_bits(8)
    length = reader.read_int(11)
    reader.skip_bits(length)


def write_user_message(message, writer: BitWriter) -> None:
    writer.write_int(user_message_type(message), 8)
    with writer.reserve_length(11):
        if isinstance(message, UnknownUserMessage):
            writer.write_bits(message.data)
        else:
            message.write(writer)