"""Voice and sound messages."""

from __future__ import annotations

from dataclasses import dataclass

from .bitstream import BitReader, BitWriter

_CELT_SAMPLE_RATE = 22050
_LEGACY_SAMPLE_RATE = 11025


@dataclass
class VoiceInitMessage:
    codec: str
    quality: int
    sampling_rate: int

    @classmethod
    def read(cls, reader: BitReader) -> "VoiceInitMessage":
        codec = reader.read_string()
        quality = reader.read_int(8)
        if quality == 255:
            # newer packets carry a variable rate
            sampling_rate = reader.read_int(16)
        elif codec == "vaudio_celt":
            sampling_rate = _CELT_SAMPLE_RATE
        else:
            sampling_rate = _LEGACY_SAMPLE_RATE
        return cls(codec=codec, quality=quality, sampling_rate=sampling_rate)

    def write(self, writer: BitWriter) -> None:
        writer.write_string(self.codec)
        writer.write_int(self.quality, 8)
        if self.quality == 255:
            writer.write_int(self.sampling_rate, 16)


@dataclass
class VoiceDataMessage:
    client: int
    proximity: int
    length: int
    data: BitReader

    @classmethod
    def read(cls, reader: BitReader) -> "VoiceDataMessage":
        client = reader.read_int(8)
        proximity = reader.read_int(8)
        length = reader.read_int(16)
        data = reader.read_bits(length)
        return cls(client=client, proximity=proximity, length=length, data=data)

    def write(self, writer: BitWriter) -> None:
        writer.write_int(self.client, 8)
        writer.write_int(self.proximity, 8)
        writer.write_int(self.length, 16)
        writer.write_bits(self.data)


@dataclass
class ParseSoundsMessage:
    reliable: bool
    num: int
    length: int
    data: BitReader

    @classmethod
    def read(cls, reader: BitReader) -> "ParseSoundsMessage":
        reliable = reader.read_bool()
        num = 1 if reliable else reader.read_int(8)
        length = reader.read_int(8) if reliable else reader.read_int(16)
        data = reader.read_bits(length)
        return cls(reliable=reliable, num=num, length=length, data=data)

    def write(self, writer: BitWriter) -> None:
        writer.write_bool(self.reliable)
        if self.reliable:
            writer.write_int(self.length, 8)
        else:
            writer.write_int(self.num, 8)
            writer.write_int(self.length, 16)
        writer.write_bits(self.data)