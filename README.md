# tfdemo

`tfdemo` reads and writes the bit-packed packets and net messages found in
Source engine demo files. It uses only the standard library.

## Installation

```
pip install .
```

To also install what the tests need:

```
pip install ".[test]"
```

## Bit streams

`tfdemo.bitstream` provides `BitReader` and `BitWriter`. Bits are read and
written least significant first.

```python
from tfdemo.bitstream import BitReader, BitWriter

writer = BitWriter()
writer.write_int(5, 3)
writer.write_bool(True)
writer.write_string("hello")

reader = writer.to_reader()
assert reader.read_int(3) == 5
assert reader.read_bool() is True
assert reader.read_string() == "hello"
```

`BitReader.read_bits(count)` splits off the next bits as a reader of their
own. `BitWriter` has three context managers for fields whose value is only
known once their content is written: `reserve_length` (length in bits),
`reserve_byte_length` (content padded to whole bytes, length in bytes) and
`reserve_int` (the block sets `value` on the yielded slot).

A read past the end of the data raises `BitError`. Data that is malformed at
the protocol level raises `ParseError`, of which `BitError` is a subclass.

`Demo` wraps the bytes of a demo file; `get_stream()` returns a fresh
`BitReader` over all of them:

```python
from tfdemo.bitstream import Demo

with open("match.dem", "rb") as handle:
    demo = Demo(handle.read())
stream = demo.get_stream()
```

## Variable-length integers

`tfdemo.varint` holds `read_var_int`, `write_var_int`, `encode_var_int_fixed`
(a var int that always takes exactly 40 bits) and `log_base2`.

## String tables

- `tfdemo.tables`: `StringTable`, `StringTableEntry`, `ExtraData`,
  `FixedUserDataSize`, `StringTableMeta` and `StringTablePacket`.
- `tfdemo.stringtable`: the `CreateStringTableMessage` and
  `UpdateStringTableMessage` net messages, and the entry encoding with its
  32-entry history for reusing text prefixes (`TableHistory`,
  `parse_string_table_update`, `write_string_table_update`). Tables are always
  written uncompressed. When reading, SNAP-compressed tables are decompressed;
  LZSS-compressed tables raise `ParseError`.
- `tfdemo.snappy`: the raw Snappy decoder (`decompress`, `decompress_len`).

## Messages and packets

- `tfdemo.messages`: the `MessageType` enum, the net message classes, and
  `read_message`, `skip_message`, `write_message` and `message_type_of`.
  A `MessageContext` carries the protocol version, the known string tables
  (as `StringTableMeta`) and the message types to skip. `read_message` returns
  `None` for an empty message or a skipped one; `write_message(None, ...)`
  writes an empty message.
- `tfdemo.usermessage`: user messages such as `SayText2Message`, whose
  `plain_text()` strips colour and formatting codes, and `read_user_message`,
  `skip_user_message`, `write_user_message`. User messages of a type without a
  class are kept as `UnknownUserMessage` with their raw bits.
- `tfdemo.voice`: `VoiceInitMessage`, `VoiceDataMessage` and
  `ParseSoundsMessage`.
- `tfdemo.packets`: `MessagePacket` (`parse`/`encode` with a
  `MessageContext`), `ConsoleCmdPacket`, `UserCmdPacket` with `UserCmd` and
  `WeaponSelect`, `SyncTickPacket`, `StopPacket`, and the `PacketType` enum.

Messages and packets have a `read` (or `parse`) class method and a matching
`write` (or `encode`) method; writing a value and reading it back gives the
same value.

## What the package does not do

- BSP decal, game event, game event list, packet entities and temp entities
  messages can only be skipped. By default `MessageContext` skips them;
  asking `read_message` to decode one raises `ParseError`.
- There is no data tables packet and no send prop decoding, so entity state
  cannot be reconstructed.
- There is no reader for the demo file header and no function that reads a
  packet by its `PacketType`; walking a whole demo file is left to the caller.
- There is no command-line program.