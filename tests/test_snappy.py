import pytest
from hypothesis import given
from hypothesis import strategies as st

from tfdemo.bitstream import ParseError
from tfdemo.snappy import decompress, decompress_len


def _varint(value):
    out = bytearray()
    while value > 0x7F:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def _literal_block(data):
    out = bytearray(_varint(len(data)))
    for start in range(0, len(data), 60):
        chunk = data[start:start + 60]
        out.append((len(chunk) - 1) << 2)
        out += chunk
    return bytes(out)


def test_short_literal():
    block = bytes([5, 0x10]) + b"hello"
    assert decompress_len(block) == 5
    assert decompress(block) == b"hello"


def test_literal_with_length_byte():
    payload = b"x" * 100
    block = bytes([100, 0xF0, 99]) + payload
    assert decompress(block) == payload


def test_overlapping_copy():
    block = bytes([9, 0x08]) + b"abc" + bytes([0x09, 3])
    assert decompress(block) == b"abcabcabc"


def test_two_byte_offset_copy():
    block = bytes([8, 0x0C]) + b"abcd" + bytes([(4 - 1) << 2 | 2, 4, 0])
    assert decompress(block) == b"abcd" * 2


def test_multi_byte_header_length():
    assert decompress_len(bytes([0xAC, 0x02])) == 300


@given(st.binary(max_size=500))
def test_literal_roundtrip(data):
    block = _literal_block(data)
    assert decompress_len(block) == len(data)
    assert decompress(block) == data


def test_empty_input_raises():
    with pytest.raises(ParseError):
        decompress(b"")
    with pytest.raises(ParseError):
        decompress_len(b"")


def test_zero_offset_raises():
    with pytest.raises(ParseError):
        decompress(bytes([4, 0x00]) + b"a" + bytes([0x01, 0]))


def test_offset_past_output_raises():
    with pytest.raises(ParseError):
        decompress(bytes([6, 0x00]) + b"a" + bytes([0x05, 2]))


def test_truncated_literal_raises():
    with pytest.raises(ParseError):
        decompress(bytes([5, 0x10]) + b"hel")


def test_length_mismatch_raises():
    with pytest.raises(ParseError):
        decompress(bytes([6, 0x10]) + b"hello")
    with pytest.raises(ParseError):
        decompress(bytes([4, 0x10]) + b"hello")


def test_overlong_header_raises():
    with pytest.raises(ParseError):
        decompress_len(bytes([0xFF] * 6))