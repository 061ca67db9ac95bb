import pytest
from hypothesis import given
from hypothesis import strategies as st

from tfdemo.bitstream import BitWriter
from tfdemo.varint import encode_var_int_fixed, log_base2, read_var_int, write_var_int

CASES = [0, 1, 10, 55, 355, 12354, 123125412]


@pytest.mark.parametrize("value", CASES)
def test_var_int_roundtrip(value):
    writer = BitWriter()
    write_var_int(value, writer)
    reader = writer.to_reader()
    assert read_var_int(reader) == value
    assert reader.pos == writer.bit_length


@pytest.mark.parametrize("value", CASES)
def test_var_int_fixed_roundtrip(value):
    writer = BitWriter()
    writer.write_int(encode_var_int_fixed(value), 40)
    assert writer.bit_length == 40
    reader = writer.to_reader()
    assert read_var_int(reader) == value
    assert reader.pos == 40


@given(st.integers(0, 0xFFFFFFFF))
def test_var_int_roundtrip_any_u32(value):
    writer = BitWriter()
    write_var_int(value, writer)
    reader = writer.to_reader()
    assert read_var_int(reader) == value
    assert reader.bits_left == 0
    assert writer.bit_length <= 40


@given(st.integers(0, 0xFFFFFFFF))
def test_fixed_encoding_fits_in_40_bits(value):
    assert encode_var_int_fixed(value) >> 40 == 0


def test_write_var_int_rejects_out_of_range():
    with pytest.raises(ValueError):
        write_var_int(-1, BitWriter())
    with pytest.raises(ValueError):
        encode_var_int_fixed(1 << 32)


def test_log_base2_of_zero_is_zero():
    assert log_base2(0) == 0
    assert log_base2(1) == 0


@given(st.integers(0, 40))
def test_log_base2_of_powers(exponent):
    assert log_base2(1 << exponent) == exponent
    if exponent > 1:
        assert log_base2((1 << exponent) - 1) == exponent - 1


def test_log_base2_rejects_negative():
    with pytest.raises(ValueError):
        log_base2(-1)