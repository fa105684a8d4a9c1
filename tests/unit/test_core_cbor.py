"""Unit tests for the CTAP2 CBOR subset."""

import pytest

from fido2prf.core.cbor import Reader, append_array, append_bytes, append_string, append_uint


# ==============================================================================
# Tests: Encoding
# ==============================================================================

@pytest.mark.parametrize(
    "value, expected",
    [
        (0, b"\x00"),
        (1, b"\x01"),
        (23, b"\x17"),
        (24, b"\x18\x18"),
        (255, b"\x18\xff"),
        (256, b"\x19\x01\x00"),
        (65535, b"\x19\xff\xff"),
    ],
)
def test_append_uint_argument_boundaries(value, expected):
    assert bytes(append_uint(bytearray(), value)) == expected


def test_append_uint_rejects_values_over_16_bits():
    with pytest.raises(OverflowError):
        append_uint(bytearray(), 65536)


def test_append_uint_rejects_negative_values():
    with pytest.raises(OverflowError):
        append_uint(bytearray(), -1)


def test_append_bytes():
    assert bytes(append_bytes(bytearray(), b"")) == b"\x40"
    assert bytes(append_bytes(bytearray(), b"\x01\x02")) == b"\x42\x01\x02"
    assert bytes(append_bytes(bytearray(), b"\xaa" * 24))[:2] == b"\x58\x18"
    assert bytes(append_bytes(bytearray(), b"\xaa" * 300))[:3] == b"\x59\x01\x2c"


def test_append_bytes_too_long_is_fatal():
    with pytest.raises(OverflowError):
        append_bytes(bytearray(), bytes(65536))


def test_append_string_uses_utf8_byte_length():
    assert bytes(append_string(bytearray(), "usb")) == b"\x63usb"
    # "é" is two bytes in UTF-8
    assert bytes(append_string(bytearray(), "é")) == b"\x62\xc3\xa9"


def test_append_array_of_strings():
    assert bytes(append_array(bytearray(), [])) == b"\x80"
    assert bytes(append_array(bytearray(), ["usb"])) == b"\x81\x63usb"
    assert bytes(append_array(bytearray(), ["usb", "nfc"])) == b"\x82\x63usb\x63nfc"


def test_appends_accumulate_in_order():
    buf = bytearray()
    append_uint(buf, 1)
    append_string(buf, "a")
    assert bytes(buf) == b"\x01\x61a"


# ==============================================================================
# Tests: Reader
# ==============================================================================

def test_reader_reads_each_kind():
    reader = Reader(b"\x19\x01\x00" + b"\x42\x01\x02" + b"\x63usb" + b"\x82\x61a\x61b")
    assert reader.read_uint() == 256
    assert reader.read_bytes() == b"\x01\x02"
    assert reader.read_string() == "usb"
    assert reader.read_array() == ["a", "b"]
    assert reader.empty()


def test_reader_empty_byte_string_is_not_failure():
    reader = Reader(b"\x40")
    assert reader.read_bytes() == b""
    assert reader.empty()


def test_reader_rejects_wrong_major_type():
    assert Reader(b"\x63usb").read_bytes() is None
    assert Reader(b"\x42\x01\x02").read_string() is None
    assert Reader(b"\x42\x01\x02").read_uint() is None
    assert Reader(b"\x01").read_array() is None


def test_reader_rejects_truncated_headers():
    assert Reader(b"").read_uint() is None
    assert Reader(b"\x18").read_uint() is None
    assert Reader(b"\x19\x01").read_uint() is None


def test_reader_rejects_length_past_end():
    assert Reader(b"\x43\x01\x02").read_bytes() is None
    assert Reader(b"\x64usb").read_string() is None
    assert Reader(b"\x82\x61a").read_array() is None


@pytest.mark.parametrize("first", [0x1A, 0x1B, 0x1C, 0x1F, 0x5F])
def test_reader_rejects_unsupported_argument_encodings(first):
    assert Reader(bytes([first]) + bytes(8)).read_uint() is None
    assert Reader(bytes([first]) + bytes(8)).read_bytes() is None


def test_reader_rejects_invalid_utf8():
    assert Reader(b"\x62\xc3\x28").read_string() is None


def test_reader_rejects_non_text_array_elements():
    assert Reader(b"\x81\x41\x00").read_array() is None


def test_reader_remaining_tracks_position():
    reader = Reader(b"\x01\x02")
    assert reader.remaining() == 2
    reader.read_uint()
    assert reader.remaining() == 1
    assert not reader.empty()
