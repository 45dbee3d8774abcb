import base64

import pytest

from stterm.codec import (
    UTF_INVALID,
    base64_decode,
    is_control,
    is_control_c0,
    is_control_c1,
    utf8_decode,
    utf8_encode,
    utf8_validate,
)

SAMPLES = ["A", "~", "é", "€", "漢", "𝄞"]
INVALID_BYTES = chr(UTF_INVALID).encode()


@pytest.mark.parametrize("text", SAMPLES)
def test_decode_matches_stdlib(text):
    data = text.encode()
    assert utf8_decode(data) == (ord(text), len(data))


def test_decode_reads_only_first_character():
    assert utf8_decode("ab".encode()) == (ord("a"), 1)


def test_decode_empty_input():
    assert utf8_decode(b"") == (UTF_INVALID, 0)


def test_decode_incomplete_sequence_consumes_nothing():
    assert utf8_decode("€".encode()[:2]) == (UTF_INVALID, 0)


def test_decode_bad_lead_byte():
    assert utf8_decode(b"\xff") == (UTF_INVALID, 1)


def test_decode_bad_continuation_stops_before_it():
    assert utf8_decode(b"\xe2A") == (UTF_INVALID, 1)


def test_decode_surrogate_is_invalid():
    data = b"\xed\xa0\x80"
    assert utf8_decode(data) == (UTF_INVALID, len(data))


def test_decode_overlong_is_invalid():
    data = b"\xc1\x81"
    assert utf8_decode(data) == (UTF_INVALID, len(data))


@pytest.mark.parametrize("text", SAMPLES)
def test_encode_matches_stdlib(text):
    assert utf8_encode(ord(text)) == text.encode()


@pytest.mark.parametrize("text", SAMPLES)
def test_encode_decode_round_trip(text):
    encoded = utf8_encode(ord(text))
    assert utf8_decode(encoded) == (ord(text), len(encoded))


@pytest.mark.parametrize("rune", [0xD800, 0xDFFF, 0x110000, -1])
def test_encode_invalid_gives_replacement(rune):
    assert utf8_encode(rune) == INVALID_BYTES


def test_validate_keeps_valid_rune():
    assert utf8_validate(0x41, 1) == (0x41, 1)


def test_validate_rejects_rune_too_small_for_size():
    assert utf8_validate(0x41, 2) == (UTF_INVALID, len(INVALID_BYTES))


@pytest.mark.parametrize("text", SAMPLES)
def test_validate_length_matches_encoding(text):
    assert utf8_validate(ord(text), 0)[1] == len(text.encode())


@pytest.mark.parametrize("payload", [b"", b"a", b"ab", b"abc", b"hello world", bytes(range(40))])
def test_base64_round_trip(payload):
    assert base64_decode(base64.b64encode(payload)) == payload


def test_base64_accepts_str():
    assert base64_decode(base64.b64encode(b"clipboard").decode()) == b"clipboard"


def test_base64_missing_padding_is_implied():
    assert base64_decode(base64.b64encode(b"ab").rstrip(b"=")) == b"ab"


def test_base64_skips_non_printable():
    encoded = base64.b64encode(b"some text")
    mangled = encoded[:4] + b"\n\t" + encoded[4:]
    assert base64_decode(mangled) == b"some text"


def test_base64_only_newline_is_empty():
    assert base64_decode("\n") == b""


@pytest.mark.parametrize("rune", [0x00, 0x1B, 0x1F, 0x7F])
def test_c0_controls(rune):
    assert is_control_c0(rune) and is_control(rune) and not is_control_c1(rune)


@pytest.mark.parametrize("rune", [0x80, 0x90, 0x9F])
def test_c1_controls(rune):
    assert is_control_c1(rune) and is_control(rune) and not is_control_c0(rune)


@pytest.mark.parametrize("rune", [0x20, 0x41, 0x7E, 0xA0, 0x2603])
def test_printable_is_not_control(rune):
    assert not is_control(rune)