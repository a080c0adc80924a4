"""Unit tests for the base62 codec."""

import pytest

from shortlink.base62 import ALPHABET, decode, encode
from shortlink.exceptions import InvalidSymbolError


def test_alphabet_layout() -> None:
    assert len(ALPHABET) == 62
    assert len(set(ALPHABET)) == 62
    assert ALPHABET[:10] == "0123456789"
    assert ALPHABET[10] == "a"


def test_encode_basic() -> None:
    assert encode(0) == "0"
    assert encode(1) == "1"
    assert encode(10) == "a"
    assert encode(61) == "Z"
    assert encode(62) == "10"


def test_encode_large_numbers() -> None:
    assert encode(12345) == "3d7"
    assert encode(62**6 - 1) == "ZZZZZZ"
    assert encode(62**6) == "1000000"


def test_encode_first_slug_offset() -> None:
    assert encode(10 * 62**5) == "a00000"
    assert encode(10 * 62**5 + 1) == "a00001"


def test_encode_negative() -> None:
    with pytest.raises(ValueError, match="Number must be non-negative"):
        encode(-1)


def test_decode_known_values() -> None:
    assert decode("0") == 0
    assert decode("Z") == 61
    assert decode("10") == 62
    assert decode("a00000") == 10 * 62**5


@pytest.mark.parametrize("number", [0, 1, 61, 62, 3843, 3844, 123456789, 10 * 62**5, 62**9 + 17])
def test_decode_inverts_encode(number: int) -> None:
    assert decode(encode(number)) == number


def test_decode_rejects_unknown_symbol() -> None:
    with pytest.raises(InvalidSymbolError) as exc_info:
        decode("ab-c")
    assert exc_info.value.symbol == "-"
    assert isinstance(exc_info.value, ValueError)


def test_decode_rejects_empty_string() -> None:
    with pytest.raises(InvalidSymbolError):
        decode("")
