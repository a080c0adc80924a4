"""Base62 codec for slugs.

Digits first, then lowercase, then uppercase: value 10 encodes as ``a``, so
``encode(10 * 62**5) == "a00000"``. Encoding has no minimum width; callers that
need fixed-width output offset the input instead of padding the result.
"""

from shortlink.exceptions import InvalidSymbolError

__all__ = ["ALPHABET", "BASE", "encode", "decode"]

ALPHABET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"
BASE = len(ALPHABET)

_VALUES = {symbol: value for value, symbol in enumerate(ALPHABET)}


def encode(number: int) -> str:
    """Encode a number to base62 string.

    Args:
        number: Number to encode (must be non-negative)

    Returns:
        str: Base62 encoded string

    Example:
        >>> encode(12345)
        '3d7'
    """
    if number < 0:
        raise ValueError("Number must be non-negative")

    if number == 0:
        return ALPHABET[0]

    result = []
    while number > 0:
        number, remainder = divmod(number, BASE)
        result.append(ALPHABET[remainder])

    return "".join(result[::-1])


def decode(value: str) -> int:
    """Decode a base62 string back to its number.

    Raises:
        InvalidSymbolError: If the string is empty or contains a character
            outside ALPHABET.
    """
    if not value:
        raise InvalidSymbolError(value, "")

    number = 0
    for symbol in value:
        digit = _VALUES.get(symbol)
        if digit is None:
            raise InvalidSymbolError(value, symbol)
        number = number * BASE + digit
    return number
