"""Exceptions raised by the shortlink core."""

__all__ = ["ShortLinkError", "InvalidSymbolError", "CounterUnavailableError"]


class ShortLinkError(Exception):
    """Base class for all shortlink errors."""


class InvalidSymbolError(ShortLinkError, ValueError):
    """A base62 string contained a character outside the alphabet."""

    def __init__(self, value: str, symbol: str) -> None:
        self.value = value
        self.symbol = symbol
        super().__init__(f"Invalid base62 symbol {symbol!r} in {value!r}")


class CounterUnavailableError(ShortLinkError):
    """The identifier counter could not hand out a value."""
