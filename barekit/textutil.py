"""Small text helpers: number formatting and fixed-width string copies."""

from __future__ import annotations

_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def uint_to_base(value: int, base: int) -> str:
    """Render a non-negative integer in the given base with upper-case digits."""
    if not 2 <= base <= len(_DIGITS):
        raise ValueError(f"base must be between 2 and {len(_DIGITS)}, got {base}")
    if value < 0:
        raise ValueError(f"value must be non-negative, got {value}")
    digits = []
    while True:
        value, remainder = divmod(value, base)
        digits.append(_DIGITS[remainder])
        if not value:
            break
    return "".join(reversed(digits))


def decimal_to_str(value: int) -> str:
    """Render a non-negative integer in decimal."""
    return uint_to_base(value, 10)


def fixed_copy(text: str, length: int) -> str:
    """Copy at most length characters of text, padding with NULs to exactly length.

    Copying stops at the first NUL in text, as with a C string.
    """
    if length <= 0:
        return ""
    head = text.split("\0", 1)[0][:length]
    return head.ljust(length, "\0")