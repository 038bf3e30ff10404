"""An 80x25 character-cell text console with per-cell attribute bytes."""

from __future__ import annotations

from barekit.textutil import uint_to_base

WIDTH = 80
HEIGHT = 25
_ROW_BYTES = WIDTH * 2
_LIMIT = WIDTH * HEIGHT * 2


def _c_string(text: str) -> str:
    return text.split("\0", 1)[0]


def _byte(character: str) -> int:
    return ord(character) & 0xFF


class TextConsole:
    """Text-mode video memory: each cell holds a character byte and a style byte."""

    def __init__(self):
        self._video = bytearray(_LIMIT)
        self._cursor = 0

    @property
    def position(self) -> tuple[int, int]:
        """The cursor as (row, column)."""
        return divmod(self._cursor // 2, WIDTH)

    def _wrap(self) -> None:
        if not 0 <= self._cursor < _LIMIT:
            self._cursor = 0

    def print(self, text: str) -> None:
        for character in _c_string(text):
            self.put_char(character)

    def print_style(self, text: str, style: int) -> None:
        """Write text with a style byte, stopping at the end of the screen."""
        for character in _c_string(text):
            if self._cursor >= _LIMIT:
                break
            self._video[self._cursor] = _byte(character)
            self._video[self._cursor + 1] = style & 0xFF
            self._cursor += 2
        self._wrap()

    def print_style_count(self, text: str, style: int, count: int) -> None:
        """Write the first count characters of text with a style byte."""
        for character in text[: max(count, 0)]:
            if self._cursor >= _LIMIT:
                break
            self._video[self._cursor] = _byte(character)
            self._video[self._cursor + 1] = style & 0xFF
            self._cursor += 2
        self._wrap()

    def _valid(self, row: int, column: int) -> bool:
        return 0 <= row < HEIGHT and 0 <= column < WIDTH

    def print_at(self, row: int, column: int, text: str, style: int) -> None:
        """Write styled text at a cell without moving the cursor."""
        if not self._valid(row, column):
            return
        saved = self._cursor
        self._cursor = (row * WIDTH + column) * 2
        self.print_style(text, style)
        self._cursor = saved

    def print_number_at(self, row: int, column: int, number: int) -> None:
        """Write a decimal number at a cell without moving the cursor."""
        if not self._valid(row, column):
            return
        saved = self._cursor
        self._cursor = (row * WIDTH + column) * 2
        self.print_dec(number)
        self._cursor = saved

    def put_char(self, character: str) -> None:
        if character == "\b":
            self._cursor -= 2
            if self._cursor >= 0:
                self._video[self._cursor] = 0
        elif character == "\n":
            self.newline()
        else:
            self._video[self._cursor] = _byte(character)
            self._cursor += 2
        self._wrap()

    def newline(self) -> None:
        """Pad the current row with spaces and move to the next one."""
        while True:
            self.put_char(" ")
            if self._cursor % _ROW_BYTES == 0:
                break
        self._wrap()

    def set_cursor(self, row: int, column: int) -> None:
        if self._valid(row, column):
            self._cursor = (row * WIDTH + column) * 2

    def print_dec(self, value: int) -> None:
        self.print_base(value, 10)

    def print_hex(self, value: int) -> None:
        self.print_base(value, 16)

    def print_bin(self, value: int) -> None:
        self.print_base(value, 2)

    def print_base(self, value: int, base: int) -> None:
        self.print(uint_to_base(value, base))

    def clear(self) -> None:
        """Blank every character cell, keeping styles, and home the cursor."""
        self._video[0::2] = b" " * (WIDTH * HEIGHT)
        self._cursor = 0

    def cell(self, row: int, column: int) -> tuple[str, int]:
        """The (character, style) pair stored at a cell."""
        if not self._valid(row, column):
            raise IndexError(f"cell ({row}, {column}) is outside the screen")
        index = (row * WIDTH + column) * 2
        return chr(self._video[index]), self._video[index + 1]

    def row_text(self, row: int) -> str:
        """The characters of one row."""
        if not 0 <= row < HEIGHT:
            raise IndexError(f"row {row} is outside the screen")
        start = row * _ROW_BYTES
        return bytes(self._video[start : start + _ROW_BYTES : 2]).decode("latin-1")