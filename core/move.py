"""Board coordinates as used on the GTP wire.

A :class:`Move` holds zero-based Cartesian coordinates: ``x`` grows to the
right starting at column ``A`` and ``y`` grows upwards starting at row ``1``.
The column alphabet skips the letter ``i`` so that 25 columns fit in
``a``..``z``.  Passing and resigning are expressed with the two sentinel
moves :attr:`Move.PASS` and :attr:`Move.RESIGN`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar

from core.errors import GTPSyntaxError

# Board sizes allowed by GTP version 2.  Engines may support only a subset.
MIN_BOARD_SIZE = 2
MAX_BOARD_SIZE = 25

LETTERS = "abcdefghjklmnopqrstuvwxyz"
PASS_STRING = "pass"
RESIGN_STRING = "resign"

_ROW_PATTERN = re.compile(r"[+-]?[0-9]+")
_PASS_XY = (-2, 0)
_RESIGN_XY = (-1, 0)


@dataclass(frozen=True)
class Move:
    """Immutable board position or one of the sentinel moves."""

    x: int
    y: int

    PASS: ClassVar["Move"]
    RESIGN: ClassVar["Move"]

    def __post_init__(self) -> None:
        if (self.x, self.y) in (_PASS_XY, _RESIGN_XY):
            return
        if not (0 <= self.x < MAX_BOARD_SIZE and 0 <= self.y < MAX_BOARD_SIZE):
            raise ValueError(f"Coordinate out of range: ({self.x}, {self.y})")

    @property
    def is_pass(self) -> bool:
        return (self.x, self.y) == _PASS_XY

    @property
    def is_resign(self) -> bool:
        return (self.x, self.y) == _RESIGN_XY

    @classmethod
    def from_string(cls, text: str) -> "Move":
        """Decode a GTP vertex such as ``"R14"``, ``"pass"`` or ``"resign"``.

        Decoding is case insensitive.  Rows are one-based on the wire and
        zero-based in the returned move.

        Raises
        ------
        GTPSyntaxError
            If ``text`` is empty, has an unknown column letter, a non numeric
            row or a row outside ``1..25``.
        """
        if not text:
            raise GTPSyntaxError("No move given!")
        value = text.lower()

        if value == PASS_STRING:
            return cls.PASS
        if value == RESIGN_STRING:
            return cls.RESIGN

        x = LETTERS.find(value[0])
        row = value[1:]
        if not _ROW_PATTERN.fullmatch(row):
            raise GTPSyntaxError(
                f"Invalid move: {value}, expected integer after first character!"
            )
        y = int(row) - 1
        if x < 0 or y < 0 or y >= MAX_BOARD_SIZE:
            raise GTPSyntaxError(f"Invalid move: {value}, coordinate out of range!")
        return cls(x, y)

    def __str__(self) -> str:
        if self.is_resign:
            return RESIGN_STRING
        if self.is_pass:
            return PASS_STRING
        return f"{LETTERS[self.x]}{self.y + 1}"


Move.PASS = Move(*_PASS_XY)
Move.RESIGN = Move(*_RESIGN_XY)


__all__ = ["Move", "MIN_BOARD_SIZE", "MAX_BOARD_SIZE", "LETTERS"]
