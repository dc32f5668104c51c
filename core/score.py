"""Final score of a game in GTP notation."""

from __future__ import annotations

import math
from decimal import ROUND_HALF_EVEN, Context, Decimal
from typing import ClassVar, Optional

from core.player import Player

_ONE_DIGIT = Decimal("0.1")


def format_magnitude(value: float) -> str:
    """Render ``value`` with a decimal point and at most one fractional digit.

    The output never depends on the process locale and carries no digit
    grouping: ``2.5 -> "2.5"``, ``91.0 -> "91"``, ``0.25 -> "0.2"``.
    """
    # Exact binary value, as the float really holds it; "+ 0.0" folds -0.0.
    exact = Decimal(float(value) + 0.0)
    # Enough precision for every integer digit plus the fractional one.
    context = Context(prec=max(28, exact.adjusted() + 2))
    text = format(exact.quantize(_ONE_DIGIT, rounding=ROUND_HALF_EVEN, context=context), "f")
    if text.endswith(".0"):
        text = text[:-2]
    return text


class Score:
    """Winner of a game and the winning margin.

    Parameters
    ----------
    winner:
        The player that won, ``None`` for a draw (prefer :attr:`Score.DRAW`).
    margin:
        Points in favour of ``winner``.  Must be finite and not negative.
    """

    DRAW: ClassVar["Score"]

    __slots__ = ("winner", "margin")

    def __init__(self, winner: Optional[Player], margin: float = 0.0) -> None:
        margin = float(margin)
        if not math.isfinite(margin) or margin < 0:
            raise ValueError(f"Score must be a finite positive number, got {margin}")
        self.winner = winner
        self.margin = margin

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Score):
            return NotImplemented
        return self.winner is other.winner and self.margin == other.margin

    def __hash__(self) -> int:
        return hash((self.winner, self.margin))

    def __repr__(self) -> str:
        return f"Score({self.winner!r}, {self.margin!r})"

    def __str__(self) -> str:
        if self.winner is None:
            return "0"
        return f"{self.winner.to_short_string()}+{format_magnitude(self.margin)}"


Score.DRAW = Score(None, 0.0)


__all__ = ["Score", "format_magnitude"]
