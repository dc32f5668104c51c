"""Player colours and their GTP wire representation."""

from __future__ import annotations

from enum import Enum

from core.errors import GTPSyntaxError


class Player(Enum):
    """One of the two sides of a game of Go."""

    BLACK = "black"
    WHITE = "white"

    @classmethod
    def from_string(cls, token: str) -> "Player":
        """Decode a GTP colour token.

        ``b``/``black`` and ``w``/``white`` are accepted in any case.

        Raises
        ------
        GTPSyntaxError
            If ``token`` is empty or names no player.
        """
        if not token:
            raise GTPSyntaxError("Not a valid player string!")
        text = token.lower()
        if text in ("b", "black"):
            return cls.BLACK
        if text in ("w", "white"):
            return cls.WHITE
        raise GTPSyntaxError(f"Unknown player: {text}!")

    def to_short_string(self) -> str:
        """Return ``"B"`` or ``"W"``."""
        return "B" if self is Player.BLACK else "W"

    def opponent(self) -> "Player":
        return Player.WHITE if self is Player.BLACK else Player.BLACK

    def __str__(self) -> str:
        return self.value


__all__ = ["Player"]
