"""Engine contract consumed by the GTP interpreter and a reference engine.

The interpreter never inherits from or inspects an engine beyond the
:class:`GoEngine` protocol below.  Engines are handed to
:class:`api.gtp_interface.GTPSession` at construction and are used by that
session only, so implementations need no locking.

:class:`SimpleEngine` is a minimal rules-aware engine used by the command line
tool and the network front-ends.  It knows how to capture and count but plays
the first sensible point it finds.
"""
from __future__ import annotations

import logging
from typing import Optional, Protocol, runtime_checkable

from core.board import Board
from core.move import MAX_BOARD_SIZE, MIN_BOARD_SIZE, Move
from core.player import Player
from core.score import Score

logger = logging.getLogger(__name__)


@runtime_checkable
class GoEngine(Protocol):
    """Capabilities a Go playing program offers to a GTP controller.

    Calls may arrive in any order; out-of-order calls (``add_move`` before
    ``resize_board`` for instance) should be tolerated as no-ops or with the
    engine's defaults rather than raising.  Any exception raised from these
    methods ends the GTP session.
    """

    def add_move(self, move: Move, player: Player) -> bool:
        """Record ``move`` for ``player``; return ``False`` to veto it as illegal."""
        ...

    def can_score(self) -> bool:
        """Return ``True`` if :meth:`get_score` is supported.

        The answer must not change during the lifetime of the engine.
        """
        ...

    def get_name(self) -> str:
        """ASCII name of the engine, without version.  May contain spaces."""
        ...

    def get_score(self) -> Optional[Score]:
        """Score the current game.  Only called when :meth:`can_score` is true."""
        ...

    def get_version(self) -> str:
        """ASCII version string."""
        ...

    def new_game(self) -> None:
        """Reset the internal state to an empty board."""
        ...

    def next_move(self, player: Player) -> Move:
        """Choose, play and return the next move for ``player``."""
        ...

    def resize_board(self, size: int) -> bool:
        """Switch to a ``size`` x ``size`` board; return ``False`` if unsupported."""
        ...

    def set_komi(self, komi: float) -> None:
        """Set the komi credited to white."""
        ...


class SimpleEngine:
    """Reference :class:`GoEngine` backed by :class:`core.board.Board`.

    Parameters
    ----------
    board_size:
        Initial board size, defaults to 19.
    komi:
        Initial komi.
    """

    NAME = "Light-GTP"
    VERSION = "0.1"

    def __init__(self, board_size: int = 19, komi: float = 0.0) -> None:
        self.board = Board(board_size)
        self.komi = komi

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------
    def get_name(self) -> str:
        return self.NAME

    def get_version(self) -> str:
        return self.VERSION

    # ------------------------------------------------------------------
    # Game setup
    # ------------------------------------------------------------------
    def resize_board(self, size: int) -> bool:
        """Accept every size GTP allows and start a fresh board."""
        if not MIN_BOARD_SIZE <= size <= MAX_BOARD_SIZE:
            return False
        self.board = Board(size)
        logger.debug("Board resized to %d", size)
        return True

    def new_game(self) -> None:
        self.board.clear()

    def set_komi(self, komi: float) -> None:
        self.komi = komi

    # ------------------------------------------------------------------
    # Play
    # ------------------------------------------------------------------
    def add_move(self, move: Move, player: Player) -> bool:
        """Play ``move`` on the board; passes and resignations are always legal.

        A pass lifts any pending ko ban.
        """
        if move.is_pass:
            self.board.ko = None
            return True
        if move.is_resign:
            return True
        if not self.board.play(move.x, move.y, player):
            logger.debug("Rejected %s for %s", move, player)
            return False
        return True

    def next_move(self, player: Player) -> Move:
        """Return the first legal point that does not fill an own eye.

        The board is scanned row by row from the lower left corner.  When no
        such point exists the engine passes.
        """
        size = self.board.size
        for y in range(size):
            for x in range(size):
                if self.board.is_eye(x, y, player):
                    continue
                if self.board.play(x, y, player):
                    return Move(x, y)
        self.board.ko = None
        return Move.PASS

    # ------------------------------------------------------------------
    # Scoring
    # ------------------------------------------------------------------
    def can_score(self) -> bool:
        return True

    def get_score(self) -> Optional[Score]:
        """Area score of the current position, komi credited to white."""
        diff = self.board.area_score(self.komi)
        if diff > 0:
            return Score(Player.BLACK, diff)
        if diff < 0:
            return Score(Player.WHITE, -diff)
        return Score.DRAW


__all__ = ["GoEngine", "SimpleEngine"]
