"""Go board with capture, suicide and simple ko rules.

Stones are stored in a ``numpy`` array indexed ``[y, x]`` holding ``1`` for
black, ``-1`` for white and ``0`` for empty points.
"""
from __future__ import annotations

from typing import Iterator, Optional, Set, Tuple

import numpy as np

from core.player import Player

Point = Tuple[int, int]

EMPTY = 0
BLACK = 1
WHITE = -1


def stone_value(player: Player) -> int:
    """Return the array value used for ``player``'s stones."""
    return BLACK if player is Player.BLACK else WHITE


def neighbors(x: int, y: int, size: int) -> Iterator[Point]:
    """Yield the coordinates adjacent to ``(x, y)`` on a ``size`` x ``size`` board."""
    if x > 0:
        yield x - 1, y
    if x < size - 1:
        yield x + 1, y
    if y > 0:
        yield x, y - 1
    if y < size - 1:
        yield x, y + 1


class Board:
    """Mutable Go board of a fixed size."""

    def __init__(self, size: int = 19) -> None:
        self.size = size
        self.grid = np.zeros((size, size), dtype=np.int8)
        # Point that the given player may not retake on the next move.
        self.ko: Optional[Tuple[Point, Player]] = None
        self.captures = {Player.BLACK: 0, Player.WHITE: 0}

    def clear(self) -> None:
        self.grid.fill(EMPTY)
        self.ko = None
        self.captures = {Player.BLACK: 0, Player.WHITE: 0}

    def __getitem__(self, point: Point) -> int:
        x, y = point
        return int(self.grid[y, x])

    def on_board(self, x: int, y: int) -> bool:
        return 0 <= x < self.size and 0 <= y < self.size

    def group_and_liberties(self, x: int, y: int) -> Tuple[Set[Point], Set[Point]]:
        """Return the connected group at ``(x, y)`` and its liberties."""
        color = self.grid[y, x]
        group = {(x, y)}
        liberties: Set[Point] = set()
        stack = [(x, y)]
        while stack:
            cx, cy = stack.pop()
            for nx, ny in neighbors(cx, cy, self.size):
                val = self.grid[ny, nx]
                if val == EMPTY:
                    liberties.add((nx, ny))
                elif val == color and (nx, ny) not in group:
                    group.add((nx, ny))
                    stack.append((nx, ny))
        return group, liberties

    def is_legal(self, x: int, y: int, player: Player) -> bool:
        """Return ``True`` if ``player`` may place a stone at ``(x, y)``."""
        if not self.on_board(x, y) or self.grid[y, x] != EMPTY:
            return False
        if self.ko == ((x, y), player):
            return False
        own = stone_value(player)
        self.grid[y, x] = own
        try:
            for nx, ny in neighbors(x, y, self.size):
                if self.grid[ny, nx] == -own:
                    _, libs = self.group_and_liberties(nx, ny)
                    if not libs:
                        return True
            _, libs = self.group_and_liberties(x, y)
            return bool(libs)
        finally:
            self.grid[y, x] = EMPTY

    def play(self, x: int, y: int, player: Player) -> bool:
        """Place a stone for ``player`` and resolve captures.

        Returns ``False`` without touching the board when the move is
        illegal (off board, occupied, suicide or immediate ko recapture).
        """
        if not self.is_legal(x, y, player):
            return False
        own = stone_value(player)
        self.grid[y, x] = own

        captured: Set[Point] = set()
        for nx, ny in neighbors(x, y, self.size):
            if self.grid[ny, nx] == -own:
                group, libs = self.group_and_liberties(nx, ny)
                if not libs:
                    captured |= group
        for cx, cy in captured:
            self.grid[cy, cx] = EMPTY
        self.captures[player] += len(captured)

        self.ko = None
        if len(captured) == 1:
            group, libs = self.group_and_liberties(x, y)
            if len(group) == 1 and len(libs) == 1:
                self.ko = (next(iter(captured)), player.opponent())
        return True

    def is_eye(self, x: int, y: int, player: Player) -> bool:
        """Return ``True`` if the empty point is surrounded by ``player`` only."""
        if self.grid[y, x] != EMPTY:
            return False
        own = stone_value(player)
        return all(self.grid[ny, nx] == own for nx, ny in neighbors(x, y, self.size))

    def area_score(self, komi: float = 0.0) -> float:
        """Return black's area score minus white's, komi included.

        Empty regions count for a player only when every bordering stone is
        of that player's colour.
        """
        black = int(np.count_nonzero(self.grid == BLACK))
        white = int(np.count_nonzero(self.grid == WHITE))
        seen: Set[Point] = set()
        for y in range(self.size):
            for x in range(self.size):
                if self.grid[y, x] != EMPTY or (x, y) in seen:
                    continue
                region, borders = self._empty_region(x, y)
                seen |= region
                if borders == {BLACK}:
                    black += len(region)
                elif borders == {WHITE}:
                    white += len(region)
        return black - white - komi

    def _empty_region(self, x: int, y: int) -> Tuple[Set[Point], Set[int]]:
        region = {(x, y)}
        borders: Set[int] = set()
        stack = [(x, y)]
        while stack:
            cx, cy = stack.pop()
            for nx, ny in neighbors(cx, cy, self.size):
                val = int(self.grid[ny, nx])
                if val == EMPTY:
                    if (nx, ny) not in region:
                        region.add((nx, ny))
                        stack.append((nx, ny))
                else:
                    borders.add(val)
        return region, borders


__all__ = ["Board", "neighbors", "stone_value", "EMPTY", "BLACK", "WHITE"]
