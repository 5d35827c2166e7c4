"""Spatial partition of the map into sectors one view-diameter wide."""

from __future__ import annotations

import threading
from enum import IntEnum
from typing import FrozenSet, Tuple

from tileworld.protocol import MAP_HEIGHT, MAP_WIDTH

VIEW_RANGE = 10
VIEW_DIAM = VIEW_RANGE * 2
SECTOR_WIDTH = MAP_WIDTH // VIEW_DIAM + 1
SECTOR_HEIGHT = MAP_HEIGHT // VIEW_DIAM + 1


class Dir(IntEnum):
    CENTER = 0
    UP = 1
    DOWN = 2
    LEFT = 3
    RIGHT = 4
    LEFT_UP = 5
    RIGHT_UP = 6
    LEFT_DOWN = 7
    RIGHT_DOWN = 8


DIRECTIONS: Tuple[Tuple[int, int], ...] = (
    (0, 0),
    (0, -1),
    (0, 1),
    (-1, 0),
    (1, 0),
    (-1, -1),
    (1, -1),
    (-1, 1),
    (1, 1),
)


def _trunc_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


class Sectors:
    """Grid of entity-id sets, each guarded by its own lock."""

    def __init__(self):
        self._locks = [
            [threading.Lock() for _ in range(SECTOR_HEIGHT)] for _ in range(SECTOR_WIDTH)
        ]
        self._sectors = [
            [set() for _ in range(SECTOR_HEIGHT)] for _ in range(SECTOR_WIDTH)
        ]

    @staticmethod
    def _check(sector_x: int, sector_y: int) -> None:
        if not (0 <= sector_x < SECTOR_WIDTH and 0 <= sector_y < SECTOR_HEIGHT):
            raise IndexError(f"sector ({sector_x}, {sector_y}) is outside the map")

    def get_sector_idx(self, x: int, y: int) -> Tuple[int, int]:
        return _trunc_div(x, VIEW_DIAM), _trunc_div(y, VIEW_DIAM)

    def is_valid_sector(self, sector_x: int, sector_y: int) -> bool:
        return 0 < sector_x < SECTOR_WIDTH and 0 < sector_y < SECTOR_HEIGHT

    def get_sector_lock(self, sector_x: int, sector_y: int) -> threading.Lock:
        self._check(sector_x, sector_y)
        return self._locks[sector_x][sector_y]

    def get_sector(self, sector_x: int, sector_y: int) -> FrozenSet[int]:
        """Snapshot of the ids currently in a sector."""
        self._check(sector_x, sector_y)
        return frozenset(self._sectors[sector_x][sector_y])

    def update_sector(self, entity_id, prev_x, prev_y, curr_x, curr_y) -> Tuple[int, int]:
        """Move an entity between sectors if its position crossed a boundary."""
        prev = self.get_sector_idx(prev_x, prev_y)
        curr = self.get_sector_idx(curr_x, curr_y)
        if prev != curr:
            self._check(*prev)
            self._check(*curr)
            first, second = sorted((prev, curr))
            with self._locks[first[0]][first[1]], self._locks[second[0]][second[1]]:
                self._sectors[prev[0]][prev[1]].discard(entity_id)
                self._sectors[curr[0]][curr[1]].add(entity_id)
        return curr

    def insert(self, entity_id, x, y) -> Tuple[int, int]:
        sector_x, sector_y = self.get_sector_idx(x, y)
        self._check(sector_x, sector_y)
        with self._locks[sector_x][sector_y]:
            self._sectors[sector_x][sector_y].add(entity_id)
        return sector_x, sector_y

    def erase(self, entity_id, x, y) -> None:
        sector_x, sector_y = self.get_sector_idx(x, y)
        self._check(sector_x, sector_y)
        with self._locks[sector_x][sector_y]:
            self._sectors[sector_x][sector_y].discard(entity_id)