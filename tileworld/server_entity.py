"""Objects that live on the server: players and NPCs."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from enum import Enum, IntEnum
from typing import Set, Tuple

from tileworld.database import DbUserInfo
from tileworld.game_event import GameEvent
from tileworld.protocol import MAX_ID_LENGTH, MAX_USER, SYSTEM_ID, IoType
from tileworld.sector import DIRECTIONS


class ServerObjectTag(Enum):
    SESSION = 0
    PEACE_NPC = 1
    AGRO_NPC = 2


class ServerObjectState(IntEnum):
    FREE = 0
    ALLOC = 1
    INGAME = 2


class ServerEntity(ABC):
    """Common state of every object the server tracks.

    The ``server`` passed to the view-list and dispatch methods must provide
    ``sectors`` (a :class:`tileworld.sector.Sectors`), ``get_server_object``,
    ``can_see``, ``is_npc`` and ``add_timer_event``.
    """

    def __init__(self, tag: ServerObjectTag, entity_id: int = SYSTEM_ID):
        self.tag = tag
        self.id = entity_id
        self.state_lock = threading.Lock()
        self.state = ServerObjectState.FREE
        self.name = ""
        self.x = 0
        self.y = 0
        self.level = 1
        self.exp = 0
        self.max_exp = 0
        self.max_hp = 0
        self.hp = 100
        self.last_move_time = 0
        self._hp_lock = threading.Lock()
        self._active_lock = threading.Lock()
        self._active = False

    @property
    def position(self) -> Tuple[int, int]:
        return self.x, self.y

    def is_player(self) -> bool:
        return self.id < MAX_USER

    def is_npc(self) -> bool:
        return self.id >= MAX_USER

    def is_active(self) -> bool:
        return self._active

    def user_info(self) -> DbUserInfo:
        """Snapshot of the fields that are stored in the database."""
        return DbUserInfo(x=self.x, y=self.y, exp=self.exp, level=self.level)

    def init_name(self, name: str) -> None:
        if len(name.encode("utf-8")) >= MAX_ID_LENGTH:
            raise ValueError(f"name must be shorter than {MAX_ID_LENGTH} bytes: {name!r}")
        self.name = name

    def update_hp(self, diff: int) -> None:
        """Add ``diff`` to hp, never going above max_hp."""
        with self._hp_lock:
            self.hp += diff
            if self.max_hp < self.hp:
                self.hp = self.max_hp

    def try_respawn(self, max_hp: int) -> bool:
        """Restore hp to ``max_hp``; True when the reset took effect."""
        with self._hp_lock:
            self.hp = max_hp
        return True

    def update_position(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def update_active_state(self, active: bool) -> None:
        with self._active_lock:
            self._active = active

    def update_active_state_cas(self, old_state: bool, new_state: bool) -> bool:
        """Set the active flag to ``new_state`` only if it is ``old_state``."""
        if old_state == new_state:
            return False
        with self._active_lock:
            if self._active != old_state:
                return False
            self._active = new_state
            return True

    def update_move_time(self, move_time: int) -> None:
        self.last_move_time = move_time

    def change_state(self, state: ServerObjectState) -> None:
        with self.state_lock:
            self.state = state

    def _collect_view(self, server, sector_x: int, sector_y: int, players_only: bool) -> Set[int]:
        sectors = server.sectors
        seen: Set[int] = set()
        for dx, dy in DIRECTIONS:
            nx, ny = sector_x + dx, sector_y + dy
            if not sectors.is_valid_sector(nx, ny):
                continue
            with sectors.get_sector_lock(nx, ny):
                for other_id in sectors.get_sector(nx, ny):
                    if other_id == self.id:
                        continue
                    other = server.get_server_object(other_id)
                    if other is None or other.state != ServerObjectState.INGAME:
                        continue
                    if players_only and server.is_npc(other_id):
                        continue
                    if server.can_see(self.id, other_id):
                        seen.add(other_id)
        return seen

    def view_list(self, server, sector_x: int, sector_y: int) -> Set[int]:
        """Ids of in-game objects visible from here in the nine nearby sectors."""
        return self._collect_view(server, sector_x, sector_y, players_only=False)

    def player_view_list(self, server, sector_x: int, sector_y: int) -> Set[int]:
        """Like :meth:`view_list`, but players only."""
        return self._collect_view(server, sector_x, sector_y, players_only=True)

    @abstractmethod
    def process_game_event(self, event: GameEvent) -> None:
        """Handle an event delivered to this entity."""

    def dispatch_game_event(self, server, event: GameEvent, delay) -> None:
        """Schedule ``event`` for delivery to this entity after ``delay``."""
        server.add_timer_event(self.id, delay, IoType.GAME_EVENT, event)