"""Server core: the object table, visibility rules, timer and database queues."""

from __future__ import annotations

import heapq
import itertools
import logging
import queue
import random
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from tileworld.database import DatabaseError, DbUserInfo, UserDatabase
from tileworld.protocol import MAP_HEIGHT, MAP_WIDTH, MAX_USER, IoType
from tileworld.sector import VIEW_RANGE, Sectors
from tileworld.server_entity import ServerEntity, ServerObjectState, ServerObjectTag

log = logging.getLogger(__name__)

NPC_MOVE_TIME = 0.5
NPC_RESPAWN_TIME = 30.0

DUMMY_PREFIX = "Dummy"

Delay = Union[float, int, timedelta]


@dataclass(frozen=True)
class TimerEvent:
    """Work scheduled for an object at a later time."""

    obj_id: int
    op_type: IoType
    extra_info: Any = None


@dataclass(frozen=True)
class DatabaseEvent:
    """Work for the database thread.

    The name and user info are copied at queue time, since the object may be
    gone from the server by the time the event is handled.
    """

    obj_id: int
    io_type: IoType
    name: str = ""
    user_info: Optional[DbUserInfo] = None


def _seconds(delay: Delay) -> float:
    if isinstance(delay, timedelta):
        return delay.total_seconds()
    return float(delay)


@dataclass(order=True)
class _Scheduled:
    due: float
    seq: int
    event: TimerEvent = field(compare=False)


class ServerFrame:
    """Holds every server object and the queues that drive them."""

    def __init__(
        self,
        sectors: Optional[Sectors] = None,
        database: Optional[UserDatabase] = None,
        clock: Callable[[], float] = time.monotonic,
        rng: Optional[random.Random] = None,
    ):
        self.sectors = sectors if sectors is not None else Sectors()
        self.database = database
        self._clock = clock
        self._rng = rng if rng is not None else random.Random()
        self._sessions: Dict[int, ServerEntity] = {}
        self._sessions_lock = threading.Lock()
        self._timer_lock = threading.Lock()
        self._timers: List[_Scheduled] = []
        self._timer_seq = itertools.count()
        self._db_queue: "queue.Queue[DatabaseEvent]" = queue.Queue()

    def is_pc(self, entity_id: int) -> bool:
        return entity_id < MAX_USER

    def is_npc(self, entity_id: int) -> bool:
        return entity_id >= MAX_USER

    def is_dummy_client(self, name: str) -> bool:
        """Load-test clients log in with names starting with ``Dummy``."""
        return name.startswith(DUMMY_PREFIX)

    def is_in_map_area(self, x: int, y: int) -> bool:
        return 0 < x < MAP_WIDTH and 0 < y < MAP_HEIGHT

    def add_object(self, entity: ServerEntity) -> None:
        """Register ``entity`` under its id, replacing any previous one."""
        with self._sessions_lock:
            self._sessions[entity.id] = entity

    def get_server_object(self, entity_id: int) -> Optional[ServerEntity]:
        with self._sessions_lock:
            return self._sessions.get(entity_id)

    def can_see(self, from_id: int, to_id: int) -> bool:
        """True when both objects exist and are within view range of each other."""
        source = self.get_server_object(from_id)
        target = self.get_server_object(to_id)
        if source is None or target is None:
            return False
        from_x, from_y = source.position
        to_x, to_y = target.position
        if abs(from_x - to_x) > VIEW_RANGE:
            return False
        return abs(from_y - to_y) <= VIEW_RANGE

    def can_move(self, x: int, y: int) -> bool:
        """True when (x, y) is on the map and no object stands there."""
        if x < 0 or x > MAP_WIDTH or y < 0 or y > MAP_HEIGHT:
            return False
        sector_x, sector_y = self.sectors.get_sector_idx(x, y)
        with self.sectors.get_sector_lock(sector_x, sector_y):
            ids = self.sectors.get_sector(sector_x, sector_y)
            for entity_id in ids:
                entity = self.get_server_object(entity_id)
                if entity is None:
                    continue
                if entity.position == (x, y):
                    return False
        return True

    def disconnect(self, client_id: int) -> None:
        """Remove a player, queueing a save of its progress first."""
        session = self.get_server_object(client_id)
        if session is None or not session.is_player():
            return
        if not self.is_dummy_client(session.name) or session.state != ServerObjectState.INGAME:
            self.add_db_event(
                client_id, IoType.DB_UPDATE_USER_INFO, session.name, session.user_info()
            )
        session.change_state(ServerObjectState.FREE)
        with self._sessions_lock:
            if self._sessions.get(client_id) is session:
                del self._sessions[client_id]

    def add_timer_event(
        self, entity_id: int, delay: Delay, io_type: IoType, extra_info: Any = None
    ) -> TimerEvent:
        """Schedule work for ``entity_id`` ``delay`` seconds from now."""
        event = TimerEvent(entity_id, io_type, extra_info)
        due = self._clock() + _seconds(delay)
        with self._timer_lock:
            heapq.heappush(self._timers, _Scheduled(due, next(self._timer_seq), event))
        return event

    def pop_due_timer_events(self, now: Optional[float] = None) -> List[TimerEvent]:
        """Remove and return every event due at or before ``now``, earliest first."""
        if now is None:
            now = self._clock()
        due: List[TimerEvent] = []
        with self._timer_lock:
            while self._timers and self._timers[0].due <= now:
                due.append(heapq.heappop(self._timers).event)
        return due

    def add_db_event(
        self,
        entity_id: int,
        io_type: IoType,
        name: str = "",
        user_info: Optional[DbUserInfo] = None,
    ) -> DatabaseEvent:
        event = DatabaseEvent(entity_id, io_type, name, user_info)
        self._db_queue.put(event)
        return event

    def pop_db_event(self) -> Optional[DatabaseEvent]:
        """Next queued database event, or None when the queue is empty."""
        try:
            return self._db_queue.get_nowait()
        except queue.Empty:
            return None

    def _require_database(self) -> UserDatabase:
        if self.database is None:
            raise RuntimeError("no database is attached to this server")
        return self.database

    def process_db_event(self, event: DatabaseEvent) -> Optional[DbUserInfo]:
        """Carry out one database event.

        A login returns the user's stored record, creating one at a random
        position for a new user; when that fails the user is disconnected and
        None is returned. Other events return None.
        """
        if event.io_type == IoType.DB_LOGIN:
            return self._login(event.obj_id)
        if event.io_type == IoType.DB_UPDATE_USER_INFO:
            if event.user_info is None:
                raise ValueError("update event carries no user info")
            try:
                self._require_database().update_user_info(event.name, event.user_info)
            except DatabaseError as exc:
                log.error("%s", exc)
            return None
        return None

    def _login(self, entity_id: int) -> Optional[DbUserInfo]:
        database = self._require_database()
        entity = self.get_server_object(entity_id)
        if entity is None:
            return None
        try:
            info = database.login(entity.name)
            if info is not None:
                return info
            return database.create_user(
                entity.name,
                self._rng.randrange(MAP_WIDTH),
                self._rng.randrange(MAP_HEIGHT),
            )
        except DatabaseError as exc:
            log.error("%s", exc)
            self.disconnect(entity_id)
            return None

    def wakeup_npc(self, npc_id: int, waker: int) -> bool:
        """Let an NPC notice ``waker``; True when the NPC was newly activated."""
        npc = self.get_server_object(npc_id)
        if npc is None:
            return False
        if npc.tag == ServerObjectTag.AGRO_NPC:
            self.add_timer_event(npc_id, 0, IoType.NPC_CHECK_AGRO, waker)
        if npc.is_active() or npc.hp <= 0:
            return False
        if not npc.update_active_state_cas(False, True):
            return False
        self.add_timer_event(npc_id, NPC_MOVE_TIME, IoType.NPC_MOVE)
        return True