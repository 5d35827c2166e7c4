# tileworld

Game logic and state for a tile-based multiplayer role-playing game on a
2000 × 2000 map. It covers the binary packet format, a sector grid for
finding nearby objects, game events, SQLite user storage, and world state
for the client side and the server side. It uses only the standard library.

## Modules

### `tileworld.protocol`

This module holds the constants of the game, such as `GAME_PORT`,
`MAX_USER`, `MAP_WIDTH` and `MAP_HEIGHT`. It also holds the enums
`PacketType`, `LoginFailReason`, `AvatarType` and `IoType`.

Each packet is a frozen dataclass with `pack()` and the classmethod
`unpack(data)`. The wire format is little-endian and packed. Byte 0 is the
packet size and byte 1 is the packet type.

- Server to client: `AvatarInfoPacket`, `MovePacket`, `EnterPacket`,
  `LeavePacket`, `ChatPacket`, `StatChangePacket`, `LoginFailPacket`.
- Client to server: `LoginRequest`, `MoveRequest`, `AttackRequest`,
  `ChatRequest`, `TeleportRequest`.

`decode_packet(data)` reads the type byte and decodes with the matching
class. Text fields are NUL-padded UTF-8 and must fit their fixed width.
Malformed or mismatched input raises `ValueError`.

### `tileworld.sector`

`Sectors` splits the map into sectors 20 cells wide. Each sector has its own
lock.

- `get_sector_idx(x, y)` gives the sector of a map cell.
- `insert`, `erase` and `update_sector` keep entity ids in the right sector.
- `get_sector` returns a frozen snapshot of the ids in one sector.
- `is_valid_sector` checks a sector index. `DIRECTIONS` lists a sector and
  its eight neighbours.

### `tileworld.game_event`

This module has the events `KillEnemyEvent`, `HealEvent` and `DamageEvent`.
All of them derive from `GameEvent`, and `GameEventType` names their kinds.
`cast_event(event, event_class)` returns the event when its type matches and
`None` otherwise.

### `tileworld.database`

`UserDatabase(path)` keeps user records in an SQLite file. A record is a
`DbUserInfo` with `x`, `y`, `exp` and `level`. It is a context manager and
safe to share between threads.

- `login(name)` returns the stored record, or `None` if there is none.
- `create_user(name, x, y)` stores and returns a new level-1 record.
- `update_user_info(name, info)` stores an existing user's progress.

Failures raise `DatabaseError`. `make_exec(procedure, *args)` renders the
stored-procedure call text that the database logs at debug level.

### `tileworld.client_state`

This module models the world as the client sees it.

- `PacketAssembler.feed(data)` splits a byte stream into whole packets.
- `ClientWorld.process_data(data, now)` and `process_packet(data, now)` apply
  server packets. They track the local `avatar`, the `players` map of other
  objects, and the view origin (`left_x`, `top_y`).
- When a login fails, `ClientWorld` sets `login_failure` and `closed`.
- `ClientWorld.visible_system_messages(now)` drops system messages older than
  2 seconds and keeps at most 10, newest first.
- `GameObject` holds one object's position, stats, name, visibility and
  timed chat text.
- `login_failure_message(reason)` describes a failure reason.

### `tileworld.server_entity`

`ServerEntity` is an abstract base for server objects. It holds:

- a tag, a state and a name;
- the position;
- level, experience and HP (`update_hp` caps HP at `max_hp`);
- an active flag with compare-and-set.

`view_list` and `player_view_list` collect the visible in-game objects in
the nine sectors around a given sector. Subclasses must implement
`process_game_event`. `dispatch_game_event` schedules an event through the
server's timer queue.

### `tileworld.server_frame`

`ServerFrame` keeps the registry of objects (`add_object`,
`get_server_object`).

- **Rules:** `can_see` allows a range of 10 cells on each axis. `can_move`
  requires the cell to be on the map and unoccupied. `is_pc`, `is_npc`,
  `is_dummy_client` and `is_in_map_area` are further checks.
- **Timer queue:** `add_timer_event` and `pop_due_timer_events(now)` manage
  a queue ordered by due time.
- **Database queue:** `add_db_event`, `pop_db_event` and
  `process_db_event`. A login either loads the stored user or creates one at
  a random position.
- **Other operations:** `disconnect` queues a save of the player's progress
  and then removes the player. `wakeup_npc` activates an idle NPC and
  schedules its movement.

## What the package does not do

The package has no network server or client, no socket handling and no
worker or timer threads. Callers drain the timer and database queues
themselves.

It has no rendering or input handling and no command-line program. It also
has no concrete player or NPC classes: movement, combat and NPC behaviour
are left to subclasses of `ServerEntity`.

## Install

```
pip install .
pip install .[test]   # with pytest
```

## Examples

```python
from tileworld.protocol import MoveRequest, decode_packet

raw = MoveRequest(direction=0).pack()
packet = decode_packet(raw)        # MoveRequest(direction=0, move_time=0)
```

```python
from tileworld.sector import Sectors

sectors = Sectors()
sectors.insert(42, 105, 230)
print(sectors.get_sector(*sectors.get_sector_idx(105, 230)))   # frozenset({42})
```

```python
from tileworld.database import DbUserInfo, UserDatabase

with UserDatabase(":memory:") as db:
    db.create_user("alice", 10, 20)
    db.update_user_info("alice", DbUserInfo(x=11, y=20, exp=5, level=1))
    print(db.login("alice"))
```