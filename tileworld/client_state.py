"""Client-side view of the game world, driven by packets from the server."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Callable, Deque, Dict, List, Optional, Tuple

from tileworld.protocol import (
    MAX_USER,
    SYSTEM_ID,
    AvatarInfoPacket,
    ChatPacket,
    EnterPacket,
    LeavePacket,
    LoginFailPacket,
    LoginFailReason,
    MovePacket,
    Packet,
    PacketType,
    StatChangePacket,
    decode_packet,
)

log = logging.getLogger(__name__)

SCREEN_WIDTH = 20
SCREEN_HEIGHT = 15

TILE_WIDTH = 65
WINDOW_WIDTH = SCREEN_WIDTH * TILE_WIDTH
WINDOW_HEIGHT = SCREEN_HEIGHT * TILE_WIDTH

MESSAGE_TIMEOUT = 2.0
MAX_CNT_STORED_SYSTEM_MESS = 10
CHAT_DURATION = 3.0

# Sprite rectangles (x, y, width, height) in the pieces sheet.
AVATAR_SPRITE = (128, 0, 64, 64)
PLAYER_SPRITE = (0, 0, 64, 64)
MONSTER_SPRITE = (256, 0, 64, 64)
OTHER_NPC_SPRITE = (320, 0, 64, 64)

# Move direction sent for each arrow key.
KEY_DIRECTIONS = {"up": 0, "down": 1, "left": 2, "right": 3}

NAME_COLOR_PLAYER = "white"
NAME_COLOR_NPC = "yellow"

_LOGIN_FAIL_TEXT = {
    LoginFailReason.UNKNOWN: "Unknown Error occurred",
    LoginFailReason.OVER_MAX_LEN: "ID Exceeds the maximum allowed length",
    LoginFailReason.INVALID_ID: "Invalid ID: check your id",
}


def login_failure_message(reason: int) -> str:
    """Describe a login failure reason the way the client reports it."""
    detail = _LOGIN_FAIL_TEXT.get(reason)
    if detail is None:
        return "login failure"
    return f"login failure\n{detail}"


@dataclass
class SystemMessage:
    message: str
    time: float


@dataclass
class GameObject:
    """An avatar, another player or an NPC as the client knows it."""

    id: int = 0
    x: int = 0
    y: int = 0
    hp: int = 0
    max_hp: int = 0
    exp: int = 0
    max_exp: int = 1
    level: int = 0
    name: str = "NONAME"
    sprite: Tuple[int, int, int, int] = PLAYER_SPRITE
    showing: bool = False
    chat: str = ""
    chat_end_time: Optional[float] = None

    def show(self) -> None:
        self.showing = True

    def hide(self) -> None:
        self.showing = False

    def move(self, x: int, y: int) -> None:
        self.x = x
        self.y = y

    def set_name(self, name: str) -> None:
        self.name = name

    @property
    def name_color(self) -> str:
        return NAME_COLOR_PLAYER if self.id < MAX_USER else NAME_COLOR_NPC

    def set_chat(self, message: str, now: float) -> None:
        """Show ``message`` over the object for a few seconds from ``now``."""
        self.chat = message
        self.chat_end_time = now + CHAT_DURATION

    def is_chatting(self, now: float) -> bool:
        return self.chat_end_time is not None and not (self.chat_end_time < now)


class PacketAssembler:
    """Splits a byte stream into whole packets using each packet's size byte."""

    def __init__(self):
        self._buffer = bytearray()

    @property
    def pending(self) -> int:
        """Number of bytes held back waiting for the rest of a packet."""
        return len(self._buffer)

    def feed(self, data) -> List[bytes]:
        """Add received bytes and return every packet now complete."""
        self._buffer.extend(data)
        packets = []
        while self._buffer:
            size = self._buffer[0]
            if size == 0:
                self._buffer.clear()
                raise ValueError("packet with size 0 in stream")
            if len(self._buffer) < size:
                break
            packets.append(bytes(self._buffer[:size]))
            del self._buffer[:size]
        return packets


class ClientWorld:
    """State of the local avatar, the objects around it and system messages."""

    def __init__(self):
        self.my_id = 0
        self.left_x = 0
        self.top_y = 0
        self.avatar = GameObject(sprite=AVATAR_SPRITE)
        self.avatar.move(4, 4)
        self.players: Dict[int, GameObject] = {}
        self.system_messages: Deque[SystemMessage] = deque()
        self.closed = False
        self.login_failure: Optional[int] = None
        self._assembler = PacketAssembler()
        self._handlers: Dict[type, Callable[[Packet, float], None]] = {
            AvatarInfoPacket: self._on_avatar_info,
            EnterPacket: self._on_enter,
            MovePacket: self._on_move,
            LeavePacket: self._on_leave,
            ChatPacket: self._on_chat,
            LoginFailPacket: self._on_login_fail,
            StatChangePacket: self._on_stat_change,
        }
        self._handled_types = {int(cls.TYPE) for cls in self._handlers}

    def _other(self, object_id: int) -> GameObject:
        return self.players.setdefault(object_id, GameObject(id=object_id))

    def _center_view(self, x: int, y: int) -> None:
        self.left_x = x - SCREEN_WIDTH // 2
        self.top_y = y - SCREEN_HEIGHT // 2

    def _on_avatar_info(self, packet: AvatarInfoPacket, now: float) -> None:
        self.my_id = packet.id
        avatar = self.avatar
        avatar.id = packet.id
        avatar.hp = packet.hp
        avatar.max_hp = packet.max_hp
        avatar.level = packet.level
        avatar.exp = packet.exp
        avatar.max_exp = packet.max_exp
        avatar.move(packet.x, packet.y)
        self._center_view(packet.x, packet.y)
        avatar.show()

    def _on_enter(self, packet: EnterPacket, now: float) -> None:
        if packet.id == self.my_id:
            self.avatar.move(packet.x, packet.y)
            self._center_view(packet.x, packet.y)
            self.avatar.show()
            return
        if packet.id < MAX_USER:
            sprite = PLAYER_SPRITE
        elif packet.o_type == 1:
            sprite = MONSTER_SPRITE
        else:
            sprite = OTHER_NPC_SPRITE
        obj = GameObject(id=packet.id, hp=packet.hp, max_hp=packet.max_hp, sprite=sprite)
        obj.move(packet.x, packet.y)
        obj.set_name(packet.name)
        obj.show()
        self.players[packet.id] = obj

    def _on_move(self, packet: MovePacket, now: float) -> None:
        if packet.id == self.my_id:
            self.avatar.move(packet.x, packet.y)
            self._center_view(packet.x, packet.y)
        else:
            self._other(packet.id).move(packet.x, packet.y)

    def _on_leave(self, packet: LeavePacket, now: float) -> None:
        if packet.id == self.my_id:
            self.avatar.hide()
        else:
            self.players.pop(packet.id, None)

    def _on_chat(self, packet: ChatPacket, now: float) -> None:
        if packet.id == SYSTEM_ID:
            log.info("SYSTEM: %s", packet.message)
            self.system_messages.appendleft(SystemMessage(packet.message, now))
        elif packet.id >= MAX_USER:
            self._other(packet.id).set_chat(packet.message, now)

    def _on_login_fail(self, packet: LoginFailPacket, now: float) -> None:
        log.error("%s", login_failure_message(packet.reason))
        self.login_failure = packet.reason
        self.closed = True

    def _on_stat_change(self, packet: StatChangePacket, now: float) -> None:
        target = self.avatar if packet.id == self.my_id else self._other(packet.id)
        target.hp = packet.hp
        target.max_hp = packet.max_hp
        target.exp = packet.exp
        target.max_exp = packet.max_exp
        target.level = packet.level

    def process_packet(self, data, now: float) -> Optional[Packet]:
        """Apply one whole packet; unknown packet types are logged and ignored."""
        data = bytes(data)
        if len(data) < 2:
            raise ValueError("packet header needs at least 2 bytes")
        if data[1] not in self._handled_types:
            log.warning("Unknown PACKET type [%d]", data[1])
            return None
        packet = decode_packet(data)
        self._handlers[type(packet)](packet, now)
        return packet

    def process_data(self, data, now: float) -> List[Packet]:
        """Apply every packet completed by a chunk of received bytes."""
        processed = []
        for raw in self._assembler.feed(data):
            packet = self.process_packet(raw, now)
            if packet is not None:
                processed.append(packet)
        return processed

    def visible_system_messages(self, now: float) -> List[str]:
        """Drop expired and surplus system messages; return the rest, newest first."""
        self.system_messages = deque(
            mess for mess in self.system_messages if not (now - mess.time > MESSAGE_TIMEOUT)
        )
        while len(self.system_messages) > MAX_CNT_STORED_SYSTEM_MESS:
            self.system_messages.pop()
        return [mess.message for mess in self.system_messages]