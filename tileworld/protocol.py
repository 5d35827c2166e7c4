"""Game protocol constants and the fixed-size packets exchanged on the wire."""

from __future__ import annotations

import struct
from dataclasses import dataclass, fields
from enum import IntEnum
from typing import ClassVar, Dict, Mapping, Type

GAME_PORT = 3000

MAX_CHAT_LENGTH = 200
BUF_SIZE = 300

SYSTEM_ID = -1

MAX_USER = 10000
NUM_MONSTER = 200000

MAX_ID_LENGTH = 20

MOVE_UP = 1
MOVE_DOWN = 2
MOVE_LEFT = 3
MOVE_RIGHT = 4

MAP_HEIGHT = 2000
MAP_WIDTH = 2000

IOTYPE_IO = 0x10
IOTYPE_TIMER = 0x100
IOTYPE_DB = 0x1000


class PacketType(IntEnum):
    """Type byte carried in the second byte of every packet."""

    S2C_AVATAR_INFO = 1
    S2C_MOVE = 2
    S2C_ENTER = 3
    S2C_LEAVE = 4
    S2C_CHAT = 7
    S2C_STAT_CHANGE = 8
    S2C_LOGIN_FAIL = 9

    C2S_LOGIN = 65
    C2S_MOVE = 66
    C2S_ATTACK = 67
    C2S_CHAT = 68
    C2S_TELEPORT = 69


class LoginFailReason(IntEnum):
    UNKNOWN = 0
    INVALID_ID = 1
    OVER_MAX_LEN = 2


class AvatarType(IntEnum):
    PLAYER = 0
    MONSTER = 1


class IoType(IntEnum):
    """Kinds of work items handled by the server's worker loop."""

    ACCEPT = IOTYPE_IO
    RECV = IOTYPE_IO + 1
    SEND = IOTYPE_IO + 2

    NPC_MOVE = IOTYPE_TIMER
    NPC_RESPAWN = IOTYPE_TIMER + 1
    NPC_CHECK_AGRO = IOTYPE_TIMER + 2
    GAME_EVENT = IOTYPE_TIMER + 3

    DB_LOGIN = IOTYPE_DB
    DB_UPDATE_USER_INFO = IOTYPE_DB + 1
    DB_CREATE_USER_INFO = IOTYPE_DB + 2


def _encode_text(text: str, width: int, field_name: str) -> bytes:
    raw = text.encode("utf-8")
    if len(raw) >= width:
        raise ValueError(
            f"{field_name} must be shorter than {width} bytes, got {len(raw)}"
        )
    return raw


def _decode_text(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="replace")


class Packet:
    """Base of all packets: a size byte, a type byte, then the fields."""

    TYPE: ClassVar[PacketType]
    LAYOUT: ClassVar[struct.Struct]
    TEXT_FIELDS: ClassVar[Mapping[str, int]] = {}
    SIZE: ClassVar[int]
    _registry: ClassVar[Dict[int, Type["Packet"]]] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.SIZE = cls.LAYOUT.size
        Packet._registry[int(cls.TYPE)] = cls

    def _pack(self) -> bytes:
        values = []
        for field in fields(self):
            value = getattr(self, field.name)
            width = self.TEXT_FIELDS.get(field.name)
            if width is not None:
                value = _encode_text(value, width, field.name)
            values.append(value)
        try:
            return self.LAYOUT.pack(self.SIZE, int(self.TYPE), *values)
        except struct.error as exc:
            raise ValueError(f"cannot encode {type(self).__name__}: {exc}") from exc

    @classmethod
    def _unpack(cls, data):
        data = bytes(data)
        if len(data) < cls.SIZE:
            raise ValueError(
                f"{cls.__name__} needs {cls.SIZE} bytes, got {len(data)}"
            )
        size, packet_type, *values = cls.LAYOUT.unpack_from(data)
        if packet_type != cls.TYPE:
            raise ValueError(
                f"{cls.__name__} expects type {int(cls.TYPE)}, got {packet_type}"
            )
        if size != cls.SIZE:
            raise ValueError(
                f"{cls.__name__} expects size {cls.SIZE}, got {size}"
            )
        decoded = [
            _decode_text(value) if field.name in cls.TEXT_FIELDS else value
            for field, value in zip(fields(cls), values)
        ]
        return cls(*decoded)


@dataclass(frozen=True)
class AvatarInfoPacket(Packet):
    TYPE = PacketType.S2C_AVATAR_INFO
    LAYOUT = struct.Struct("<Bbqhhhiiii")

    id: int
    x: int
    y: int
    level: int
    exp: int
    max_exp: int
    hp: int
    max_hp: int

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "AvatarInfoPacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class MovePacket(Packet):
    TYPE = PacketType.S2C_MOVE
    LAYOUT = struct.Struct("<Bbqhhq")

    id: int
    x: int
    y: int
    move_time: int = 0

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "MovePacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class EnterPacket(Packet):
    TYPE = PacketType.S2C_ENTER
    LAYOUT = struct.Struct(f"<Bbq{MAX_ID_LENGTH}sbhhii")
    TEXT_FIELDS = {"name": MAX_ID_LENGTH}

    id: int
    name: str
    o_type: int
    x: int
    y: int
    hp: int
    max_hp: int

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "EnterPacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class LeavePacket(Packet):
    TYPE = PacketType.S2C_LEAVE
    LAYOUT = struct.Struct("<Bbq")

    id: int

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "LeavePacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class ChatPacket(Packet):
    """Chat from an object; an id of SYSTEM_ID marks a system message."""

    TYPE = PacketType.S2C_CHAT
    LAYOUT = struct.Struct(f"<Bbq{MAX_CHAT_LENGTH}s")
    TEXT_FIELDS = {"message": MAX_CHAT_LENGTH}

    id: int
    message: str

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "ChatPacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class StatChangePacket(Packet):
    TYPE = PacketType.S2C_STAT_CHANGE
    LAYOUT = struct.Struct("<Bbqiihii")

    id: int
    hp: int
    max_hp: int
    level: int
    exp: int
    max_exp: int

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "StatChangePacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class LoginFailPacket(Packet):
    TYPE = PacketType.S2C_LOGIN_FAIL
    LAYOUT = struct.Struct("<Bbqb")

    id: int
    reason: int

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "LoginFailPacket":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class LoginRequest(Packet):
    TYPE = PacketType.C2S_LOGIN
    LAYOUT = struct.Struct(f"<Bb{MAX_ID_LENGTH}s")
    TEXT_FIELDS = {"name": MAX_ID_LENGTH}

    name: str

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "LoginRequest":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class MoveRequest(Packet):
    TYPE = PacketType.C2S_MOVE
    LAYOUT = struct.Struct("<Bbbq")

    direction: int
    move_time: int = 0

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "MoveRequest":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class AttackRequest(Packet):
    TYPE = PacketType.C2S_ATTACK
    LAYOUT = struct.Struct("<Bb")

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "AttackRequest":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class ChatRequest(Packet):
    TYPE = PacketType.C2S_CHAT
    LAYOUT = struct.Struct(f"<Bb{MAX_CHAT_LENGTH}s")
    TEXT_FIELDS = {"message": MAX_CHAT_LENGTH}

    message: str

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "ChatRequest":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


@dataclass(frozen=True)
class TeleportRequest(Packet):
    TYPE = PacketType.C2S_TELEPORT
    LAYOUT = struct.Struct("<Bb")

    def pack(self) -> bytes:
        """Encode the packet into its wire bytes."""
        return self._pack()

    @classmethod
    def unpack(cls, data) -> "TeleportRequest":
        """Decode the packet from the start of ``data``."""
        return cls._unpack(data)


def decode_packet(data) -> Packet:
    """Decode one packet, choosing its class from the type byte."""
    data = bytes(data)
    if len(data) < 2:
        raise ValueError("packet header needs at least 2 bytes")
    packet_class = Packet._registry.get(data[1])
    if packet_class is None:
        raise ValueError(f"unknown packet type {data[1]}")
    return packet_class.unpack(data)