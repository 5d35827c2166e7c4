"""Game events exchanged between server entities."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import ClassVar, Optional, Type, TypeVar


class GameEventType(Enum):
    KILL_ENEMY = auto()
    HEAL = auto()
    GET_DAMAGE = auto()


@dataclass(frozen=True)
class GameEvent:
    """An event sent by the entity with id ``sender``."""

    TYPE: ClassVar[Optional[GameEventType]] = None

    sender: int

    @property
    def event_type(self) -> Optional[GameEventType]:
        return type(self).TYPE


@dataclass(frozen=True)
class KillEnemyEvent(GameEvent):
    TYPE: ClassVar[Optional[GameEventType]] = GameEventType.KILL_ENEMY

    exp: int


@dataclass(frozen=True)
class HealEvent(GameEvent):
    TYPE: ClassVar[Optional[GameEventType]] = GameEventType.HEAL

    heal_point: int


@dataclass(frozen=True)
class DamageEvent(GameEvent):
    TYPE: ClassVar[Optional[GameEventType]] = GameEventType.GET_DAMAGE

    damage: int


E = TypeVar("E", bound=GameEvent)


def cast_event(event: Optional[GameEvent], event_class: Type[E]) -> Optional[E]:
    """Return ``event`` if it is of ``event_class``'s event type, else None."""
    if event_class.TYPE is None:
        raise TypeError(f"{event_class.__name__} is not a concrete event class")
    if event is None:
        return None
    return event if event.event_type == event_class.TYPE else None