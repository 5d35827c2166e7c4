"""Game logic and state for a tile-based multiplayer role-playing game: packets, sectors, events, user storage and world state."""

__version__ = "0.1.0"