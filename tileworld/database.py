"""Persistent storage of player positions and progress."""

from __future__ import annotations

import logging
import sqlite3
import threading
from dataclasses import dataclass
from typing import Optional

log = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    user_id TEXT PRIMARY KEY,
    x INTEGER NOT NULL,
    y INTEGER NOT NULL,
    exp INTEGER NOT NULL,
    level INTEGER NOT NULL
)
"""


class DatabaseError(Exception):
    """A database operation failed."""


@dataclass
class DbUserInfo:
    x: int
    y: int
    exp: int
    level: int


def make_exec(procedure: str, *args) -> str:
    """Render a stored-procedure call, quoting string arguments."""
    rendered = [f"'{arg}'" if isinstance(arg, str) else str(arg) for arg in args]
    text = f"EXEC {procedure}"
    if rendered:
        text += " " + ", ".join(rendered)
    return text


class UserDatabase:
    """User records kept in an SQLite file; safe to share between threads."""

    def __init__(self, path):
        self._lock = threading.Lock()
        try:
            self._conn = sqlite3.connect(str(path), timeout=5, check_same_thread=False)
            with self._conn:
                self._conn.execute(_SCHEMA)
        except sqlite3.Error as exc:
            raise DatabaseError(f"cannot open database {path}: {exc}") from exc

    def login(self, name: str) -> Optional[DbUserInfo]:
        """Return the stored record for ``name``, or None if there is none."""
        log.debug(make_exec("get_rpg_user_info", name))
        try:
            with self._lock:
                row = self._conn.execute(
                    "SELECT x, y, exp, level FROM users WHERE user_id = ?", (name,)
                ).fetchone()
        except sqlite3.Error as exc:
            raise DatabaseError(f"login lookup failed for {name!r}: {exc}") from exc
        if row is None:
            log.info("not exist user: %s", name)
            return None
        info = DbUserInfo(*row)
        log.info("login confirm: id: [%s], x: %d y: %d exp: %d level: %d",
                 name, info.x, info.y, info.exp, info.level)
        return info

    def create_user(self, name: str, x: int, y: int) -> DbUserInfo:
        """Create a new level-1 user at (x, y) and return its record."""
        log.debug(make_exec("create_user_info", name, x, y))
        info = DbUserInfo(x=x, y=y, exp=0, level=1)
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO users (user_id, x, y, exp, level) VALUES (?, ?, ?, ?, ?)",
                    (name, info.x, info.y, info.exp, info.level),
                )
        except sqlite3.Error as exc:
            raise DatabaseError(f"cannot create user {name!r}: {exc}") from exc
        log.info("create new user info - id: [%s], x: %d y: %d", name, x, y)
        return info

    def update_user_info(self, name: str, user_info: DbUserInfo) -> None:
        """Store the current position and progress of an existing user."""
        log.debug(make_exec("update_user_info", name, user_info.x, user_info.y,
                            user_info.level, user_info.exp))
        try:
            with self._lock, self._conn:
                cursor = self._conn.execute(
                    "UPDATE users SET x = ?, y = ?, exp = ?, level = ? WHERE user_id = ?",
                    (user_info.x, user_info.y, user_info.exp, user_info.level, name),
                )
        except sqlite3.Error as exc:
            raise DatabaseError(f"cannot update user {name!r}: {exc}") from exc
        if cursor.rowcount == 0:
            raise DatabaseError(f"update failure: no user {name!r}")
        log.info("update confirm: id: [%s], x: %d y: %d exp: %d level: %d",
                 name, user_info.x, user_info.y, user_info.exp, user_info.level)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()
        return False