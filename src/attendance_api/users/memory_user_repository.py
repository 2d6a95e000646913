from __future__ import annotations

import threading
from dataclasses import replace
from typing import Optional, Sequence

from .model import User
from .repository import UserRepository


class InMemoryUserRepository(UserRepository):
    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}
        self._lock = threading.Lock()

    def find_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            return next((u for u in self._by_id.values() if u.username == username), None)

    def find_by_id(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._by_id.get(user_id)

    def find_all(self) -> Sequence[User]:
        with self._lock:
            return list(self._by_id.values())

    def save(self, user: User) -> User:
        with self._lock:
            if not user.id:
                user = replace(user, id=f"id_{len(self._by_id) + 1}")
            self._by_id[user.id] = user
            return user
