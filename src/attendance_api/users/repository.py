from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import User


class UserRepository(Protocol):
    """Repository interface for User.

    Note (DIP): the service layer depends on this interface, never on a concrete store.
    """

    def find_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def find_by_id(self, user_id: str) -> Optional[User]:
        raise NotImplementedError

    def find_all(self) -> Sequence[User]:
        raise NotImplementedError

    def save(self, user: User) -> User:
        """Upsert by id; a blank id gets a store-assigned one."""

        raise NotImplementedError
