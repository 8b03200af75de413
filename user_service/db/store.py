from __future__ import annotations

from typing import Protocol

from user_service.models.schemas import User


class UserStore(Protocol):
    """Storage contract shared by the in-memory and SQL backends.

    `get` returns None for a missing id. `list` makes no ordering promise.
    `insert` validates before mutating and replaces a record with the same id.
    """

    def get(self, user_id: int) -> User | None: ...

    def list(self) -> list[User]: ...

    def count(self) -> int: ...

    def insert(self, user: User) -> None: ...
