from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from threading import Condition, Lock

from user_service.models.schemas import User, validate_user
from user_service.observability.metrics import Metrics

SEED_USERS: tuple[User, ...] = (
    User(id=1, name="John Doe", email="john@example.com"),
    User(id=2, name="Jane Smith", email="jane@example.com"),
    User(id=3, name="Bob Johnson", email="bob@example.com"),
)


class ReadWriteLock:
    """Many concurrent readers or a single writer. Readers may starve a writer."""

    def __init__(self) -> None:
        self._cond = Condition(Lock())
        self._readers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            while self._readers > 0:
                self._cond.wait()
            yield


class InMemoryUserStore:
    """Thread-safe, process-local user map (resets on restart)."""

    def __init__(self, metrics: Metrics, users: Iterable[User] = SEED_USERS) -> None:
        self._lock = ReadWriteLock()
        self._metrics = metrics
        self._users: dict[int, User] = {user.id: user for user in users}
        self._metrics.set_users_total(len(self._users))

    def get(self, user_id: int) -> User | None:
        with self._lock.read():
            return self._users.get(user_id)

    def list(self) -> list[User]:
        with self._lock.read():
            return list(self._users.values())

    def count(self) -> int:
        with self._lock.read():
            return len(self._users)

    def insert(self, user: User) -> None:
        validate_user(user)
        with self._lock.write():
            self._users[user.id] = user
            self._metrics.set_users_total(len(self._users))
