from concurrent.futures import ThreadPoolExecutor

import pytest

from user_service.db.memory_store import SEED_USERS, InMemoryUserStore
from user_service.errors import ValidationError
from user_service.models.schemas import User
from user_service.observability.metrics import Metrics


def test_seeded_by_default(store: InMemoryUserStore, metrics: Metrics) -> None:
    assert store.count() == 3
    assert sorted(u.id for u in store.list()) == [1, 2, 3]
    assert store.get(2) == SEED_USERS[1]
    assert metrics.value("users_total") == 3


def test_get_missing_returns_none(store: InMemoryUserStore) -> None:
    assert store.get(0) is None
    assert store.get(-5) is None
    assert store.get(10**30) is None


def test_insert_adds_and_updates_gauge(store: InMemoryUserStore, metrics: Metrics) -> None:
    store.insert(User(id=4, name="Alice", email="alice@example.com"))

    assert store.count() == 4
    assert store.get(4).name == "Alice"
    assert metrics.value("users_total") == 4


def test_insert_replaces_by_id(store: InMemoryUserStore, metrics: Metrics) -> None:
    store.insert(User(id=1, name="Johnny", email="johnny@example.com"))

    assert store.count() == 3
    assert store.get(1).name == "Johnny"
    assert metrics.value("users_total") == 3


def test_insert_rejects_invalid_without_mutation(store: InMemoryUserStore, metrics: Metrics) -> None:
    with pytest.raises(ValidationError, match="email must contain @"):
        store.insert(User(id=5, name="Bad", email="bad"))

    assert store.get(5) is None
    assert store.count() == 3
    assert metrics.value("users_total") == 3


def test_list_is_a_snapshot(store: InMemoryUserStore) -> None:
    snapshot = store.list()
    store.insert(User(id=4, name="Alice", email="alice@example.com"))
    assert len(snapshot) == 3


def test_concurrent_readers_and_writers(metrics: Metrics) -> None:
    store = InMemoryUserStore(metrics)

    def write(i: int) -> None:
        store.insert(User(id=100 + i, name=f"User {i}", email=f"user{i}@example.com"))

    def read(i: int) -> User | None:
        return store.get(1 + i % 3)

    with ThreadPoolExecutor(max_workers=8) as pool:
        writes = [pool.submit(write, i) for i in range(50)]
        reads = [pool.submit(read, i) for i in range(200)]
        for f in writes:
            f.result()
        results = [f.result() for f in reads]

    for i, user in enumerate(results):
        assert user is not None
        assert user.id == 1 + i % 3
        assert user == SEED_USERS[i % 3]
    assert store.count() == 53
    assert metrics.value("users_total") == 53
