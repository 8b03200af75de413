from __future__ import annotations

from collections.abc import Iterable

import structlog
from sqlalchemy import Engine, func, select
from sqlalchemy.exc import SQLAlchemyError

from user_service.db.memory_store import SEED_USERS
from user_service.db.models import Base, UserRow
from user_service.db.session import make_session_factory, session_scope
from user_service.errors import StoreError
from user_service.models.schemas import User, validate_user
from user_service.observability.metrics import Metrics

logger = structlog.get_logger(__name__)

_BIGINT_MIN = -(2**63)
_BIGINT_MAX = 2**63 - 1


def _to_user(row: UserRow) -> User:
    return User(id=row.id, name=row.name, email=row.email)


class SqlUserStore:
    """User store over a single `users` table.

    Every call runs in its own session; the engine's pool handles concurrency.
    """

    def __init__(self, engine: Engine, metrics: Metrics) -> None:
        self._engine = engine
        self._session_factory = make_session_factory(engine)
        self._metrics = metrics

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise StoreError("failed to create users table") from exc

    def seed(self, users: Iterable[User] = SEED_USERS) -> None:
        """Insert the given users when the table is empty, then sync the users gauge."""

        existing = self.count()
        if existing > 0:
            self._metrics.set_users_total(existing)
            return
        for user in users:
            self.insert(user)
        logger.info("users_seeded", users_count=self.count())

    def get(self, user_id: int) -> User | None:
        if not _BIGINT_MIN <= user_id <= _BIGINT_MAX:
            return None
        try:
            with session_scope(self._session_factory) as db:
                row = db.execute(select(UserRow).where(UserRow.id == user_id)).scalar_one_or_none()
                return None if row is None else _to_user(row)
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to load user {user_id}") from exc

    def list(self) -> list[User]:
        try:
            with session_scope(self._session_factory) as db:
                rows = db.execute(select(UserRow)).scalars().all()
                return [_to_user(row) for row in rows]
        except SQLAlchemyError as exc:
            raise StoreError("failed to list users") from exc

    def count(self) -> int:
        try:
            with session_scope(self._session_factory) as db:
                return int(db.execute(select(func.count()).select_from(UserRow)).scalar_one())
        except SQLAlchemyError as exc:
            raise StoreError("failed to count users") from exc

    def insert(self, user: User) -> None:
        validate_user(user)
        try:
            with session_scope(self._session_factory) as db:
                db.merge(UserRow(id=user.id, name=user.name, email=user.email))
                db.commit()
        except SQLAlchemyError as exc:
            raise StoreError(f"failed to insert user {user.id}") from exc
        self._metrics.set_users_total(self.count())
