from __future__ import annotations

import structlog

from user_service.db.store import UserStore
from user_service.errors import NotFoundError
from user_service.models.schemas import User, validate_user
from user_service.observability.metrics import Metrics

logger = structlog.get_logger(__name__)


class UserService:
    def __init__(self, store: UserStore, metrics: Metrics) -> None:
        self.store = store
        self.metrics = metrics

    def get_user(self, user_id: int) -> User:
        user = self.store.get(user_id)
        if user is None:
            self.metrics.record_user_lookup("not_found")
            raise NotFoundError("user not found")
        self.metrics.record_user_lookup("found")
        return user

    def list_users(self) -> list[User]:
        return self.store.list()

    def users_count(self) -> int:
        return self.store.count()

    def add_user(self, user: User) -> None:
        validate_user(user)
        self.store.insert(user)
        logger.info("user_added", user_id=user.id)
