from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends

from user_service.api.common import encode, get_user_service, http_error
from user_service.errors import EncodingError, StoreError
from user_service.models.schemas import HealthResponse
from user_service.services.user_service import UserService

router = APIRouter(tags=["health"])

logger = structlog.get_logger(__name__)


@router.get("/health", response_model=HealthResponse)
def health(service: UserService = Depends(get_user_service)) -> HealthResponse:
    try:
        users_count = service.users_count()
    except StoreError as exc:
        logger.error("health_users_count_failed", error=str(exc))
        raise http_error(exc, "failed to get users count") from exc

    try:
        return encode(HealthResponse, timestamp=datetime.now(timezone.utc), users_count=users_count)
    except EncodingError as exc:
        logger.error("health_encode_failed", error=str(exc))
        raise http_error(exc, "failed to encode response") from exc
