from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, Query, Request

from user_service.api.common import encode, get_user_service, http_error
from user_service.errors import EncodingError, NotFoundError, StoreError, ValidationError
from user_service.models.schemas import User, UsersResponse, parse_user_id
from user_service.services.user_service import UserService

router = APIRouter(tags=["users"])

logger = structlog.get_logger(__name__)


def _remote_addr(request: Request) -> str:
    return f"{request.client.host}:{request.client.port}" if request.client else "unknown"


@router.get("/user", response_model=User)
def get_user(
    request: Request,
    raw_id: str | None = Query(default=None, alias="id"),
    service: UserService = Depends(get_user_service),
) -> User:
    try:
        user_id = parse_user_id(raw_id)
    except ValidationError as exc:
        logger.info("invalid_id_parameter", raw_id=raw_id, remote_addr=_remote_addr(request), error=str(exc))
        raise http_error(exc) from exc

    try:
        user = service.get_user(user_id)
    except NotFoundError as exc:
        logger.info("user_not_found", user_id=user_id, remote_addr=_remote_addr(request))
        raise http_error(exc) from exc
    except StoreError as exc:
        logger.error("user_lookup_failed", user_id=user_id, error=str(exc))
        raise http_error(exc, "failed to load user") from exc

    logger.info("user_returned", user_id=user_id, remote_addr=_remote_addr(request))
    return user


@router.get("/users", response_model=UsersResponse)
def list_users(
    request: Request,
    service: UserService = Depends(get_user_service),
) -> UsersResponse:
    try:
        users = service.list_users()
        response = encode(UsersResponse, users=users, total=len(users))
    except StoreError as exc:
        logger.error("users_list_failed", error=str(exc))
        raise http_error(exc, "failed to list users") from exc
    except EncodingError as exc:
        logger.error("users_encode_failed", error=str(exc))
        raise http_error(exc, "failed to encode response") from exc

    logger.info("users_returned", total=response.total, remote_addr=_remote_addr(request))
    return response
