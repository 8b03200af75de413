from __future__ import annotations

from typing import Any, TypeVar

from fastapi import HTTPException, Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from user_service.errors import EncodingError, UserServiceError
from user_service.observability.metrics import Metrics
from user_service.services.user_service import UserService

M = TypeVar("M", bound=BaseModel)


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


def get_metrics(request: Request) -> Metrics:
    return request.app.state.metrics


def http_error(exc: UserServiceError, detail: str | None = None) -> HTTPException:
    """Map a domain error to its status; `detail` overrides the message sent to clients."""

    return HTTPException(status_code=exc.status_code, detail=detail or str(exc))


def encode(model: type[M], **fields: Any) -> M:
    try:
        return model(**fields)
    except PydanticValidationError as exc:
        raise EncodingError(f"failed to encode {model.__name__}") from exc
