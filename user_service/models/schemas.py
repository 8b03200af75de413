from __future__ import annotations

import re
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from user_service.errors import ValidationError

_USER_ID_RE = re.compile(r"[+-]?[0-9]+")

# Ids longer than this collapse to a single value outside the signed 64-bit range.
_MAX_ID_DIGITS = 20
_OUT_OF_RANGE_ID = 10**_MAX_ID_DIGITS


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str


class UsersResponse(BaseModel):
    users: list[User]
    total: int


class HealthResponse(BaseModel):
    status: Literal["healthy"] = "healthy"
    timestamp: datetime
    service: str = "user-service"
    users_count: int


def validate_user(user: User) -> None:
    if not user.name:
        raise ValidationError("name cannot be empty")
    if not user.email:
        raise ValidationError("email cannot be empty")
    if "@" not in user.email:
        raise ValidationError("email must contain @")


def parse_user_id(raw: str | None) -> int:
    if raw is None or raw == "":
        raise ValidationError("id parameter is missing")
    if not _USER_ID_RE.fullmatch(raw):
        raise ValidationError("id parameter is invalid")
    sign = -1 if raw.startswith("-") else 1
    digits = raw.lstrip("+-").lstrip("0")
    if len(digits) > _MAX_ID_DIGITS:
        # Beyond any storable id and possibly past int()'s digit limit.
        return sign * _OUT_OF_RANGE_ID
    return sign * int(digits or "0")
