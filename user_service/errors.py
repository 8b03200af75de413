from __future__ import annotations


class UserServiceError(Exception):
    """Base class for errors surfaced to HTTP clients with a fixed status."""

    status_code: int = 500


class ValidationError(UserServiceError):
    status_code = 400


class NotFoundError(UserServiceError):
    status_code = 404


class EncodingError(UserServiceError):
    status_code = 500


class StoreError(UserServiceError):
    status_code = 500
