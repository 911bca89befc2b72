from typing import Any, Optional


class LostFoundError(Exception):
    """Base for every failure the core hands back to its caller."""

    status_code = 400

    def __init__(self, detail: str, errors: Optional[list[dict[str, Any]]] = None):
        super().__init__(detail)
        self.detail = detail
        self.errors = errors


class ValidationError(LostFoundError):
    status_code = 400


class AuthorizationError(LostFoundError):
    status_code = 403


class NotFoundError(LostFoundError):
    status_code = 404


class ConflictError(LostFoundError):
    status_code = 409
