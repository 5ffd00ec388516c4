from __future__ import annotations

from typing import Any


class WikiCoreError(Exception):
    code = "internal"

    def __init__(
        self,
        message: str = "",
        details: dict[str, Any] | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        if code:
            self.code = code


class NotFoundError(WikiCoreError):
    code = "not_found"


class BadRequestError(WikiCoreError):
    code = "bad_request"


class ForbiddenError(WikiCoreError):
    code = "forbidden"


class ConflictError(WikiCoreError):
    code = "conflict"


class InternalError(WikiCoreError):
    code = "internal"


def error_for_status(status: int, message: str) -> WikiCoreError:
    """Classify a document store HTTP status into the core taxonomy."""
    details = {"status": status}
    if status == 400:
        return BadRequestError(message, details)
    if status in (401, 403):
        return ForbiddenError(message, details)
    if status == 404:
        return NotFoundError(message, details)
    if status in (409, 412):
        return ConflictError(message, details)
    return InternalError(message, details)


__all__ = [
    "WikiCoreError",
    "NotFoundError",
    "BadRequestError",
    "ForbiddenError",
    "ConflictError",
    "InternalError",
    "error_for_status",
]
