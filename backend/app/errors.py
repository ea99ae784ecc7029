"""Error taxonomy for the hangout feed.

HTTP-facing errors subclass ``HTTPException`` so services can raise them directly
and FastAPI renders them. ``PartialFanoutFailure`` and ``ConsistencyDrift`` are
internal: they are logged by the projector and the reconciliation sweep and never
reach the caller that triggered the canonical write.
"""
from typing import Any, Optional

from fastapi import HTTPException, status


class NotFound(HTTPException):
    def __init__(self, detail: Any = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class Forbidden(HTTPException):
    def __init__(self, detail: Any = "Forbidden"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidCursor(HTTPException):
    def __init__(self, detail: Any = "Invalid pagination cursor"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class BadRequest(HTTPException):
    def __init__(self, detail: Any = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class Conflict(HTTPException):
    def __init__(self, detail: Any = "Conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class ValidationFailed(HTTPException):
    def __init__(self, detail: Any = "Validation failed"):
        super().__init__(status_code=422, detail=detail)


class PartialFanoutFailure(Exception):
    """A pointer write exhausted its retries and was queued for repair."""

    def __init__(self, group_id: str, event_id: str, operation: str, cause: Optional[BaseException] = None):
        self.group_id = group_id
        self.event_id = event_id
        self.operation = operation
        self.cause = cause
        super().__init__(
            f"Pointer {operation} failed for group {group_id} and event {event_id}: {cause}"
        )


class ConsistencyDrift(Exception):
    """A stored pointer differs from the rebuild of its canonical event."""

    def __init__(self, group_id: str, event_id: str, fields: list[str]):
        self.group_id = group_id
        self.event_id = event_id
        self.fields = fields
        super().__init__(
            f"Pointer for group {group_id} and event {event_id} drifted on: {', '.join(fields) or 'presence'}"
        )
