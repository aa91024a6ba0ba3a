"""Error taxonomy for Slate.

Client errors derive from ``ValueError`` and storage failures from
``RuntimeError`` so callers that only know the builtin types keep working.
Each class carries the HTTP status the web layer answers with.
"""

from __future__ import annotations


class SlateError(Exception):
    """Base class for all Slate errors."""

    status_code = 500


class Unauthorized(SlateError):
    """The request does not identify an actor."""

    status_code = 401


class DependencyError(SlateError, ValueError):
    """A dependency request was rejected. Never retried automatically."""

    status_code = 400


class NotFound(DependencyError):
    """A referenced issue does not exist."""

    status_code = 404

    def __init__(self, issue_id: str, message: str | None = None) -> None:
        self.issue_id = issue_id
        super().__init__(message or f"Issue {issue_id} not found")


class SelfDependency(DependencyError):
    """Source and target are the same issue."""

    def __init__(self, issue_id: str) -> None:
        self.issue_id = issue_id
        super().__init__("An issue cannot depend on itself")


class InvalidDirection(DependencyError):
    """Direction is not one of ``blocks`` / ``blocked_by``."""

    def __init__(self, value: object, field: str = "type") -> None:
        self.value = value
        super().__init__(f'{field} must be "blocks" or "blocked_by"')


class MissingField(DependencyError):
    """A required identifier or direction was omitted."""

    def __init__(self, field: str, message: str | None = None) -> None:
        self.field = field
        super().__init__(message or f"{field} is required")


class DuplicateEdge(DependencyError):
    """The exact directed edge already exists."""

    status_code = 409

    def __init__(self, blocker_id: str, blocked_id: str) -> None:
        self.blocker_id = blocker_id
        self.blocked_id = blocked_id
        super().__init__("Dependency already exists")


class CircularDependency(DependencyError):
    """Inserting the edge would close a cycle."""

    def __init__(self, blocker_id: str, blocked_id: str) -> None:
        self.blocker_id = blocker_id
        self.blocked_id = blocked_id
        super().__init__(
            f"Circular dependency detected: {blocked_id} already blocks "
            f"{blocker_id} directly or transitively",
        )


class StorageUnavailable(SlateError, RuntimeError):
    """The store could not be read or written. Transient; safe to retry."""

    status_code = 503


class CorruptStorage(SlateError, ValueError):
    """The storage file holds a record that cannot be replayed."""

    status_code = 500
