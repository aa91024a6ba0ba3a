"""Data models for Slate projects, issues and dependencies using dataclasses."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from slate._version import version as _slate_version
from slate.constants import STATUS_SYMBOLS
from slate.errors import InvalidDirection, MissingField


def _now() -> datetime:
    return datetime.now().astimezone()


def new_id() -> str:
    """Generate an opaque identifier for a project, issue or audit record."""
    return str(uuid.uuid4())


class Status(str, Enum):
    """Issue status enumeration (kanban columns)."""

    BACKLOG = "backlog"
    READY = "ready"
    IN_PROGRESS = "in_progress"
    BLOCKED = "blocked"
    DONE = "done"


class Priority(str, Enum):
    """Issue priority enumeration."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Direction(str, Enum):
    """Direction of a dependency request relative to its source issue.

    ``BLOCKS`` means the source is the blocker; ``BLOCKED_BY`` means the
    source is the blocked issue.
    """

    BLOCKS = "blocks"
    BLOCKED_BY = "blocked_by"

    @classmethod
    def parse(cls, value: Any, field_name: str = "type") -> Direction:
        """Parse a raw direction value.

        Raises:
            MissingField: If the value is None or empty.
            InvalidDirection: If the value is not a known direction.
        """
        if isinstance(value, Direction):
            return value
        if value is None or value == "":
            msg = f'{field_name} must be "blocks" or "blocked_by"'
            raise MissingField(field_name, msg)
        if not isinstance(value, str):
            raise InvalidDirection(value, field_name)
        try:
            return cls(value)
        except ValueError:
            raise InvalidDirection(value, field_name) from None


def derive_edge(
    source_id: str,
    target_id: str,
    direction: Direction,
) -> tuple[str, str]:
    """Compute the ``(blocker_id, blocked_id)`` pair for a dependency request."""
    if direction is Direction.BLOCKS:
        return source_id, target_id
    return target_id, source_id


@dataclass
class Project:
    """A project owning a sequence of numbered issues."""

    id: str
    name: str
    slug: str
    description: str | None = None
    last_number: int = 0  # Highest issue number ever assigned; never reused
    created_at: datetime = field(default_factory=_now)


@dataclass
class Issue:
    """An issue in a project; the nodes of the dependency graph."""

    id: str
    project_id: str
    number: int
    title: str
    description: str | None = None
    status: Status = Status.BACKLOG
    priority: Priority = Priority.MEDIUM
    created_by: str | None = None
    created_at: datetime = field(default_factory=_now)
    updated_at: datetime = field(default_factory=_now)

    def is_done(self) -> bool:
        """Check if the issue is resolved."""
        return self.status == Status.DONE

    def get_status_symbol(self) -> str:
        """Get a symbol representing the status."""
        return STATUS_SYMBOLS.get(self.status.value, "?")


@dataclass
class Dependency:
    """A directed edge: ``blocker_id`` must be resolved before ``blocked_id``."""

    blocker_id: str
    blocked_id: str
    created_at: datetime = field(default_factory=_now)
    created_by: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """The ordered pair identifying this edge."""
        return (self.blocker_id, self.blocked_id)


@dataclass
class AuditRecord:
    """An immutable, actor-attributed record of a mutation."""

    action: str
    actor_id: str | None
    project_id: str | None = None
    issue_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict[str, Any])
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=_now)


@dataclass
class IssueSummary:
    """Display projection of an issue returned by dependency queries."""

    id: str
    number: int
    title: str
    status: Status
    project_slug: str

    @classmethod
    def from_issue(cls, issue: Issue, project_slug: str) -> IssueSummary:
        return cls(
            id=issue.id,
            number=issue.number,
            title=issue.title,
            status=issue.status,
            project_slug=project_slug,
        )

    @property
    def ref(self) -> str:
        """Human-readable reference such as ``web-12``."""
        return f"{self.project_slug}-{self.number}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "number": self.number,
            "title": self.title,
            "status": self.status.value,
            "project": {"slug": self.project_slug},
        }


def validate_status(status: Any) -> Status:
    """Coerce a raw status value to a Status."""
    if isinstance(status, Status):
        return status
    try:
        return Status(status)
    except ValueError:
        valid = ", ".join(s.value for s in Status)
        msg = f"Invalid status '{status}'. Valid statuses: {valid}"
        raise ValueError(msg) from None


def validate_priority(priority: Any) -> Priority:
    """Coerce a raw priority value to a Priority."""
    if isinstance(priority, Priority):
        return priority
    try:
        return Priority(priority)
    except ValueError:
        valid = ", ".join(p.value for p in Priority)
        msg = f"Invalid priority '{priority}'. Valid priorities: {valid}"
        raise ValueError(msg) from None


def project_to_dict(project: Project) -> dict[str, Any]:
    """Convert a Project to a dictionary, serializing datetimes."""
    return {
        "record_type": "project",
        "slate_version": _slate_version,
        "id": project.id,
        "name": project.name,
        "slug": project.slug,
        "description": project.description,
        "last_number": project.last_number,
        "created_at": project.created_at.isoformat(),
    }


def dict_to_project(data: dict[str, Any]) -> Project:
    """Convert a dictionary to a Project."""
    return Project(
        id=data["id"],
        name=data["name"],
        slug=data["slug"],
        description=data.get("description"),
        last_number=int(data.get("last_number", 0)),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def issue_to_dict(issue: Issue) -> dict[str, Any]:
    """Convert an Issue to a dictionary, serializing datetimes."""
    return {
        "record_type": "issue",
        "slate_version": _slate_version,
        "id": issue.id,
        "project_id": issue.project_id,
        "number": issue.number,
        "title": issue.title,
        "description": issue.description,
        "status": issue.status.value,
        "priority": issue.priority.value,
        "created_by": issue.created_by,
        "created_at": issue.created_at.isoformat(),
        "updated_at": issue.updated_at.isoformat(),
    }


def dict_to_issue(data: dict[str, Any]) -> Issue:
    """Convert a dictionary to an Issue, deserializing datetimes."""
    return Issue(
        id=data["id"],
        project_id=data["project_id"],
        number=int(data["number"]),
        title=data["title"],
        description=data.get("description"),
        status=Status(data.get("status", Status.BACKLOG.value)),
        priority=Priority(data.get("priority", Priority.MEDIUM.value)),
        created_by=data.get("created_by"),
        created_at=datetime.fromisoformat(data["created_at"]),
        updated_at=datetime.fromisoformat(data["updated_at"]),
    )


def dependency_to_dict(dep: Dependency, *, op: str = "add") -> dict[str, Any]:
    """Convert a Dependency to a dictionary for appending."""
    d: dict[str, Any] = {
        "record_type": "dependency",
        "slate_version": _slate_version,
        "blocker_id": dep.blocker_id,
        "blocked_id": dep.blocked_id,
        "created_at": dep.created_at.isoformat(),
        "created_by": dep.created_by,
    }
    if op != "add":
        d["op"] = op
    return d


def dict_to_dependency(data: dict[str, Any]) -> Dependency:
    """Convert a dictionary to a Dependency."""
    return Dependency(
        blocker_id=data["blocker_id"],
        blocked_id=data["blocked_id"],
        created_at=datetime.fromisoformat(data["created_at"]),
        created_by=data.get("created_by"),
    )


def audit_to_dict(record: AuditRecord) -> dict[str, Any]:
    """Convert an AuditRecord to a dictionary for appending."""
    return {
        "record_type": "audit",
        "slate_version": _slate_version,
        "id": record.id,
        "project_id": record.project_id,
        "issue_id": record.issue_id,
        "actor_id": record.actor_id,
        "action": record.action,
        "details": record.details,
        "created_at": record.created_at.isoformat(),
    }


def dict_to_audit(data: dict[str, Any]) -> AuditRecord:
    """Convert a dictionary to an AuditRecord."""
    return AuditRecord(
        id=data["id"],
        project_id=data.get("project_id"),
        issue_id=data.get("issue_id"),
        actor_id=data.get("actor_id"),
        action=data["action"],
        details=data.get("details") or {},
        created_at=datetime.fromisoformat(data["created_at"]),
    )


def classify_record(data: dict[str, Any]) -> str:
    """Classify a JSONL record as 'project', 'issue', 'dependency' or 'audit'.

    Checks for an explicit ``record_type`` field first, then falls back to
    field-sniffing.
    """
    explicit = data.get("record_type")
    if explicit in ("project", "issue", "dependency", "audit"):
        return explicit  # type: ignore[return-value]

    if "blocker_id" in data and "blocked_id" in data:
        return "dependency"
    if "slug" in data:
        return "project"
    if "action" in data and "actor_id" in data:
        return "audit"
    return "issue"
