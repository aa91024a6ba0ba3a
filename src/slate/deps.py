"""Dependency graph engine: blocking edges, cycle prevention and blocked work.

Every operation works on the state persisted in the store. Writes run
under the store's write lock, which reloads from disk first, so validation
always sees the latest committed edges.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from slate.audit import build_dependency_audit
from slate.constants import (
    ACTION_DEPENDENCY_ADDED,
    ACTION_DEPENDENCY_REMOVED,
    PRIORITY_ORDER,
)
from slate.errors import (
    CircularDependency,
    DuplicateEdge,
    MissingField,
    NotFound,
    SelfDependency,
)
from slate.models import (
    AuditRecord,
    Dependency,
    Direction,
    Issue,
    IssueSummary,
    Status,
    derive_edge,
)

if TYPE_CHECKING:
    from slate.storage import JSONLStorage

logger = logging.getLogger(__name__)

# Statuses that count as "work remaining" for ready-work detection
_WORK_STATUSES = (Status.BACKLOG, Status.READY, Status.IN_PROGRESS)


@dataclass
class DependencyListing:
    """Both adjacency directions of one issue."""

    blocked_by: list[IssueSummary]
    blocking: list[IssueSummary]

    def to_dict(self) -> dict[str, Any]:
        return {
            "blockedBy": [s.to_dict() for s in self.blocked_by],
            "blocking": [s.to_dict() for s in self.blocking],
        }


@dataclass
class DependencyChange:
    """Outcome of an add or remove request."""

    dependency: Dependency
    direction: Direction
    changed: bool
    audit: AuditRecord | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "blocker_id": self.dependency.blocker_id,
            "blocked_id": self.dependency.blocked_id,
            "type": self.direction.value,
        }


@dataclass
class BlockedIssue:
    """An issue that is blocked by unresolved dependencies."""

    issue_id: str
    blocking_ids: list[str]
    reason: str


def _summaries(storage: JSONLStorage, issue_ids: list[str]) -> list[IssueSummary]:
    summaries: list[IssueSummary] = []
    for issue_id in issue_ids:
        issue = storage.get(issue_id)
        if issue is None:
            # Dangling edge; reported by `slate doctor`
            continue
        summaries.append(
            IssueSummary.from_issue(issue, storage.project_slug(issue.project_id)),
        )
    summaries.sort(key=lambda s: (s.project_slug, s.number))
    return summaries


def list_dependencies(storage: JSONLStorage, issue_id: str) -> DependencyListing:
    """List what blocks an issue and what the issue blocks.

    Args:
        storage: The storage instance
        issue_id: The exact issue ID

    Returns:
        DependencyListing with display summaries of both directions

    Raises:
        NotFound: If the issue does not exist
    """
    storage.reload()
    if storage.get(issue_id) is None:
        raise NotFound(issue_id)

    return DependencyListing(
        blocked_by=_summaries(
            storage,
            [d.blocker_id for d in storage.get_blockers(issue_id)],
        ),
        blocking=_summaries(
            storage,
            [d.blocked_id for d in storage.get_blocked(issue_id)],
        ),
    )


def would_create_cycle(
    storage: JSONLStorage,
    blocker_id: str,
    blocked_id: str,
) -> bool:
    """Check if adding the edge ``blocker_id -> blocked_id`` would close a cycle.

    Breadth-first search from ``blocked_id`` along existing blocker->blocked
    edges; reaching ``blocker_id`` means a path back already exists. The
    proposed edge itself is not part of the searched graph.

    Args:
        storage: The storage instance
        blocker_id: The proposed blocker
        blocked_id: The proposed blocked issue

    Returns:
        True if adding this edge would create a cycle, False otherwise
    """
    if blocker_id == blocked_id:
        return True

    visited: set[str] = {blocked_id}
    queue: deque[str] = deque([blocked_id])
    while queue:
        node = queue.popleft()
        for dep in storage.get_blocked(node):
            nxt = dep.blocked_id
            if nxt == blocker_id:
                return True
            if nxt not in visited:
                visited.add(nxt)
                queue.append(nxt)

    logger.debug(
        "Cycle check %s -> %s visited %d issue(s)",
        blocker_id,
        blocked_id,
        len(visited),
    )
    return False


def _require_target(target_id: str | None) -> str:
    if target_id is None or not str(target_id).strip():
        raise MissingField("target_issue_id")
    return str(target_id)


def add_dependency(
    storage: JSONLStorage,
    source_id: str,
    target_id: str | None,
    direction: Direction | str | None,
    *,
    actor_id: str | None = None,
) -> DependencyChange:
    """Add a blocking dependency between two issues.

    ``direction`` is relative to the source: ``blocks`` makes the source the
    blocker, ``blocked_by`` makes the target the blocker. The first failing
    check wins: self-dependency, missing source, missing target, duplicate
    edge, cycle.

    Raises:
        MissingField: If the target or direction is omitted
        InvalidDirection: If the direction is unknown
        SelfDependency: If source and target are the same issue
        NotFound: If either issue does not exist
        DuplicateEdge: If the edge already exists
        CircularDependency: If the edge would close a cycle
        StorageUnavailable: If the store cannot be read or written
    """
    target_id = _require_target(target_id)
    parsed = Direction.parse(direction)

    if source_id == target_id:
        raise SelfDependency(source_id)

    with storage.write_lock():
        source = storage.get(source_id)
        if source is None:
            raise NotFound(source_id)
        target = storage.get(target_id)
        if target is None:
            raise NotFound(target_id, f"Target issue {target_id} not found")

        blocker_id, blocked_id = derive_edge(source_id, target_id, parsed)

        if storage.has_dependency(blocker_id, blocked_id):
            raise DuplicateEdge(blocker_id, blocked_id)

        if would_create_cycle(storage, blocker_id, blocked_id):
            raise CircularDependency(blocker_id, blocked_id)

        dependency = Dependency(
            blocker_id=blocker_id,
            blocked_id=blocked_id,
            created_by=actor_id,
        )
        audit = build_dependency_audit(
            ACTION_DEPENDENCY_ADDED,
            source=source,
            target_id=target_id,
            target=target,
            direction=parsed,
            blocker_id=blocker_id,
            blocked_id=blocked_id,
            actor_id=actor_id,
        )
        storage.insert_dependency(dependency, audit=audit)

    logger.info("Added dependency %s blocks %s", blocker_id, blocked_id)
    return DependencyChange(dependency, parsed, changed=True, audit=audit)


def remove_dependency(
    storage: JSONLStorage,
    source_id: str,
    target_id: str | None,
    direction: Direction | str | None,
    *,
    actor_id: str | None = None,
) -> DependencyChange:
    """Remove a blocking dependency. Removing a missing edge is a no-op.

    An audit record is written only when an edge was actually removed and
    the source issue still exists.

    Raises:
        MissingField: If the target or direction is omitted
        InvalidDirection: If the direction is unknown
        StorageUnavailable: If the store cannot be read or written
    """
    target_id = _require_target(target_id)
    parsed = Direction.parse(direction)
    blocker_id, blocked_id = derive_edge(source_id, target_id, parsed)

    with storage.write_lock():
        if not storage.has_dependency(blocker_id, blocked_id):
            return DependencyChange(
                Dependency(blocker_id=blocker_id, blocked_id=blocked_id),
                parsed,
                changed=False,
            )

        source = storage.get(source_id)
        audit = None
        if source is not None:
            audit = build_dependency_audit(
                ACTION_DEPENDENCY_REMOVED,
                source=source,
                target_id=target_id,
                target=storage.get(target_id),
                direction=parsed,
                blocker_id=blocker_id,
                blocked_id=blocked_id,
                actor_id=actor_id,
            )
        removed = storage.delete_dependency(blocker_id, blocked_id, audit=audit)

    logger.info("Removed dependency %s blocks %s", blocker_id, blocked_id)
    return DependencyChange(
        removed or Dependency(blocker_id=blocker_id, blocked_id=blocked_id),
        parsed,
        changed=removed is not None,
        audit=audit,
    )


def open_blockers(storage: JSONLStorage, issue_id: str) -> list[Issue]:
    """Get the blockers of an issue that are not done yet."""
    blockers: list[Issue] = []
    for dep in storage.get_blockers(issue_id):
        blocker = storage.get(dep.blocker_id)
        if blocker is not None and not blocker.is_done():
            blockers.append(blocker)
    return blockers


def has_open_blockers(storage: JSONLStorage, issue_id: str) -> bool:
    """Check if an issue has any blocker that is not done."""
    return bool(open_blockers(storage, issue_id))


def get_blocked_issues(
    storage: JSONLStorage,
    project_id: str | None = None,
) -> list[BlockedIssue]:
    """Get all unfinished issues that have open blockers.

    Args:
        storage: The storage instance
        project_id: Optional project to restrict the blocked issues to

    Returns:
        List of blocked issues with their blocking IDs
    """
    filters = {"project_id": project_id} if project_id else None
    blocked_list: list[BlockedIssue] = []

    for issue in storage.list(filters):
        if issue.is_done():
            continue

        blocking_ids = [b.id for b in open_blockers(storage, issue.id)]
        if blocking_ids:
            blocked_list.append(
                BlockedIssue(
                    issue_id=issue.id,
                    blocking_ids=blocking_ids,
                    reason=f"Blocked by {len(blocking_ids)} issue(s)",
                ),
            )

    return blocked_list


def get_ready_work(
    storage: JSONLStorage,
    project_id: str | None = None,
) -> list[Issue]:
    """Get unfinished issues with no open blockers.

    Issues explicitly marked ``blocked`` are excluded even without edges.

    Returns:
        List of ready issues, most urgent priority first
    """
    filters = {"project_id": project_id} if project_id else None
    ready = [
        issue
        for issue in storage.list(filters)
        if issue.status in _WORK_STATUSES and not has_open_blockers(storage, issue.id)
    ]
    # list() is already ordered by project and number; sort is stable
    ready.sort(key=lambda i: PRIORITY_ORDER[i.priority.value])
    return ready


def detect_cycles(storage: JSONLStorage) -> list[list[str]]:
    """Detect circular dependencies using DFS.

    The engine never writes a cycle, but edges can still arrive through
    hand-edited or merged storage files.

    Returns:
        List of cycles (each cycle is a list of issue IDs, first == last)
    """
    seen_cycles: set[frozenset[str]] = set()
    cycles: list[list[str]] = []
    visited: set[str] = set()
    rec_stack: set[str] = set()

    def dfs(node: str, path: list[str]) -> None:
        visited.add(node)
        rec_stack.add(node)
        path.append(node)

        for dep in storage.get_blocked(node):
            neighbor = dep.blocked_id
            if neighbor not in visited:
                dfs(neighbor, path[:])
            elif neighbor in rec_stack:
                cycle_start = path.index(neighbor)
                cycle = [*path[cycle_start:], neighbor]
                cycle_key = frozenset(cycle)
                if cycle_key not in seen_cycles:
                    seen_cycles.add(cycle_key)
                    cycles.append(cycle)

        rec_stack.discard(node)

    nodes = {d.blocker_id for d in storage.all_dependencies()}
    for node in sorted(nodes):
        if node not in visited:
            dfs(node, [])

    return cycles
