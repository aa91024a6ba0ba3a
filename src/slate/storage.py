"""JSONL-based storage for projects, issues and dependencies with atomic writes."""

from __future__ import annotations

import fcntl
import logging
import os
import tempfile
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import orjson

from slate.constants import ISSUE_REF_PATTERN, LOCK_FILENAME, SLUG_PATTERN
from slate.errors import CorruptStorage, StorageUnavailable
from slate.models import (
    AuditRecord,
    Dependency,
    Issue,
    Project,
    audit_to_dict,
    classify_record,
    dependency_to_dict,
    dict_to_dependency,
    dict_to_issue,
    dict_to_project,
    issue_to_dict,
    new_id,
    project_to_dict,
    validate_priority,
    validate_status,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


class JSONLStorage:
    """Manages atomic JSONL storage for projects, issues and dependencies."""

    # Compact when superseded lines exceed this fraction of the live records.
    _COMPACTION_RATIO = 0.5
    # Minimum live records before ratio-based compaction kicks in.
    _COMPACTION_MIN_BASE = 20

    # Fields that callers are allowed to modify via update().
    UPDATABLE_FIELDS: frozenset[str] = frozenset(
        {"title", "description", "status", "priority"},
    )

    def __init__(
        self,
        path: str = ".slate/issues.jsonl",
        create_dir: bool = False,
    ) -> None:
        """Initialize storage.

        Args:
            path: Path to the JSONL storage file (default: .slate/issues.jsonl)
            create_dir: If True, create the directory if it doesn't exist.
                       If False (default), raise an error if directory doesn't exist.

        Raises:
            StorageUnavailable: If the directory is missing or unreadable
            CorruptStorage: If a record other than the last cannot be parsed
        """
        self.path = Path(path)
        self.slate_dir = self.path.parent
        self._projects: dict[str, Project] = {}
        self._issues: dict[str, Issue] = {}
        self._dependencies: dict[tuple[str, str], Dependency] = {}
        # Adjacency indexes: issue id -> edges where it is blocker / blocked
        self._deps_by_blocker: dict[str, list[Dependency]] = {}
        self._deps_by_blocked: dict[str, list[Dependency]] = {}
        self._issues_by_number: dict[tuple[str, int], str] = {}
        # Track lines for compaction decisions
        self._base_lines: int = 0
        self._appended_lines: int = 0
        self._lock_held = False

        if create_dir:
            self.slate_dir.mkdir(parents=True, exist_ok=True)
        elif not self.slate_dir.exists():
            msg = (
                f"Directory '{self.slate_dir}' does not exist. "
                f"Run 'slate init' first to initialize the tracker."
            )
            raise StorageUnavailable(msg)

        self._lock_path = self.slate_dir / LOCK_FILENAME
        self._needs_compaction = False  # Set when corrupt last line is skipped

        if self.path.exists():
            self._load()

    def _load(self) -> None:
        """Load state from the JSONL file into memory.

        Replays the append-only log: later project/issue records override
        earlier ones (last-write-wins by ID).  Issue and dependency records
        may carry an ``"op"`` field (``"add"`` or ``"remove"``); the default
        is ``"add"``.  Audit records are skipped here and read by
        ``slate.audit.AuditLog``.

        A malformed **last** line is tolerated (logged and skipped) because it
        is the most common result of a crash or disk-full during ``_append()``.
        Any other malformed line raises ``CorruptStorage``.
        """
        projects: dict[str, Project] = {}
        issues: dict[str, Issue] = {}
        dep_map: dict[tuple[str, str], Dependency] = {}
        line_count = 0
        audit_lines = 0

        try:
            with self.path.open("rb") as f:
                lines = f.readlines()
        except OSError as e:
            msg = f"Failed to read storage file: {e}"
            raise StorageUnavailable(msg) from e

        # Strip trailing empty lines so we can identify the true last line
        while lines and not lines[-1].strip():
            lines.pop()

        for line_idx, raw_line in enumerate(lines):
            line = raw_line.strip()
            if not line:
                continue

            line_count += 1
            is_last_line = line_idx == len(lines) - 1

            try:
                data = orjson.loads(line)
                rtype = classify_record(data)
                op = data.get("op", "add")
                if rtype == "dependency":
                    key = (data["blocker_id"], data["blocked_id"])
                    if op == "remove":
                        dep_map.pop(key, None)
                    else:
                        dep_map[key] = dict_to_dependency(data)
                elif rtype == "project":
                    project = dict_to_project(data)
                    projects[project.id] = project
                elif rtype == "issue":
                    if op == "remove":
                        issues.pop(data["id"], None)
                    else:
                        issue = dict_to_issue(data)
                        issues[issue.id] = issue
                else:
                    audit_lines += 1
            except (orjson.JSONDecodeError, ValueError, KeyError, TypeError) as e:
                if is_last_line:
                    logger.warning(
                        "Skipping malformed last line in %s: %s",
                        self.path,
                        e,
                    )
                    self._needs_compaction = True
                else:
                    msg = f"Invalid JSONL record at line {line_idx + 1}: {e}"
                    raise CorruptStorage(msg) from e

        self._projects = projects
        self._issues = issues
        self._dependencies = dep_map
        # Audit lines are never compacted away, so only state lines count
        live = len(projects) + len(issues) + len(dep_map)
        self._base_lines = live
        self._appended_lines = max(line_count - audit_lines - live, 0)
        self._rebuild_indexes()

    def _rebuild_indexes(self) -> None:
        """Rebuild adjacency and number indexes from the source maps."""
        self._deps_by_blocker = {}
        self._deps_by_blocked = {}
        for dep in self._dependencies.values():
            self._deps_by_blocker.setdefault(dep.blocker_id, []).append(dep)
            self._deps_by_blocked.setdefault(dep.blocked_id, []).append(dep)

        self._issues_by_number = {
            (issue.project_id, issue.number): issue.id
            for issue in self._issues.values()
        }

    @contextmanager
    def _file_lock(self) -> Iterator[None]:
        """Acquire an advisory file lock for exclusive writes.

        Re-entrant within one storage instance: nested calls made while
        ``write_lock()`` is held do not try to lock again.
        """
        if self._lock_held:
            yield
            return

        try:
            lock_fd = self._lock_path.open("w")
        except OSError as e:
            msg = f"Failed to open lock file: {e}"
            raise StorageUnavailable(msg) from e
        try:
            fcntl.flock(lock_fd, fcntl.LOCK_EX)
            self._lock_held = True
            yield
        finally:
            self._lock_held = False
            fcntl.flock(lock_fd, fcntl.LOCK_UN)
            lock_fd.close()

    @contextmanager
    def write_lock(self) -> Iterator[JSONLStorage]:
        """Hold the exclusive lock and reload state from disk.

        Validation performed inside the block sees every record committed by
        other processes, and nothing else can commit until the block exits,
        so check-then-act sequences run as one serialized unit.
        """
        with self._file_lock():
            if self.path.exists():
                self._load()
            yield self

    def _save(self, *, _reload: bool = True) -> None:
        """Compact: rewrite the entire file with only current state.

        Eliminates superseded records and removed issues/dependencies, keeps
        every audit record, and resets the append counter.

        Args:
            _reload: If True (default), reload from disk under the lock
                before writing so that records appended by other processes
                since our last ``_load()`` are not discarded.  Pass False
                when in-memory state is the authoritative source of truth.
        """
        with self._file_lock():
            if _reload and self.path.exists():
                self._load()
            with tempfile.NamedTemporaryFile(
                mode="wb",
                dir=self.slate_dir,
                delete=False,
                suffix=".jsonl",
            ) as tmp_file:
                tmp_path = Path(tmp_file.name)

                try:
                    records: list[dict[str, Any]] = []
                    records.extend(project_to_dict(p) for p in self._projects.values())
                    records.extend(issue_to_dict(i) for i in self._issues.values())
                    records.extend(
                        dependency_to_dict(d) for d in self._dependencies.values()
                    )
                    for data in records:
                        tmp_file.write(orjson.dumps(data))
                        tmp_file.write(b"\n")

                    # Preserve audit records from the current file
                    if self.path.exists():
                        with self.path.open("rb") as src:
                            for raw_line in src:
                                raw_line = raw_line.strip()
                                if not raw_line:
                                    continue
                                try:
                                    data = orjson.loads(raw_line)
                                except (orjson.JSONDecodeError, ValueError):
                                    continue  # Skip malformed lines
                                if data.get("record_type") == "audit":
                                    tmp_file.write(raw_line)
                                    tmp_file.write(b"\n")

                    tmp_file.flush()
                    os.fsync(tmp_file.fileno())
                except Exception as e:
                    tmp_path.unlink(missing_ok=True)
                    msg = f"Failed to write to temporary file: {e}"
                    raise StorageUnavailable(msg) from e

            try:
                tmp_path.replace(self.path)
            except OSError as e:
                tmp_path.unlink(missing_ok=True)
                msg = f"Failed to write storage file: {e}"
                raise StorageUnavailable(msg) from e

            self._base_lines = len(records)
            self._appended_lines = 0

    def _append(self, records: list[dict[str, Any]]) -> None:
        """Append records to the JSONL file without rewriting it.

        Builds the payload in memory first and writes it in a single call
        so that a partial write (e.g. disk full) never leaves a truncated
        JSON line in the file, and so that an edge and its audit record are
        committed together.

        Callers change in-memory state before appending. If the write fails,
        that state is discarded and reloaded from disk before the error
        propagates.

        Args:
            records: List of dicts to serialize and append as JSONL lines.

        Raises:
            StorageUnavailable: If the records could not be written
        """
        try:
            self._write_records(records)
        except StorageUnavailable:
            self._rollback()
            raise

        self._appended_lines += sum(
            1 for r in records if r.get("record_type") != "audit"
        )
        self._maybe_compact()

    def _rollback(self) -> None:
        """Discard unsaved in-memory changes and reload state from disk."""
        logger.warning("Discarding unsaved changes to %s", self.path)
        self._projects = {}
        self._issues = {}
        self._dependencies = {}
        self._rebuild_indexes()
        self._needs_compaction = False
        self.reload()

    def _write_records(self, records: list[dict[str, Any]]) -> None:
        # If the file had a corrupt last line, rewrite it cleanly first.
        # Use _reload=False because callers may have already changed
        # in-memory state that isn't on disk yet.
        if self._needs_compaction:
            self._save(_reload=False)
            self._needs_compaction = False

        payload = b"".join(orjson.dumps(r) + b"\n" for r in records)

        with self._file_lock():
            try:
                if self.path.exists() and self.path.stat().st_size > 0:
                    with self.path.open("rb") as check:
                        check.seek(-1, 2)
                        if check.read(1) != b"\n":
                            payload = b"\n" + payload

                with self.path.open("ab") as f:
                    f.write(payload)
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                msg = f"Failed to append to storage file: {e}"
                raise StorageUnavailable(msg) from e

    def _maybe_compact(self) -> None:
        """Compact the file if appended lines exceed the threshold."""
        if (
            self._base_lines >= self._COMPACTION_MIN_BASE
            and self._appended_lines > self._base_lines * self._COMPACTION_RATIO
        ):
            logger.debug(
                "Compacting %s (%d base, %d appended lines)",
                self.path,
                self._base_lines,
                self._appended_lines,
            )
            self._save()

    def compact(self) -> None:
        """Force a compaction of the storage file."""
        self._save()

    def reload(self) -> None:
        """Reload state from disk, discarding in-memory state."""
        if self.path.exists():
            self._load()

    # -- Projects ----------------------------------------------------------

    def create_project(
        self,
        name: str,
        slug: str,
        description: str | None = None,
    ) -> Project:
        """Create a new project.

        Raises:
            ValueError: If the slug is invalid or already taken
        """
        slug = slug.strip().lower()
        if not SLUG_PATTERN.match(slug):
            msg = (
                f"Invalid slug '{slug}'. Use lowercase letters, digits and "
                "hyphens, starting with a letter or digit."
            )
            raise ValueError(msg)
        if not name.strip():
            msg = "Project must have a non-empty name"
            raise ValueError(msg)

        with self.write_lock():
            if self.get_project_by_slug(slug) is not None:
                msg = f"Project with slug '{slug}' already exists"
                raise ValueError(msg)
            project = Project(
                id=new_id(),
                name=name.strip(),
                slug=slug,
                description=description,
            )
            self._projects[project.id] = project
            self._append([project_to_dict(project)])
        return project

    def get_project(self, project_id: str) -> Project | None:
        """Get a project by ID."""
        return self._projects.get(project_id)

    def get_project_by_slug(self, slug: str) -> Project | None:
        """Get a project by its slug (case-insensitive)."""
        slug = slug.lower()
        for project in self._projects.values():
            if project.slug == slug:
                return project
        return None

    def list_projects(self) -> list[Project]:
        """List all projects ordered by slug."""
        return sorted(self._projects.values(), key=lambda p: p.slug)

    # -- Issues ------------------------------------------------------------

    def create_issue(
        self,
        project_id: str,
        title: str,
        *,
        description: str | None = None,
        status: Any = None,
        priority: Any = None,
        created_by: str | None = None,
    ) -> Issue:
        """Create a new issue with the next number in its project.

        Raises:
            ValueError: If the project doesn't exist or the issue is invalid
        """
        if not title or not title.strip():
            msg = "Issue must have a non-empty title"
            raise ValueError(msg)

        with self.write_lock():
            project = self._projects.get(project_id)
            if project is None:
                msg = f"Project {project_id} not found"
                raise ValueError(msg)

            project.last_number += 1
            issue = Issue(
                id=new_id(),
                project_id=project.id,
                number=project.last_number,
                title=title.strip(),
                description=description,
                created_by=created_by,
            )
            if status is not None:
                issue.status = validate_status(status)
            if priority is not None:
                issue.priority = validate_priority(priority)

            self._issues[issue.id] = issue
            self._issues_by_number[(project.id, issue.number)] = issue.id
            self._append([project_to_dict(project), issue_to_dict(issue)])
        return issue

    def get(self, issue_id: str) -> Issue | None:
        """Get an issue by its exact ID."""
        return self._issues.get(issue_id)

    def get_by_number(self, project_id: str, number: int) -> Issue | None:
        """Get an issue by project and number."""
        issue_id = self._issues_by_number.get((project_id, number))
        return self._issues.get(issue_id) if issue_id else None

    def resolve_ref(self, ref: str) -> str | None:
        """Resolve an issue reference to an issue ID.

        Supports:
        - Exact ID: "3f1c...-..." -> itself
        - Project reference: "web-12" -> ID of issue 12 in project "web"

        Returns:
            The issue ID, or None if not found
        """
        if ref in self._issues:
            return ref

        match = ISSUE_REF_PATTERN.match(ref.strip().lower())
        if match is None:
            return None
        project = self.get_project_by_slug(match.group("slug"))
        if project is None:
            return None
        issue = self.get_by_number(project.id, int(match.group("number")))
        return issue.id if issue else None

    def project_slug(self, project_id: str) -> str:
        """Get the slug of a project, or "?" for an unknown project."""
        project = self._projects.get(project_id)
        return project.slug if project else "?"

    def issue_ref(self, issue: Issue) -> str:
        """Format the human-readable reference of an issue, e.g. ``web-12``."""
        return f"{self.project_slug(issue.project_id)}-{issue.number}"

    def list(self, filters: dict[str, Any] | None = None) -> list[Issue]:
        """List all issues ordered by project and number, optionally filtered.

        Args:
            filters: Optional filters (project_id, status, priority)

        Returns:
            List of matching issues
        """
        issues = sorted(
            self._issues.values(),
            key=lambda i: (self.project_slug(i.project_id), i.number),
        )

        if not filters:
            return issues

        if filters.get("project_id"):
            project_id = filters["project_id"]
            issues = [i for i in issues if i.project_id == project_id]

        if filters.get("status"):
            status = validate_status(filters["status"])
            issues = [i for i in issues if i.status == status]

        if filters.get("priority"):
            priority = validate_priority(filters["priority"])
            issues = [i for i in issues if i.priority == priority]

        return issues

    def update(self, issue_id: str, updates: dict[str, Any]) -> Issue:
        """Update an issue.

        Args:
            issue_id: The exact ID of the issue to update
            updates: Dictionary of fields to update

        Returns:
            The updated issue

        Raises:
            ValueError: If the issue doesn't exist or a field is not updatable
        """
        disallowed = set(updates) - self.UPDATABLE_FIELDS
        if disallowed:
            msg = f"Cannot update fields: {', '.join(sorted(disallowed))}"
            raise ValueError(msg)

        with self.write_lock():
            issue = self._issues.get(issue_id)
            if issue is None:
                msg = f"Issue {issue_id} not found"
                raise ValueError(msg)

            for key, value in updates.items():
                if key == "status":
                    value = validate_status(value)
                elif key == "priority":
                    value = validate_priority(value)
                elif key == "title" and not (value and str(value).strip()):
                    msg = "Issue must have a non-empty title"
                    raise ValueError(msg)
                setattr(issue, key, value)

            issue.updated_at = datetime.now().astimezone()
            self._append([issue_to_dict(issue)])
        return issue

    def delete(self, issue_id: str) -> list[Dependency]:
        """Delete an issue and every dependency edge touching it.

        Args:
            issue_id: The exact ID of the issue to delete

        Returns:
            The dependency edges removed by the cascade

        Raises:
            ValueError: If the issue doesn't exist
        """
        with self.write_lock():
            issue = self._issues.get(issue_id)
            if issue is None:
                msg = f"Issue {issue_id} not found"
                raise ValueError(msg)

            removed = [
                *self._deps_by_blocker.get(issue_id, []),
                *self._deps_by_blocked.get(issue_id, []),
            ]
            for dep in removed:
                self._dependencies.pop(dep.key, None)
            del self._issues[issue_id]
            self._rebuild_indexes()

            records: list[dict[str, Any]] = [
                {"record_type": "issue", "id": issue_id, "op": "remove"},
            ]
            records.extend(dependency_to_dict(d, op="remove") for d in removed)
            self._append(records)

        if removed:
            logger.info(
                "Deleted issue %s and %d dependency edge(s)",
                issue_id,
                len(removed),
            )
        return removed

    # -- Dependencies ------------------------------------------------------

    def has_dependency(self, blocker_id: str, blocked_id: str) -> bool:
        """Check whether the exact directed edge exists."""
        return (blocker_id, blocked_id) in self._dependencies

    def get_blockers(self, issue_id: str) -> list[Dependency]:
        """Get the edges pointing into an issue (its blockers)."""
        return list(self._deps_by_blocked.get(issue_id, []))

    def get_blocked(self, issue_id: str) -> list[Dependency]:
        """Get the edges leaving an issue (the issues it blocks)."""
        return list(self._deps_by_blocker.get(issue_id, []))

    def all_dependencies(self) -> list[Dependency]:
        """Get every dependency edge."""
        return list(self._dependencies.values())

    def insert_dependency(
        self,
        dep: Dependency,
        audit: AuditRecord | None = None,
    ) -> Dependency:
        """Persist a new edge, together with its audit record if given.

        Self-edges and duplicates are rejected here as well, so the store
        never holds them regardless of the caller.

        Raises:
            ValueError: If the edge is a self-edge or already exists
        """
        with self._file_lock():
            if dep.blocker_id == dep.blocked_id:
                msg = f"Refusing to store self-dependency on {dep.blocker_id}"
                raise ValueError(msg)
            if dep.key in self._dependencies:
                msg = f"Dependency {dep.blocker_id} -> {dep.blocked_id} already exists"
                raise ValueError(msg)

            self._dependencies[dep.key] = dep
            self._deps_by_blocker.setdefault(dep.blocker_id, []).append(dep)
            self._deps_by_blocked.setdefault(dep.blocked_id, []).append(dep)

            records = [dependency_to_dict(dep)]
            if audit is not None:
                records.append(audit_to_dict(audit))
            self._append(records)
        return dep

    def delete_dependency(
        self,
        blocker_id: str,
        blocked_id: str,
        audit: AuditRecord | None = None,
    ) -> Dependency | None:
        """Remove an edge if present, together with its audit record if given.

        Returns:
            The removed edge, or None if it did not exist (nothing is written)
        """
        with self._file_lock():
            dep = self._dependencies.pop((blocker_id, blocked_id), None)
            if dep is None:
                return None
            self._rebuild_indexes()

            records = [dependency_to_dict(dep, op="remove")]
            if audit is not None:
                records.append(audit_to_dict(audit))
            self._append(records)
        return dep

    def find_dangling_dependencies(self) -> list[Dependency]:
        """Find edges whose blocker or blocked issue no longer exists."""
        return [
            dep
            for dep in self._dependencies.values()
            if dep.blocker_id not in self._issues or dep.blocked_id not in self._issues
        ]

    def remove_dependencies(self, deps_to_remove: list[Dependency]) -> None:
        """Remove specific dependency edges in one append."""
        with self.write_lock():
            removed = [
                dep
                for dep in deps_to_remove
                if self._dependencies.pop(dep.key, None) is not None
            ]
            self._rebuild_indexes()
            if removed:
                self._append([dependency_to_dict(d, op="remove") for d in removed])
