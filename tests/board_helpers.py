"""Shared storage helpers for engine and storage tests."""

from __future__ import annotations

from dataclasses import dataclass

from slate.models import Issue, Project
from slate.storage import JSONLStorage


@dataclass
class Board:
    """A storage with one project and a handful of issues."""

    storage: JSONLStorage
    project: Project
    issues: list[Issue]

    def fresh(self) -> JSONLStorage:
        """Open a second storage instance on the same file."""
        return JSONLStorage(str(self.storage.path))

    def ids(self) -> list[str]:
        """IDs of the board's issues, in creation order."""
        return [i.id for i in self.issues]


def make_board(storage: JSONLStorage, count: int = 3, slug: str = "web") -> Board:
    """Create a project with ``count`` issues titled "Issue 1".."Issue N"."""
    project = storage.create_project(slug.capitalize(), slug)
    issues = [
        storage.create_issue(project.id, f"Issue {n}", created_by="tester")
        for n in range(1, count + 1)
    ]
    return Board(storage=storage, project=project, issues=issues)
