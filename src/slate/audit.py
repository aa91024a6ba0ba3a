"""Audit trail for dependency mutations.

Audit records are stored in ``issues.jsonl`` next to the records they
describe, so an edge and its audit record are committed by one append.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import orjson

from slate.constants import STORAGE_FILENAME
from slate.models import AuditRecord, dict_to_audit

if TYPE_CHECKING:
    from slate.models import Direction, Issue


def build_dependency_audit(
    action: str,
    *,
    source: Issue,
    target_id: str,
    target: Issue | None,
    direction: Direction,
    blocker_id: str,
    blocked_id: str,
    actor_id: str | None,
) -> AuditRecord:
    """Build the audit record for an added or removed dependency.

    The record is attributed to the source issue and its project; the
    target number is None when the target issue no longer exists.
    """
    return AuditRecord(
        action=action,
        actor_id=actor_id,
        project_id=source.project_id,
        issue_id=source.id,
        details={
            "type": direction.value,
            "target_issue_id": target_id,
            "target_issue_number": target.number if target else None,
            "blocker_id": blocker_id,
            "blocked_id": blocked_id,
        },
    )


class AuditLog:
    """Read-only view of the audit records in .slate/issues.jsonl."""

    def __init__(self, slate_dir: str | Path) -> None:
        self.slate_dir = Path(slate_dir)
        self.path = self.slate_dir / STORAGE_FILENAME

    def read(
        self,
        *,
        issue_id: str | None = None,
        project_id: str | None = None,
        limit: int | None = None,
    ) -> list[AuditRecord]:
        """Read audit records in reverse chronological order (newest first).

        Args:
            issue_id: Filter to records attributed to this issue.
            project_id: Filter to records attributed to this project.
            limit: Maximum number of records to return.

        Returns:
            List of AuditRecord, newest first.
        """
        if not self.path.exists():
            return []

        records: list[AuditRecord] = []
        with self.path.open("rb") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    data = orjson.loads(line)
                except orjson.JSONDecodeError:
                    continue
                if data.get("record_type") != "audit":
                    continue
                record = dict_to_audit(data)
                if issue_id is not None and record.issue_id != issue_id:
                    continue
                if project_id is not None and record.project_id != project_id:
                    continue
                records.append(record)

        records.reverse()

        if limit is not None:
            records = records[:limit]

        return records
