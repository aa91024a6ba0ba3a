"""Tests for the audit log reader."""

from pathlib import Path

from board_helpers import Board

from slate.audit import AuditLog, build_dependency_audit
from slate.deps import add_dependency, remove_dependency
from slate.models import Direction


class TestBuildDependencyAudit:
    """Test audit record construction."""

    def test_target_number_none_when_target_missing(self, board: Board) -> None:
        """A deleted target leaves its number out."""
        source = board.issues[0]
        record = build_dependency_audit(
            "dependency_removed",
            source=source,
            target_id="ghost",
            target=None,
            direction=Direction.BLOCKS,
            blocker_id=source.id,
            blocked_id="ghost",
            actor_id="alice",
        )
        assert record.details["target_issue_number"] is None
        assert record.issue_id == source.id
        assert record.project_id == source.project_id


class TestAuditLog:
    """Test reading audit records."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """No storage file means no history."""
        assert AuditLog(tmp_path).read() == []

    def test_newest_first(self, board: Board) -> None:
        """Records come back in reverse write order."""
        a, b, c = board.ids()
        add_dependency(board.storage, a, b, "blocks", actor_id="first")
        add_dependency(board.storage, b, c, "blocks", actor_id="second")
        records = AuditLog(board.storage.slate_dir).read()
        assert [r.actor_id for r in records] == ["second", "first"]

    def test_filter_by_issue(self, board: Board) -> None:
        """Records are attributed to the source issue."""
        a, b, c = board.ids()
        add_dependency(board.storage, a, b, "blocks")
        add_dependency(board.storage, c, b, "blocks")
        records = AuditLog(board.storage.slate_dir).read(issue_id=c)
        assert len(records) == 1
        assert records[0].details["target_issue_id"] == b

    def test_filter_by_project_and_limit(self, board: Board) -> None:
        """Project filter and limit combine."""
        a, b, _ = board.ids()
        add_dependency(board.storage, a, b, "blocks")
        remove_dependency(board.storage, a, b, "blocks")
        log = AuditLog(board.storage.slate_dir)
        assert len(log.read(project_id=board.project.id)) == 2
        assert len(log.read(project_id=board.project.id, limit=1)) == 1
        assert log.read(project_id="other") == []

    def test_survives_compaction(self, board: Board) -> None:
        """Compaction keeps the audit trail."""
        a, b, _ = board.ids()
        add_dependency(board.storage, a, b, "blocks")
        remove_dependency(board.storage, a, b, "blocks")
        board.storage.compact()
        assert len(AuditLog(board.storage.slate_dir).read()) == 2
