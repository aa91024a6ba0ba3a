"""Tests for the ready and blocked commands."""

import json
from pathlib import Path

from cli_test_helpers import _create_issue, _dep, _init_with_project, runner

from slate.cli import app


def _setup(tmp_path: Path) -> Path:
    slate_dir = tmp_path / ".slate"
    _init_with_project(slate_dir)
    _create_issue(slate_dir, "Design")
    _create_issue(slate_dir, "Build", priority="critical")
    _create_issue(slate_dir, "Ship")
    _dep(slate_dir, "web-1", "add", "-t", "web-2")
    _dep(slate_dir, "web-2", "add", "-t", "web-3")
    return slate_dir


class TestReady:
    """Test the ready command."""

    def test_ready_excludes_blocked(self, tmp_path: Path) -> None:
        """Only unblocked work is ready."""
        slate_dir = _setup(tmp_path)
        result = runner.invoke(app, ["ready", "--json", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert [i["ref"] for i in json.loads(result.stdout)] == ["web-1"]

    def test_ready_after_blocker_done(self, tmp_path: Path) -> None:
        """Finishing a blocker releases the next issue."""
        slate_dir = _setup(tmp_path)
        runner.invoke(app, ["status", "web-1", "done", "--slate-dir", str(slate_dir)])
        result = runner.invoke(app, ["ready", "--json", "--slate-dir", str(slate_dir)])
        assert [i["ref"] for i in json.loads(result.stdout)] == ["web-2"]

    def test_ready_table(self, tmp_path: Path) -> None:
        """Human output is a table of issues."""
        slate_dir = _setup(tmp_path)
        result = runner.invoke(app, ["ready", "--slate-dir", str(slate_dir)])
        assert "Design" in result.stdout

    def test_ready_unknown_project(self, tmp_path: Path) -> None:
        """An unknown --project fails."""
        slate_dir = _setup(tmp_path)
        result = runner.invoke(
            app,
            ["ready", "--project", "api", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 1


class TestBlocked:
    """Test the blocked command."""

    def test_blocked_json(self, tmp_path: Path) -> None:
        """Blocked issues list their open blockers."""
        slate_dir = _setup(tmp_path)
        result = runner.invoke(
            app,
            ["blocked", "--json", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert len(data) == 2
        assert all(b["reason"] == "Blocked by 1 issue(s)" for b in data)

    def test_blocked_table(self, tmp_path: Path) -> None:
        """Human output names the blockers."""
        slate_dir = _setup(tmp_path)
        result = runner.invoke(app, ["blocked", "--slate-dir", str(slate_dir)])
        assert "Blocked By" in result.stdout
        assert "Ship" in result.stdout

    def test_nothing_blocked(self, tmp_path: Path) -> None:
        """Without edges nothing is blocked."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "Alone")
        result = runner.invoke(app, ["blocked", "--slate-dir", str(slate_dir)])
        assert "No blocked issues" in result.stdout
