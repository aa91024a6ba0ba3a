"""Tests for init, project and issue commands."""

import json
from pathlib import Path

from cli_test_helpers import _create_issue, _dep, _init_with_project, runner

from slate.cli import app
from slate.config import load_config


class TestInit:
    """Test the init command."""

    def test_init_creates_files(self, tmp_path: Path) -> None:
        """init creates issues.jsonl and config.toml."""
        slate_dir = tmp_path / ".slate"
        result = runner.invoke(app, ["init", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert (slate_dir / "issues.jsonl").exists()
        assert "web" in load_config(slate_dir)

    def test_init_default_actor(self, tmp_path: Path) -> None:
        """--default-actor is stored in the config."""
        slate_dir = tmp_path / ".slate"
        runner.invoke(
            app,
            ["init", "--default-actor", "bot", "--slate-dir", str(slate_dir)],
        )
        assert load_config(slate_dir)["default_actor"] == "bot"

    def test_init_is_idempotent(self, tmp_path: Path) -> None:
        """Re-running init keeps existing data."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "Keep me")
        runner.invoke(app, ["init", "--slate-dir", str(slate_dir)])
        result = runner.invoke(app, ["list", "--slate-dir", str(slate_dir)])
        assert "Keep me" in result.stdout


class TestProject:
    """Test project commands."""

    def test_create_and_list(self, tmp_path: Path) -> None:
        """Created projects are listed."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir, "web")
        result = runner.invoke(app, ["project", "list", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert "web" in result.stdout
        assert "(0 issues)" in result.stdout

    def test_duplicate_slug(self, tmp_path: Path) -> None:
        """Duplicate slugs fail."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir, "web")
        result = runner.invoke(
            app,
            [
                "project", "create", "Again", "--slug", "web",
                "--slate-dir", str(slate_dir),
            ],
        )
        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_list_empty(self, tmp_path: Path) -> None:
        """No projects is reported."""
        slate_dir = tmp_path / ".slate"
        runner.invoke(app, ["init", "--slate-dir", str(slate_dir)])
        result = runner.invoke(app, ["project", "list", "--slate-dir", str(slate_dir)])
        assert "No projects" in result.stdout


class TestIssueCommands:
    """Test create, list, show, status and delete."""

    def test_create(self, tmp_path: Path) -> None:
        """Issues are numbered per project."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        result = runner.invoke(
            app,
            ["create", "First", "--project", "web", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 0, result.output
        assert "Created web-1: First" in result.stdout

    def test_create_json(self, tmp_path: Path) -> None:
        """JSON output includes the reference."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        result = runner.invoke(
            app,
            [
                "create", "First", "-p", "web", "--priority", "high",
                "--by", "alice", "--json", "--slate-dir", str(slate_dir),
            ],
        )
        data = json.loads(result.stdout)
        assert data["ref"] == "web-1"
        assert data["priority"] == "high"
        assert data["created_by"] == "alice"

    def test_create_unknown_project(self, tmp_path: Path) -> None:
        """Creating in an unknown project fails."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        result = runner.invoke(
            app,
            ["create", "First", "-p", "api", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 1
        assert "Project 'api' not found" in result.output

    def test_list(self, tmp_path: Path) -> None:
        """Issues are listed with their references."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        _create_issue(slate_dir, "Second")
        result = runner.invoke(app, ["list", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert "web-1" in result.stdout
        assert "Second" in result.stdout

    def test_list_shows_blockers(self, tmp_path: Path) -> None:
        """Blocked issues show what blocks them."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        _create_issue(slate_dir, "Second")
        _dep(slate_dir, "web-1", "add", "-t", "web-2")
        result = runner.invoke(app, ["list", "--json", "--slate-dir", str(slate_dir)])
        data = json.loads(result.stdout)
        assert [i["ref"] for i in data] == ["web-1", "web-2"]

    def test_list_empty(self, tmp_path: Path) -> None:
        """No issues is reported."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        result = runner.invoke(app, ["list", "--slate-dir", str(slate_dir)])
        assert "No issues found" in result.stdout

    def test_show_with_dependencies(self, tmp_path: Path) -> None:
        """show lists blockers and blocked issues."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        _create_issue(slate_dir, "Second")
        _dep(slate_dir, "web-1", "add", "-t", "web-2")
        result = runner.invoke(app, ["show", "web-2", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert "Blocked by:" in result.stdout
        assert "web-1" in result.stdout

    def test_show_json(self, tmp_path: Path) -> None:
        """show --json merges the issue with its listing."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        result = runner.invoke(
            app,
            ["show", "web-1", "--json", "--slate-dir", str(slate_dir)],
        )
        data = json.loads(result.stdout)
        assert data["title"] == "First"
        assert data["blockedBy"] == []
        assert data["blocking"] == []

    def test_show_unknown(self, tmp_path: Path) -> None:
        """Unknown references fail."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        result = runner.invoke(app, ["show", "web-5", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 1
        assert "Issue web-5 not found" in result.output

    def test_status(self, tmp_path: Path) -> None:
        """status changes the issue status."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        result = runner.invoke(
            app,
            ["status", "web-1", "done", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 0, result.output
        assert "web-1 is now done" in result.stdout

    def test_status_invalid(self, tmp_path: Path) -> None:
        """Unknown statuses fail."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        result = runner.invoke(
            app,
            ["status", "web-1", "closed", "--slate-dir", str(slate_dir)],
        )
        assert result.exit_code == 1
        assert "Invalid status" in result.output

    def test_delete_cascades(self, tmp_path: Path) -> None:
        """Deleting an issue removes its edges."""
        slate_dir = tmp_path / ".slate"
        _init_with_project(slate_dir)
        _create_issue(slate_dir, "First")
        _create_issue(slate_dir, "Second")
        _dep(slate_dir, "web-1", "add", "-t", "web-2")
        result = runner.invoke(app, ["delete", "web-1", "--slate-dir", str(slate_dir)])
        assert result.exit_code == 0, result.output
        assert "Deleted web-1" in result.stdout
        assert "Removed 1 dependency edge(s)" in result.stdout

        result = _dep(slate_dir, "web-2", "list")
        assert "No dependencies" in result.stdout


class TestGlobalOptions:
    """Test app-level behavior."""

    def test_no_args_shows_help(self) -> None:
        """Running without a command prints help."""
        result = runner.invoke(app, [])
        assert "Usage" in result.output

    def test_commands_sorted(self) -> None:
        """Help lists commands alphabetically."""
        result = runner.invoke(app, ["--help"])
        out = result.output
        assert out.index("blocked") < out.index("create") < out.index("ready")
