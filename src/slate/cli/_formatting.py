"""Display and formatting functions for slate CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import typer

from slate.constants import PRIORITY_COLORS

if TYPE_CHECKING:
    from slate.models import AuditRecord, Issue
    from slate.storage import JSONLStorage


def format_issue_brief(storage: JSONLStorage, issue: Issue) -> str:
    """Format issue as one line: status symbol, reference, priority and title."""
    priority = issue.priority.value
    priority_str = typer.style(
        f"[{priority}]",
        fg=PRIORITY_COLORS.get(priority, "white"),
        bold=True,
    )
    ref = storage.issue_ref(issue)
    return f"{issue.get_status_symbol()} {ref} {priority_str} {issue.title}"


def format_issue_table(
    storage: JSONLStorage,
    issues: list[Issue],
    blocked_by_map: dict[str, list[str]] | None = None,
) -> str:
    """Format issues as an aligned table with columns using Rich.

    Args:
        storage: Storage used to resolve issue references
        issues: List of issues to format
        blocked_by_map: Mapping of issue ID to the references blocking it

    Returns:
        Formatted table string (rendered by Rich)
    """
    from io import StringIO

    from rich import box
    from rich.console import Console
    from rich.markup import escape
    from rich.table import Table

    if not issues:
        return ""

    has_blocked = bool(blocked_by_map) and any(
        issue.id in blocked_by_map for issue in issues  # type: ignore[operator]
    )

    table = Table(
        show_header=True,
        header_style="bold",
        box=box.ROUNDED,
        pad_edge=False,
        show_edge=False,
    )
    table.add_column("", width=2, no_wrap=True)
    table.add_column("Ref", no_wrap=True)
    table.add_column("Status", no_wrap=True)
    table.add_column("Pri", no_wrap=True)
    table.add_column("Title", overflow="fold")
    if has_blocked:
        table.add_column("Blocked By", no_wrap=False)

    for issue in issues:
        priority = issue.priority.value
        row = [
            issue.get_status_symbol(),
            storage.issue_ref(issue),
            issue.status.value,
            f"[{PRIORITY_COLORS.get(priority, 'white')}]{priority}[/]",
            escape(issue.title),
        ]
        if has_blocked:
            blockers = ", ".join((blocked_by_map or {}).get(issue.id, []))
            row.append(f"[red]{blockers}[/]" if blockers else "")
        table.add_row(*row)

    string_io = StringIO()
    console = Console(file=string_io, force_terminal=True, width=None)
    console.print(table)

    return string_io.getvalue().rstrip()


def issue_to_json(storage: JSONLStorage, issue: Issue) -> dict[str, Any]:
    """Serialize an issue for CLI JSON output."""
    return {
        "id": issue.id,
        "ref": storage.issue_ref(issue),
        "project": storage.project_slug(issue.project_id),
        "number": issue.number,
        "title": issue.title,
        "description": issue.description,
        "status": issue.status.value,
        "priority": issue.priority.value,
        "created_by": issue.created_by,
        "created_at": issue.created_at.isoformat(),
        "updated_at": issue.updated_at.isoformat(),
    }


def format_audit(record: AuditRecord, storage: JSONLStorage) -> str:
    """Format an audit record as one timeline line."""
    timestamp = record.created_at.strftime("%Y-%m-%d %H:%M")
    issue = storage.get(record.issue_id) if record.issue_id else None
    subject = storage.issue_ref(issue) if issue else (record.issue_id or "-")
    details = record.details
    if record.action in ("dependency_added", "dependency_removed"):
        target = details.get("target_issue_number")
        target_str = f"#{target}" if target is not None else details.get(
            "target_issue_id", "?"
        )
        verb = "+" if record.action == "dependency_added" else "-"
        summary = f"{verb} {details.get('type', '?')} {target_str}"
    else:
        summary = record.action
    actor = record.actor_id or "unknown"
    return f"{timestamp}  {subject}  {summary}  (by {actor})"
