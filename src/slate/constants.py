"""Constants for Slate."""

from __future__ import annotations

import re

# Default location of the tracker directory and its files
DEFAULT_SLATE_DIR = ".slate"
STORAGE_FILENAME = "issues.jsonl"
LOCK_FILENAME = ".issues.lock"
CONFIG_FILENAME = "config.toml"

# Project slugs: lowercase alphanumerics and hyphens, no leading hyphen
SLUG_PATTERN = re.compile(r"^[a-z0-9][a-z0-9-]*$")

# Issue references of the form "<slug>-<number>", e.g. "web-12"
ISSUE_REF_PATTERN = re.compile(r"^(?P<slug>[a-z0-9][a-z0-9-]*?)-(?P<number>\d+)$")

# Audit actions for dependency mutations
ACTION_DEPENDENCY_ADDED = "dependency_added"
ACTION_DEPENDENCY_REMOVED = "dependency_removed"

# Header carrying the acting user on HTTP requests
ACTOR_HEADER = "X-Slate-Actor"

DEFAULT_WEB_HOST = "127.0.0.1"
DEFAULT_WEB_PORT = 48043

# Sort order for priorities (lower is more urgent)
PRIORITY_ORDER = {
    "critical": 0,
    "high": 1,
    "medium": 2,
    "low": 3,
}

PRIORITY_COLORS = {
    "critical": "red",
    "high": "yellow",
    "medium": "white",
    "low": "bright_black",
}

STATUS_SYMBOLS = {
    "backlog": "○",
    "ready": "●",
    "in_progress": "◐",
    "blocked": "■",
    "done": "✓",
}
