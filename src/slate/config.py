"""Configuration file handling for Slate."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

from slate.constants import CONFIG_FILENAME, DEFAULT_WEB_HOST, DEFAULT_WEB_PORT


def get_config_path(slate_dir: str | Path) -> Path:
    """Get the path to the config file.

    Args:
        slate_dir: Path to .slate directory

    Returns:
        Path to config.toml
    """
    return Path(slate_dir) / CONFIG_FILENAME


def load_config(slate_dir: str | Path) -> dict[str, Any]:
    """Load configuration from .slate/config.toml.

    Args:
        slate_dir: Path to .slate directory

    Returns:
        Configuration dictionary, or empty dict if no config exists
    """
    config_path = get_config_path(slate_dir)
    if not config_path.exists():
        return {}

    try:
        with config_path.open("rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError):
        return {}


def save_config(slate_dir: str | Path, config: dict[str, Any]) -> None:
    """Save configuration to .slate/config.toml.

    Args:
        slate_dir: Path to .slate directory
        config: Configuration dictionary to save
    """
    config_path = get_config_path(slate_dir)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with config_path.open("wb") as f:
        tomli_w.dump(config, f)


def get_default_actor(slate_dir: str | Path) -> str | None:
    """Get the actor used when a request does not name one."""
    actor = load_config(slate_dir).get("default_actor")
    return str(actor) if actor else None


def get_web_settings(slate_dir: str | Path) -> tuple[str, int]:
    """Get the (host, port) the HTTP API binds to.

    Reads the ``[web]`` table, falling back to the built-in defaults.
    """
    web = load_config(slate_dir).get("web", {})
    host = web.get("host", DEFAULT_WEB_HOST)
    port = int(web.get("port", DEFAULT_WEB_PORT))
    return host, port
