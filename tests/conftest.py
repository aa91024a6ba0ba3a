"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest
from board_helpers import Board, make_board

from slate.storage import JSONLStorage


@pytest.fixture
def temp_slate_dir(tmp_path: Path) -> Path:
    """Create a temporary .slate directory for testing."""
    slate_path = tmp_path / ".slate"
    slate_path.mkdir()
    return slate_path


@pytest.fixture
def temp_workspace(tmp_path: Path) -> Path:
    """Create a temporary workspace directory for testing."""
    return tmp_path


@pytest.fixture
def storage(temp_slate_dir: Path) -> JSONLStorage:
    """Create a storage instance with temporary directory."""
    return JSONLStorage(str(temp_slate_dir / "issues.jsonl"), create_dir=True)


@pytest.fixture
def board(storage: JSONLStorage) -> Board:
    """Storage with project ``web`` holding issues web-1, web-2 and web-3."""
    return make_board(storage)
