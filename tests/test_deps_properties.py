"""Randomized invariants of the dependency graph.

Each test replays a seeded sequence of add/remove requests against a small
board and checks the stored graph after every step.
"""

import random

import pytest
from board_helpers import make_board

from slate.deps import add_dependency, detect_cycles, remove_dependency
from slate.errors import CircularDependency, DuplicateEdge, SelfDependency
from slate.storage import JSONLStorage

SEEDS = list(range(12))


def _reachable(edges: set[tuple[str, str]], start: str, goal: str) -> bool:
    stack = [start]
    seen = {start}
    while stack:
        node = stack.pop()
        if node == goal:
            return True
        for blocker, blocked in edges:
            if blocker == node and blocked not in seen:
                seen.add(blocked)
                stack.append(blocked)
    return False


@pytest.mark.parametrize("seed", SEEDS)
def test_random_requests_keep_graph_acyclic(storage: JSONLStorage, seed: int) -> None:
    """No sequence of requests can store a cycle, self-edge or duplicate."""
    rng = random.Random(seed)
    board = make_board(storage, count=6)
    ids = board.ids()
    model: set[tuple[str, str]] = set()

    for _ in range(40):
        source, target = rng.choice(ids), rng.choice(ids)
        direction = rng.choice(["blocks", "blocked_by"])
        blocker, blocked = (
            (source, target) if direction == "blocks" else (target, source)
        )

        if rng.random() < 0.75:
            if source == target:
                expected: type[Exception] | None = SelfDependency
            elif (blocker, blocked) in model:
                expected = DuplicateEdge
            elif _reachable(model, blocked, blocker):
                expected = CircularDependency
            else:
                expected = None

            if expected is None:
                add_dependency(storage, source, target, direction)
                model.add((blocker, blocked))
            else:
                with pytest.raises(expected):
                    add_dependency(storage, source, target, direction)
        else:
            change = remove_dependency(storage, source, target, direction)
            assert change.changed == ((blocker, blocked) in model)
            model.discard((blocker, blocked))

        stored = {d.key for d in board.fresh().all_dependencies()}
        assert stored == model

    assert detect_cycles(board.fresh()) == []
    assert all(blocker != blocked for blocker, blocked in model)


@pytest.mark.parametrize("seed", SEEDS[:4])
def test_add_then_remove_restores_graph(storage: JSONLStorage, seed: int) -> None:
    """Adding then removing the same edge leaves the graph as it was."""
    rng = random.Random(seed)
    board = make_board(storage, count=5)
    ids = board.ids()
    rng.shuffle(ids)
    # A chain in shuffled order is always acyclic
    for blocker, blocked in zip(ids, ids[1:3]):
        add_dependency(storage, blocker, blocked, "blocks")
    before = {d.key for d in board.fresh().all_dependencies()}

    add_dependency(storage, ids[3], ids[4], "blocks")
    remove_dependency(storage, ids[4], ids[3], "blocked_by")

    assert {d.key for d in board.fresh().all_dependencies()} == before


def test_three_issue_scenario(storage: JSONLStorage) -> None:
    """A blocks B, B blocks C; C blocks A fails; removing B->C allows it."""
    board = make_board(storage, count=3)
    a, b, c = board.ids()

    add_dependency(storage, a, b, "blocks")
    add_dependency(storage, c, b, "blocked_by")
    with pytest.raises(CircularDependency):
        add_dependency(storage, c, a, "blocks")

    remove_dependency(storage, b, c, "blocks")
    add_dependency(storage, c, a, "blocks")

    assert {d.key for d in board.fresh().all_dependencies()} == {(a, b), (c, a)}
