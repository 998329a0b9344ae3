import os
import sys

import pytest
import taichi as ti


def _ensure_root_on_path():
    repo_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if repo_root not in sys.path:
        sys.path.insert(0, repo_root)


_ensure_root_on_path()

# One runtime for the whole session: fields from an earlier ti.init() are
# invalid after another one.
ti.init(arch=ti.cpu, random_seed=0)

from points import PointStore  # noqa: E402


@pytest.fixture(scope="session")
def arena():
    return PointStore(capacity=64)


@pytest.fixture
def store(arena):
    arena.clear()
    return arena
