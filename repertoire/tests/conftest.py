"""Pytest configuration."""

import os
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "integration: mark test as requiring a live database (skipped in CI by default)"
    )


# Keep api.main's module-level app off the filesystem and database
os.environ.setdefault("REPERTOIRE_STORE", "memory")
os.environ.setdefault("DATABASE_URL", "postgresql://localhost:5432/chess_repertoire?user=postgres&password=postgres")


@pytest.fixture
def sicilian_tree():
    """K0 -e4-> K1, then K1 -c5-> K2 and K1 -e5-> K3."""
    from repertoire_tree import RepertoireTree

    tree = RepertoireTree("K0")
    tree.insert_move("K0", "K1", "e4")
    tree.insert_move("K1", "K2", "c5")
    tree.insert_move("K1", "K3", "e5")
    return tree
