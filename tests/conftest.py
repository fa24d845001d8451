# tests/conftest.py

from pathlib import Path

import pytest

from taskboard import TaskManager


@pytest.fixture()
def manager() -> TaskManager:
    return TaskManager()


@pytest.fixture()
def tasks_file(tmp_path: Path) -> Path:
    """Path for a tasks file that does not exist yet"""
    return tmp_path / "tasks.csv"
