"""Shared test fixtures."""

from __future__ import annotations

import shlex
import sys
from pathlib import Path

import pytest

from codex_bridge.tasks import TaskCreate, TaskRepository
from codex_bridge.tasks.models import TaskView

ECHO_AGENT_COMMAND = f"{shlex.quote(sys.executable)} -m codex_bridge.executor.echo_agent"


@pytest.fixture()
def task_repository(tmp_path: Path):
    """Initialized task repository in a temporary SQLite file."""

    repository = TaskRepository(tmp_path / "tasks.db")
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()


@pytest.fixture()
def seeded_task(task_repository: TaskRepository) -> TaskView:
    return task_repository.create_task(
        TaskCreate(
            project_id="proj-1",
            title="List the repository",
            description="Show the top-level files.",
        ),
    )


@pytest.fixture()
def worktree(tmp_path: Path) -> Path:
    path = tmp_path / "worktree"
    path.mkdir()
    return path


@pytest.fixture()
def echo_agent_command() -> str:
    """Agent command line that runs the local echo agent instead of Codex."""

    return ECHO_AGENT_COMMAND
