"""Domain models for stored tasks."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Protocol


@dataclass(slots=True)
class TaskCreate:
    """Input payload for creating a task."""

    project_id: str
    title: str
    description: str | None = None
    task_id: str | None = None


@dataclass(slots=True)
class TaskView:
    """Readable task record consumed by executors."""

    task_id: str
    project_id: str
    title: str
    description: str | None
    created_at: datetime


class TaskStore(Protocol):
    """Lookup contract executors depend on."""

    def find_by_id(self, task_id: str) -> TaskView | None:
        """Return the task or ``None`` when the id is unknown."""
