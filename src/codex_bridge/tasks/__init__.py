"""Task store used to resolve task fields for agent runs."""

from codex_bridge.tasks.models import TaskCreate, TaskStore, TaskView
from codex_bridge.tasks.repository import TaskRepository

__all__ = [
    "TaskCreate",
    "TaskRepository",
    "TaskStore",
    "TaskView",
]
