"""Executor interface for CLI coding agents."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from codex_bridge.executor.command_runner import CommandProcess
from codex_bridge.executor.models import NormalizedConversation
from codex_bridge.tasks.models import TaskStore


class Executor(Protocol):
    """Protocol implemented by agent executors."""

    executor_type: str

    async def spawn(
        self,
        task_store: TaskStore,
        task_id: str,
        worktree_path: str | Path,
    ) -> CommandProcess:
        """Start the agent for a new task run."""

    async def spawn_followup(  # noqa: PLR0913
        self,
        task_store: TaskStore,
        task_id: str,
        session_id: str,
        prompt: str,
        worktree_path: str | Path,
    ) -> CommandProcess:
        """Start the agent to continue an existing session."""

    def normalize_logs(self, logs: str, worktree_path: str | Path) -> NormalizedConversation:
        """Convert captured agent output into a normalized conversation."""
