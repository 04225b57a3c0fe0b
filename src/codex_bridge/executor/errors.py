"""Executor error taxonomy and spawn diagnostics."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from codex_bridge.executor.command_runner import CommandRunner


class ExecutorError(RuntimeError):
    """Base class for executor failures surfaced to the caller."""


class TaskNotFound(ExecutorError):
    """Task id did not resolve in the task store."""

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


class TaskLookupError(ExecutorError):
    """Task store failed while resolving a task."""


@dataclass(slots=True)
class SpawnContext:
    """Diagnostic context attached to a failed agent launch."""

    executor_type: str
    command: str
    args: list[str] = field(default_factory=list)
    working_dir: Path | None = None
    task_id: str | None = None
    task_title: str | None = None
    additional_context: str | None = None

    @classmethod
    def from_command(cls, runner: CommandRunner, executor_type: str) -> SpawnContext:
        return cls(
            executor_type=executor_type,
            command=runner.program or "",
            args=list(runner.args),
            working_dir=runner.cwd,
        )

    def with_task(self, task_id: str, task_title: str | None = None) -> SpawnContext:
        self.task_id = task_id
        self.task_title = task_title
        return self

    def with_context(self, context: str) -> SpawnContext:
        self.additional_context = context
        return self

    def spawn_error(self, error: BaseException) -> SpawnError:
        return SpawnError(self, error)

    def describe(self) -> str:
        """Multi-line description used in error messages."""

        lines = [f"Failed to spawn {self.executor_type} process"]
        if self.task_id is not None:
            if self.task_title:
                lines.append(f"  Task: {self.task_id} ({self.task_title})")
            else:
                lines.append(f"  Task: {self.task_id}")
        lines.append(f"  Command: {' '.join([self.command, *self.args]).strip()}")
        if self.working_dir is not None:
            lines.append(f"  Working directory: {self.working_dir}")
        if self.additional_context:
            lines.append(f"  Context: {self.additional_context}")
        return "\n".join(lines)


class SpawnError(ExecutorError):
    """Agent process could not be created."""

    def __init__(self, context: SpawnContext, cause: BaseException) -> None:
        super().__init__(f"{context.describe()}\n  Error: {cause}")
        self.context = context
        self.cause = cause
