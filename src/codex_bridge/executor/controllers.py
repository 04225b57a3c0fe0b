"""Controllers for executor CLI commands."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from pathlib import Path

from codex_bridge.config import Settings
from codex_bridge.executor.base import Executor
from codex_bridge.executor.codex import CodexExecutor
from codex_bridge.executor.command_runner import CommandOutput, CommandProcess
from codex_bridge.executor.models import NormalizedConversation, ToolUse
from codex_bridge.executor.prompts import build_task_prompt
from codex_bridge.executor.rollout import extract_session_id, find_rollout_file_path
from codex_bridge.tasks import TaskCreate, TaskRepository
from codex_bridge.tasks.models import TaskView

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskAddCommand:
    """CLI input for task creation."""

    db_path: Path | None
    project_id: str
    title: str
    description: str | None


@dataclass(slots=True)
class TaskShowCommand:
    """CLI input for task inspection."""

    db_path: Path | None
    task_id: str


@dataclass(slots=True)
class TaskListCommand:
    """CLI input for task listing."""

    db_path: Path | None
    project_id: str | None
    limit: int


@dataclass(slots=True)
class AgentRunCommand:
    """CLI input for a new agent run."""

    db_path: Path | None
    task_id: str
    worktree: Path
    as_json: bool


@dataclass(slots=True)
class AgentFollowupCommand:
    """CLI input for a followup agent run."""

    db_path: Path | None
    task_id: str
    session_id: str
    prompt: str
    worktree: Path
    as_json: bool


@dataclass(slots=True)
class NormalizeCommand:
    """CLI input for offline log normalization."""

    log_file: Path
    as_json: bool


@dataclass(slots=True)
class RolloutCommand:
    """CLI input for rollout file lookup."""

    session_id: str | None
    log_file: Path | None


@dataclass(slots=True)
class AgentRunResult:
    """Rendered agent run outcome."""

    lines: list[str]
    exit_code: int
    timed_out: bool

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


class ExecutorCliController:
    """Coordinates task store, agent launch and normalization CLI operations."""

    def add_task(self, command: TaskAddCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            task = repository.create_task(
                TaskCreate(
                    project_id=command.project_id,
                    title=command.title,
                    description=command.description,
                ),
            )
        return [f"Task created: task_id={task.task_id} project_id={task.project_id}"]

    def show_task(self, command: TaskShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            task = repository.find_by_id(command.task_id)
        if task is None:
            return [f"Task not found: {command.task_id}"]
        return _render_task_lines(task)

    def list_tasks(self, command: TaskListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _repository(settings) as repository:
            tasks = repository.list_tasks(project_id=command.project_id, limit=command.limit)

        lines = [f"Tasks: {len(tasks)}"]
        for task in tasks:
            lines.append(
                f"  {task.task_id} project_id={task.project_id} "
                f"created_at={task.created_at.isoformat()} title={task.title}",
            )
        return lines

    def run(self, command: AgentRunCommand) -> AgentRunResult:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        executor = _executor(settings)
        with _repository(settings) as repository:
            output = asyncio.run(
                _spawn_and_collect(
                    executor.spawn(repository, command.task_id, command.worktree),
                    timeout_seconds=settings.agent.timeout_seconds,
                ),
            )
            task = repository.find_by_id(command.task_id)

        conversation = executor.normalize_logs(output.stdout, command.worktree)
        if task is not None:
            conversation = replace(conversation, prompt=build_task_prompt(task))
        return _render_result(conversation, output, as_json=command.as_json)

    def followup(self, command: AgentFollowupCommand) -> AgentRunResult:
        settings = Settings.from_env(db_path=command.db_path)
        settings.validate()
        executor = _executor(settings)
        with _repository(settings) as repository:
            output = asyncio.run(
                _spawn_and_collect(
                    executor.spawn_followup(
                        repository,
                        command.task_id,
                        command.session_id,
                        command.prompt,
                        command.worktree,
                    ),
                    timeout_seconds=settings.agent.timeout_seconds,
                ),
            )

        conversation = executor.normalize_logs(output.stdout, command.worktree)
        conversation = replace(conversation, prompt=command.prompt)
        return _render_result(conversation, output, as_json=command.as_json)

    def normalize(self, command: NormalizeCommand) -> list[str]:
        logs = command.log_file.read_text("utf-8")
        conversation = CodexExecutor().normalize_logs(logs, command.log_file.parent)
        if command.as_json:
            return [_to_json(conversation)]
        return render_conversation_lines(
            conversation,
            fallback_session_id=extract_session_id(logs),
        )

    def rollout(self, command: RolloutCommand) -> list[str]:
        settings = Settings.from_env()
        session_id = command.session_id
        if session_id is None and command.log_file is not None:
            logs = command.log_file.read_text("utf-8")
            session_id = (
                CodexExecutor().normalize_logs(logs, command.log_file.parent).session_id
                or extract_session_id(logs)
            )
        if session_id is None:
            raise ValueError("No session id given and none found in the log file.")
        path = find_rollout_file_path(session_id, settings.agent.codex_home)
        return [str(path)]


def render_conversation_lines(
    conversation: NormalizedConversation,
    *,
    fallback_session_id: str | None = None,
) -> list[str]:
    """Render a conversation as one line per entry."""

    session_id = conversation.session_id or fallback_session_id
    lines = [f"Executor: {conversation.executor_type} session_id={session_id or '-'}"]
    for entry in conversation.entries:
        entry_type = entry.entry_type
        label = entry_type.type
        if isinstance(entry_type, ToolUse):
            label = f"{label}:{entry_type.tool_name}"
        lines.append(f"[{label}] {entry.content}")
    return lines


async def _spawn_and_collect(
    spawn: Awaitable[CommandProcess],
    *,
    timeout_seconds: int,
) -> CommandOutput:
    process = await spawn
    output = await process.collect(timeout_seconds=timeout_seconds)
    if output.timed_out:
        logger.warning("Agent pid=%s timed out after %ss", process.pid, timeout_seconds)
    return output


def _render_result(
    conversation: NormalizedConversation,
    output: CommandOutput,
    *,
    as_json: bool,
) -> AgentRunResult:
    fallback_session_id = extract_session_id(output.stdout) or extract_session_id(output.stderr)
    if as_json:
        lines = [_to_json(conversation)]
    else:
        lines = render_conversation_lines(conversation, fallback_session_id=fallback_session_id)
        lines.append(f"Agent exit_code={output.exit_code} timed_out={output.timed_out}")
    return AgentRunResult(lines=lines, exit_code=output.exit_code, timed_out=output.timed_out)


def _render_task_lines(task: TaskView) -> list[str]:
    lines = [
        f"Task: {task.task_id}",
        f"Project: {task.project_id}",
        f"Title: {task.title}",
    ]
    if task.description is not None:
        lines.append(f"Description: {task.description}")
    lines.append(f"Created at: {task.created_at.isoformat()}")
    return lines


def _to_json(conversation: NormalizedConversation) -> str:
    return json.dumps(conversation.to_dict(), ensure_ascii=False, indent=2)


def _executor(settings: Settings) -> Executor:
    return CodexExecutor(command=settings.agent.command, log_level=settings.agent.log_level)


@contextmanager
def _repository(settings: Settings) -> Iterator[TaskRepository]:
    repository = TaskRepository(settings.db_path)
    repository.init_schema()
    try:
        yield repository
    finally:
        repository.close()
