from __future__ import annotations

import asyncio
from pathlib import Path

import allure
import pytest
from sqlalchemy.exc import OperationalError

from codex_bridge.executor.codex import CodexExecutor, DEFAULT_CODEX_COMMAND
from codex_bridge.executor.command_runner import CommandLaunchError
from codex_bridge.executor.errors import SpawnError, TaskLookupError, TaskNotFound
from codex_bridge.executor.models import AssistantMessage, ToolUse
from codex_bridge.executor.prompts import build_task_prompt
from codex_bridge.tasks import TaskRepository
from codex_bridge.tasks.models import TaskView

pytestmark = [
    allure.epic("Agent Launch"),
    allure.feature("Codex Executor"),
]


async def _spawn_and_collect(executor: CodexExecutor, *args):
    process = await executor.spawn(*args)
    return await process.collect(timeout_seconds=60)


def test_default_command_and_executor_type() -> None:
    executor = CodexExecutor()

    assert executor.executor_type == "Codex"
    assert executor.command == DEFAULT_CODEX_COMMAND
    assert "--skip-git-repo-check" in executor.command
    assert executor.log_level == "info"


def test_spawn_runs_agent_with_prompt_env_and_worktree(
    task_repository: TaskRepository,
    seeded_task: TaskView,
    worktree: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command)

    output = asyncio.run(
        _spawn_and_collect(executor, task_repository, seeded_task.task_id, worktree),
    )

    assert output.exit_code == 0
    conversation = executor.normalize_logs(output.stdout, worktree)
    assert conversation.session_id is not None
    contents = [entry.content for entry in conversation.entries]
    assert contents[2:5] == [
        "Task started",
        "Reading prompt: project_id: proj-1",
        "`bash -lc pwd`",
    ]
    assert contents[-2] == build_task_prompt(seeded_task)
    assert contents[-1] == "Task completed"
    assert isinstance(conversation.entries[-2].entry_type, AssistantMessage)

    tool_entry = conversation.entries[4]
    assert isinstance(tool_entry.entry_type, ToolUse)
    assert tool_entry.entry_type.tool_name == "bash"
    assert Path(tool_entry.metadata["msg"]["cwd"]).resolve() == worktree.resolve()
    assert tool_entry.metadata["msg"]["env"] == {"NODE_NO_WARNINGS": "1", "RUST_LOG": "info"}


def test_spawn_uses_configured_log_level(
    task_repository: TaskRepository,
    seeded_task: TaskView,
    worktree: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command, log_level="debug")

    output = asyncio.run(
        _spawn_and_collect(executor, task_repository, seeded_task.task_id, worktree),
    )

    tool_entry = executor.normalize_logs(output.stdout, worktree).entries[4]
    assert tool_entry.metadata["msg"]["env"]["RUST_LOG"] == "debug"


def test_spawn_unknown_task_raises_task_not_found(
    task_repository: TaskRepository,
    worktree: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command)

    with pytest.raises(TaskNotFound) as error_info:
        asyncio.run(executor.spawn(task_repository, "missing-task", worktree))

    assert error_info.value.task_id == "missing-task"


def test_spawn_wraps_task_store_failures(worktree: Path) -> None:
    class BrokenStore:
        def find_by_id(self, task_id: str) -> TaskView | None:
            raise OperationalError("SELECT", {}, Exception("database is locked"))

    with pytest.raises(TaskLookupError, match="Failed to load task t-1"):
        asyncio.run(CodexExecutor().spawn(BrokenStore(), "t-1", worktree))


def test_spawn_failure_carries_context(
    task_repository: TaskRepository,
    seeded_task: TaskView,
    tmp_path: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command)
    missing_worktree = tmp_path / "does-not-exist"

    with pytest.raises(SpawnError) as error_info:
        asyncio.run(executor.spawn(task_repository, seeded_task.task_id, missing_worktree))

    error = error_info.value
    assert isinstance(error.__cause__, CommandLaunchError)
    assert error.cause is error.__cause__
    context = error.context
    assert context.executor_type == "Codex"
    assert context.command == "sh"
    assert context.args == ["-c", echo_agent_command]
    assert context.working_dir == missing_worktree
    assert context.task_id == seeded_task.task_id
    assert context.task_title == "List the repository"
    assert context.additional_context == "Codex CLI execution for new task"
    message = str(error)
    assert "Failed to spawn Codex process" in message
    assert f"Task: {seeded_task.task_id} (List the repository)" in message
    assert "Context: Codex CLI execution for new task" in message


def test_spawn_followup_sends_prompt_without_task_lookup(
    task_repository: TaskRepository,
    worktree: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command)

    async def _run():
        process = await executor.spawn_followup(
            task_repository,
            "task-that-does-not-exist",
            "3cdcc4df-c7c3-4cca-8902-48c3d4a0f96b",
            "Now add tests.",
            worktree,
        )
        return await process.collect(timeout_seconds=60)

    output = asyncio.run(_run())

    assert output.exit_code == 0
    assert "3cdcc4df-c7c3-4cca-8902-48c3d4a0f96b" not in output.stdout
    conversation = executor.normalize_logs(output.stdout, worktree)
    assert conversation.entries[-2].content == "Now add tests."


def test_spawn_followup_failure_mentions_session(
    task_repository: TaskRepository,
    tmp_path: Path,
    echo_agent_command: str,
) -> None:
    executor = CodexExecutor(command=echo_agent_command)

    with pytest.raises(SpawnError) as error_info:
        asyncio.run(
            executor.spawn_followup(
                task_repository,
                "t-1",
                "session-42",
                "continue",
                tmp_path / "missing",
            ),
        )

    context = error_info.value.context
    assert context.task_id is None
    assert context.additional_context == "Codex CLI followup execution for session session-42"


def test_windows_shell_is_used_when_requested(
    task_repository: TaskRepository,
    seeded_task: TaskView,
    tmp_path: Path,
) -> None:
    executor = CodexExecutor(command="codex exec", os_name="nt")

    with pytest.raises(SpawnError) as error_info:
        asyncio.run(executor.spawn(task_repository, seeded_task.task_id, tmp_path / "missing"))

    assert error_info.value.context.command == "cmd"
    assert error_info.value.context.args == ["/C", "codex exec"]


def test_spawn_raises_launch_errors_once(monkeypatch, task_repository, seeded_task, worktree):
    calls: list[str] = []

    async def _failing_start(self):
        calls.append(self.command_line())
        raise CommandLaunchError("boom")

    monkeypatch.setattr("codex_bridge.executor.command_runner.CommandRunner.start", _failing_start)

    with pytest.raises(SpawnError, match="boom"):
        asyncio.run(CodexExecutor().spawn(task_repository, seeded_task.task_id, worktree))

    assert calls == [f"sh -c {DEFAULT_CODEX_COMMAND}"]
