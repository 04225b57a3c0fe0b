"""Codex CLI executor: process launch and JSON-lines log normalization."""

from __future__ import annotations

import json
import logging
import math
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from codex_bridge.executor.command_runner import (
    CommandLaunchError,
    CommandProcess,
    CommandRunner,
)
from codex_bridge.executor.errors import SpawnContext, TaskLookupError, TaskNotFound
from codex_bridge.executor.models import (
    AssistantMessage,
    CommandRun,
    NormalizedConversation,
    NormalizedEntry,
    SystemMessage,
    Thinking,
    ToolUse,
)
from codex_bridge.executor.prompts import build_task_prompt
from codex_bridge.executor.shell import get_shell_command
from codex_bridge.tasks.models import TaskStore

logger = logging.getLogger(__name__)

CODEX_EXECUTOR_TYPE = "Codex"
DEFAULT_CODEX_COMMAND = (
    "npx @openai/codex exec --dangerously-bypass-approvals-and-sandbox --skip-git-repo-check"
)
DEFAULT_AGENT_LOG_LEVEL = "info"

# Message types dropped on purpose: command output duplicates the begin entry
# and token accounting is noise in a conversation view.
_SUPPRESSED_MESSAGE_TYPES = frozenset({"exec_command_end", "token_count"})


class CodexExecutor:
    """Launch Codex CLI runs and normalize their output."""

    def __init__(
        self,
        *,
        command: str = DEFAULT_CODEX_COMMAND,
        log_level: str = DEFAULT_AGENT_LOG_LEVEL,
        os_name: str | None = None,
    ) -> None:
        self.executor_type = CODEX_EXECUTOR_TYPE
        self.command = command
        self.log_level = log_level
        self.os_name = os_name

    async def spawn(
        self,
        task_store: TaskStore,
        task_id: str,
        worktree_path: str | Path,
    ) -> CommandProcess:
        try:
            task = task_store.find_by_id(task_id)
        except SQLAlchemyError as error:
            raise TaskLookupError(f"Failed to load task {task_id}: {error}") from error
        if task is None:
            raise TaskNotFound(task_id)

        runner = self._build_runner(prompt=build_task_prompt(task), worktree_path=worktree_path)
        logger.info(
            "Starting %s for task %s in %s",
            self.executor_type,
            task_id,
            worktree_path,
        )
        try:
            return await runner.start()
        except CommandLaunchError as error:
            logger.warning("%s launch failed for task %s: %s", self.executor_type, task_id, error)
            raise (
                SpawnContext.from_command(runner, self.executor_type)
                .with_task(task_id, task.title)
                .with_context(f"{self.executor_type} CLI execution for new task")
                .spawn_error(error)
            ) from error

    async def spawn_followup(  # noqa: PLR0913
        self,
        task_store: TaskStore,  # noqa: ARG002
        task_id: str,  # noqa: ARG002
        session_id: str,
        prompt: str,
        worktree_path: str | Path,
    ) -> CommandProcess:
        # The session id is not passed to the agent yet, so every followup
        # starts a fresh Codex session with the new prompt.
        runner = self._build_runner(prompt=prompt, worktree_path=worktree_path)
        logger.info(
            "Starting %s followup for session %s in %s",
            self.executor_type,
            session_id,
            worktree_path,
        )
        try:
            return await runner.start()
        except CommandLaunchError as error:
            logger.warning(
                "%s followup launch failed for session %s: %s",
                self.executor_type,
                session_id,
                error,
            )
            raise (
                SpawnContext.from_command(runner, self.executor_type)
                .with_context(
                    f"{self.executor_type} CLI followup execution for session {session_id}",
                )
                .spawn_error(error)
            ) from error

    def normalize_logs(
        self,
        logs: str,
        worktree_path: str | Path,  # noqa: ARG002
    ) -> NormalizedConversation:
        return normalize_codex_logs(logs, executor_type=self.executor_type)

    def _build_runner(self, *, prompt: str, worktree_path: str | Path) -> CommandRunner:
        shell_cmd, shell_arg = get_shell_command(self.os_name)
        runner = CommandRunner()
        (
            runner.command(shell_cmd)
            .arg(shell_arg)
            .arg(self.command)
            .stdin(prompt)
            .working_dir(worktree_path)
            .env("NODE_NO_WARNINGS", "1")
            .env("RUST_LOG", self.log_level)
        )
        return runner


def normalize_codex_logs(
    logs: str,
    *,
    executor_type: str = CODEX_EXECUTOR_TYPE,
) -> NormalizedConversation:
    """Normalize Codex ``exec --json`` style output into a conversation.

    Every non-empty line is handled on its own: lines that are not JSON become
    ``Raw output`` system messages, so a noisy or truncated stream still
    yields a usable conversation. The first top-level ``session_id`` wins.
    """

    entries: list[NormalizedEntry] = []
    session_id: str | None = None

    for line in logs.split("\n"):
        trimmed = line.strip()
        if not trimmed:
            continue

        try:
            record = json.loads(
                trimmed,
                parse_constant=_reject_constant,
                parse_float=_parse_finite_float,
            )
        except (ValueError, RecursionError):
            entries.append(
                NormalizedEntry(entry_type=SystemMessage(), content=f"Raw output: {trimmed}"),
            )
            continue

        if session_id is None:
            session_id = _string_field(record, "session_id")

        if not isinstance(record, dict) or "msg" not in record:
            entries.append(
                NormalizedEntry(
                    entry_type=SystemMessage(),
                    content=f"Unrecognized JSON: {trimmed}",
                    metadata=record,
                ),
            )
            continue

        entries.extend(_normalize_message(record))

    return NormalizedConversation(
        entries=tuple(entries),
        executor_type=executor_type,
        session_id=session_id,
    )


def _normalize_message(record: dict[str, Any]) -> list[NormalizedEntry]:  # noqa: PLR0911
    msg = record["msg"]
    msg_type = _string_field(msg, "type")
    if msg_type is None:
        logger.debug("Skipping Codex message without a string type")
        return []

    if msg_type == "task_started":
        return [
            NormalizedEntry(entry_type=SystemMessage(), content="Task started", metadata=record),
        ]

    if msg_type == "agent_reasoning":
        text = _string_field(msg, "text")
        if text is None:
            return []
        return [NormalizedEntry(entry_type=Thinking(), content=text, metadata=record)]

    if msg_type == "exec_command_begin":
        command_parts = msg.get("command")
        if not isinstance(command_parts, list):
            return []
        command = " ".join(part for part in command_parts if isinstance(part, str))
        tool_name = "bash" if command_parts and command_parts[0] == "bash" else "shell"
        return [
            NormalizedEntry(
                entry_type=ToolUse(tool_name=tool_name, action_type=CommandRun(command=command)),
                content=f"`{command}`",
                metadata=record,
            ),
        ]

    if msg_type in _SUPPRESSED_MESSAGE_TYPES:
        return []

    if msg_type == "task_complete":
        entries: list[NormalizedEntry] = []
        last_message = _string_field(msg, "last_agent_message")
        if last_message is not None:
            entries.append(
                NormalizedEntry(
                    entry_type=AssistantMessage(),
                    content=last_message,
                    metadata=record,
                ),
            )
        entries.append(
            NormalizedEntry(entry_type=SystemMessage(), content="Task completed", metadata=record),
        )
        return entries

    logger.debug("Unknown Codex message type: %s", msg_type)
    return [
        NormalizedEntry(
            entry_type=SystemMessage(),
            content=f"Unknown message type: {msg_type}",
            metadata=record,
        ),
    ]


def _reject_constant(name: str) -> Any:
    # NaN and Infinity are accepted by json.loads but are not valid JSON.
    raise ValueError(f"Non-standard JSON constant: {name}")


def _parse_finite_float(text: str) -> float:
    value = float(text)
    if not math.isfinite(value):
        raise ValueError(f"JSON number out of range: {text}")
    return value


def _string_field(value: object, name: str) -> str | None:
    if not isinstance(value, dict):
        return None
    field_value = value.get(name)
    if isinstance(field_value, str):
        return field_value
    return None
