"""Executors bridging the task orchestrator and external CLI coding agents.

An executor owns two things for its agent: how a run is launched (prompt on
stdin, environment, working directory) and how the agent's captured output is
normalized into a ``NormalizedConversation``. The agent's event vocabulary is
versioned independently of this package, so normalization treats unknown
event types, malformed lines and missing fields as ordinary input.
"""

from codex_bridge.executor.codex import CodexExecutor, normalize_codex_logs
from codex_bridge.executor.errors import (
    ExecutorError,
    SpawnContext,
    SpawnError,
    TaskLookupError,
    TaskNotFound,
)
from codex_bridge.executor.models import (
    AssistantMessage,
    CommandRun,
    NormalizedConversation,
    NormalizedEntry,
    SystemMessage,
    Thinking,
    ToolUse,
)

__all__ = [
    "AssistantMessage",
    "CodexExecutor",
    "CommandRun",
    "ExecutorError",
    "NormalizedConversation",
    "NormalizedEntry",
    "SpawnContext",
    "SpawnError",
    "SystemMessage",
    "TaskLookupError",
    "TaskNotFound",
    "Thinking",
    "ToolUse",
    "normalize_codex_logs",
]
