"""Normalized conversation model shared by all executors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar


@dataclass(slots=True, frozen=True)
class CommandRun:
    """Shell command executed by the agent."""

    action: ClassVar[str] = "command_run"

    command: str

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action, "command": self.command}


# Codex output only yields command runs so far.
ActionType = CommandRun


@dataclass(slots=True, frozen=True)
class SystemMessage:
    """Lifecycle, status or diagnostic text."""

    type: ClassVar[str] = "system_message"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(slots=True, frozen=True)
class Thinking:
    """Agent reasoning text."""

    type: ClassVar[str] = "thinking"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(slots=True, frozen=True)
class AssistantMessage:
    """Final message addressed to the end user."""

    type: ClassVar[str] = "assistant_message"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(slots=True, frozen=True)
class ToolUse:
    """Tool invocation made by the agent."""

    type: ClassVar[str] = "tool_use"

    tool_name: str
    action_type: ActionType

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "tool_name": self.tool_name,
            "action_type": self.action_type.to_dict(),
        }


NormalizedEntryType = SystemMessage | Thinking | ToolUse | AssistantMessage


@dataclass(slots=True, frozen=True)
class NormalizedEntry:
    """One unit of a normalized conversation.

    ``metadata`` keeps the raw structured record the entry was built from so
    consumers can reach fields the normalized shape does not carry. It is
    ``None`` for entries that came from unstructured text.
    """

    entry_type: NormalizedEntryType
    content: str
    metadata: Any = None
    timestamp: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "entry_type": self.entry_type.to_dict(),
            "content": self.content,
            "metadata": self.metadata,
        }


@dataclass(slots=True, frozen=True)
class NormalizedConversation:
    """Executor-agnostic view of one agent run."""

    entries: tuple[NormalizedEntry, ...]
    executor_type: str
    session_id: str | None = None
    prompt: str | None = None
    summary: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-ready mapping."""

        return {
            "entries": [entry.to_dict() for entry in self.entries],
            "session_id": self.session_id,
            "executor_type": self.executor_type,
            "prompt": self.prompt,
            "summary": self.summary,
        }
