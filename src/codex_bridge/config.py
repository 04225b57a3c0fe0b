"""Runtime configuration for agent launching and task storage."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from codex_bridge.executor.codex import DEFAULT_AGENT_LOG_LEVEL, DEFAULT_CODEX_COMMAND
from codex_bridge.executor.rollout import default_codex_home


@dataclass(slots=True)
class AgentSettings:
    """Codex CLI invocation settings."""

    command: str = DEFAULT_CODEX_COMMAND
    log_level: str = DEFAULT_AGENT_LOG_LEVEL
    timeout_seconds: int = 1_800
    codex_home: Path = field(default_factory=default_codex_home)


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    db_path: Path = Path(".codex_bridge.db")
    agent: AgentSettings = field(default_factory=AgentSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with defaults for local development."""

        return cls(
            db_path=db_path or Path(os.getenv("CODEX_BRIDGE_DB_PATH", ".codex_bridge.db")),
            agent=AgentSettings(
                command=os.getenv("CODEX_BRIDGE_AGENT_COMMAND", DEFAULT_CODEX_COMMAND),
                log_level=os.getenv("CODEX_BRIDGE_AGENT_LOG_LEVEL", DEFAULT_AGENT_LOG_LEVEL),
                timeout_seconds=_env_int("CODEX_BRIDGE_RUN_TIMEOUT_SECONDS", 1_800),
                codex_home=default_codex_home(),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for unusable agent settings."""

        if not self.agent.command.strip():
            raise ValueError("CODEX_BRIDGE_AGENT_COMMAND must not be empty.")
        if not self.agent.log_level.strip():
            raise ValueError("CODEX_BRIDGE_AGENT_LOG_LEVEL must not be empty.")
        if self.agent.timeout_seconds <= 0:
            raise ValueError("CODEX_BRIDGE_RUN_TIMEOUT_SECONDS must be > 0.")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ValueError(f"Invalid integer value for {name}: {value!r}") from error
