"""Session id discovery and rollout transcript lookup for Codex runs."""

from __future__ import annotations

import os
import re
from pathlib import Path

_SESSION_ID_PATTERN = re.compile(
    r"session_id:\s*"
    r"([0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12})",
)


class RolloutFileNotFound(FileNotFoundError):
    """No persisted rollout transcript exists for a session."""


def extract_session_id_from_line(line: str) -> str | None:
    """Find a session id in a free-form startup banner line.

    Codex prints its session configuration before switching to JSON output,
    for example ``... SessionConfiguredEvent { session_id: 3cdc..., model: ...``.
    """

    match = _SESSION_ID_PATTERN.search(line)
    if match is None:
        return None
    return match.group(1)


def extract_session_id(logs: str) -> str | None:
    """Return the first session id found in any line of ``logs``."""

    for line in logs.splitlines():
        session_id = extract_session_id_from_line(line)
        if session_id is not None:
            return session_id
    return None


def default_codex_home() -> Path:
    configured = os.getenv("CODEX_HOME", "").strip()
    if configured:
        return Path(configured).expanduser()
    return Path.home() / ".codex"


def find_rollout_file_path(session_id: str, codex_home: Path | None = None) -> Path:
    """Resolve the rollout file Codex wrote for ``session_id``.

    Rollouts live under ``<codex_home>/sessions/YYYY/MM/DD/`` and are named
    ``rollout-<timestamp>-<session_id>.jsonl``. When several files match, the
    lexicographically last (newest timestamp) wins.
    """

    if not session_id.strip():
        raise ValueError("Session id must not be empty.")

    sessions_dir = (codex_home or default_codex_home()) / "sessions"
    candidates: list[Path] = []
    if sessions_dir.is_dir():
        # Matched as a literal substring, never as part of a glob pattern.
        candidates = sorted(
            path
            for path in sessions_dir.rglob("rollout-*.jsonl")
            if session_id in path.name and path.is_file()
        )
    if not candidates:
        raise RolloutFileNotFound(
            f"Could not find rollout file for session {session_id} under {sessions_dir}",
        )
    return candidates[-1]
