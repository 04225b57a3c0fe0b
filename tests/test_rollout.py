from __future__ import annotations

from pathlib import Path

import allure
import pytest

from codex_bridge.executor.rollout import (
    RolloutFileNotFound,
    default_codex_home,
    extract_session_id,
    extract_session_id_from_line,
    find_rollout_file_path,
)

pytestmark = [
    allure.epic("Agent Output"),
    allure.feature("Session Discovery"),
]

_SESSION_ID = "3cdcc4df-c7c3-4cca-8902-48c3d4a0f96b"
_BANNER = (
    "2025-07-23T15:47:59.877058Z  INFO codex_exec: Codex initialized with event: "
    'Event { id: "0", msg: SessionConfigured(SessionConfiguredEvent { '
    f'session_id: {_SESSION_ID}, model: "codex-mini-latest", history_log_id: 9104228, '
    "history_entry_count: 1 }) }"
)


def test_extract_session_id_from_banner_line() -> None:
    assert extract_session_id_from_line(_BANNER) == _SESSION_ID


def test_extract_session_id_no_match() -> None:
    assert extract_session_id_from_line("Some random log line without session id") is None
    assert extract_session_id_from_line("session_id: not-a-uuid") is None


def test_extract_session_id_returns_first_match_across_lines() -> None:
    other = "aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee"
    logs = f"starting\n{_BANNER}\nsession_id: {other}\n"

    assert extract_session_id(logs) == _SESSION_ID
    assert extract_session_id("no ids here\n") is None


def test_find_rollout_file_path_missing_directory(tmp_path: Path) -> None:
    with pytest.raises(RolloutFileNotFound, match="Could not find rollout file"):
        find_rollout_file_path(_SESSION_ID, tmp_path / "codex-home")


def test_find_rollout_file_path_is_a_file_not_found_error(tmp_path: Path) -> None:
    (tmp_path / "sessions").mkdir()

    with pytest.raises(FileNotFoundError, match=_SESSION_ID):
        find_rollout_file_path(_SESSION_ID, tmp_path)


def test_find_rollout_file_path_picks_newest_match(tmp_path: Path) -> None:
    older = tmp_path / "sessions" / "2025" / "07" / "22"
    newer = tmp_path / "sessions" / "2025" / "07" / "23"
    older.mkdir(parents=True)
    newer.mkdir(parents=True)
    (older / f"rollout-2025-07-22T10-00-00-{_SESSION_ID}.jsonl").write_text("{}\n", "utf-8")
    expected = newer / f"rollout-2025-07-23T15-47-59-{_SESSION_ID}.jsonl"
    expected.write_text("{}\n", "utf-8")
    (newer / "rollout-2025-07-23T16-00-00-aaaaaaaa-bbbb-cccc-dddd-eeeeeeeeeeee.jsonl").write_text(
        "{}\n",
        "utf-8",
    )

    assert find_rollout_file_path(_SESSION_ID, tmp_path) == expected


def test_default_codex_home_honours_env(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("CODEX_HOME", str(tmp_path))
    assert default_codex_home() == tmp_path

    monkeypatch.delenv("CODEX_HOME")
    assert default_codex_home() == Path.home() / ".codex"


@pytest.mark.parametrize("session_id", ["*", "[", "?", "3cdcc4df-*"])
def test_find_rollout_file_path_treats_glob_characters_literally(
    tmp_path: Path,
    session_id: str,
) -> None:
    day_dir = tmp_path / "sessions" / "2025" / "07" / "23"
    day_dir.mkdir(parents=True)
    (day_dir / f"rollout-2025-07-23T15-47-59-{_SESSION_ID}.jsonl").write_text("{}\n", "utf-8")

    with pytest.raises(RolloutFileNotFound, match="Could not find rollout file"):
        find_rollout_file_path(session_id, tmp_path)


@pytest.mark.parametrize("session_id", ["", "   "])
def test_find_rollout_file_path_rejects_empty_session_id(tmp_path: Path, session_id: str) -> None:
    day_dir = tmp_path / "sessions" / "2025" / "07" / "23"
    day_dir.mkdir(parents=True)
    (day_dir / f"rollout-2025-07-23T15-47-59-{_SESSION_ID}.jsonl").write_text("{}\n", "utf-8")

    with pytest.raises(ValueError, match="Session id must not be empty"):
        find_rollout_file_path(session_id, tmp_path)
