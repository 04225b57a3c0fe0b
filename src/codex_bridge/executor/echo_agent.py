"""Local stand-in for the Codex CLI used by integration tests and demos.

Reads the prompt from stdin and prints a Codex-style startup banner followed
by JSON-lines events describing a fake run.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from uuid import NAMESPACE_URL, uuid5


def main(argv: list[str] | None = None) -> int:
    """Emit a deterministic Codex transcript for the prompt on stdin."""

    parser = argparse.ArgumentParser()
    parser.add_argument("--session-id", default=None)
    parser.add_argument("--exit-code", type=int, default=0)
    args = parser.parse_args(argv)

    prompt = sys.stdin.read()
    session_id = args.session_id or str(uuid5(NAMESPACE_URL, prompt))
    first_line = next((line for line in prompt.splitlines() if line.strip()), "")

    print(
        "echo_agent INFO codex_exec: Codex initialized with event: Event { id: \"0\", "
        f"msg: SessionConfigured(SessionConfiguredEvent {{ session_id: {session_id}, "
        'model: "echo" }) }',
    )
    events: list[dict[str, object]] = [
        {"session_id": session_id, "model": "echo"},
        {"id": "1", "msg": {"type": "task_started"}},
        {"id": "1", "msg": {"type": "agent_reasoning", "text": f"Reading prompt: {first_line}"}},
        {
            "id": "1",
            "msg": {
                "type": "exec_command_begin",
                "call_id": "call_echo",
                "command": ["bash", "-lc", "pwd"],
                "cwd": os.getcwd(),
                "env": {
                    "NODE_NO_WARNINGS": os.getenv("NODE_NO_WARNINGS"),
                    "RUST_LOG": os.getenv("RUST_LOG"),
                },
            },
        },
        {
            "id": "1",
            "msg": {
                "type": "exec_command_end",
                "call_id": "call_echo",
                "stdout": f"{os.getcwd()}\n",
                "stderr": "",
                "exit_code": 0,
            },
        },
        {"id": "1", "msg": {"type": "token_count", "input_tokens": 1, "output_tokens": 1}},
        {"id": "1", "msg": {"type": "task_complete", "last_agent_message": prompt.strip()}},
    ]
    for event in events:
        print(json.dumps(event, ensure_ascii=False))
    return args.exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
