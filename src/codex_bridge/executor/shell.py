"""Host shell resolution for running agent command lines."""

from __future__ import annotations

import os


def get_shell_command(os_name: str | None = None) -> tuple[str, str]:
    """Return ``(shell, flag)`` that runs an arbitrary command string."""

    current_os_name = os_name or os.name
    if current_os_name == "nt":
        return "cmd", "/C"
    return "sh", "-c"
