"""Prompt construction for agent task runs."""

from __future__ import annotations

from codex_bridge.tasks.models import TaskView


def build_task_prompt(task: TaskView) -> str:
    """Render the stdin prompt for a new task run."""

    prompt = f"project_id: {task.project_id}\n\nTask title: {task.title}"
    if task.description is not None:
        prompt += f"\nTask description: {task.description}"
    return prompt
