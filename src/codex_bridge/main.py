"""CLI entrypoint for codex-bridge."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import rich_click as click

from codex_bridge import __version__
from codex_bridge.executor.controllers import (
    AgentFollowupCommand,
    AgentRunCommand,
    AgentRunResult,
    ExecutorCliController,
    NormalizeCommand,
    RolloutCommand,
    TaskAddCommand,
    TaskListCommand,
    TaskShowCommand,
)
from codex_bridge.executor.errors import ExecutorError

click.rich_click.USE_MARKDOWN = True
EXECUTOR_CONTROLLER = ExecutorCliController()


@click.group()
@click.version_option(version=__version__, prog_name="codex-bridge")
@click.option("--verbose", is_flag=True, default=False, help="Enable debug logging.")
def codex_bridge(verbose: bool) -> None:
    """Codex CLI bridge."""

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@codex_bridge.group()
def task() -> None:
    """Task store commands."""


@task.command("add")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--project-id", required=True, help="Project identifier included in the prompt.")
@click.option("--title", required=True, help="Task title.")
@click.option("--description", default=None, help="Optional task description.")
def task_add(
    db_path: Path | None,
    project_id: str,
    title: str,
    description: str | None,
) -> None:
    """Create a task the agent can be launched for."""

    _emit_lines(
        EXECUTOR_CONTROLLER.add_task(
            TaskAddCommand(
                db_path=db_path,
                project_id=project_id,
                title=title,
                description=description,
            ),
        ),
    )


@task.command("show")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("task_id")
def task_show(db_path: Path | None, task_id: str) -> None:
    """Show one task."""

    _emit_lines(EXECUTOR_CONTROLLER.show_task(TaskShowCommand(db_path=db_path, task_id=task_id)))


@task.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--project-id", default=None, help="Optional project filter.")
@click.option(
    "--limit",
    type=click.IntRange(min=1, max=500),
    default=50,
    show_default=True,
    help="Max tasks to print.",
)
def task_list(db_path: Path | None, project_id: str | None, limit: int) -> None:
    """List tasks, newest first."""

    _emit_lines(
        EXECUTOR_CONTROLLER.list_tasks(
            TaskListCommand(db_path=db_path, project_id=project_id, limit=limit),
        ),
    )


@codex_bridge.command("run")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--task-id", required=True, help="Task to run the agent for.")
@click.option(
    "--worktree",
    type=click.Path(path_type=Path, file_okay=False),
    required=True,
    help="Working directory for the agent process.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print conversation JSON.")
def run(db_path: Path | None, task_id: str, worktree: Path, as_json: bool) -> None:
    """Launch the agent for a task and print the normalized conversation."""

    with _cli_errors():
        result = EXECUTOR_CONTROLLER.run(
            AgentRunCommand(
                db_path=db_path,
                task_id=task_id,
                worktree=worktree,
                as_json=as_json,
            ),
        )
    _finish_run(result)


@codex_bridge.command("followup")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--task-id", required=True, help="Task the session belongs to.")
@click.option("--session-id", required=True, help="Session to continue.")
@click.option("--prompt", required=True, help="Followup prompt sent on stdin.")
@click.option(
    "--worktree",
    type=click.Path(path_type=Path, file_okay=False),
    required=True,
    help="Working directory for the agent process.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print conversation JSON.")
def followup(  # noqa: PLR0913
    db_path: Path | None,
    task_id: str,
    session_id: str,
    prompt: str,
    worktree: Path,
    as_json: bool,
) -> None:
    """Launch a followup run with a new prompt.

    The session id is only recorded in diagnostics; the agent starts a new
    session.
    """

    with _cli_errors():
        result = EXECUTOR_CONTROLLER.followup(
            AgentFollowupCommand(
                db_path=db_path,
                task_id=task_id,
                session_id=session_id,
                prompt=prompt,
                worktree=worktree,
                as_json=as_json,
            ),
        )
    _finish_run(result)


@codex_bridge.command("normalize")
@click.argument("log_file", type=click.Path(path_type=Path, exists=True, dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Print conversation JSON.")
def normalize(log_file: Path, as_json: bool) -> None:
    """Normalize a captured Codex output log."""

    _emit_lines(
        EXECUTOR_CONTROLLER.normalize(NormalizeCommand(log_file=log_file, as_json=as_json)),
    )


@codex_bridge.command("rollout")
@click.option("--session-id", default=None, help="Session id to resolve.")
@click.option(
    "--log-file",
    type=click.Path(path_type=Path, exists=True, dir_okay=False),
    default=None,
    help="Captured output to read the session id from.",
)
def rollout(session_id: str | None, log_file: Path | None) -> None:
    """Print the rollout transcript path for a session."""

    if session_id is None and log_file is None:
        raise click.UsageError("Pass --session-id or --log-file.")
    with _cli_errors():
        lines = EXECUTOR_CONTROLLER.rollout(
            RolloutCommand(session_id=session_id, log_file=log_file),
        )
    _emit_lines(lines)


@contextmanager
def _cli_errors() -> Iterator[None]:
    try:
        yield
    except (ExecutorError, FileNotFoundError, ValueError) as error:
        raise click.ClickException(str(error)) from error


def _finish_run(result: AgentRunResult) -> None:
    _emit_lines(result.lines)
    if result.timed_out:
        raise click.ClickException("Agent run timed out.")
    if not result.success:
        raise click.ClickException(f"Agent exited with code {result.exit_code}.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    codex_bridge()
