"""Asyncio subprocess runner used to launch CLI agents."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

TIMEOUT_EXIT_CODE = 124
_TERMINATE_WAIT_SECONDS = 2.0
_READ_CHUNK_BYTES = 65_536


class CommandLaunchError(RuntimeError):
    """Raised when the OS process could not be created."""


@dataclass(slots=True)
class CommandOutput:
    """Captured result of a finished process."""

    exit_code: int
    timed_out: bool
    stdout: str
    stderr: str


class CommandRunner:
    """Builder for one subprocess launch.

    Environment overrides are layered on top of the current process
    environment. Standard input, when set, is written in the background after
    the process starts and then closed.
    """

    def __init__(self) -> None:
        self.program: str | None = None
        self.args: list[str] = []
        self.stdin_text: str | None = None
        self.cwd: Path | None = None
        self.env_overrides: dict[str, str] = {}

    def command(self, program: str) -> CommandRunner:
        self.program = program
        return self

    def arg(self, value: str) -> CommandRunner:
        self.args.append(value)
        return self

    def stdin(self, text: str) -> CommandRunner:
        self.stdin_text = text
        return self

    def working_dir(self, path: str | Path) -> CommandRunner:
        self.cwd = Path(path)
        return self

    def env(self, name: str, value: str) -> CommandRunner:
        self.env_overrides[name] = value
        return self

    def command_line(self) -> str:
        """Human-readable command line for diagnostics."""

        return " ".join([self.program or "", *self.args]).strip()

    async def start(self) -> CommandProcess:
        """Create the process and return without waiting for it to finish."""

        if not self.program:
            raise CommandLaunchError("No command configured.")

        env = os.environ.copy()
        env.update(self.env_overrides)
        try:
            process = await asyncio.create_subprocess_exec(
                self.program,
                *self.args,
                stdin=asyncio.subprocess.PIPE if self.stdin_text is not None else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.cwd,
                env=env,
            )
        except OSError as error:
            raise CommandLaunchError(
                f"Failed to start {self.program!r}: {error}",
            ) from error

        logger.debug("Started pid=%s: %s", process.pid, self.command_line())
        return CommandProcess(process, stdin_text=self.stdin_text)


class CommandProcess:
    """Handle to a running subprocess."""

    def __init__(
        self,
        process: asyncio.subprocess.Process,
        *,
        stdin_text: str | None = None,
    ) -> None:
        self._process = process
        self._stdin_task: asyncio.Task[None] | None = None
        if stdin_text is not None:
            self._stdin_task = asyncio.create_task(self._feed_stdin(stdin_text))

    @property
    def pid(self) -> int:
        return self._process.pid

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    async def collect(self, timeout_seconds: float | None = None) -> CommandOutput:
        """Wait for exit and return captured stdout/stderr.

        On timeout the process is terminated (then killed) and the output
        gathered so far is returned with exit code 124.
        """

        stdout_chunks: list[bytes] = []
        stderr_chunks: list[bytes] = []
        try:
            _, _, exit_code = await asyncio.wait_for(
                asyncio.gather(
                    _drain_stream(self._process.stdout, stdout_chunks),
                    _drain_stream(self._process.stderr, stderr_chunks),
                    self._process.wait(),
                ),
                timeout_seconds,
            )
        except TimeoutError:
            logger.debug("Process pid=%s timed out, terminating", self._process.pid)
            await self.terminate()
            await self._finish_stdin()
            # Pick up whatever the process flushed while shutting down.
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    asyncio.gather(
                        _drain_stream(self._process.stdout, stdout_chunks),
                        _drain_stream(self._process.stderr, stderr_chunks),
                    ),
                    _TERMINATE_WAIT_SECONDS,
                )
            return CommandOutput(
                exit_code=TIMEOUT_EXIT_CODE,
                timed_out=True,
                stdout=_decode(stdout_chunks),
                stderr=_decode(stderr_chunks),
            )
        await self._finish_stdin()
        return CommandOutput(
            exit_code=exit_code,
            timed_out=False,
            stdout=_decode(stdout_chunks),
            stderr=_decode(stderr_chunks),
        )

    async def terminate(self) -> None:
        """Terminate the process, escalating to kill if it does not exit."""

        if self._process.returncode is not None:
            return
        try:
            self._process.terminate()
        except ProcessLookupError:
            return
        try:
            await asyncio.wait_for(self._process.wait(), _TERMINATE_WAIT_SECONDS)
        except TimeoutError:
            try:
                self._process.kill()
            except ProcessLookupError:
                return
            await asyncio.wait_for(self._process.wait(), _TERMINATE_WAIT_SECONDS)

    async def _feed_stdin(self, text: str) -> None:
        stream = self._process.stdin
        if stream is None:
            return
        try:
            stream.write(text.encode("utf-8"))
            await stream.drain()
        except (BrokenPipeError, ConnectionResetError):
            logger.debug("Process pid=%s closed stdin early", self._process.pid)
        finally:
            stream.close()

    async def _finish_stdin(self) -> None:
        if self._stdin_task is None:
            return
        with contextlib.suppress(asyncio.CancelledError):
            await self._stdin_task


async def _drain_stream(stream: asyncio.StreamReader | None, chunks: list[bytes]) -> None:
    if stream is None:
        return
    while True:
        chunk = await stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            return
        chunks.append(chunk)


def _decode(chunks: list[bytes]) -> str:
    return b"".join(chunks).decode("utf-8", errors="replace")
