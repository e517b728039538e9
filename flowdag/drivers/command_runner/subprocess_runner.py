"""Command runner backed by ``asyncio`` subprocesses, optionally inside a container."""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Mapping, Sequence

from flowdag.kernel.config.models import RunnerConfig
from flowdag.kernel.exceptions import TransportError
from flowdag.kernel.logging import get_logger
from flowdag.kernel.ports.command_runner import CommandResult
from flowdag.kernel.utils.timer import Timer

logger = get_logger(__name__)


class SubprocessCommandRunner:
    """Runs commands locally or through ``docker exec``.

    Without a container the argv is spawned directly with the current
    environment plus any extra variables. With a container the argv becomes
    ``<docker> exec -i [-w workdir] [-e K=V ...] <container> <argv...>`` and
    the extra variables are passed with ``-e`` instead.

    Examples
    --------
    Example usage::

        runner = SubprocessCommandRunner(RunnerConfig(container="agents"))
        result = await runner.arun(["npx", "claude-flow", "--version"], timeout=30)
    """

    def __init__(self, config: RunnerConfig | None = None) -> None:
        self.config = config or RunnerConfig()

    def build_argv(self, argv: Sequence[str], env: Mapping[str, str] | None = None) -> list[str]:
        """Return the argv actually spawned for ``argv``."""
        if not argv:
            raise TransportError("Cannot run an empty command", transient=False)
        if not self.config.container:
            return list(argv)

        wrapped = [self.config.docker_binary, "exec", "-i"]
        if self.config.workdir:
            wrapped += ["-w", self.config.workdir]
        for key, value in {**self.config.env, **(env or {})}.items():
            wrapped += ["-e", f"{key}={value}"]
        wrapped.append(self.config.container)
        wrapped.extend(argv)
        return wrapped

    async def arun(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        stdin: str | None = None,
    ) -> CommandResult:
        """Run ``argv`` and capture its output.

        Raises
        ------
        TransportError
            The binary does not exist (not transient) or the OS refused to
            spawn the process (transient)
        """
        run_args = self.build_argv(argv, env)
        process_env = None
        if not self.config.container:
            process_env = {**os.environ, **self.config.env, **(env or {})}

        timer = Timer()
        try:
            process = await asyncio.create_subprocess_exec(
                *run_args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=process_env,
            )
        except FileNotFoundError as error:
            raise TransportError(f"Command not found: {run_args[0]}", transient=False) from error
        except OSError as error:
            raise TransportError(
                f"Failed to start {run_args[0]}: {error}", transient=True
            ) from error

        payload = stdin.encode("utf-8") if stdin is not None else None
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(payload), timeout)
        except TimeoutError:
            await _akill(process)
            logger.warning(
                "Command {command} killed after {timeout}s", command=run_args[0], timeout=timeout
            )
            return CommandResult(
                exit_code=-1,
                stderr=f"Timed out after {timeout}s",
                duration_ms=timer.duration_ms,
                timed_out=True,
            )
        except asyncio.CancelledError:
            await _akill(process)
            logger.debug("Command {command} killed on cancellation", command=run_args[0])
            raise

        result = CommandResult(
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            duration_ms=timer.duration_ms,
        )
        logger.debug(
            "Command {command} exited {code} in {ms:.0f}ms",
            command=" ".join(run_args[:3]),
            code=result.exit_code,
            ms=result.duration_ms,
        )
        return result


async def _akill(process: asyncio.subprocess.Process) -> None:
    """Kill ``process`` if it is still running and reap it."""
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()
