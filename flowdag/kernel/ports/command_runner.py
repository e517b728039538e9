"""Port interface for running commands in the execution environment."""

from abc import abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Captured outcome of one command.

    Attributes
    ----------
    exit_code : int
        Process exit status (-1 when killed on timeout)
    stdout : str
        Captured standard output
    stderr : str
        Captured standard error
    duration_ms : float
        Wall time of the command
    timed_out : bool
        The command was killed after exceeding its timeout
    """

    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: float = 0.0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out


@runtime_checkable
class CommandRunner(Protocol):
    """Runs an argv, possibly inside a container, and captures its output.

    A non-zero exit is a normal result. Raising ``TransportError`` means the
    process or container could not be reached at all.
    """

    @abstractmethod
    async def arun(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        env: Mapping[str, str] | None = None,
        stdin: str | None = None,
    ) -> CommandResult:
        """Run ``argv`` and return its captured result."""
        ...
