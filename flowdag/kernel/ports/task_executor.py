"""Port interface for running individual tasks.

The engine never executes work itself. Every task is handed to a
``TaskExecutor``, which may shell out to an orchestration CLI, call
in-process handlers, or talk to a remote service.
"""

from abc import abstractmethod
from typing import Protocol, runtime_checkable

from flowdag.kernel.domain.results import TaskResult
from flowdag.kernel.domain.task import TaskSpec


@runtime_checkable
class TaskExecutor(Protocol):
    """Port interface for task execution backends.

    Contract
    --------
    - An ordinary task failure is a return value (``TaskResult.success=False``),
      never an exception.
    - ``TaskSpec.timeout`` and ``TaskSpec.retries`` are honoured by the
      executor; the engine does not retry.
    - Raising means the backend itself is unreachable. The phase executor
      treats any exception as a transport failure.
    """

    @abstractmethod
    async def arun_task(self, task: TaskSpec) -> TaskResult:
        """Run one task and report its outcome.

        Parameters
        ----------
        task : TaskSpec
            The task to run

        Returns
        -------
        TaskResult
            Outcome with optional payload or error message
        """
        ...
