"""Core exception hierarchy for flowdag.

All flowdag exceptions inherit from FlowDAGError for easy exception handling.
The split mirrors how failures propagate out of a pipeline run:

- Structural errors (``GraphValidationError``, ``CycleError``) mean the
  pipeline could not run at all.
- Infrastructure errors (``TransportError``, ``StateStoreError``) mean a
  collaborator broke underneath a run.
- Ordinary task failures are never exceptions; they are ``TaskResult`` data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from flowdag.kernel.domain.results import PhaseResult

# ============================================================================
# Base Exception
# ============================================================================


class FlowDAGError(Exception):
    """Base exception for all flowdag errors.

    Catch this to handle every flowdag-specific error.
    """

    pass


# ============================================================================
# Configuration & Validation Errors
# ============================================================================


class ConfigurationError(FlowDAGError):
    """Raised when configuration is invalid or missing.

    Examples
    --------
    Example usage::

        raise ConfigurationError("state_store", "unknown provider 'redis'")
    """

    def __init__(self, component: str, reason: str) -> None:
        """Initialize configuration error.

        Args
        ----
            component: Name of the component with invalid configuration
            reason: Explanation of what's wrong
        """
        super().__init__(f"Configuration error in '{component}': {reason}")
        self.component = component
        self.reason = reason


class ValidationError(FlowDAGError):
    """Raised when a single field fails validation.

    Examples
    --------
    Example usage::

        raise ValidationError("timeout", "must be positive", value=-1)
    """

    def __init__(self, field: str, constraint: str, value: object = None) -> None:
        """Initialize validation error.

        Args
        ----
            field: Name of the field that failed validation
            constraint: Description of the validation constraint
            value: The invalid value (optional)
        """
        if value is not None:
            msg = f"Validation failed for '{field}': {constraint} (got {value!r})"
        else:
            msg = f"Validation failed for '{field}': {constraint}"
        super().__init__(msg)
        self.field = field
        self.constraint = constraint
        self.value = value


# ============================================================================
# Pipeline Shape Errors
# ============================================================================


class GraphValidationError(FlowDAGError):
    """Raised when the phase graph is structurally unusable.

    Covers dependencies on unknown phases and tasks missing required
    fields. Always fatal to the run that triggered it and never retried.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("Invalid pipeline: " + "; ".join(self.errors))


class CycleError(GraphValidationError):
    """Raised when the phase dependency graph contains a cycle.

    Attributes
    ----------
    phase_id : str
        A phase on the offending cycle
    cycle : list[str]
        The cycle path, first and last element being the same phase
    """

    def __init__(self, phase_id: str, cycle: list[str] | None = None) -> None:
        self.phase_id = phase_id
        self.cycle = list(cycle) if cycle else [phase_id]
        message = f"Circular dependency detected involving phase: {phase_id}"
        if len(self.cycle) > 1:
            message += f" ({' -> '.join(self.cycle)})"
        super().__init__([message])


# ============================================================================
# Infrastructure Errors
# ============================================================================


class TransportError(FlowDAGError):
    """Raised when a process or container cannot be reached.

    Distinct from an ordinary task failure: the task executor or command
    runner raised instead of returning a result.
    """

    def __init__(
        self,
        message: str,
        *,
        task_id: str | None = None,
        phase_id: str | None = None,
        transient: bool = False,
    ) -> None:
        super().__init__(message)
        self.task_id = task_id
        self.phase_id = phase_id
        self.transient = transient
        self.phase_result: PhaseResult | None = None


class StateStoreError(FlowDAGError):
    """Raised when a checkpoint write or read fails."""

    def __init__(self, operation: str, key: str, reason: str) -> None:
        super().__init__(f"State store {operation} failed for '{key}': {reason}")
        self.operation = operation
        self.key = key
        self.reason = reason


__all__ = [
    "ConfigurationError",
    "CycleError",
    "FlowDAGError",
    "GraphValidationError",
    "StateStoreError",
    "TransportError",
    "ValidationError",
]
