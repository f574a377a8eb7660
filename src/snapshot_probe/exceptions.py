"""Exceptions for the snapshot probe.

Every failure the probe can report derives from ProbeError. Verification
failures are also AssertionErrors so test runners report them as failed
checks rather than engine errors.
"""

from __future__ import annotations

from typing import Any


class ProbeError(Exception):
    """Base exception for all probe errors."""

    pass


class ProvisioningError(ProbeError):
    """Raised when the export target path cannot be prepared."""

    pass


class StoreConnectionError(ProbeError):
    """Raised when a connection or pool to the store cannot be established."""

    def __init__(self, target: str, reason: str) -> None:
        self.target = target
        super().__init__(f"Cannot connect to {target}: {reason}")


class StoreExecutionError(ProbeError):
    """Raised when a statement fails against a live store."""

    pass


class StoreClosedError(ProbeError):
    """Raised when a released store handle is used again."""

    pass


class ExportError(ProbeError):
    """Raised when the live store cannot be written to its destination file."""

    def __init__(self, destination: str, reason: str) -> None:
        self.destination = destination
        super().__init__(f"Export to {destination} failed: {reason}")


class ExportTargetExistsError(ExportError):
    """Raised when the export destination already holds data."""

    def __init__(self, destination: str) -> None:
        super().__init__(destination, "destination already exists and is not empty")


class VerificationError(ProbeError, AssertionError):
    """Raised when rows or catalog read back from a store do not match.

    Attributes:
        stage: Where the check ran ("pre-export", "shared-peer", "post-export").
        mismatch: What differed ("count", "order", "content", "shape",
            "catalog" or "missing").
        expected: The expected value, when one applies.
        actual: The observed value, when one applies.
    """

    def __init__(
        self,
        stage: str,
        mismatch: str,
        expected: Any = None,
        actual: Any = None,
        detail: str | None = None,
    ) -> None:
        self.stage = stage
        self.mismatch = mismatch
        self.expected = expected
        self.actual = actual
        message = f"{stage} verification failed ({mismatch} mismatch)"
        if detail:
            message = f"{message}: {detail}"
        elif expected is not None or actual is not None:
            message = f"{message}: expected {expected!r}, got {actual!r}"
        super().__init__(message)


class WorkflowError(ProbeError):
    """Raised when a workflow run aborts.

    The original failure is chained as ``__cause__``.
    """

    def __init__(self, strategy: str, state: Any, reason: str) -> None:
        self.strategy = strategy
        self.state = state
        state_name = getattr(state, "value", state)
        super().__init__(f"[{strategy}] workflow failed entering '{state_name}': {reason}")
