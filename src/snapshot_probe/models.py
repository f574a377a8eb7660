"""Domain models for the snapshot probe.

The export workflow progresses through these states:
    START -> PROVISIONED -> SEEDED -> VERIFIED_LIVE -> EXPORTED
          -> RELEASED -> VERIFIED_PERSISTED -> DONE

No state may be skipped. Each transition is reported to observers as a
TransitionEvent.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any


class ConnectionMode(Enum):
    """How the workflow reaches the store.

    - EXCLUSIVE: one dedicated connection, never shared
    - POOLED: a connection pool bounded by max_connections
    """

    EXCLUSIVE = "exclusive"
    POOLED = "pooled"


class CacheMode(Enum):
    """Whether connections naming the same in-memory store share its data."""

    PRIVATE = "private"
    SHARED = "shared"


class WorkflowState(Enum):
    """States of a single export workflow run."""

    START = "start"
    PROVISIONED = "provisioned"
    SEEDED = "seeded"
    VERIFIED_LIVE = "verified_live"
    EXPORTED = "exported"
    RELEASED = "released"
    VERIFIED_PERSISTED = "verified_persisted"
    DONE = "done"


WORKFLOW_SEQUENCE: tuple[WorkflowState, ...] = tuple(WorkflowState)


@dataclass(frozen=True)
class Row:
    """A row of the seeded ``test`` table."""

    id: int
    name: str


SEED_ROWS: tuple[Row, ...] = (Row(1, "hello"), Row(2, "world"))


@dataclass(frozen=True)
class TransitionEvent:
    """A single state transition reported to observers.

    Attributes:
        strategy: Connection mode value of the run ("exclusive" or "pooled").
        cache: Cache mode value of the run.
        from_state: State the workflow left.
        to_state: State the workflow entered.
        timestamp: UTC ISO-8601 time of the transition.
        details: Step-specific values such as paths and row counts.
    """

    strategy: str
    cache: str
    from_state: WorkflowState
    to_state: WorkflowState
    timestamp: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass
class WorkflowResult:
    """Outcome of a completed workflow run."""

    mode: ConnectionMode
    cache: CacheMode
    target: Path
    live_rows: list[Row] = field(default_factory=list)
    persisted_rows: list[Row] = field(default_factory=list)
    catalog: list[str] = field(default_factory=list)
    states: list[WorkflowState] = field(default_factory=list)

    @property
    def completed(self) -> bool:
        """Return whether the run reached DONE."""
        return bool(self.states) and self.states[-1] is WorkflowState.DONE
