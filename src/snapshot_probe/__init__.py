"""Snapshot Probe.

Verifies that an in-memory SQLite store can be persisted to disk with
VACUUM INTO and read back intact, through an exclusive connection and
through a single-connection pool.
"""

from __future__ import annotations

from .config import ProbeConfig, load_probe_config
from .drivers import DirectDriver, PooledDriver, StoreDriver, create_driver, memory_target
from .exceptions import (
    ExportError,
    ExportTargetExistsError,
    ProbeError,
    ProvisioningError,
    StoreClosedError,
    StoreConnectionError,
    StoreExecutionError,
    VerificationError,
    WorkflowError,
)
from .exporter import export_store
from .models import (
    SEED_ROWS,
    CacheMode,
    ConnectionMode,
    Row,
    TransitionEvent,
    WorkflowResult,
    WorkflowState,
)
from .observer import register_transition_callback, unregister_transition_callback
from .provisioner import provision_target, temp_target
from .workflow import ExportWorkflow, run_strategies, run_workflow, seed_store

__all__ = [
    # Configuration
    "ProbeConfig",
    "load_probe_config",
    # Drivers
    "StoreDriver",
    "DirectDriver",
    "PooledDriver",
    "create_driver",
    "memory_target",
    # Models
    "CacheMode",
    "ConnectionMode",
    "Row",
    "SEED_ROWS",
    "TransitionEvent",
    "WorkflowResult",
    "WorkflowState",
    # Workflow
    "ExportWorkflow",
    "export_store",
    "provision_target",
    "run_strategies",
    "run_workflow",
    "seed_store",
    "temp_target",
    # Observers
    "register_transition_callback",
    "unregister_transition_callback",
    # Errors
    "ExportError",
    "ExportTargetExistsError",
    "ProbeError",
    "ProvisioningError",
    "StoreClosedError",
    "StoreConnectionError",
    "StoreExecutionError",
    "VerificationError",
    "WorkflowError",
]
