"""Export workflow state machine.

One implementation serves both access strategies; the connection mode only
selects which driver is built. A run walks every WorkflowState in order:

    START -> PROVISIONED -> SEEDED -> VERIFIED_LIVE -> EXPORTED
          -> RELEASED -> VERIFIED_PERSISTED -> DONE

Any failure aborts the run with a WorkflowError naming the state that was
being entered. Nothing is retried.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import ProbeConfig
from .drivers import StoreDriver, create_driver, memory_target
from .exceptions import WorkflowError
from .exporter import export_store
from .models import (
    SEED_ROWS,
    WORKFLOW_SEQUENCE,
    CacheMode,
    ConnectionMode,
    Row,
    TransitionEvent,
    WorkflowResult,
    WorkflowState,
)
from .observer import TransitionCallback, dispatch_transition, log_transition
from .provisioner import provision_target, release_target
from .sql import CREATE_TABLE
from .verification import (
    STAGE_SHARED_PEER,
    read_catalog,
    read_rows,
    verify_catalog,
    verify_live,
    verify_persisted,
    verify_rows,
)

logger = logging.getLogger(__name__)


async def seed_store(driver: StoreDriver) -> None:
    """Create the ``test`` table and insert the two seed rows in one batch."""
    await driver.execute_batch(CREATE_TABLE)


class ExportWorkflow:
    """A single run of the in-memory export check for one access strategy.

    Instances run once. Observers receive a TransitionEvent for every state
    change; by default transitions are logged.
    """

    def __init__(
        self,
        mode: ConnectionMode,
        *,
        config: ProbeConfig | None = None,
        cache: CacheMode | None = None,
        observers: Sequence[TransitionCallback] | None = None,
        memory_name: str | None = None,
    ) -> None:
        """Initialize the workflow.

        Args:
            mode: EXCLUSIVE or POOLED.
            config: Probe configuration. Defaults to ProbeConfig().
            cache: Cache mode override; defaults to config.store.cache.
            observers: Per-run transition observers. Defaults to logging.
            memory_name: Name of the shared in-memory store. Generated when
                omitted so concurrent runs never share a store.
        """
        self.mode = mode
        self.config = config or ProbeConfig()
        self.cache = cache or self.config.store.cache
        self.memory_name = memory_name
        self._observers = list(observers) if observers is not None else [log_transition]
        self._state = WorkflowState.START
        self._states: list[WorkflowState] = [WorkflowState.START]
        self._target: Path | None = None

    @property
    def state(self) -> WorkflowState:
        """Return the last state the workflow reached."""
        return self._state

    @property
    def states(self) -> list[WorkflowState]:
        """Return every state reached so far, in order."""
        return list(self._states)

    def _next_state(self) -> WorkflowState:
        return WORKFLOW_SEQUENCE[WORKFLOW_SEQUENCE.index(self._state) + 1]

    def _advance(self, to_state: WorkflowState, **details: Any) -> None:
        """Move to ``to_state`` and notify observers. States cannot be skipped."""
        expected = self._next_state()
        if to_state is not expected:
            msg = f"Cannot move from '{self._state.value}' to '{to_state.value}'"
            raise RuntimeError(msg)
        event = TransitionEvent(
            strategy=self.mode.value,
            cache=self.cache.value,
            from_state=self._state,
            to_state=to_state,
            timestamp=datetime.now(timezone.utc).isoformat(),
            details=details,
        )
        self._state = to_state
        self._states.append(to_state)
        dispatch_transition(event, self._observers)

    def _create_driver(self, target: str, uri: bool) -> StoreDriver:
        return create_driver(
            self.mode,
            target,
            uri=uri,
            max_connections=self.config.store.max_connections,
            acquisition_timeout=self.config.store.acquisition_timeout,
        )

    async def run(self, target: Path | None = None) -> WorkflowResult:
        """Run every state of the workflow.

        Args:
            target: Absent path to export into. When omitted one is
                provisioned from config.target and removed after the run
                unless config.target.keep is set.

        Returns:
            The rows, catalog and states observed by the run.

        Raises:
            WorkflowError: On the first failure, chaining the original error.
            RuntimeError: If the instance has already been run.
        """
        if self._state is not WorkflowState.START:
            msg = "ExportWorkflow instances can only be run once"
            raise RuntimeError(msg)

        owns_target = target is None
        try:
            return await self._run(target)
        finally:
            if owns_target and self._target is not None and not self.config.target.keep:
                release_target(self._target, self.config.target.strategy)

    async def _run(self, target: Path | None) -> WorkflowResult:
        step = WorkflowState.PROVISIONED
        try:
            path = target or provision_target(
                self.config.target.strategy, self.config.target.filename
            )
            self._target = path
            self._advance(WorkflowState.PROVISIONED, target=path)

            step = WorkflowState.SEEDED
            store, uri = memory_target(self.cache, self.memory_name)
            driver = self._create_driver(store, uri)
            try:
                await driver.connect()
                await seed_store(driver)
                self._advance(WorkflowState.SEEDED, store=store)

                step = WorkflowState.VERIFIED_LIVE
                live_rows = await verify_live(driver, SEED_ROWS)
                peer_checked = self._wants_peer_check()
                if peer_checked:
                    await self._verify_shared_peer(store, uri, live_rows)
                self._advance(
                    WorkflowState.VERIFIED_LIVE, rows=len(live_rows), peer=peer_checked
                )

                step = WorkflowState.EXPORTED
                await export_store(driver, path)
                self._advance(WorkflowState.EXPORTED, path=path, bytes=path.stat().st_size)
            finally:
                await driver.close()

            step = WorkflowState.RELEASED
            if driver.is_open:
                msg = f"{self.mode.value} handle still open after release"
                raise RuntimeError(msg)
            self._advance(WorkflowState.RELEASED)

            step = WorkflowState.VERIFIED_PERSISTED
            persisted_rows, catalog = await verify_persisted(
                self.mode,
                path,
                live_rows,
                max_connections=self.config.store.max_connections,
                acquisition_timeout=self.config.store.acquisition_timeout,
            )
            self._advance(
                WorkflowState.VERIFIED_PERSISTED,
                rows=len(persisted_rows),
                tables=",".join(catalog),
            )

            step = WorkflowState.DONE
            self._advance(WorkflowState.DONE)
        except Exception as e:
            logger.error("[%s] failed entering '%s': %s", self.mode.value, step.value, e)
            raise WorkflowError(self.mode.value, step, str(e)) from e

        return WorkflowResult(
            mode=self.mode,
            cache=self.cache,
            target=path,
            live_rows=live_rows,
            persisted_rows=persisted_rows,
            catalog=catalog,
            states=self.states,
        )

    def _wants_peer_check(self) -> bool:
        return self.cache is CacheMode.SHARED and self.config.store.check_shared_peer

    async def _verify_shared_peer(self, store: str, uri: bool, expected: list[Row]) -> None:
        """Open a second handle on the shared store and check it sees the seed."""
        peer = self._create_driver(store, uri)
        async with peer:
            catalog = await read_catalog(peer)
            verify_catalog(catalog, STAGE_SHARED_PEER)
            rows = await read_rows(peer, STAGE_SHARED_PEER)
        verify_rows(rows, expected, STAGE_SHARED_PEER)
        logger.debug("Shared peer sees %d rows in %s", len(rows), store)


async def run_workflow(
    mode: ConnectionMode,
    *,
    config: ProbeConfig | None = None,
    cache: CacheMode | None = None,
    target: Path | None = None,
    observers: Sequence[TransitionCallback] | None = None,
) -> WorkflowResult:
    """Run one workflow for ``mode`` and return its result."""
    workflow = ExportWorkflow(mode, config=config, cache=cache, observers=observers)
    return await workflow.run(target)


async def run_strategies(
    modes: Sequence[ConnectionMode] | None = None,
    *,
    config: ProbeConfig | None = None,
    observers: Sequence[TransitionCallback] | None = None,
) -> dict[ConnectionMode, WorkflowResult | BaseException]:
    """Run one workflow per mode concurrently.

    Each run gets its own target and in-memory store. A failing run does
    not stop the others; its exception is returned in place of a result.
    """
    resolved = config or ProbeConfig()
    selected = list(modes) if modes is not None else list(resolved.store.modes)
    outcomes = await asyncio.gather(
        *(run_workflow(mode, config=resolved, observers=observers) for mode in selected),
        return_exceptions=True,
    )
    return dict(zip(selected, outcomes))
