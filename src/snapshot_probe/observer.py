"""Observer callbacks for workflow state transitions.

Provides a callback registry that dispatches TransitionEvents to
registered observers. Observation never affects control flow: a callback
that raises is logged and the remaining callbacks still run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from .models import TransitionEvent

logger = logging.getLogger(__name__)

TransitionCallback = Callable[[TransitionEvent], None]

# Module-level callback registry, notified for every workflow run
_callbacks: list[TransitionCallback] = []


def register_transition_callback(callback: TransitionCallback) -> bool:
    """Register a callback to be invoked on every workflow transition.

    Args:
        callback: A callable accepting a TransitionEvent.

    Returns:
        True once registered.
    """
    _callbacks.append(callback)
    return True


def unregister_transition_callback(callback: TransitionCallback) -> bool:
    """Unregister a previously registered callback.

    Returns:
        True if the callback was found and removed, False otherwise.
    """
    try:
        _callbacks.remove(callback)
        return True
    except ValueError:
        return False


def dispatch_transition(
    event: TransitionEvent,
    observers: Iterable[TransitionCallback] = (),
) -> None:
    """Dispatch a transition to per-run observers, then registered callbacks.

    Args:
        event: The transition that just happened.
        observers: Observers attached to one workflow run.
    """
    # Copy so callbacks may unregister themselves during dispatch
    for callback in [*observers, *_callbacks]:
        try:
            callback(event)
        except Exception as e:
            logger.error(
                "Transition callback %s raised exception: %s",
                callback,
                e,
                exc_info=True,
            )


def log_transition(event: TransitionEvent) -> None:
    """Default observer: one INFO line per transition."""
    details = " ".join(f"{key}={value}" for key, value in event.details.items())
    logger.info(
        "[%s/%s] %s -> %s %s",
        event.strategy,
        event.cache,
        event.from_state.value,
        event.to_state.value,
        details,
    )
