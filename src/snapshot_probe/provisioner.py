"""Temporary export targets.

A target is a path that does not exist yet, whose parent directory does,
and which is unique for every call so concurrent runs never collide.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .exceptions import ProvisioningError

logger = logging.getLogger(__name__)

STRATEGY_DIRECTORY = "directory"
STRATEGY_FILE = "file"
TARGET_STRATEGIES = (STRATEGY_DIRECTORY, STRATEGY_FILE)

DEFAULT_FILENAME = "new.db"
_PREFIX = "snapshot-probe-"


def provision_target(
    strategy: str = STRATEGY_DIRECTORY,
    filename: str = DEFAULT_FILENAME,
    base_dir: Path | None = None,
) -> Path:
    """Return a fresh, absent path to export a store into.

    Args:
        strategy: "directory" allocates a new temp directory and appends
            ``filename``. "file" allocates a uniquely named temp file and
            deletes it, keeping only the path.
        filename: File name used by the "directory" strategy.
        base_dir: Parent for temporary allocations. Defaults to the system
            temp directory.

    Returns:
        The target path. It does not exist; its parent does.

    Raises:
        ValueError: If the strategy is unknown.
        ProvisioningError: On any filesystem failure.
    """
    if strategy not in TARGET_STRATEGIES:
        msg = f"Unknown target strategy '{strategy}', expected one of {TARGET_STRATEGIES}"
        raise ValueError(msg)

    parent = str(base_dir) if base_dir is not None else None
    try:
        if strategy == STRATEGY_DIRECTORY:
            target = Path(tempfile.mkdtemp(prefix=_PREFIX, dir=parent)) / filename
        else:
            fd, raw_path = tempfile.mkstemp(prefix=_PREFIX, suffix=".db", dir=parent)
            os.close(fd)
            target = Path(raw_path)
            target.unlink()
        target.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        msg = f"Cannot provision export target ({strategy}): {e}"
        raise ProvisioningError(msg) from e

    logger.info("Temp db location: %s", target)
    return target


def release_target(target: Path, strategy: str = STRATEGY_DIRECTORY) -> None:
    """Remove whatever provisioning created for ``target``."""
    if strategy == STRATEGY_DIRECTORY:
        shutil.rmtree(target.parent, ignore_errors=True)
    else:
        target.unlink(missing_ok=True)
    logger.debug("Removed export target %s", target)


@contextmanager
def temp_target(
    strategy: str = STRATEGY_DIRECTORY,
    filename: str = DEFAULT_FILENAME,
    *,
    keep: bool = False,
    base_dir: Path | None = None,
) -> Iterator[Path]:
    """Provision a target and clean it up on exit unless ``keep`` is set."""
    target = provision_target(strategy, filename, base_dir)
    try:
        yield target
    finally:
        if keep:
            logger.info("Keeping export artifact at %s", target)
        else:
            release_target(target, strategy)
