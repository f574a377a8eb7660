"""Probe configuration.

Loaded from a TOML file with [store], [target] and [logging] tables via
load_probe_config(). Every field has a default, so an absent table falls
back to the built-in behaviour.
"""

from __future__ import annotations

import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .models import CacheMode, ConnectionMode
from .provisioner import DEFAULT_FILENAME, STRATEGY_DIRECTORY, TARGET_STRATEGIES

logger = logging.getLogger(__name__)

MAX_POOL_CONNECTIONS = 8


@dataclass(frozen=True)
class StoreConfig:
    """How the in-memory store is opened."""

    modes: tuple[ConnectionMode, ...] = (ConnectionMode.EXCLUSIVE, ConnectionMode.POOLED)
    cache: CacheMode = CacheMode.SHARED
    max_connections: int = 1
    acquisition_timeout: float = 5.0
    check_shared_peer: bool = True


@dataclass(frozen=True)
class TargetConfig:
    """Where the exported file goes."""

    strategy: str = STRATEGY_DIRECTORY
    filename: str = DEFAULT_FILENAME
    keep: bool = False


@dataclass(frozen=True)
class LoggingConfig:
    """Log levels for the probe and its drivers."""

    level: str = "INFO"
    driver_level: str = "DEBUG"


@dataclass(frozen=True)
class ProbeConfig:
    """Complete probe configuration."""

    store: StoreConfig = field(default_factory=StoreConfig)
    target: TargetConfig = field(default_factory=TargetConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_probe_config(config_path: Path) -> ProbeConfig:
    """Load config from a TOML file.

    Args:
        config_path: Path to the TOML file.

    Returns:
        Parsed and validated ProbeConfig.

    Raises:
        FileNotFoundError: If the file is missing.
        ValueError: On empty or invalid TOML, or invalid values.
    """
    if not config_path.exists():
        msg = f"Probe config not found: {config_path}"
        raise FileNotFoundError(msg)

    content = config_path.read_text(encoding="utf-8")
    if not content.strip():
        msg = f"Config file is empty: {config_path}"
        raise ValueError(msg)

    try:
        data = tomllib.loads(content)
    except tomllib.TOMLDecodeError as exc:
        msg = f"Invalid TOML in {config_path}: {exc}"
        raise ValueError(msg) from exc

    config = _parse_config(data)
    logger.debug("Loaded probe config from %s", config_path)
    return config


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        msg = f"[{name}] section must be a table"
        raise ValueError(msg)
    return section


def _parse_mode(value: object) -> ConnectionMode:
    try:
        return ConnectionMode(str(value))
    except ValueError:
        choices = [m.value for m in ConnectionMode]
        msg = f"store.modes entries must be one of {choices}, got '{value}'"
        raise ValueError(msg) from None


def _parse_cache(value: object) -> CacheMode:
    try:
        return CacheMode(str(value))
    except ValueError:
        choices = [c.value for c in CacheMode]
        msg = f"store.cache must be one of {choices}, got '{value}'"
        raise ValueError(msg) from None


def _parse_bool(value: object, key: str) -> bool:
    if not isinstance(value, bool):
        msg = f"{key} must be true or false, got {value!r}"
        raise ValueError(msg)
    return value


def _parse_config(data: dict[str, object]) -> ProbeConfig:
    """Parse raw TOML data into a ProbeConfig.

    Unknown fields are silently ignored for forward compatibility.
    """
    store_data = _section(data, "store")
    target_data = _section(data, "target")
    logging_data = _section(data, "logging")

    defaults = ProbeConfig()

    raw_modes = store_data.get("modes", [m.value for m in defaults.store.modes])
    if isinstance(raw_modes, str):
        raw_modes = [raw_modes]
    if not isinstance(raw_modes, list):
        msg = "store.modes must be a list of strings"
        raise ValueError(msg)

    config = ProbeConfig(
        store=StoreConfig(
            modes=tuple(_parse_mode(mode) for mode in raw_modes),
            cache=_parse_cache(store_data.get("cache", defaults.store.cache.value)),
            max_connections=int(store_data.get("max_connections", 1)),  # type: ignore[call-overload]
            acquisition_timeout=float(store_data.get("acquisition_timeout", 5.0)),  # type: ignore[arg-type]
            check_shared_peer=_parse_bool(
                store_data.get("check_shared_peer", defaults.store.check_shared_peer),
                "store.check_shared_peer",
            ),
        ),
        target=TargetConfig(
            strategy=str(target_data.get("strategy", defaults.target.strategy)),
            filename=str(target_data.get("filename", defaults.target.filename)),
            keep=_parse_bool(target_data.get("keep", defaults.target.keep), "target.keep"),
        ),
        logging=LoggingConfig(
            level=str(logging_data.get("level", defaults.logging.level)).upper(),
            driver_level=str(
                logging_data.get("driver_level", defaults.logging.driver_level)
            ).upper(),
        ),
    )
    _validate_config(config)
    return config


def _generate_toml(config: ProbeConfig) -> str:
    """Generate TOML string from a ProbeConfig.

    Handles Python→TOML type mapping: booleans as true/false,
    numbers unquoted, strings quoted.
    """
    modes = ", ".join(f'"{mode.value}"' for mode in config.store.modes)
    lines = [
        "[store]",
        f"modes = [{modes}]",
        f'cache = "{config.store.cache.value}"',
        f"max_connections = {config.store.max_connections}",
        f"acquisition_timeout = {float(config.store.acquisition_timeout)}",
        f"check_shared_peer = {str(config.store.check_shared_peer).lower()}",
        "",
        "[target]",
        f'strategy = "{_escape_toml_string(config.target.strategy)}"',
        f'filename = "{_escape_toml_string(config.target.filename)}"',
        f"keep = {str(config.target.keep).lower()}",
        "",
        "[logging]",
        f'level = "{_escape_toml_string(config.logging.level)}"',
        f'driver_level = "{_escape_toml_string(config.logging.driver_level)}"',
        "",
    ]
    return "\n".join(lines)


def _escape_toml_string(value: str) -> str:
    """Escape special characters for TOML string values."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def _is_level_name(name: str) -> bool:
    return isinstance(logging.getLevelName(name), int)


def _validate_config(config: ProbeConfig) -> None:
    """Validate config values.

    Raises:
        ValueError: On invalid configuration.
    """
    store = config.store
    if not store.modes:
        msg = "store.modes must name at least one connection mode"
        raise ValueError(msg)
    if len(set(store.modes)) != len(store.modes):
        msg = f"store.modes must not repeat a mode: {[m.value for m in store.modes]}"
        raise ValueError(msg)

    if store.max_connections < 1 or store.max_connections > MAX_POOL_CONNECTIONS:
        msg = f"store.max_connections must be 1-{MAX_POOL_CONNECTIONS}, got {store.max_connections}"
        raise ValueError(msg)
    # Each pooled connection to a private in-memory store sees its own database
    if (
        ConnectionMode.POOLED in store.modes
        and store.cache is CacheMode.PRIVATE
        and store.max_connections > 1
    ):
        msg = "store.max_connections must be 1 when pooling a private in-memory store"
        raise ValueError(msg)

    if store.acquisition_timeout <= 0:
        msg = f"store.acquisition_timeout must be positive, got {store.acquisition_timeout}"
        raise ValueError(msg)

    if config.target.strategy not in TARGET_STRATEGIES:
        msg = f"target.strategy must be one of {TARGET_STRATEGIES}, got '{config.target.strategy}'"
        raise ValueError(msg)
    filename = config.target.filename
    if not filename.strip() or "/" in filename or "\\" in filename or filename in (".", ".."):
        msg = f"target.filename must be a plain file name: '{filename}'"
        raise ValueError(msg)

    for key, level in (
        ("logging.level", config.logging.level),
        ("logging.driver_level", config.logging.driver_level),
    ):
        if not _is_level_name(level):
            msg = f"{key} is not a logging level: '{level}'"
            raise ValueError(msg)
