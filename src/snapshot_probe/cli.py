"""CLI for the snapshot probe.

Runs the in-memory export check for one or both access strategies and
reports which state failed, if any.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import sys
from pathlib import Path

import click

from .config import (
    ProbeConfig,
    _generate_toml,
    _is_level_name,
    _validate_config,
    load_probe_config,
)
from .exceptions import WorkflowError
from .models import CacheMode, ConnectionMode, WorkflowResult
from .provisioner import TARGET_STRATEGIES
from .workflow import run_strategies

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)

DRIVER_LOGGER = "snapshot_probe.drivers"
MODE_CHOICES = [m.value for m in ConnectionMode] + ["all"]


def configure_logging(level: str, driver_level: str) -> None:
    """Set the root and driver log levels."""
    logging.getLogger().setLevel(level.upper())
    logging.getLogger(DRIVER_LOGGER).setLevel(driver_level.upper())


def _load_config(config_path: str | None) -> ProbeConfig:
    if config_path is None:
        return ProbeConfig()
    return load_probe_config(Path(config_path))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--log-level",
    envvar="SNAPSHOT_PROBE_LOG_LEVEL",
    default=None,
    help="Root log level (overrides config)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, log_level: str | None) -> None:
    """Snapshot Probe - verify in-memory SQLite stores survive VACUUM INTO."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["log_level"] = log_level


@cli.command()
@click.option(
    "--mode",
    "-m",
    type=click.Choice(MODE_CHOICES),
    default=None,
    help="Access strategy to run (default: from config, both)",
)
@click.option(
    "--cache",
    type=click.Choice([c.value for c in CacheMode]),
    default=None,
    help="In-memory cache mode (default: from config, shared)",
)
@click.option(
    "--target-strategy",
    type=click.Choice(list(TARGET_STRATEGIES)),
    default=None,
    help="How the export path is provisioned",
)
@click.option("--config", "config_path", type=click.Path(), help="Probe config TOML")
@click.option("--keep", is_flag=True, help="Keep exported files after the run")
@click.pass_context
def run(
    ctx: click.Context,
    mode: str | None,
    cache: str | None,
    target_strategy: str | None,
    config_path: str | None,
    keep: bool,
) -> None:
    """Run the export check."""
    try:
        config = _apply_overrides(
            _load_config(config_path), mode, cache, target_strategy, keep
        )
        level = _resolve_level(ctx.obj.get("verbose", False), ctx.obj.get("log_level"), config)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    configure_logging(level, config.logging.driver_level)

    outcomes = asyncio.run(run_strategies(config=config))

    failed = False
    for strategy, outcome in outcomes.items():
        if isinstance(outcome, WorkflowResult):
            _echo_result(outcome, keep=config.target.keep)
        else:
            failed = True
            _echo_failure(strategy, outcome)

    if failed:
        sys.exit(1)


@cli.command("show-config")
@click.option("--config", "config_path", type=click.Path(), help="Probe config TOML")
def show_config(config_path: str | None) -> None:
    """Print the effective configuration as TOML."""
    try:
        config = _load_config(config_path)
    except (FileNotFoundError, ValueError) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(_generate_toml(config), nl=False)


def _apply_overrides(
    config: ProbeConfig,
    mode: str | None,
    cache: str | None,
    target_strategy: str | None,
    keep: bool,
) -> ProbeConfig:
    """Layer CLI flags over file configuration. CLI > config > default."""
    store = config.store
    if mode is not None:
        modes = tuple(ConnectionMode) if mode == "all" else (ConnectionMode(mode),)
        store = dataclasses.replace(store, modes=modes)
    if cache is not None:
        store = dataclasses.replace(store, cache=CacheMode(cache))

    target = config.target
    if target_strategy is not None:
        target = dataclasses.replace(target, strategy=target_strategy)
    if keep:
        target = dataclasses.replace(target, keep=True)

    resolved = dataclasses.replace(config, store=store, target=target)
    _validate_config(resolved)
    return resolved


def _resolve_level(verbose: bool, log_level: str | None, config: ProbeConfig) -> str:
    """Pick the root log level. --verbose > --log-level > config."""
    if verbose:
        return "DEBUG"
    if log_level is None:
        return config.logging.level
    level = log_level.upper()
    if not _is_level_name(level):
        msg = f"--log-level is not a logging level: '{log_level}'"
        raise ValueError(msg)
    return level


def _echo_result(result: WorkflowResult, keep: bool) -> None:
    rows = ", ".join(f"({row.id}, {row.name!r})" for row in result.persisted_rows)
    click.echo(
        f"{result.mode.value}: PASS [{result.cache.value}] "
        f"rows={rows} tables={','.join(result.catalog)}"
    )
    if keep:
        click.echo(f"  exported: {result.target}")


def _echo_failure(strategy: ConnectionMode, error: BaseException) -> None:
    if isinstance(error, WorkflowError):
        click.echo(
            f"{strategy.value}: FAIL at '{error.state.value}': {error.__cause__ or error}",
            err=True,
        )
    else:
        click.echo(f"{strategy.value}: FAIL: {error}", err=True)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
