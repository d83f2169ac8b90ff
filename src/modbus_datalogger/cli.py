#!/usr/bin/env python3
"""Command-line entry point for modbus-datalogger using Typer."""

import logging
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import __version__  # type: ignore
from .config import dump_config, load_config, sample_config
from .errors import ConfigError, StorageUnavailableError
from .sink import SqliteSink
from .supervisor import DeviceSupervisor
from .types import LoggerConfig

app = typer.Typer(
    name="mdlog",
    help="Poll Modbus devices and log readings to SQLite.",
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Shared options and helpers
# ============================================================================

VerboseOption = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging"),
]

# Exit codes
EXIT_STORAGE = 1
EXIT_CONFIG = 2


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbose flag."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s"
        if verbose
        else "%(asctime)s %(levelname)s: %(message)s",
    )


def describe_config(config: LoggerConfig) -> list[str]:
    """Human-readable lines listing every device and its tags."""
    lines = [
        f"Poll period: {config.poll_period:g} s",
        f"Database: {config.database_path}",
    ]
    for device in config.devices:
        endpoint = str(device.endpoint) if device.endpoint is not None else "-"
        lines.append(f"Device: {device.name} ({device.type.value}) {endpoint}")
        for tag in device.tags:
            lines.append(f"  {tag.name}  addr={tag.address}  {tag.value.value}  {tag.description}")
    return lines


# ============================================================================
# Commands
# ============================================================================


@app.command()
def run(
    config: Annotated[
        Path,
        typer.Option("--config", "-c", help="Configuration file (JSON)", envvar="MDLOG_CONFIG"),
    ],
    list_tags: Annotated[bool, typer.Option("--list", "-l", help="Print devices and tags before polling")] = False,
    verbose: VerboseOption = False,
) -> None:
    """
    Poll every configured device and record readings until interrupted.

    Exits 2 if the configuration cannot be loaded and 1 if the database
    cannot be opened. Press Ctrl+C to stop gracefully.
    """
    setup_logging(verbose)

    try:
        cfg = load_config(config)
    except ConfigError as e:
        typer.echo(f"Error: Invalid configuration: {e}", err=True)
        raise typer.Exit(EXIT_CONFIG)

    if list_tags:
        for line in describe_config(cfg):
            typer.echo(line)

    try:
        sink = SqliteSink(cfg.database_path)
    except StorageUnavailableError as e:
        typer.echo(f"Error: Could not open database: {e}", err=True)
        raise typer.Exit(EXIT_STORAGE)

    with sink:
        try:
            sink.bootstrap(cfg.devices)
        except StorageUnavailableError as e:
            typer.echo(f"Error: Could not prepare database: {e}", err=True)
            raise typer.Exit(EXIT_STORAGE)

        supervisor = DeviceSupervisor(cfg, sink)
        supervisor.start()
        try:
            # Wake periodically so Ctrl+C is handled promptly
            while not supervisor.wait(1.0):
                pass
        except KeyboardInterrupt:
            typer.echo("\nStopping...", err=True)
        finally:
            supervisor.stop(timeout=cfg.connect_timeout + 1.0)


@app.command(name="create-config")
def create_config() -> None:
    """
    Print a documented sample configuration to stdout.

    Redirect it to a file and edit it:  mdlog create-config > config.json
    """
    typer.echo(dump_config(sample_config()))


def version_callback(value: bool) -> None:
    """Show version and exit."""
    if value:
        typer.echo(f"modbus-datalogger {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        Optional[bool],
        typer.Option("--version", callback=version_callback, is_eager=True, help="Show version and exit"),
    ] = None,
) -> None:
    """mdlog - Modbus field-device data logger."""
    pass


if __name__ == "__main__":
    app()
