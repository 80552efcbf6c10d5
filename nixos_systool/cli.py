"""
Command-line interface for nixos-systool.

This module provides the command-line entry point and routes each
sub-command to ``nixos_systool.commands``.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Callable, Optional

import typer
from rich.logging import RichHandler

from nixos_systool import APP_NAME, __version__, commands
from nixos_systool.config import SystoolConfig
from nixos_systool.errors import SystoolError
from nixos_systool.output import console, error, info

# Set up the logger
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True)],
)
logger = logging.getLogger("nixos_systool")

app = typer.Typer(
    name=APP_NAME,
    help="NixOS system management tool.",
    add_completion=False,
    no_args_is_help=True,
)


@dataclass
class State:
    """Options shared by all sub-commands."""

    flake_path: Optional[Path] = None
    config: SystoolConfig = field(default_factory=SystoolConfig)


def running_as_root() -> bool:
    return hasattr(os, "geteuid") and os.geteuid() == 0


def _require_flake_path(state: State) -> Path:
    if state.flake_path is None:
        error(
            "Flake path not specified. Use --flake-path or set the "
            "SYS_FLAKE_PATH env var."
        )
        raise typer.Exit(1)
    return state.flake_path


def _run(
    ctx: typer.Context,
    name: str,
    action: Callable[[State], object],
    needs_flake: bool = True,
) -> None:
    """Run *action* for the sub-command *name*, reporting errors and exiting 1."""
    state: State = ctx.obj
    try:
        commands.valid_on_system(name)
        if needs_flake:
            flake_path = _require_flake_path(state)
            commands.check_untracked_files(name, flake_path, state.config)
        action(state)
    except SystoolError as e:
        logger.debug(f"`{name}` failed", exc_info=True)
        error(str(e))
        raise typer.Exit(1) from e


@app.callback()
def callback(
    ctx: typer.Context,
    flake_path: Annotated[
        Optional[Path],
        typer.Option(
            "--flake-path",
            "-f",
            envvar="SYS_FLAKE_PATH",
            help="Path to the system configuration flake repository.",
        ),
    ] = None,
    current_flake_path: Annotated[
        Optional[str],
        typer.Option(
            "--current-flake-path",
            "-c",
            help="Path to the current system flake in the Nix store "
            "(default: /etc/current-system-flake).",
        ),
    ] = None,
    config_file: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            help="Path to the configuration file "
            "(default: ~/.config/nixos-systool/config.yaml).",
        ),
    ] = None,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Enable verbose output.")
    ] = False,
) -> None:
    """
    NixOS system management tool.
    """
    # Running nixos-rebuild or git as root breaks ownership of the flake repo
    if running_as_root():
        error(f"For security reasons, {APP_NAME} must not be run as root")
        raise typer.Exit(1)

    if verbose:
        logger.setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    config = SystoolConfig.load(config_file)
    if current_flake_path:
        config.system_check.current_system_flake_path = current_flake_path

    ctx.obj = State(
        flake_path=flake_path.expanduser() if flake_path else None,
        config=config,
    )


@app.command()
def apply(
    ctx: typer.Context,
    method: Annotated[
        Optional[str],
        typer.Argument(
            help="Method passed to nixos-rebuild, e.g. switch, boot or build "
            "(default: switch)."
        ),
    ] = None,
) -> None:
    """
    Apply the system configuration using nixos-rebuild.
    """
    _run(ctx, "apply", lambda state: commands.apply(method, state.flake_path))


@app.command(name="apply-user")
def apply_user(
    ctx: typer.Context,
    target_user: Annotated[
        Optional[str],
        typer.Option(
            "--user", "-u", help="User configuration to apply (default: current user)."
        ),
    ] = None,
) -> None:
    """
    Apply user configuration using home-manager.
    """
    _run(
        ctx,
        "apply-user",
        lambda state: commands.apply_user(target_user, state.flake_path),
    )


@app.command()
def build(
    ctx: typer.Context,
    system: Annotated[
        Optional[str],
        typer.Argument(help="System to build (default: the current host)."),
    ] = None,
    vm: Annotated[
        bool, typer.Option("--vm", help="Build a VM image instead.")
    ] = False,
) -> None:
    """
    Build the system configuration without applying it.
    """
    _run(
        ctx, "build", lambda state: commands.build_system(system, vm, state.flake_path)
    )


@app.command()
def clean(ctx: typer.Context) -> None:
    """
    Run garbage collection on the Nix store.
    """
    _run(ctx, "clean", lambda state: commands.clean())


@app.command()
def prune(ctx: typer.Context) -> None:
    """
    Prune old generations from the Nix store.
    """
    _run(ctx, "prune", lambda state: commands.prune())


@app.command()
def search(
    ctx: typer.Context,
    query: Annotated[str, typer.Argument(help="Pattern to search for.")],
    browser: Annotated[
        bool,
        typer.Option("--browser", "-b", help="Search on the NixOS website."),
    ] = False,
    options: Annotated[
        bool,
        typer.Option("--options", "-o", help="Search options instead of packages."),
    ] = False,
    home_manager: Annotated[
        bool,
        typer.Option(
            "--home-manager",
            "-m",
            help="Search Home Manager options in a browser.",
        ),
    ] = False,
) -> None:
    """
    Search Nixpkgs or NixOS options.
    """
    _run(
        ctx,
        "search",
        lambda state: commands.search(
            query, browser, options, home_manager, state.config
        ),
        needs_flake=False,
    )


@app.command()
def update(ctx: typer.Context) -> None:
    """
    Update the system flake lock.
    """
    _run(
        ctx,
        "update",
        lambda state: commands.update_flake(state.flake_path, state.config),
    )


@app.command()
def check(
    ctx: typer.Context,
    no_warning: Annotated[
        bool,
        typer.Option(
            "--no-warning",
            help="Suppress the warning about checking the repository flake.lock "
            "instead of the one used to build the system.",
        ),
    ] = False,
) -> None:
    """
    Check if the flake lock is outdated.
    """
    _run(
        ctx,
        "check",
        lambda state: commands.check_flake_version(
            no_warning, state.flake_path, state.config
        ),
    )


@app.command(name="print-config")
def print_config(ctx: typer.Context) -> None:
    """
    Print the currently loaded configuration including defaults.
    """
    state: State = ctx.obj
    console.print(state.config.to_yaml(), highlight=False, markup=False)


@app.command()
def version() -> None:
    """Show the application version and exit."""
    info(f"{APP_NAME} version: {__version__}")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
