"""
Sub-command implementations for nixos-systool.

Apart from the version check, each command is a short sequence of calls to
external tools.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from nixos_systool import APP_NAME, runner
from nixos_systool.config import SystoolConfig
from nixos_systool.errors import (
    CommandFailedError,
    InvalidOptionsError,
    NonNixOsSystemError,
    UntrackedFilesError,
)
from nixos_systool.flake_lock import FlakeLock, FlakeStatus, UpToDate
from nixos_systool.output import error, info, warn
from nixos_systool.platform import is_macos, is_nixos, os_name
from nixos_systool.report import Advice, VersionReport, compare_status

logger = logging.getLogger("nixos_systool.commands")

LOCK_FILE_NAME = "flake.lock"

# Commands that never modify the system and skip the untracked files check
READ_ONLY_COMMANDS = frozenset({"search", "update", "check", "print-config", "version"})


def valid_on_system(command: str) -> None:
    """Raise ``NonNixOsSystemError`` if *command* cannot run on this OS."""
    if command == "apply" and not (is_nixos() or is_macos()):
        raise NonNixOsSystemError(command, os_name())


def check_untracked_files(command: str, flake_path: Path, cfg: SystoolConfig) -> None:
    """
    Fail if the flake repository has untracked files.

    Nix ignores untracked files in a git flake, which silently drops new
    modules from the build.
    """
    if command in READ_ONLY_COMMANDS:
        return

    try:
        status = runner.read(
            [cfg.external_commands.git, "status", "--short"],
            cwd=flake_path,
            quiet=True,
        )
    except CommandFailedError:
        # Most likely not a git repository
        logger.debug(f"Could not get git status of {flake_path}")
        return

    untracked = [
        line[len("?? ") :] for line in status.splitlines() if line.startswith("??")
    ]
    if untracked:
        raise UntrackedFilesError(untracked)


def apply(method: Optional[str], flake_path: Path) -> None:
    method = method or "switch"
    if is_nixos():
        info("Applying system configuration")
        # --use-remote-sudo: git refuses to read a repository owned by another
        # user, so nixos-rebuild must not run as root itself
        runner.run(
            ["nixos-rebuild", "--use-remote-sudo", "--flake", str(flake_path), method]
        )
    elif is_macos():
        info("Applying system configuration")
        runner.run(["darwin-rebuild", "--flake", str(flake_path), method])
    else:
        raise NonNixOsSystemError("apply", os_name())


def apply_user(target_user: Optional[str], flake_path: Path) -> None:
    user = target_user or runner.read(["whoami"])
    info(f"Applying user settings for '{user}'")
    runner.run(["home-manager", "switch", "--flake", f"{flake_path}#{user}"])


def build_system(system: Optional[str], vm: bool, flake_path: Path) -> None:
    system = system or runner.read(["hostname"])
    info(f"Building system configuration for {system}")
    build_type = "vm" if vm else "toplevel"
    attribute = f".#nixosConfigurations.{system}.config.system.build.{build_type}"
    runner.run(["nix", "build", attribute], cwd=flake_path)
    if vm:
        info(
            f"VM image built. Run {flake_path}/result/bin/run-{system}-vm to start it."
        )
    else:
        info(f"System built and symlinked to {flake_path}/result")


def clean() -> None:
    info("Running garbage collection")
    runner.run(["nix", "store", "gc"])
    info("Deduplication running... this may take a while")
    runner.run(["nix", "store", "optimise"])


def prune() -> None:
    info("Pruning old generations")
    runner.run(["sudo", "nix-collect-garbage", "-d"])


def search(
    query: str,
    browser: bool,
    options: bool,
    home_manager: bool,
    cfg: SystoolConfig,
) -> None:
    """Search nixpkgs, NixOS options or Home Manager options."""
    if home_manager and (options or browser):
        raise InvalidOptionsError("cannot use --home-manager with other options")

    open_cmd = cfg.external_commands.browser_open
    urls = cfg.web_search
    if home_manager:
        # There is no CLI search for Home Manager options
        info(f"Searching home-manager for `{query}`")
        runner.run([open_cmd, urls.home_manager_search.format(query)])
    elif options:
        info(f"Searching options for '{query}'")
        if browser:
            runner.run([open_cmd, urls.nixos_option_search.format(query)])
        else:
            runner.run([cfg.external_commands.manix, query])
    else:
        info(f"Searching nixpkgs for '{query}'")
        if browser:
            runner.run([open_cmd, urls.nixos_pkg_search.format(query)])
        else:
            runner.run(["nix", "search", "nixpkgs", query])


def update_flake(flake_path: Path, cfg: SystoolConfig) -> None:
    git = cfg.external_commands.git
    info("Updating system configuration flake")
    runner.run(["nix", "flake", "update"], cwd=flake_path)
    runner.run([git, "add", LOCK_FILE_NAME], cwd=flake_path)
    runner.run([git, "commit", "-m", "Update flake lock"], cwd=flake_path)


def check_flake_version(
    no_warning: bool,
    flake_path: Path,
    cfg: SystoolConfig,
    now: Optional[datetime] = None,
) -> VersionReport:
    """
    Check how old the nixpkgs input of the system and config flakes is.

    The flake used to build the running system is found through
    ``current_system_flake_path``. When it does not exist only the flake in the
    configuration repository is checked, which is less accurate.
    """
    allowed_age = cfg.system_check.allowed_age

    current_flake_path = Path(cfg.system_check.current_system_flake_path).expanduser()
    reference: Optional[FlakeStatus] = None
    if current_flake_path.exists():
        reference = FlakeLock.load(current_flake_path / LOCK_FILE_NAME).check(
            allowed_age, now=now
        )
    else:
        logger.debug(f"No current system flake at {current_flake_path}")

    config_status = FlakeLock.load(flake_path / LOCK_FILE_NAME).check(
        allowed_age, now=now
    )

    report = compare_status(reference, config_status)
    if not report.accurate and not no_warning:
        warn(
            "The flake in the repository may not be applied to the system. "
            f"Make sure to use `{APP_NAME} apply` or create a symlink in "
            f"{current_flake_path} pointing to the source of the flake in the Nix "
            "store used to build the current system for a more accurate version "
            "check."
        )
        warn("\nAdd the following to your nixosSystem configuration to do so:")
        warn('    environment.etc."current-system-flake".source = inputs.self;')
    render_report(report, cfg)
    return report


def render_report(report: VersionReport, cfg: SystoolConfig) -> None:
    """Print a version report for the user."""
    date_format = cfg.system_check.date_format
    reference = report.reference
    config = report.config

    if reference is not None:
        last_update = reference.last_update.strftime(date_format)
        if isinstance(reference, UpToDate):
            info(
                f"System flake is up to date. Last updated on {last_update} "
                f"({reference.days_ago} days ago)"
            )
        else:
            error(
                f"System flake is out of date, last update was on {last_update} "
                f"({reference.days_ago} days ago)"
            )

    config_update = config.last_update.strftime(date_format)
    if report.advice is Advice.APPLY_CONFIG:
        if report.config_ahead and isinstance(reference, UpToDate):
            warn(
                "Config flake is AHEAD of the current system flake, last updated "
                f"on {config_update}. Consider running `{APP_NAME} apply`."
            )
        else:
            warn(
                f"Config flake is up to date, last updated on {config_update} "
                f"({config.days_ago} days ago). Update the system flake to use "
                f"this one using `{APP_NAME} apply`."
            )
    elif report.advice is Advice.UPDATE_LOCK:
        error(
            f"Please update as soon as possible using `{APP_NAME} update` "
            f"and `{APP_NAME} apply`."
        )
