"""
Thin wrapper around ``subprocess`` for running external commands.

All shell-outs to nix, git, nixos-rebuild and friends go through here so that
failures surface as ``CommandFailedError``.
"""

import logging
import shlex
import subprocess
from pathlib import Path
from typing import List, Optional, Union

from nixos_systool.errors import CommandFailedError

logger = logging.getLogger("nixos_systool.runner")

Cwd = Optional[Union[str, Path]]


def _format(args: List[str]) -> str:
    return " ".join(shlex.quote(str(arg)) for arg in args)


def run(args: List[str], cwd: Cwd = None) -> None:
    """
    Run a command, letting it write directly to the terminal.

    Args:
        args: Command and its arguments
        cwd: Directory to run the command in

    Raises:
        CommandFailedError: If the command is missing or exits non-zero
    """
    cmd_str = _format(args)
    logger.debug(f"Running command: {cmd_str}")
    try:
        subprocess.run(args, cwd=cwd, check=True)
    except FileNotFoundError as e:
        raise CommandFailedError(cmd_str) from e
    except subprocess.CalledProcessError as e:
        logger.debug(f"Return code: {e.returncode}")
        raise CommandFailedError(cmd_str, e.returncode) from e


def read(args: List[str], cwd: Cwd = None, quiet: bool = False) -> str:
    """
    Run a command and return its stripped standard output.

    Args:
        args: Command and its arguments
        cwd: Directory to run the command in
        quiet: Discard standard error instead of passing it through

    Raises:
        CommandFailedError: If the command is missing or exits non-zero
    """
    cmd_str = _format(args)
    logger.debug(f"Reading output of command: {cmd_str}")
    try:
        result = subprocess.run(
            args,
            cwd=cwd,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL if quiet else None,
            text=True,
            check=True,
        )
    except FileNotFoundError as e:
        raise CommandFailedError(cmd_str) from e
    except subprocess.CalledProcessError as e:
        logger.debug(f"Return code: {e.returncode}")
        raise CommandFailedError(cmd_str, e.returncode) from e
    return (result.stdout or "").strip()
