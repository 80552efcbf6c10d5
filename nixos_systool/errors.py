"""
Exception types for nixos-systool.

Every error the tool reports derives from ``SystoolError`` so the CLI can
print it and exit non-zero in a single place.
"""

from pathlib import Path
from typing import List, Optional


class SystoolError(Exception):
    """Base class for all nixos-systool errors."""


class FlakeLoadError(SystoolError):
    """A ``flake.lock`` file could not be loaded."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{reason}: {path}")


class LockFileReadError(FlakeLoadError):
    """The lock file could not be read from disk."""

    def __init__(self, path: Path, cause: OSError):
        self.cause = cause
        super().__init__(path, f"Couldn't read lock file ({cause.strerror or cause})")


class LockFileParseError(FlakeLoadError):
    """The lock file is not valid JSON or does not look like a flake lock."""

    def __init__(self, path: Path, detail: str):
        self.detail = detail
        super().__init__(path, f"Failed to parse lock file JSON ({detail})")


class FlakeCheckError(SystoolError):
    """A loaded lock file could not be checked."""


class NixpkgsNotFoundError(FlakeCheckError):
    def __init__(self, input_name: str = "nixpkgs"):
        self.input_name = input_name
        super().__init__(f"Cannot find '{input_name}' in flake lock!")


class MalformedInputError(FlakeCheckError):
    def __init__(
        self,
        input_name: str = "nixpkgs",
        problem: str = "is missing a `locked` section",
    ):
        self.input_name = input_name
        self.problem = problem
        super().__init__(f"`{input_name}` input {problem} in flake lock!")


class NonNixOsSystemError(SystoolError):
    """A command was run on an operating system it does not support."""

    def __init__(self, command: str, os_name: str):
        self.command = command
        self.os_name = os_name
        super().__init__(f"Cannot `{command}` on {os_name} systems")


class UntrackedFilesError(SystoolError):
    def __init__(self, files: List[str]):
        self.files = files
        super().__init__("Untracked files in flake: \n" + "\n".join(files))


class InvalidOptionsError(SystoolError):
    def __init__(self, message: str):
        super().__init__(f"Invalid options: {message}")


class CommandFailedError(SystoolError):
    """An external command could not be started or exited with an error."""

    def __init__(self, command: str, returncode: Optional[int] = None):
        self.command = command
        self.returncode = returncode
        if returncode is None:
            message = f"Command not found: {command}"
        else:
            message = f"Command `{command}` failed with exit code {returncode}"
        super().__init__(message)
