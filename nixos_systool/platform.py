"""
Platform detection helpers for nixos-systool.

Centralizes NixOS, macOS and Linux differences so the rest of the codebase
can call simple functions instead of scattering ``sys.platform`` checks.
"""

import sys
from pathlib import Path

OS_RELEASE = Path("/etc/os-release")


def is_macos() -> bool:
    """Return True when running on macOS."""
    return sys.platform == "darwin"


def is_linux() -> bool:
    """Return True when running on Linux."""
    return sys.platform.startswith("linux")


def _os_release_id() -> str:
    try:
        content = OS_RELEASE.read_text()
    except OSError:
        return ""
    for line in content.splitlines():
        if line.startswith("ID="):
            return line[len("ID=") :].strip().strip('"')
    return ""


def is_nixos() -> bool:
    """Return True when running on NixOS."""
    return is_linux() and _os_release_id() == "nixos"


def os_name() -> str:
    """Return a human readable name of the current operating system."""
    if is_macos():
        return "Mac OS"
    if is_nixos():
        return "NixOS"
    if is_linux():
        return _os_release_id() or "Linux"
    return sys.platform


def default_browser_open() -> str:
    """Return the platform command used to open a URL in a browser."""
    if is_linux():
        return "xdg-open"
    return "open"
