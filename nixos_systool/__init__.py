"""
nixos-systool - manage a flake based NixOS configuration from the command line.

Wraps nixos-rebuild, home-manager, nix and git, and warns when the pinned
nixpkgs gets old.
"""

from importlib.metadata import version as _version

APP_NAME = "nixos-systool"

__version__ = _version(APP_NAME)
