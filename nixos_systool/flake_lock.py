"""
Flake lock freshness checks for nixos-systool.

This module loads a ``flake.lock`` file and decides whether its ``nixpkgs``
input is older than an allowed number of days.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import orjson

from nixos_systool.errors import (
    LockFileParseError,
    LockFileReadError,
    MalformedInputError,
    NixpkgsNotFoundError,
)

logger = logging.getLogger("nixos_systool.flake_lock")

# The only input whose age is tracked.
NIXPKGS_INPUT = "nixpkgs"

MAX_ALLOWED_AGE = timedelta.max.days


@dataclass(frozen=True)
class InputLock:
    """Lock information for a single flake input."""

    # Written as ``lastModified`` in the lock file
    last_modified: int


@dataclass(frozen=True)
class InputNode:
    """A node in the flake lock graph.

    ``locked`` is ``None`` for the special ``root`` node.
    """

    locked: Optional[InputLock] = None


@dataclass(frozen=True)
class FlakeStatus:
    """Result of checking a flake lock against an allowed age."""

    last_update: date
    since: timedelta

    @property
    def days_ago(self) -> int:
        # A lock modified in the future (clock skew) reads as today
        return max(self.since.days, 0)


class UpToDate(FlakeStatus):
    """The ``nixpkgs`` input is younger than the allowed age."""


class Outdated(FlakeStatus):
    """The ``nixpkgs`` input is at least as old as the allowed age."""


def _parse_node(name: str, data: Any) -> InputNode:
    if not isinstance(data, dict):
        raise ValueError(f"node '{name}' is not an object")

    locked = data.get("locked")
    if locked is None:
        return InputNode()
    if not isinstance(locked, dict):
        raise ValueError(f"node '{name}' has a non-object `locked` section")

    last_modified = locked.get("lastModified")
    # bool is a subclass of int, reject it explicitly
    if isinstance(last_modified, bool) or not isinstance(last_modified, int):
        raise ValueError(f"node '{name}' has no integer `lastModified`")
    return InputNode(locked=InputLock(last_modified=last_modified))


class FlakeLock:
    """A parsed ``flake.lock`` document."""

    def __init__(self, nodes: Mapping[str, InputNode]):
        self._nodes: Dict[str, InputNode] = dict(nodes)

    @property
    def nodes(self) -> Mapping[str, InputNode]:
        return dict(self._nodes)

    @classmethod
    def from_dict(cls, data: Any) -> "FlakeLock":
        """
        Build a ``FlakeLock`` from a decoded JSON document.

        Raises:
            ValueError: If the document does not have the flake lock shape.
        """
        if not isinstance(data, dict):
            raise ValueError("top level is not an object")
        nodes = data.get("nodes")
        if not isinstance(nodes, dict):
            raise ValueError("missing `nodes` object")
        return cls({name: _parse_node(name, node) for name, node in nodes.items()})

    @classmethod
    def load(cls, path: Union[str, Path]) -> "FlakeLock":
        """
        Load a ``flake.lock`` file from *path*.

        Raises:
            LockFileReadError: If the file cannot be read.
            LockFileParseError: If the content is not a valid flake lock.
        """
        path = Path(path)
        logger.debug(f"Loading flake lock from {path}")
        try:
            content = path.read_bytes()
        except OSError as e:
            raise LockFileReadError(path, e) from e

        try:
            data = orjson.loads(content)
        except orjson.JSONDecodeError as e:
            raise LockFileParseError(path, str(e)) from e

        try:
            return cls.from_dict(data)
        except ValueError as e:
            raise LockFileParseError(path, str(e)) from e

    def check(self, allowed_age: int, now: Optional[datetime] = None) -> FlakeStatus:
        """
        Classify the age of the ``nixpkgs`` input.

        Args:
            allowed_age: Number of days after which the input is outdated
            now: Current time, defaults to the current UTC time

        Returns:
            ``Outdated`` if the input is at least *allowed_age* days old,
            ``UpToDate`` otherwise

        Raises:
            NixpkgsNotFoundError: If the lock has no ``nixpkgs`` node.
            MalformedInputError: If the ``nixpkgs`` node has no usable lock.
        """
        if allowed_age < 0:
            raise ValueError(f"allowed_age must not be negative, got {allowed_age}")

        node = self._nodes.get(NIXPKGS_INPUT)
        if node is None:
            raise NixpkgsNotFoundError(NIXPKGS_INPUT)
        if node.locked is None:
            raise MalformedInputError(NIXPKGS_INPUT)

        try:
            last_update = datetime.fromtimestamp(
                node.locked.last_modified, tz=timezone.utc
            )
        except (OverflowError, OSError, ValueError) as e:
            raise MalformedInputError(
                NIXPKGS_INPUT, "has an out of range `lastModified` timestamp"
            ) from e

        if now is None:
            now = datetime.now(timezone.utc)
        since = now - last_update

        # An age beyond the range of timedelta is never reached
        outdated = allowed_age <= MAX_ALLOWED_AGE and since >= timedelta(
            days=allowed_age
        )
        status_type = Outdated if outdated else UpToDate
        logger.debug(
            f"{NIXPKGS_INPUT} last modified {last_update.isoformat()}, "
            f"{since.days} days ago ({status_type.__name__})"
        )
        return status_type(last_update=last_update.date(), since=since)
