"""
Comparison of the applied system's flake lock with the repository's.

The advice is looked up in a decision table keyed on the status variants and
on whether the repository lock is newer than the applied one.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple, Type

from nixos_systool.flake_lock import FlakeStatus, Outdated, UpToDate


class Advice(Enum):
    """What the user should do after a version check."""

    NONE = "none"
    APPLY_CONFIG = "apply"
    UPDATE_LOCK = "update"


@dataclass(frozen=True)
class VersionReport:
    """Outcome of comparing the system and config flake statuses."""

    reference: Optional[FlakeStatus]
    config: FlakeStatus
    advice: Advice

    @property
    def accurate(self) -> bool:
        """False when the applied system's lock could not be found."""
        return self.reference is not None

    @property
    def config_ahead(self) -> bool:
        return _is_ahead(self.reference, self.config)


def _is_ahead(reference: Optional[FlakeStatus], config: FlakeStatus) -> bool:
    return reference is not None and config.last_update > reference.last_update


# (reference status, config status, config ahead of reference) -> advice
# A reference of None means the applied system's lock is unknown.
_DECISIONS: Dict[
    Tuple[Optional[Type[FlakeStatus]], Type[FlakeStatus], bool], Advice
] = {
    (None, UpToDate, False): Advice.APPLY_CONFIG,
    (None, Outdated, False): Advice.UPDATE_LOCK,
    (UpToDate, UpToDate, True): Advice.APPLY_CONFIG,
    (UpToDate, Outdated, True): Advice.APPLY_CONFIG,
    (UpToDate, UpToDate, False): Advice.NONE,
    (UpToDate, Outdated, False): Advice.NONE,
    (Outdated, UpToDate, True): Advice.APPLY_CONFIG,
    (Outdated, UpToDate, False): Advice.APPLY_CONFIG,
    (Outdated, Outdated, True): Advice.UPDATE_LOCK,
    (Outdated, Outdated, False): Advice.UPDATE_LOCK,
}


def compare_status(
    reference: Optional[FlakeStatus], config: FlakeStatus
) -> VersionReport:
    """
    Decide what to advise given the applied system and config flake statuses.

    Args:
        reference: Status of the flake used to build the running system, or
            None if it could not be located
        config: Status of the flake in the configuration repository

    Returns:
        A ``VersionReport`` holding both statuses and the advice
    """
    key = (
        type(reference) if reference is not None else None,
        type(config),
        _is_ahead(reference, config),
    )
    return VersionReport(reference=reference, config=config, advice=_DECISIONS[key])
