"""
Tests for comparing the system and config flake statuses.
"""

from datetime import date, timedelta

import pytest

from nixos_systool.flake_lock import FlakeStatus, Outdated, UpToDate
from nixos_systool.report import Advice, compare_status


def up_to_date(day: int) -> FlakeStatus:
    return UpToDate(last_update=date(2024, 1, day), since=timedelta(days=20 - day))


def outdated(day: int) -> FlakeStatus:
    return Outdated(last_update=date(2024, 1, day), since=timedelta(days=20 - day))


def test_config_ahead_of_system_advises_apply() -> None:
    report = compare_status(up_to_date(10), up_to_date(12))
    assert report.advice is Advice.APPLY_CONFIG
    assert report.config_ahead is True
    assert report.accurate is True


def test_config_same_as_system_needs_nothing() -> None:
    report = compare_status(up_to_date(10), up_to_date(10))
    assert report.advice is Advice.NONE
    assert report.config_ahead is False


def test_config_behind_system_needs_nothing() -> None:
    report = compare_status(up_to_date(12), up_to_date(10))
    assert report.advice is Advice.NONE


def test_outdated_system_with_fresh_config_advises_apply() -> None:
    report = compare_status(outdated(1), up_to_date(12))
    assert report.advice is Advice.APPLY_CONFIG


def test_both_outdated_advises_update() -> None:
    report = compare_status(outdated(1), outdated(2))
    assert report.advice is Advice.UPDATE_LOCK


@pytest.mark.parametrize(
    "config, advice",
    [
        (up_to_date(12), Advice.APPLY_CONFIG),
        (outdated(1), Advice.UPDATE_LOCK),
    ],
)
def test_without_reference_falls_back_to_config(
    config: FlakeStatus, advice: Advice
) -> None:
    report = compare_status(None, config)
    assert report.advice is advice
    assert report.accurate is False
    assert report.config_ahead is False
    assert report.reference is None
    assert report.config is config


def test_compare_is_pure() -> None:
    reference, config = outdated(3), up_to_date(12)
    assert compare_status(reference, config) == compare_status(reference, config)
