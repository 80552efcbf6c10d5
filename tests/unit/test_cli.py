"""
Tests for the CLI module.
"""

import json
import time
from pathlib import Path
from typing import Generator, List
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from nixos_systool.cli import app

DAY = 86400


@pytest.fixture
def runner() -> CliRunner:
    """Fixture to create a CLI runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def not_root() -> Generator[MagicMock, None, None]:
    """Tests may run as root inside containers."""
    with patch("nixos_systool.cli.running_as_root", return_value=False) as mock:
        yield mock


@pytest.fixture
def base_args(tmp_path: Path) -> List[str]:
    """Global options pointing at a temporary flake and no config file."""
    return [
        "--flake-path",
        str(tmp_path / "config"),
        "--current-flake-path",
        str(tmp_path / "current-system-flake"),
        "--config",
        str(tmp_path / "config.yaml"),
    ]


def write_lock(directory: Path, days_old: int) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    last_modified = int(time.time()) - days_old * DAY
    document = {
        "nodes": {"root": {}, "nixpkgs": {"locked": {"lastModified": last_modified}}},
        "root": "root",
        "version": 7,
    }
    (directory / "flake.lock").write_text(json.dumps(document))


def test_version(runner: CliRunner) -> None:
    """Test the version command."""
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "nixos-systool version" in result.output


def test_refuses_to_run_as_root(runner: CliRunner, not_root: MagicMock) -> None:
    not_root.return_value = True
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 1
    assert "must not be run as root" in result.output


def test_check_command(
    runner: CliRunner, base_args: List[str], tmp_path: Path
) -> None:
    """Test the check command with both the system and config flake."""
    write_lock(tmp_path / "current-system-flake", 20)
    write_lock(tmp_path / "config", 1)
    with patch("nixos_systool.commands.runner") as mock_runner:
        result = runner.invoke(app, base_args + ["check"])
    assert result.exit_code == 0
    output = " ".join(result.output.split())
    assert "System flake is out of date" in output
    assert "(20 days ago)" in output
    assert "Config flake is up to date" in output
    # check never looks at git
    mock_runner.read.assert_not_called()


def test_check_command_reads_allowed_age_from_config(
    runner: CliRunner, base_args: List[str], tmp_path: Path
) -> None:
    (tmp_path / "config.yaml").write_text("system_check:\n  allowed_age: 30\n")
    write_lock(tmp_path / "current-system-flake", 20)
    write_lock(tmp_path / "config", 20)
    result = runner.invoke(app, base_args + ["check"])
    assert result.exit_code == 0
    assert "System flake is up to date" in " ".join(result.output.split())


def test_check_command_missing_lock(
    runner: CliRunner, base_args: List[str]
) -> None:
    result = runner.invoke(app, base_args + ["check", "--no-warning"])
    assert result.exit_code == 1
    assert "Couldn't read lock file" in result.output


def test_check_command_wrong_lock_file(
    runner: CliRunner, base_args: List[str], tmp_path: Path
) -> None:
    config = tmp_path / "config"
    config.mkdir()
    (config / "flake.lock").write_text('{"nodes": {"root": {}}}')
    result = runner.invoke(app, base_args + ["check", "--no-warning"])
    assert result.exit_code == 1
    assert "Cannot find 'nixpkgs' in flake lock!" in result.output


def test_missing_flake_path(runner: CliRunner, tmp_path: Path) -> None:
    result = runner.invoke(
        app,
        ["--config", str(tmp_path / "config.yaml"), "check"],
        env={"SYS_FLAKE_PATH": None},
    )
    assert result.exit_code == 1
    assert "Flake path not specified" in result.output


def test_flake_path_from_env(runner: CliRunner, tmp_path: Path) -> None:
    with patch("nixos_systool.commands.update_flake") as mock_update:
        result = runner.invoke(
            app,
            ["--config", str(tmp_path / "config.yaml"), "update"],
            env={"SYS_FLAKE_PATH": str(tmp_path)},
        )
    assert result.exit_code == 0
    mock_update.assert_called_once()
    assert mock_update.call_args[0][0] == tmp_path


def test_apply_rejected_on_other_systems(
    runner: CliRunner, base_args: List[str]
) -> None:
    with patch("nixos_systool.commands.is_nixos", return_value=False), patch(
        "nixos_systool.commands.is_macos", return_value=False
    ), patch("nixos_systool.commands.runner") as mock_runner:
        result = runner.invoke(app, base_args + ["apply"])
    assert result.exit_code == 1
    assert "Cannot `apply`" in result.output
    mock_runner.run.assert_not_called()


def test_build_rejected_with_untracked_files(
    runner: CliRunner, base_args: List[str]
) -> None:
    with patch("nixos_systool.commands.runner") as mock_runner:
        mock_runner.read.return_value = "?? hosts/laptop.nix"
        result = runner.invoke(app, base_args + ["build", "laptop"])
    assert result.exit_code == 1
    assert "Untracked files in flake" in result.output
    assert "hosts/laptop.nix" in result.output
    mock_runner.run.assert_not_called()


def test_build_command(runner: CliRunner, base_args: List[str], tmp_path: Path) -> None:
    with patch("nixos_systool.commands.runner") as mock_runner:
        mock_runner.read.return_value = ""
        result = runner.invoke(app, base_args + ["build", "laptop", "--vm"])
    assert result.exit_code == 0
    mock_runner.run.assert_called_once_with(
        ["nix", "build", ".#nixosConfigurations.laptop.config.system.build.vm"],
        cwd=tmp_path / "config",
    )


def test_search_command(runner: CliRunner, tmp_path: Path) -> None:
    """search works without a flake path."""
    with patch("nixos_systool.commands.search") as mock_search:
        result = runner.invoke(
            app,
            ["--config", str(tmp_path / "config.yaml"), "search", "-o", "nginx"],
            env={"SYS_FLAKE_PATH": None},
        )
    assert result.exit_code == 0
    args = mock_search.call_args[0]
    assert args[:4] == ("nginx", False, True, False)


def test_search_invalid_options(runner: CliRunner, tmp_path: Path) -> None:
    with patch("nixos_systool.commands.runner") as mock_runner:
        result = runner.invoke(
            app,
            ["--config", str(tmp_path / "config.yaml"), "search", "-m", "-b", "git"],
        )
    assert result.exit_code == 1
    assert "Invalid options" in result.output
    mock_runner.run.assert_not_called()


def test_print_config(runner: CliRunner, tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("system_check:\n  allowed_age: 3\n")
    result = runner.invoke(
        app,
        [
            "--config",
            str(config_file),
            "--current-flake-path",
            "/nix/flake",
            "print-config",
        ],
    )
    assert result.exit_code == 0
    assert "allowed_age: 3" in result.output
    assert "current_system_flake_path: /nix/flake" in result.output
