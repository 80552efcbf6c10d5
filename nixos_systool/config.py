"""
Configuration file support for nixos-systool.

Loads settings from ``~/.config/nixos-systool/config.yaml`` (or
``$XDG_CONFIG_HOME/nixos-systool/config.yaml``) and exposes them as typed
dataclasses that the CLI merges with command-line flags.
"""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from nixos_systool.flake_lock import MAX_ALLOWED_AGE
from nixos_systool.platform import default_browser_open

logger = logging.getLogger("nixos_systool.config")


def default_config_path() -> Path:
    """Return the default configuration file path.

    Uses ``$XDG_CONFIG_HOME/nixos-systool/config.yaml`` when set, otherwise
    falls back to ``~/.config/nixos-systool/config.yaml``.
    """
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / "nixos-systool" / "config.yaml"
    return Path.home() / ".config" / "nixos-systool" / "config.yaml"


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        logger.warning("Ignoring invalid '%s' section: %s", name, value)
        return {}
    return value


def _non_negative_int(
    section: Dict[str, Any], key: str, default: int, maximum: Optional[int] = None
) -> int:
    value = section.get(key, default)
    if (
        isinstance(value, bool)
        or not isinstance(value, int)
        or value < 0
        or (maximum is not None and value > maximum)
    ):
        logger.warning("Invalid value for '%s': %s, using %s", key, value, default)
        return default
    return value


def _string(section: Dict[str, Any], key: str, default: str) -> str:
    value = section.get(key, default)
    if not isinstance(value, str):
        logger.warning("Invalid value for '%s': %s, using %s", key, value, default)
        return default
    return value


@dataclass
class NotificationsConfig:
    """Timeouts (in seconds) for long running command notifications."""

    success_timeout: int = 10
    failure_timeout: int = 60


@dataclass
class SystemCheckConfig:
    """Settings for the ``check`` command."""

    # Days until the nixpkgs input is considered out of date
    allowed_age: int = 14
    current_system_flake_path: str = "/etc/current-system-flake"
    date_format: str = "%-d %B, %Y"


@dataclass
class ExternalCommandsConfig:
    """Names or paths of external binaries."""

    browser_open: str = field(default_factory=default_browser_open)
    git: str = "git"
    manix: str = "manix"


@dataclass
class WebSearchConfig:
    """URL templates for browser searches, ``{}`` is replaced by the query."""

    nixos_pkg_search: str = (
        "https://search.nixos.org/packages?channel=unstable&query={}"
    )
    nixos_option_search: str = (
        "https://search.nixos.org/options?channel=unstable&query={}"
    )
    home_manager_search: str = (
        "https://mipmip.github.io/home-manager-option-search/?query={}"
    )


@dataclass
class SystoolConfig:
    """Top-level configuration loaded from the YAML file."""

    notifications: NotificationsConfig = field(default_factory=NotificationsConfig)
    system_check: SystemCheckConfig = field(default_factory=SystemCheckConfig)
    external_commands: ExternalCommandsConfig = field(
        default_factory=ExternalCommandsConfig
    )
    web_search: WebSearchConfig = field(default_factory=WebSearchConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SystoolConfig":
        """Construct a ``SystoolConfig`` from a parsed YAML dictionary."""
        if not isinstance(data, dict):
            return cls()

        notifications = _section(data, "notifications")
        system_check = _section(data, "system_check")
        commands = _section(data, "external_commands")
        web_search = _section(data, "web_search")

        defaults = cls()
        return cls(
            notifications=NotificationsConfig(
                success_timeout=_non_negative_int(
                    notifications,
                    "success_timeout",
                    defaults.notifications.success_timeout,
                ),
                failure_timeout=_non_negative_int(
                    notifications,
                    "failure_timeout",
                    defaults.notifications.failure_timeout,
                ),
            ),
            system_check=SystemCheckConfig(
                allowed_age=_non_negative_int(
                    system_check,
                    "allowed_age",
                    defaults.system_check.allowed_age,
                    maximum=MAX_ALLOWED_AGE,
                ),
                current_system_flake_path=_string(
                    system_check,
                    "current_system_flake_path",
                    defaults.system_check.current_system_flake_path,
                ),
                date_format=_string(
                    system_check, "date_format", defaults.system_check.date_format
                ),
            ),
            external_commands=ExternalCommandsConfig(
                browser_open=_string(
                    commands, "browser_open", defaults.external_commands.browser_open
                ),
                git=_string(commands, "git", defaults.external_commands.git),
                manix=_string(commands, "manix", defaults.external_commands.manix),
            ),
            web_search=WebSearchConfig(
                nixos_pkg_search=_string(
                    web_search,
                    "nixos_pkg_search",
                    defaults.web_search.nixos_pkg_search,
                ),
                nixos_option_search=_string(
                    web_search,
                    "nixos_option_search",
                    defaults.web_search.nixos_option_search,
                ),
                home_manager_search=_string(
                    web_search,
                    "home_manager_search",
                    defaults.web_search.home_manager_search,
                ),
            ),
        )

    @classmethod
    def from_file(cls, path: Path) -> "SystoolConfig":
        """Read a YAML file and return a ``SystoolConfig``.

        Returns the default config on any error.
        """
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f.read())
            if data is None:
                return cls()
            return cls.from_dict(data)
        except (IOError, UnicodeDecodeError, yaml.YAMLError) as e:
            logger.error("Failed to load config from %s: %s", path, e)
            return cls()

    @classmethod
    def load(cls, config_path: Optional[Path] = None) -> "SystoolConfig":
        """Load config from *config_path* or the default location.

        Returns the default config if the file does not exist.
        """
        path = config_path or default_config_path()
        if not path.exists():
            logger.debug("No configuration file at %s, using defaults", path)
            return cls()
        return cls.from_file(path)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_yaml(self) -> str:
        """Render the effective configuration as YAML."""
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=False)
