"""repolens configuration management.

Handles persistent settings stored in ~/.repolens/config.json
"""

import json
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Optional


# Default configuration values
DEFAULT_HANDLE = "botxlab"
DEFAULT_THEME = "textual-dark"
DEFAULT_TAB = "readme"  # readme, releases, commits, contributors
DEFAULT_LOG_LEVEL = "WARNING"
DEFAULT_LOG_FORMAT = "console"  # console, json

HOME_ENV_VAR = "REPOLENS_HOME"
TOKEN_ENV_VAR = "GITHUB_TOKEN"


def get_home() -> Path:
    """Directory holding config, cache database and log file."""
    override = os.environ.get(HOME_ENV_VAR)
    if override:
        return Path(override)
    return Path.home() / ".repolens"


@dataclass
class RepoLensConfig:
    """repolens application configuration."""

    # Account
    handle: str = DEFAULT_HANDLE
    token: Optional[str] = None

    # Appearance
    theme: str = DEFAULT_THEME
    default_tab: str = DEFAULT_TAB

    # Diagnostics
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    @classmethod
    def get_config_path(cls) -> Path:
        """Get the path to the config file."""
        return get_home() / "config.json"

    @classmethod
    def cache_path(cls) -> Path:
        """Get the path to the SQLite cache database."""
        return get_home() / "cache.db"

    @classmethod
    def log_path(cls) -> Path:
        """Get the path to the dashboard log file."""
        return get_home() / "repolens.log"

    @classmethod
    def load(cls) -> "RepoLensConfig":
        """Load configuration from file, or return defaults if not found."""
        config_path = cls.get_config_path()

        if config_path.exists():
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                # Only use known fields to avoid issues with old config versions
                known_fields = {f.name for f in cls.__dataclass_fields__.values()}
                filtered_data = {k: v for k, v in data.items() if k in known_fields}
                return cls(**filtered_data)
            except (json.JSONDecodeError, TypeError, ValueError, AttributeError):
                # Invalid config, return defaults
                pass

        return cls()

    def save(self) -> None:
        """Save configuration to file."""
        config_path = self.get_config_path()

        # Ensure directory exists
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(asdict(self), f, indent=2)

    def reset(self) -> None:
        """Reset configuration to defaults."""
        self.handle = DEFAULT_HANDLE
        self.token = None
        self.theme = DEFAULT_THEME
        self.default_tab = DEFAULT_TAB
        self.log_level = DEFAULT_LOG_LEVEL
        self.log_format = DEFAULT_LOG_FORMAT

    @property
    def credential(self) -> Optional[str]:
        """Bearer token to send, preferring the configured one."""
        return self.token or os.environ.get(TOKEN_ENV_VAR) or None

    def account_changed(self, other: "RepoLensConfig") -> bool:
        """Whether switching to ``other`` invalidates the cached catalog."""
        return self.handle != other.handle or self.credential != other.credential


# Keys `repolens config set` accepts
SETTABLE_KEYS = ["handle", "token", "theme", "default_tab", "log_level", "log_format"]

AVAILABLE_TABS = [
    ("readme", "README"),
    ("releases", "Releases"),
    ("commits", "Commits"),
    ("contributors", "Contributors"),
]

LOG_FORMAT_OPTIONS = [
    ("console", "Console"),
    ("json", "JSON"),
]
