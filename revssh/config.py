"""Locations of configuration files and the profile store kept in them."""

from __future__ import annotations

import tomllib
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import platformdirs
import tomli_w

from revssh.profile import Profile

APP_DIR_NAME = "reverse-ssh-interface"


def app_config_dir() -> Path:
    """The directory holding this application's configuration."""
    base = platformdirs.user_config_dir(roaming=True)
    root = Path(base) if base else Path.home() / ".config"
    return root / APP_DIR_NAME


def main_config_file() -> Path:
    return app_config_dir() / "config.toml"


def sessions_dir() -> Path:
    return app_config_dir() / "sessions"


def logs_dir() -> Path:
    return app_config_dir() / "logs"


@dataclass
class AppConfig:
    """All stored profiles, keyed by profile id."""

    profiles: dict[str, Profile] = field(default_factory=dict)

    def get_profile(self, profile_id: str) -> Profile | None:
        return self.profiles.get(profile_id)

    def add_profile(self, profile: Profile) -> None:
        self.profiles[profile.id] = profile

    def remove_profile(self, profile_id: str) -> Profile | None:
        return self.profiles.pop(profile_id, None)

    def to_dict(self) -> dict[str, Any]:
        return {"profiles": {key: value.to_dict() for key, value in self.profiles.items()}}

    @classmethod
    def from_dict(cls, data: Any) -> AppConfig:
        if not isinstance(data, Mapping):
            raise ValueError("config must be a mapping")
        profiles = data.get("profiles", {})
        if not isinstance(profiles, Mapping):
            raise ValueError("config: profiles must be a table")
        return cls({key: Profile.from_dict(value) for key, value in profiles.items()})


def load_config() -> AppConfig:
    """Read the configuration file, or return an empty one if there is none."""
    path = main_config_file()
    if not path.exists():
        return AppConfig()
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise OSError(f"Failed to read config file at {path}: {exc}") from exc
    try:
        return AppConfig.from_dict(tomllib.loads(content))
    except (tomllib.TOMLDecodeError, ValueError) as exc:
        raise ValueError(f"Failed to parse config file (TOML): {exc}") from exc


def save_config(config: AppConfig) -> None:
    """Write the configuration file, creating its directory as needed."""
    path = main_config_file()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OSError(f"Failed to create config directory: {exc}") from exc
    content = tomli_w.dumps(config.to_dict())
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise OSError(f"Failed to write config file to {path}: {exc}") from exc