"""Application configuration (YAML) for Media Tagger."""

from __future__ import annotations

import copy
from pathlib import Path
from typing import Any

import yaml


DEFAULT_CONFIG: dict[str, Any] = {
    "storage": {
        "data_dir": "~/.media_tagger",
        "config_file": "config.json",
    },
    "search": {
        "debounce_ms": 300,
        "file_threshold": 0.1,
        "folder_threshold": 0.3,
        "tag_match_mode": "any",
    },
    "export": {
        "version": "1.0.0",
        "indent": 2,
    },
    "logging": {
        "level": "INFO",
        "log_to_file": False,
        "log_file": "media_tagger.log",
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base, returning a new dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


def get_data_config_path(data_dir: str | Path) -> Path:
    """Return <data_dir>/media_tagger.yaml."""
    return Path(data_dir).expanduser() / "media_tagger.yaml"


class ConfigManager:
    """Load, save, and access YAML configuration with defaults."""

    def __init__(self, config_path: str | Path | None = None):
        self._path = Path(config_path) if config_path else None
        self._session_path: Path | None = None
        self._config: dict[str, Any] = copy.deepcopy(DEFAULT_CONFIG)
        if self._path and self._path.exists():
            self.load()

    @property
    def path(self) -> Path | None:
        return self._path

    @property
    def config(self) -> dict[str, Any]:
        return self._config

    @property
    def data_dir(self) -> Path:
        return Path(self.get("storage.data_dir")).expanduser()

    def load(self, config_path: str | Path | None = None) -> None:
        """Load config from YAML file, merging with defaults."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        self._config = _deep_merge(DEFAULT_CONFIG, _read_yaml(path))

    def save(self, config_path: str | Path | None = None) -> None:
        """Save current config to YAML file."""
        path = Path(config_path) if config_path else self._path
        if path is None:
            raise ValueError("No config path specified")
        self._path = path
        _write_yaml(path, self._config)

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Get a config value using dotted notation (e.g. 'search.debounce_ms')."""
        keys = dotted_key.split(".")
        value = self._config
        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, dotted_key: str, value: Any) -> None:
        """Set a config value using dotted notation."""
        keys = dotted_key.split(".")
        target = self._config
        for key in keys[:-1]:
            if key not in target or not isinstance(target[key], dict):
                target[key] = {}
            target = target[key]
        target[keys[-1]] = value

    def load_layered(
        self,
        data_config_path: str | Path | None = None,
        cli_config_path: str | Path | None = None,
    ) -> None:
        """Load config with layered priority: DEFAULT <- data_config <- cli_config.

        Creates data_config_path with defaults if it doesn't exist.
        Sets _session_path so save_session() persists changes to it.
        """
        self._config = copy.deepcopy(DEFAULT_CONFIG)

        if data_config_path:
            data_config_path = Path(data_config_path)
            self._session_path = data_config_path
            if data_config_path.exists():
                self._config = _deep_merge(self._config, _read_yaml(data_config_path))
            else:
                _write_yaml(data_config_path, self._config)

        if cli_config_path:
            cli_config_path = Path(cli_config_path)
            if cli_config_path.exists():
                self._config = _deep_merge(self._config, _read_yaml(cli_config_path))

    def save_session(self) -> None:
        """Save current config to the session (data-dir) config file."""
        if self._session_path is None:
            return
        _write_yaml(self._session_path, self._config)

    def reset(self) -> None:
        """Reset config to defaults."""
        self._config = copy.deepcopy(DEFAULT_CONFIG)


def _read_yaml(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _write_yaml(path: Path, data: dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)
