"""
Config system - Layered configuration with dotted-key access.

Merge order (later overrides earlier):
1. JSON config file (``routewise.json`` in the root directory by default)
2. ``.env`` file values with the env prefix
3. Environment variables with the env prefix
4. Manual overrides
"""

from __future__ import annotations

import copy
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import dotenv_values

from .faults.domains import ConfigError


logger = logging.getLogger("routewise.config")

DEFAULT_CONFIG_FILE = "routewise.json"
_MISSING = object()


class Config:
    """
    Application configuration.

    Values are addressed with dot-separated keys::

        config.get_value("server.paths.view_root", "views")
        config.set_value("server.port", 8080)

    Args:
        data: Initial configuration tree
        root_directory: Base directory for relative paths
        config_file: File the data was read from (informational)
    """

    def __init__(
        self,
        data: Optional[Dict[str, Any]] = None,
        *,
        root_directory: Union[str, Path] = ".",
        config_file: Optional[Union[str, Path]] = None,
    ):
        self._data: Dict[str, Any] = data if data is not None else {}
        self._root_directory = Path(root_directory).resolve()
        self._config_file = Path(config_file) if config_file else None

    @property
    def root_directory(self) -> Path:
        return self._root_directory

    @property
    def config_file(self) -> Optional[Path]:
        return self._config_file

    @classmethod
    def load(
        cls,
        config_file: Optional[Union[str, Path]] = None,
        *,
        root_directory: Union[str, Path] = ".",
        env_prefix: str = "ROUTEWISE_",
        env_file: Optional[Union[str, Path]] = None,
        overrides: Optional[Mapping[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from every source.

        Args:
            config_file: JSON file (default: ``<root>/routewise.json`` if present)
            root_directory: Application root
            env_prefix: Prefix selecting environment variables
            env_file: Optional ``.env`` file
            overrides: Highest-precedence values
            environ: Environment mapping (default: ``os.environ``)

        Raises:
            ConfigError: Explicit config file missing or not valid JSON
        """
        root = Path(root_directory).resolve()
        data: Dict[str, Any] = {}

        explicit = config_file is not None
        path = Path(config_file) if explicit else root / DEFAULT_CONFIG_FILE
        if not path.is_absolute():
            path = root / path

        if path.exists():
            cls._merge_dict(data, cls._read_json(path))
        elif explicit:
            raise ConfigError(f"Config file not found: {path}", path=str(path))

        if env_file is not None:
            env_path = Path(env_file)
            if not env_path.is_absolute():
                env_path = root / env_path
            if env_path.exists():
                values = {k: v for k, v in dotenv_values(env_path).items() if v is not None}
                cls._apply_env(data, values, env_prefix)

        cls._apply_env(data, os.environ if environ is None else environ, env_prefix)

        if overrides:
            cls._merge_dict(data, copy.deepcopy(dict(overrides)))

        logger.debug("Loaded configuration from %s", path if path.exists() else "<defaults>")
        return cls(data, root_directory=root, config_file=path if path.exists() else None)

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def get_value(self, full_key: str, default: Any = None) -> Any:
        """Fetch a value by dotted key; ``default`` when any part is missing."""
        node: Any = self._data
        for part in _split_key(full_key):
            if isinstance(node, dict) and part in node:
                node = node[part]
            else:
                return default
        return node

    def set_value(self, full_key: str, value: Any) -> "Config":
        """Store a value by dotted key, creating intermediate sections."""
        parts = _split_key(full_key)
        if not parts:
            raise ValueError("Empty configuration key")

        node = self._data
        for part in parts[:-1]:
            child = node.get(part)
            if not isinstance(child, dict):
                child = node[part] = {}
            node = child
        node[parts[-1]] = value
        return self

    def has(self, full_key: str) -> bool:
        return self.get_value(full_key, _MISSING) is not _MISSING

    def resolve_path(self, path: Union[str, Path]) -> Path:
        """Resolve ``path`` against the root directory."""
        return (self._root_directory / Path(path)).resolve()

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._data)

    # ------------------------------------------------------------------
    # Loading helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _read_json(path: Path) -> Dict[str, Any]:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Invalid JSON in {path}: {exc}", path=str(path)) from exc
        except OSError as exc:
            raise ConfigError(f"Cannot read {path}: {exc}", path=str(path)) from exc

        if not isinstance(data, dict):
            raise ConfigError(f"Top level of {path} must be an object", path=str(path))
        return data

    @classmethod
    def _apply_env(cls, data: Dict[str, Any], environ: Mapping[str, str], prefix: str) -> None:
        """Convert ROUTEWISE_SERVER__PORT=8080 to {"server": {"port": 8080}}."""
        for key, value in environ.items():
            if not key.startswith(prefix) or len(key) == len(prefix):
                continue
            parts = key[len(prefix):].lower().split("__")

            current = data
            for part in parts[:-1]:
                if not isinstance(current.get(part), dict):
                    current[part] = {}
                current = current[part]
            current[parts[-1]] = cls._parse_value(value)

    @staticmethod
    def _parse_value(value: str) -> Any:
        """Parse string value to appropriate type."""
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        if value.startswith(("{", "[")):
            try:
                return json.loads(value)
            except json.JSONDecodeError:
                pass

        return value

    @classmethod
    def _merge_dict(cls, target: dict, source: Mapping[str, Any]) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, Mapping):
                cls._merge_dict(target[key], value)
            else:
                target[key] = value


def _split_key(full_key: str) -> list[str]:
    return [s for s in full_key.split(".") if s]
