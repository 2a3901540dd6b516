"""
Config system - Layered configuration with merge precedence.

Plugins read their own section through ``PluginContext.get_config()``;
the section for plugin ``orders-context`` lives under
``plugins.orders-context``.
"""

from typing import Any, Dict, Iterable, Optional
from pathlib import Path
import json
import os

import yaml
from dotenv import dotenv_values


class ConfigError(Exception):
    """Raised when configuration cannot be loaded."""
    pass


class ConfigLoader:
    """
    Loads and merges configuration from multiple sources with precedence:
    overrides > environment variables > .env file > config files > defaults
    """

    def __init__(self, env_prefix: str = "PLINTH_"):
        self.env_prefix = env_prefix
        self.config_data: Dict[str, Any] = {}

    @classmethod
    def load(
        cls,
        paths: Optional[Iterable[str]] = None,
        env_prefix: str = "PLINTH_",
        env_file: Optional[str] = None,
        defaults: Optional[Dict[str, Any]] = None,
        overrides: Optional[Dict[str, Any]] = None,
        use_environ: bool = True,
    ) -> "ConfigLoader":
        """
        Load configuration from multiple sources.

        Merge order (later overrides earlier):
        1. Defaults
        2. Config files (YAML or JSON), in the given order
        3. .env file (only keys with the prefix)
        4. Environment variables (prefix, ``__`` separates nesting)
        5. Manual overrides

        Args:
            paths: Config file paths
            env_prefix: Prefix for environment variables
            env_file: Path to .env file
            defaults: Lowest-precedence values
            overrides: Manual overrides (highest precedence)
            use_environ: Read ``os.environ``

        Returns:
            Configured ConfigLoader instance
        """
        loader = cls(env_prefix=env_prefix)

        if defaults:
            loader._merge_dict(loader.config_data, defaults)

        for path in paths or ():
            loader._load_file(Path(path))

        if env_file:
            loader._load_env_file(env_file)

        if use_environ:
            loader._load_from_env()

        if overrides:
            loader._merge_dict(loader.config_data, overrides)

        return loader

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConfigLoader":
        """Build a loader from an in-memory dict only."""
        loader = cls()
        loader._merge_dict(loader.config_data, data)
        return loader

    def _load_file(self, path: Path) -> None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

        if path.suffix == ".json":
            self._load_json_file(path)
        elif path.suffix in (".yaml", ".yml"):
            self._load_yaml_file(path)
        else:
            raise ConfigError(f"Unsupported config file type: {path}")

    def _load_json_file(self, path: Path) -> None:
        try:
            with open(path) as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigError(f"Invalid JSON in {path}: {e}") from e
        self._merge_mapping(path, data)

    def _load_yaml_file(self, path: Path) -> None:
        try:
            with open(path) as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if data:
            self._merge_mapping(path, data)

    def _merge_mapping(self, path: Path, data: Any) -> None:
        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        self._merge_dict(self.config_data, data)

    def _load_env_file(self, path: str) -> None:
        """Load prefixed keys from a .env file."""
        env_path = Path(path)
        if not env_path.exists():
            return

        for key, value in dotenv_values(env_path).items():
            if value is not None and key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _load_from_env(self) -> None:
        for key, value in os.environ.items():
            if key.startswith(self.env_prefix):
                self._set_nested(key, value)

    def _set_nested(self, key: str, value: str) -> None:
        """Convert PLINTH_PLUGINS__ORDERS__MAX_SIZE to nested dict."""
        key = key[len(self.env_prefix):]

        # Double underscore separates nesting levels
        parts = key.lower().split("__")

        current = self.config_data
        for part in parts[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]

        current[parts[-1]] = self._parse_value(value)

    def _parse_value(self, value: str) -> Any:
        """Parse string value to appropriate type."""
        if value.lower() in ("true", "yes"):
            return True
        if value.lower() in ("false", "no"):
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

    def _merge_dict(self, target: dict, source: dict) -> None:
        """Deep merge source into target."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge_dict(target[key], value)
            else:
                target[key] = value

    def get(self, path: str, default: Any = None) -> Any:
        """Get config value by dot-separated path."""
        current: Any = self.config_data

        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return default

        return current

    def plugin_config(self, plugin_name: str) -> Dict[str, Any]:
        """
        Config section for one plugin.

        Environment variables lower-case their keys, so the section is also
        looked up under the lower-cased name with dashes turned into
        underscores.
        """
        plugins = self.config_data.get("plugins", {})
        if not isinstance(plugins, dict):
            return {}

        for candidate in (plugin_name, plugin_name.lower().replace("-", "_")):
            section = plugins.get(candidate)
            if isinstance(section, dict):
                return section
        return {}

    def to_dict(self) -> dict:
        """Export all config as dictionary."""
        return self.config_data.copy()
