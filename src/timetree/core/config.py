"""Configuration management for Timetree."""

import copy
import logging
import secrets
import shutil
from pathlib import Path
from typing import Any, Iterator, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

DEFAULT_CONFIG_PATH = Path.home() / ".timetree" / "config.yml"

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "general": {
            "data_dir": "~/.timetree/data",
            "store_file": "store.json",
        },
        "display": {
            "time_format": "HMS",
            "color_scheme": "default",
        },
        "advanced": {
            "log_level": "WARNING",
            "log_file": None,
        },
        "api": {
            "enabled": False,
            "host": "localhost",
            "port": 8000,
            "authentication": {
                "enabled": True,
                "token_expiry_hours": 24,
                "secret_key": None,
            },
            "cors": {
                "enabled": True,
                "origins": ["http://localhost:3000", "http://localhost:5173"],
            },
            "advanced": {
                "reload": False,
                "log_level": "info",
                "access_log": True,
            },
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "general": {
                "type": "object",
                "properties": {
                    "data_dir": {"type": "string"},
                    "store_file": {"type": "string", "minLength": 1},
                },
            },
            "display": {
                "type": "object",
                "properties": {
                    "time_format": {"type": "string", "enum": ["HMS", "MS", "S"]},
                    "color_scheme": {"type": "string"},
                },
            },
            "advanced": {
                "type": "object",
                "properties": {
                    "log_level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                    "log_file": {"type": ["string", "null"]},
                },
            },
            "api": {
                "type": "object",
                "properties": {
                    "enabled": {"type": "boolean"},
                    "host": {"type": "string"},
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "authentication": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "token_expiry_hours": {
                                "type": "integer",
                                "minimum": 1,
                                "maximum": 8760,
                            },
                            "secret_key": {"type": ["string", "null"]},
                        },
                    },
                    "cors": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "origins": {
                                "type": "array",
                                "items": {"type": "string"},
                            },
                        },
                    },
                    "advanced": {
                        "type": "object",
                        "properties": {
                            "reload": {"type": "boolean"},
                            "log_level": {"type": "string"},
                            "access_log": {"type": "boolean"},
                        },
                    },
                },
            },
        },
        "required": ["version"],
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to ~/.timetree/config.yml
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict[str, Any] = {}
        self.reload()

    @property
    def backup_path(self) -> Path:
        return self.config_path.with_suffix(".yml.backup")

    def reload(self) -> None:
        """Read the config file, writing the defaults first if it is missing.

        Raises:
            ValueError: If the file does not validate. The file is moved to
                :attr:`backup_path` and replaced by the defaults first.
        """
        if not self.config_path.exists():
            self.reset()
            return

        with open(self.config_path, encoding="utf-8") as f:
            self._config = _merged(self.DEFAULT_CONFIG, yaml.safe_load(f) or {})
        try:
            self.validate()
        except ValueError as e:
            self.config_path.replace(self.backup_path)
            logger.warning(f"Invalid config {self.config_path} moved to {self.backup_path}")
            self.reset()
            raise ValueError(
                f"Config validation failed, backed up to {self.backup_path}. "
                f"Using defaults. Error: {e}"
            )

    def get(self, key: str, default: Any = None) -> Any:
        """Look up a dotted key such as ``display.time_format``.

        Missing keys and explicit nulls both yield ``default``.
        """
        node: Any = self._config
        for part in key.split("."):
            if not isinstance(node, dict) or node.get(part) is None:
                return default
            node = node[part]
        return node

    def set(self, key: str, value: Any) -> None:
        """Set a dotted key and save, creating intermediate sections.

        Raises:
            ValueError: If the result does not validate; nothing is changed
        """
        *sections, leaf = key.split(".")
        candidate = copy.deepcopy(self._config)
        node = candidate
        for section in sections:
            if not isinstance(node.get(section), dict):
                node[section] = {}
            node = node[section]
        node[leaf] = value

        validate_config(candidate)
        self._config = candidate
        self.save()

    def validate(self) -> bool:
        """Validate the loaded configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        return validate_config(self._config)

    def save(self) -> None:
        """Write the configuration as YAML."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.config_path.with_suffix(".yml.tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(self._config, f, default_flow_style=False, sort_keys=False)
        temp_path.replace(self.config_path)

    def backup(self) -> Optional[Path]:
        """Copy the config file to :attr:`backup_path`, if the file exists."""
        if not self.config_path.exists():
            return None
        shutil.copy(self.config_path, self.backup_path)
        return self.backup_path

    def reset(self) -> None:
        """Replace the configuration with the defaults and save."""
        self._config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.save()

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)

    def settings(self) -> list[tuple[str, Any]]:
        """Flatten the configuration to ``(dotted key, value)`` pairs in file order."""
        return list(_flatten(self._config))

    @property
    def data_dir(self) -> Path:
        """Resolved data directory."""
        return Path(self.get("general.data_dir", "~/.timetree/data")).expanduser()

    def ensure_api_secret_key(self) -> str:
        """Return the API signing key, generating and saving one if unset."""
        secret_key: Optional[str] = self.get("api.authentication.secret_key")
        if not secret_key:
            secret_key = secrets.token_urlsafe(32)
            self.set("api.authentication.secret_key", secret_key)
        return secret_key


def validate_config(config: dict[str, Any]) -> bool:
    """Check a configuration mapping against :attr:`ConfigManager.CONFIG_SCHEMA`.

    Raises:
        ValueError: If configuration is invalid
    """
    try:
        validate(instance=config, schema=ConfigManager.CONFIG_SCHEMA)
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e.message}")
    return True


def _merged(defaults: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``defaults`` overlaid with ``override``, section by section."""
    result = copy.deepcopy(defaults)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _merged(result[key], value)
        else:
            result[key] = value
    return result


def _flatten(node: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, Any]]:
    for name, value in node.items():
        dotted = f"{prefix}.{name}" if prefix else name
        if isinstance(value, dict):
            yield from _flatten(value, dotted)
        else:
            yield dotted, value
