"""
FileKeep Configuration Manager.

Schema-driven configuration with:
- .env loading via python-dotenv
- Environment variable override
- Optional JSON config file
- Validation against the schema
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from dotenv import load_dotenv

from filekeep.shared.gate import GateLogger

from filekeep.Config.schema import (
    CONFIG_SCHEMA,
    ConfigField,
    ConfigType,
    ConfigCategory,
    get_schema_by_key,
    schema_to_dict,
)

_log = GateLogger.get("Config")


class ConfigManager:
    """
    Resolves FileKeep configuration.

    Priority order:
    1. Environment variables (after loading the .env file)
    2. JSON config file
    3. Schema defaults
    """

    def __init__(
        self,
        env_file: Optional[Union[str, Path]] = None,
        config_json: Optional[Union[str, Path]] = None,
    ):
        self.env_file = Path(env_file) if env_file else None
        self.config_json = Path(config_json) if config_json else None
        self._cache: Dict[str, Any] = {}
        self._load()

    def _load(self):
        """Load configuration from all sources."""
        if self.env_file is not None and self.env_file.exists():
            load_dotenv(self.env_file)

        json_config = {}
        if self.config_json is not None and self.config_json.exists():
            try:
                with open(self.config_json, encoding="utf-8") as f:
                    json_config = json.load(f)
            except (json.JSONDecodeError, OSError) as e:
                _log.warning(f"Ignoring unreadable config file {self.config_json}: {e}")

        for field in CONFIG_SCHEMA:
            # Priority: env var > json config > default
            value = os.environ.get(field.env_var)

            if value is None and field.key in json_config:
                value = json_config[field.key]

            if value is None:
                value = field.default

            self._cache[field.key] = self._convert_type(value, field.config_type)

    def _convert_type(self, value: Any, config_type: ConfigType) -> Any:
        """Convert value to appropriate type."""
        if value is None:
            return None

        try:
            if config_type == ConfigType.INTEGER:
                return int(value)
            elif config_type == ConfigType.FLOAT:
                return float(value)
            elif config_type == ConfigType.BOOLEAN:
                if isinstance(value, bool):
                    return value
                return str(value).lower() in ("true", "1", "yes", "on")
            elif config_type == ConfigType.LIST:
                if isinstance(value, list):
                    return value
                return [v.strip() for v in str(value).split(",") if v.strip()]
            else:
                return str(value) if value != "" else None
        except (ValueError, TypeError):
            # Left as-is so validate() can report it
            return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get a configuration value."""
        value = self._cache.get(key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> bool:
        """
        Override a configuration value in memory.

        Returns:
            False if the key is not part of the schema
        """
        field = get_schema_by_key(key)
        if not field:
            return False
        self._cache[key] = self._convert_type(value, field.config_type)
        return True

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return {field.key: self._cache.get(field.key) for field in CONFIG_SCHEMA}

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate configuration.

        Returns:
            (is_valid, list of error messages)
        """
        errors = []

        for field in CONFIG_SCHEMA:
            value = self._cache.get(field.key)

            if field.required and (value is None or value == ""):
                errors.append(f"Required config missing: {field.key}")
                continue

            if value is None:
                continue

            if field.config_type in (ConfigType.INTEGER, ConfigType.FLOAT):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    errors.append(f"Invalid number for {field.key}: {value!r}")
                    continue
                if field.minimum is not None and value < field.minimum:
                    errors.append(f"{field.key} must be >= {field.minimum}")

            if field.options and str(value).upper() not in field.options:
                errors.append(f"Invalid option for {field.key}: {value}")

        return len(errors) == 0, errors

    def create_env_template(self) -> str:
        """Generate a .env.example template."""
        lines = [
            "# FileKeep Configuration",
            "# Copy this file to .env and adjust the values",
            "",
        ]

        for category in ConfigCategory:
            fields = [f for f in CONFIG_SCHEMA if f.category == category]
            if not fields:
                continue

            lines.append(f"# === {category.value.title()} ===")
            lines.append("")
            for field in fields:
                lines.append(f"# {field.description}")
                if field.options:
                    lines.append(f"# Options: {', '.join(field.options)}")
                if isinstance(field.default, list):
                    default = ",".join(field.default)
                else:
                    default = "" if field.default is None else field.default
                lines.append(f"{field.env_var}={default}")
                lines.append("")

        return "\n".join(lines)


def load_config(
    env_file: Optional[Union[str, Path]] = ".env",
    config_json: Optional[Union[str, Path]] = None,
) -> ConfigManager:
    """Build a ConfigManager from the given sources."""
    return ConfigManager(env_file=env_file, config_json=config_json)


def get_schema() -> Dict:
    """Get schema as dict."""
    return schema_to_dict()


__all__ = [
    "CONFIG_SCHEMA",
    "ConfigCategory",
    "ConfigField",
    "ConfigManager",
    "ConfigType",
    "get_schema",
    "load_config",
]
