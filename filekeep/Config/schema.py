"""
Configuration schema for FileKeep.

Defines every configurable option with the metadata used for type
conversion, validation and the generated .env template.
"""

from enum import Enum
from typing import Optional, List, Any
from dataclasses import dataclass


class ConfigType(Enum):
    """Configuration value types."""
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    PATH = "path"          # File system path
    LIST = "list"          # Comma-separated values


class ConfigCategory(Enum):
    """Configuration categories for grouping."""
    PATHS = "paths"
    TRASH = "trash"
    SERVER = "server"
    LOGGING = "logging"


@dataclass
class ConfigField:
    """Definition of a configuration field."""
    key: str
    description: str
    config_type: ConfigType
    category: ConfigCategory
    required: bool = False
    default: Any = None
    env_var: str = None          # Override env var name (defaults to key)
    options: List[str] = None    # For enumerated types
    minimum: Optional[float] = None
    restart_required: bool = False

    def __post_init__(self):
        if self.env_var is None:
            self.env_var = self.key


# ==================== Schema Definition ====================

CONFIG_SCHEMA: List[ConfigField] = [
    # === Paths ===
    ConfigField(
        key="FILEKEEP_ROOT",
        description="Sandbox root served by FileKeep; every path is resolved under it",
        config_type=ConfigType.PATH,
        category=ConfigCategory.PATHS,
        required=True,
        default=".",
        restart_required=True,
    ),
    ConfigField(
        key="FILEKEEP_TRASH_FOLDER",
        description="Staging directory name for soft-deleted items, relative to the root",
        config_type=ConfigType.STRING,
        category=ConfigCategory.PATHS,
        default=".trash",
        restart_required=True,
    ),

    # === Trash ===
    ConfigField(
        key="FILEKEEP_TRASH_RETENTION_DAYS",
        description="Days a trashed item is kept before the janitor reclaims it",
        config_type=ConfigType.FLOAT,
        category=ConfigCategory.TRASH,
        default=30,
        minimum=0,
    ),
    ConfigField(
        key="FILEKEEP_TRASH_SWEEP_INTERVAL",
        description="Seconds between janitor sweeps",
        config_type=ConfigType.FLOAT,
        category=ConfigCategory.TRASH,
        default=3600,
        minimum=1,
    ),
    ConfigField(
        key="FILEKEEP_TRASH_SWEEP_INITIAL_DELAY",
        description="Seconds before the first sweep (defaults to the sweep interval)",
        config_type=ConfigType.FLOAT,
        category=ConfigCategory.TRASH,
        default=None,
        minimum=0,
    ),
    ConfigField(
        key="FILEKEEP_JANITOR_ENABLED",
        description="Run the background janitor while the server is up",
        config_type=ConfigType.BOOLEAN,
        category=ConfigCategory.TRASH,
        default=True,
    ),

    # === Server ===
    ConfigField(
        key="HOST",
        description="Server bind address",
        config_type=ConfigType.STRING,
        category=ConfigCategory.SERVER,
        default="127.0.0.1",
        restart_required=True,
    ),
    ConfigField(
        key="PORT",
        description="Server port",
        config_type=ConfigType.INTEGER,
        category=ConfigCategory.SERVER,
        default=8080,
        minimum=1,
        restart_required=True,
    ),
    ConfigField(
        key="CORS_ORIGINS",
        description="Allowed CORS origins (comma-separated)",
        config_type=ConfigType.LIST,
        category=ConfigCategory.SERVER,
        default=[],
    ),

    # === Logging ===
    ConfigField(
        key="LOG_LEVEL",
        description="Log level for the filekeep loggers",
        config_type=ConfigType.STRING,
        category=ConfigCategory.LOGGING,
        default="INFO",
        options=["DEBUG", "INFO", "WARNING", "ERROR"],
    ),
]


def get_schema_by_key(key: str) -> Optional[ConfigField]:
    """Get schema field by key."""
    for field in CONFIG_SCHEMA:
        if field.key == key:
            return field
    return None


def get_schema_by_category(category: ConfigCategory) -> List[ConfigField]:
    """Get all fields in a category."""
    return [f for f in CONFIG_SCHEMA if f.category == category]


def schema_to_dict() -> dict:
    """Convert schema to dict, grouped by category."""
    result = {}
    for cat in ConfigCategory:
        result[cat.value] = [
            {
                "key": f.key,
                "description": f.description,
                "type": f.config_type.value,
                "required": f.required,
                "default": f.default,
                "options": f.options,
                "restart_required": f.restart_required,
            }
            for f in get_schema_by_category(cat)
        ]
    return result
