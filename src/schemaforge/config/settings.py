"""Central configuration for schemaforge.

Holds the defaults the facade applies when a caller omits an option
(struct and message names, package names, indent width, dialect priority).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

DEFAULT_DIALECT_PRIORITY = ("postgresql", "mysql", "sqlite")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_tuple(name: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(name)
    if not value:
        return default
    return tuple(p.strip().lower() for p in value.split(",") if p.strip())


@dataclass(frozen=True)
class ForgeConfig:
    """Configuration for the schemaforge pipeline.

    Reads from environment variables with the SCHEMAFORGE_ prefix, or accepts
    explicit values.
    """

    # Go struct generation
    struct_name: str = "Response"
    config_struct_name: str = "Config"
    package_name: str = "model"
    generate_table_name_method: bool = True
    inline_nested_structs: bool = False

    # Protobuf generation
    message_name: str = "Message"
    proto_package: str = "model"
    proto_syntax: str = "proto3"
    proto_nested_mode: str = "separate"
    proto_int_width: int = 32
    proto_float_width: int = 32

    # Config formats
    indent: int = 4
    xml_root_name: str = "root"

    # Diff engine
    preserve_definitions: bool = True

    # Detector: first dialect whose markers match wins
    dialect_priority: tuple[str, ...] = DEFAULT_DIALECT_PRIORITY

    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> ForgeConfig:
        """Load configuration from environment variables."""
        return cls(
            struct_name=os.getenv("SCHEMAFORGE_STRUCT_NAME", "Response"),
            config_struct_name=os.getenv("SCHEMAFORGE_CONFIG_STRUCT_NAME", "Config"),
            package_name=os.getenv("SCHEMAFORGE_PACKAGE_NAME", "model"),
            generate_table_name_method=_env_bool("SCHEMAFORGE_TABLE_NAME_METHOD", True),
            inline_nested_structs=_env_bool("SCHEMAFORGE_INLINE_NESTED", False),
            message_name=os.getenv("SCHEMAFORGE_MESSAGE_NAME", "Message"),
            proto_package=os.getenv("SCHEMAFORGE_PROTO_PACKAGE", "model"),
            proto_syntax=os.getenv("SCHEMAFORGE_PROTO_SYNTAX", "proto3"),
            proto_nested_mode=os.getenv("SCHEMAFORGE_PROTO_NESTED_MODE", "separate"),
            proto_int_width=int(os.getenv("SCHEMAFORGE_PROTO_INT_WIDTH", "32")),
            proto_float_width=int(os.getenv("SCHEMAFORGE_PROTO_FLOAT_WIDTH", "32")),
            indent=int(os.getenv("SCHEMAFORGE_INDENT", "4")),
            xml_root_name=os.getenv("SCHEMAFORGE_XML_ROOT", "root"),
            preserve_definitions=_env_bool("SCHEMAFORGE_PRESERVE_DEFINITIONS", True),
            dialect_priority=_env_tuple(
                "SCHEMAFORGE_DIALECT_PRIORITY", DEFAULT_DIALECT_PRIORITY
            ),
            log_level=os.getenv("SCHEMAFORGE_LOG_LEVEL", "INFO").upper(),
        )


_config: Optional[ForgeConfig] = None


def get_config() -> ForgeConfig:
    """Get or create the singleton configuration."""
    global _config
    if _config is None:
        _config = ForgeConfig.from_env()
    return _config


def set_config(config: Optional[ForgeConfig]) -> None:
    """Override the global configuration (``None`` resets to the environment)."""
    global _config
    _config = config


def configure_logging(level: Optional[str] = None) -> None:
    """Install the project log format on the root logger.

    Library code never calls this; scripts embedding schemaforge do.
    """
    logging.basicConfig(
        level=(level or get_config().log_level).upper(),
        format=LOG_FORMAT,
    )
