"""Configuration for schemaforge."""

from schemaforge.config.settings import (
    ForgeConfig,
    configure_logging,
    get_config,
    set_config,
)
