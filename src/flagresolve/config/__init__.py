"""User input loading: configuration files and command-line overrides."""

from flagresolve.config.loader import (
    CLI_SOURCE,
    FlagEntry,
    UserConfig,
    apply_overrides,
    load_config,
    parse_config,
)

__all__ = [
    "CLI_SOURCE",
    "FlagEntry",
    "UserConfig",
    "apply_overrides",
    "load_config",
    "parse_config",
]
