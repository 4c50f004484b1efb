"""Load user flag input from configuration files and command-line overrides.

A configuration file is YAML (JSON is accepted too, being a YAML subset)::

    flags:
      MBEDTLS_ECP_C: true
      MBEDTLS_PK_PARSE_C: enabled
      MBEDTLS_ECDSA_C: false
    enable:
      - MBEDTLS_PSA_CRYPTO_C
    disable:
      - MBEDTLS_ECDH_LEGACY_CONTEXT
    capabilities:
      - ecdsa-verify

Command-line overrides replace whatever the file says about a flag. Enabling
and disabling the same flag within one source is a ``ConflictError`` raised
when the input is turned into a ``FlagStore``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

import yaml

from flagresolve.core.flags import FlagState, FlagStore
from flagresolve.exceptions import ConfigError

_FLAG_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
_KNOWN_KEYS = frozenset({"flags", "enable", "disable", "capabilities"})

CLI_SOURCE = "command line"


@dataclass(frozen=True)
class FlagEntry:
    """One explicit flag decision and where it came from."""

    flag: str
    state: FlagState
    source: str


@dataclass
class UserConfig:
    """Parsed user input: explicit flag decisions plus requested capabilities."""

    entries: list[FlagEntry] = field(default_factory=list)
    requested: tuple[str, ...] = ()

    @property
    def flags(self) -> dict[str, FlagState]:
        return {e.flag: e.state for e in self.entries}

    def to_store(self) -> FlagStore:
        """Build the initial flag store.

        Raises:
            ConflictError: If one flag is both enabled and disabled.
        """
        store = FlagStore()
        for entry in self.entries:
            store.set(entry.flag, entry.state, source=entry.source)
        return store


def _check_flag_name(name: Any, source: str) -> str:
    if not isinstance(name, str) or not _FLAG_NAME_RE.match(name):
        raise ConfigError(f"Invalid flag name {name!r} in {source}")
    return name


def _as_list(value: Any, key: str, source: str) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, list):
        raise ConfigError(f"'{key}' in {source} must be a list")
    return value


def parse_config(data: Any, source: str = "<config>") -> UserConfig:
    """Turn already-loaded YAML/JSON data into a ``UserConfig``.

    Raises:
        ConfigError: On unknown keys, bad flag names, or bad states.
    """
    if data is None:
        return UserConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{source} must contain a mapping at the top level")
    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        raise ConfigError(f"Unknown key(s) in {source}: {', '.join(sorted(map(str, unknown)))}")

    entries: list[FlagEntry] = []
    flags = data.get("flags") or {}
    if not isinstance(flags, dict):
        raise ConfigError(f"'flags' in {source} must be a mapping of flag -> state")
    for name, value in flags.items():
        _check_flag_name(name, source)
        try:
            state = FlagState.parse(value)
        except ValueError as exc:
            raise ConfigError(f"{name} in {source}: {exc}") from exc
        if state is FlagState.UNSET:
            continue
        entries.append(FlagEntry(name, state, source))

    for name in _as_list(data.get("enable"), "enable", source):
        entries.append(FlagEntry(_check_flag_name(name, source), FlagState.ENABLED, source))
    for name in _as_list(data.get("disable"), "disable", source):
        entries.append(FlagEntry(_check_flag_name(name, source), FlagState.DISABLED, source))

    requested = _as_list(data.get("capabilities"), "capabilities", source)
    if not all(isinstance(c, str) and c for c in requested):
        raise ConfigError(f"'capabilities' in {source} must list capability names")
    return UserConfig(entries=entries, requested=tuple(requested))


def load_config(path: str | Path) -> UserConfig:
    """Load a YAML or JSON configuration file.

    Raises:
        ConfigError: If the file cannot be read or parsed.
    """
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Cannot read {path}: {exc}") from exc
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Malformed configuration in {path}: {exc}") from exc
    return parse_config(data, source=str(path))


def apply_overrides(
    config: UserConfig,
    enable: Iterable[str] = (),
    disable: Iterable[str] = (),
    require: Iterable[str] = (),
) -> UserConfig:
    """Layer command-line overrides on top of file input.

    File entries for any flag named on the command line are dropped, so the
    command line wins. Requested capabilities are merged.
    """
    overrides = [
        FlagEntry(_check_flag_name(f, CLI_SOURCE), FlagState.ENABLED, CLI_SOURCE)
        for f in enable
    ] + [
        FlagEntry(_check_flag_name(f, CLI_SOURCE), FlagState.DISABLED, CLI_SOURCE)
        for f in disable
    ]
    overridden = {e.flag for e in overrides}
    entries = [e for e in config.entries if e.flag not in overridden] + overrides
    requested = tuple(dict.fromkeys([*config.requested, *require]))
    return UserConfig(entries=entries, requested=requested)
