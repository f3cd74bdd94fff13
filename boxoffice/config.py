"""
BOXOFFICE configuration.

Settings for the dev network, the mock tokens, the ticket sale and logging.
Every setting can come from (highest precedence first):

    1. a ``BOXOFFICE_*`` environment variable
    2. ``ConfigManager.set`` or a loaded YAML file, whichever ran last
    3. the built-in default

``load_defaults`` reads ``./boxoffice.yaml``, ``./config/boxoffice.yaml`` and
``~/.boxoffice/config.yaml`` when present.

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

import yaml

from boxoffice.hardening import Validators

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Hardhat's well-known development mnemonic.
DEFAULT_MNEMONIC = "test test test test test test test test test test test junk"

# Treasury multisig used by the 2022 ticket sale.
DEFAULT_TREASURY = "0x78000b0605E81ea9df54b33f72ebC61B5F5c8077"

LOG_LEVELS = ("debug", "info", "warning", "error", "critical")

_TRUTHY = ("true", "1", "yes", "on")


class ConfigError(Exception):
    pass


class ConfigValidationError(ConfigError):
    pass


@dataclass
class ConfigValue(Generic[T]):
    """One setting: a default, an optional env binding and a validator."""
    default: T
    env_var: Optional[str] = None
    description: str = ""
    validator: Optional[Callable[[T], bool]] = None
    secret: bool = False
    _value: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        """Effective value; an environment override is converted and validated on every read."""
        raw = os.environ.get(self.env_var) if self.env_var else None
        if raw is None:
            return self.default if self._value is None else self._value

        try:
            value = self._from_env(raw)
        except ValueError as e:
            raise ConfigValidationError(f"{self.env_var}={raw!r} is not a valid {type(self.default).__name__}") from e
        if self.validator is not None and not self.validator(value):
            raise ConfigValidationError(f"validation failed for value {value} (from {self.env_var})")
        return value

    def set(self, value: T) -> None:
        if self.validator is not None and not self.validator(value):
            raise ConfigValidationError(f"Invalid value for config: {value}")
        self._value = value

    def reset(self) -> None:
        self._value = None

    def _from_env(self, raw: str) -> T:
        kind = type(self.default)
        if kind is bool:
            return raw.strip().lower() in _TRUTHY  # type: ignore[return-value]
        if kind is int:
            return int(raw)  # type: ignore[return-value]
        return raw  # type: ignore[return-value]


def setting(default: Any, env: str, description: str, check: Optional[Callable[[Any], bool]] = None,
            secret: bool = False) -> Any:
    """Dataclass field holding a fresh :class:`ConfigValue`."""
    return field(default_factory=lambda: ConfigValue(
        default=default,
        env_var=env,
        description=description,
        validator=check,
        secret=secret,
    ))


def _is_address(value: Any) -> bool:
    return Validators.validate_address(value).is_valid


@dataclass
class ChainConfig:
    chain_id: ConfigValue[int] = setting(
        31337, "BOXOFFICE_CHAIN_ID", "Chain ID reported by the dev network", lambda x: x > 0)
    account_count: ConfigValue[int] = setting(
        20, "BOXOFFICE_ACCOUNT_COUNT", "Number of funded dev accounts", lambda x: 0 < x <= 1000)
    mnemonic: ConfigValue[str] = setting(
        DEFAULT_MNEMONIC, "BOXOFFICE_MNEMONIC", "Seed phrase for deterministic dev accounts",
        lambda x: bool(x.strip()), secret=True)
    genesis_timestamp: ConfigValue[int] = setting(
        1640995200, "BOXOFFICE_GENESIS_TIMESTAMP", "Unix timestamp of block 0 (2022-01-01 UTC)",
        lambda x: x >= 0)
    block_time_seconds: ConfigValue[int] = setting(
        12, "BOXOFFICE_BLOCK_TIME", "Seconds between consecutive blocks", lambda x: x > 0)


@dataclass
class TokenConfig:
    initial_supply: ConfigValue[int] = setting(
        1_000_000, "BOXOFFICE_TOKEN_SUPPLY", "Whole tokens minted to the deployer of each mock token",
        lambda x: x >= 0)


@dataclass
class TicketingConfig:
    treasury_address: ConfigValue[str] = setting(
        DEFAULT_TREASURY, "BOXOFFICE_TREASURY", "Wallet receiving withdrawn ticket revenue", _is_address)
    default_inventory: ConfigValue[int] = setting(
        1, "BOXOFFICE_DEFAULT_INVENTORY", "In-person ticket inventory when a manifest sets none",
        lambda x: x >= 0)


@dataclass
class ObservabilityConfig:
    log_level: ConfigValue[str] = setting(
        "warning", "BOXOFFICE_LOG_LEVEL", "Log level (debug, info, warning, error, critical)",
        lambda x: x in LOG_LEVELS)
    log_format: ConfigValue[str] = setting(
        "json", "BOXOFFICE_LOG_FORMAT", "Log format (json, text)", lambda x: x in ("json", "text"))


@dataclass
class BoxOfficeConfig:
    chain: ChainConfig = field(default_factory=ChainConfig)
    tokens: TokenConfig = field(default_factory=TokenConfig)
    ticketing: TicketingConfig = field(default_factory=TicketingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def settings(self) -> Iterator[Tuple[str, ConfigValue]]:
        """Yield ``(dotted.path, ConfigValue)`` for every setting."""
        for section in fields(self):
            group = getattr(self, section.name)
            for item in fields(group):
                yield f"{section.name}.{item.name}", getattr(group, item.name)

    def to_dict(self, include_secrets: bool = False) -> Dict[str, Any]:
        """Nested plain values; secrets are masked unless asked for."""
        out: Dict[str, Any] = {}
        for path, value in self.settings():
            section, name = path.split(".")
            masked = value.secret and not include_secrets
            out.setdefault(section, {})[name] = "***" if masked else value.get()
        return out

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False)


class ConfigManager:
    """
    Process-wide holder of the active :class:`BoxOfficeConfig`.

    A singleton, so the dev chain, the deploy helpers and the CLI all read the
    same settings. ``reload`` re-reads every file loaded so far and then
    notifies watchers.
    """

    _instance: Optional["ConfigManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "ConfigManager":
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._initialized = False
                cls._instance = instance
            return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._config = BoxOfficeConfig()
        self._config_paths: List[Path] = []
        self._watchers: List[Callable[[BoxOfficeConfig], None]] = []
        self._initialized = True

    @property
    def config(self) -> BoxOfficeConfig:
        return self._config

    def load_from_file(self, path: Union[str, Path]) -> None:
        path = Path(path)
        if not path.is_file():
            raise ConfigError(f"Configuration file not found: {path}")

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if data is None:
            return
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {path}")

        self._apply(self._config, data, "")
        if path not in self._config_paths:
            self._config_paths.append(path)

    def load_defaults(self) -> None:
        candidates = [
            Path("boxoffice.yaml"),
            Path("config") / "boxoffice.yaml",
            Path.home() / ".boxoffice" / "config.yaml",
        ]
        for path in candidates:
            if not path.exists():
                continue
            try:
                self.load_from_file(path)
            except ConfigError as e:
                logger.warning("Skipping default config %s: %s", path, e)

    def _apply(self, target: Any, values: Dict[str, Any], prefix: str) -> None:
        for key, value in values.items():
            path = prefix + key
            if not hasattr(target, key):
                raise ConfigError(f"Unknown config key: {path}")
            attr = getattr(target, key)
            if isinstance(attr, ConfigValue):
                attr.set(value)
            elif is_dataclass(attr) and isinstance(value, dict):
                self._apply(attr, value, path + ".")
            else:
                raise ConfigError(f"Invalid config section: {path}")

    def _resolve(self, path: str) -> Any:
        node: Any = self._config
        for part in path.split("."):
            if isinstance(node, ConfigValue) or part not in {f.name for f in fields(node)}:
                raise ConfigError(f"Invalid config path: {path}")
            node = getattr(node, part)
        return node

    def set(self, path: str, value: Any) -> None:
        """Override one setting, e.g. ``set("chain.account_count", 5)``."""
        node = self._resolve(path)
        if not isinstance(node, ConfigValue):
            raise ConfigError(f"Invalid config path: {path}")
        node.set(value)

    def get(self, path: str) -> Any:
        """Read one setting, e.g. ``get("ticketing.treasury_address")``.

        A section path returns the section object.
        """
        node = self._resolve(path)
        return node.get() if isinstance(node, ConfigValue) else node

    def watch(self, callback: Callable[[BoxOfficeConfig], None]) -> None:
        self._watchers.append(callback)

    def reload(self) -> None:
        for path in self._config_paths:
            if path.exists():
                self.load_from_file(path)
        for watcher in self._watchers:
            watcher(self._config)

    def reset(self) -> None:
        """Back to defaults, with no loaded files and no watchers."""
        self._config = BoxOfficeConfig()
        self._config_paths = []
        self._watchers = []

    def validate(self) -> List[str]:
        """Check every effective value, environment overrides included."""
        errors: List[str] = []
        for path, value in self._config.settings():
            try:
                value.get()
            except ConfigValidationError as e:
                errors.append(f"{path}: {e}")
        return errors

    def export_schema(self) -> Dict[str, Any]:
        properties: Dict[str, Any] = {}
        for path, value in self._config.settings():
            section, name = path.split(".")
            entry = {
                "type": type(value.default).__name__,
                "default": "***" if value.secret else str(value.default),
                "description": value.description,
            }
            if value.env_var:
                entry["env_var"] = value.env_var
            properties.setdefault(section, {})[name] = entry
        return {"properties": properties}


def get_config() -> BoxOfficeConfig:
    return ConfigManager().config


def get_config_manager() -> ConfigManager:
    return ConfigManager()
