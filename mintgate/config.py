"""
Runtime settings for mintgate.

Settings cover the ambient concerns (logging, audit) and are separate from
the immutable CollectionConfig in mintgate.collection.

Resolution order, first match wins:
    1. MINTGATE_* environment variables
    2. Values set at runtime or loaded from a YAML file
    3. Built-in defaults

    manager = get_config_manager()
    manager.load_defaults()                      # ./mintgate.yaml if present
    manager.set("observability.log_level", "debug")

Copyright (c) 2026 Momentum. All rights reserved.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Generic, Iterator, List, Optional, Tuple, TypeVar, Union

import yaml

T = TypeVar("T")

DEFAULT_SETTINGS_FILES = (Path("mintgate.yaml"), Path("config/mintgate.yaml"))


class SettingsError(Exception):
    """Runtime settings error."""
    pass


class SettingsValidationError(SettingsError):
    """A setting was given a value outside its allowed range."""
    pass


def _parse_bool(raw: str) -> bool:
    return raw.strip().lower() in ("true", "1", "yes", "on")


@dataclass
class Setting(Generic[T]):
    """One tunable value: a default, an optional env binding and its constraints."""
    default: T
    env: Optional[str] = None
    help: str = ""
    choices: Tuple[Any, ...] = ()
    minimum: Optional[int] = None
    _override: Optional[T] = field(default=None, repr=False)

    def get(self) -> T:
        raw = os.environ.get(self.env) if self.env else None
        if raw is not None:
            return self.parse(raw)
        if self._override is not None:
            return self._override
        return self.default

    def set(self, value: T) -> None:
        problem = self.check(value)
        if problem:
            raise SettingsValidationError(f"{problem}: {value!r}")
        self._override = value

    def reset(self) -> None:
        self._override = None

    def parse(self, raw: str) -> T:
        """Interpret an environment string as the type of the default."""
        if isinstance(self.default, bool):
            return _parse_bool(raw)  # type: ignore
        if isinstance(self.default, int):
            return int(raw)  # type: ignore
        return raw  # type: ignore

    def check(self, value: Any) -> str:
        """Empty string when `value` is acceptable, otherwise the reason."""
        if self.choices and value not in self.choices:
            return f"expected one of {', '.join(map(str, self.choices))}"
        if self.minimum is not None:
            if isinstance(value, bool) or not isinstance(value, int):
                return "expected an integer"
            if value < self.minimum:
                return f"must be >= {self.minimum}"
        return ""


@dataclass
class ObservabilitySettings:
    log_level: Setting[str] = field(default_factory=lambda: Setting(
        default="info",
        env="MINTGATE_LOG_LEVEL",
        help="Minimum level written by mintgate loggers",
        choices=("debug", "info", "warning", "error", "critical"),
    ))
    log_format: Setting[str] = field(default_factory=lambda: Setting(
        default="json",
        env="MINTGATE_LOG_FORMAT",
        help="json for one object per line, text for humans",
        choices=("json", "text"),
    ))


@dataclass
class AuditSettings:
    enabled: Setting[bool] = field(default_factory=lambda: Setting(
        default=True,
        env="MINTGATE_AUDIT_ENABLED",
        help="Record accepted and rejected operations in the audit trail",
    ))
    max_events: Setting[int] = field(default_factory=lambda: Setting(
        default=100000,
        env="MINTGATE_AUDIT_MAX_EVENTS",
        help="Audit events kept in memory before the oldest are evicted",
        minimum=1,
    ))


@dataclass
class MintgateSettings:
    """Root settings object."""
    observability: ObservabilitySettings = field(default_factory=ObservabilitySettings)
    audit: AuditSettings = field(default_factory=AuditSettings)

    def settings(self) -> Iterator[Tuple[str, Setting]]:
        """Every leaf setting with its dotted path."""
        for section in fields(self):
            group = getattr(self, section.name)
            for entry in fields(group):
                yield f"{section.name}.{entry.name}", getattr(group, entry.name)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Dict[str, Any]] = {}
        for path, setting in self.settings():
            section, name = path.split(".", 1)
            out.setdefault(section, {})[name] = setting.get()
        return out

    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), default_flow_style=False, sort_keys=True)


class ConfigManager:
    """
    Owns the process-wide MintgateSettings.

    Use get_config_manager() rather than constructing one directly.
    """

    def __init__(self):
        self._settings = MintgateSettings()
        self._loaded: List[Path] = []
        self._lock = threading.RLock()

    @property
    def settings(self) -> MintgateSettings:
        return self._settings

    @property
    def loaded_files(self) -> List[Path]:
        return list(self._loaded)

    def load_from_file(self, path: Union[str, Path]) -> None:
        """Apply a YAML settings file. Unknown keys are ignored."""
        path = Path(path)
        if not path.exists():
            raise SettingsError(f"Settings file not found: {path}")

        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError as ex:
            raise SettingsError(f"Unable to parse settings file {path}: {ex}") from ex
        if data is None:
            return
        if not isinstance(data, dict):
            raise SettingsError(f"Settings file must contain a mapping: {path}")

        with self._lock:
            for section, values in data.items():
                if not isinstance(values, dict):
                    continue
                for name, value in values.items():
                    setting = self._lookup(f"{section}.{name}")
                    if setting is not None:
                        setting.set(value)
            self._loaded.append(path)

    def load_defaults(self) -> None:
        """Load the first settings file found in the working directory."""
        for path in DEFAULT_SETTINGS_FILES:
            if path.exists():
                self.load_from_file(path)
                return

    def set(self, path: str, value: Any) -> None:
        """Override one setting, e.g. set("audit.max_events", 500)."""
        setting = self._lookup(path)
        if setting is None:
            raise SettingsError(f"Invalid settings path: {path}")
        with self._lock:
            setting.set(value)

    def get(self, path: str) -> Any:
        setting = self._lookup(path)
        if setting is None:
            raise SettingsError(f"Invalid settings path: {path}")
        return setting.get()

    def _lookup(self, path: str) -> Optional[Setting]:
        obj: Any = self._settings
        for part in path.split("."):
            if not is_dataclass(obj) or part not in {f.name for f in fields(obj)}:
                return None
            obj = getattr(obj, part)
        return obj if isinstance(obj, Setting) else None

    def reset(self) -> None:
        """Back to defaults; forgets loaded files."""
        with self._lock:
            self._settings = MintgateSettings()
            self._loaded = []

    def validate(self) -> List[str]:
        """Effective values that fail their constraints, including env overrides."""
        problems: List[str] = []
        for path, setting in self._settings.settings():
            try:
                value = setting.get()
            except ValueError as ex:
                problems.append(f"{path}: {ex}")
                continue
            reason = setting.check(value)
            if reason:
                problems.append(f"{path}: {reason}")
        return problems


_manager: Optional[ConfigManager] = None
_manager_lock = threading.Lock()


def get_config_manager() -> ConfigManager:
    global _manager
    with _manager_lock:
        if _manager is None:
            _manager = ConfigManager()
        return _manager


def get_settings() -> MintgateSettings:
    """Current mintgate settings."""
    return get_config_manager().settings
