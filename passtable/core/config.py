"""
Passtable Configuration Module
==============================

Settings for hosts of the vault engine: where vault files and logs live,
where a failed save is rescued to, generator defaults, logging and the
local API endpoint.

Every section is a frozen dataclass; PasstableConfig bundles them and
refuses changes once built. Values can be overridden from the environment
(PASSTABLE_<SECTION>__<FIELD>), except for anything that looks like a
secret: passphrases never come from the environment.
"""

from __future__ import annotations

import os
import platform
import stat
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Callable, Final, Optional

from passtable.security.constants import FALLBACK_EXTENSION


_SENSITIVE_WORDS: Final[tuple[str, ...]] = (
    "password", "passphrase", "secret", "key", "token", "credential",
)

_VALID_LOG_LEVELS: Final[frozenset[str]] = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def _platform_dirs() -> tuple[Path, Path]:
    """(data_dir, log_dir) following each OS's conventions."""
    system = platform.system().lower()
    home = Path.home()

    if system == "windows":
        base = Path(os.environ.get("LOCALAPPDATA", home / "AppData" / "Local")) / "Passtable"
        return base, base / "Logs"
    if system == "darwin":
        return home / "Library" / "Application Support" / "Passtable", home / "Library" / "Logs" / "Passtable"

    data = Path(os.environ.get("XDG_DATA_HOME", home / ".local" / "share")) / "Passtable"
    state = Path(os.environ.get("XDG_STATE_HOME", home / ".local" / "state")) / "Passtable"
    return data, state / "logs"


@dataclass(frozen=True, slots=True)
class PathConfig:
    """Vault and log directories. Both must be absolute."""

    data_dir: Path = field(default_factory=lambda: _platform_dirs()[0])
    log_dir: Path = field(default_factory=lambda: _platform_dirs()[1])

    def __post_init__(self) -> None:
        for name in ("data_dir", "log_dir"):
            if not getattr(self, name).is_absolute():
                raise ValueError(f"{name} must be an absolute path: {getattr(self, name)}")


@dataclass(frozen=True, slots=True)
class VaultConfig:
    """
    Where Vault.save() retries after the primary write fails.

    fallback_dir None writes the bare fallback name, which lands in the
    working directory of the running process.
    """

    fallback_extension: str = FALLBACK_EXTENSION
    fallback_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        if not self.fallback_extension.startswith("."):
            raise ValueError("Fallback extension must start with '.'")


@dataclass(frozen=True, slots=True)
class GeneratorConfig:
    """Password generator defaults offered by hosts."""

    default_length: int = 16
    max_length: int = 128
    min_lowercase: int = 1
    min_symbols: int = 1
    min_uppercase: int = 1
    min_numbers: int = 1
    easy_symbols_mode: bool = True

    def __post_init__(self) -> None:
        if not 0 < self.default_length <= self.max_length:
            raise ValueError("default_length must be between 1 and max_length")
        if self.min_lowercase + self.min_symbols + self.min_uppercase + self.min_numbers > self.default_length:
            raise ValueError("Sum of generator minimums exceeds default_length")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    level: str = "INFO"
    max_file_size_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5
    enable_console: bool = True
    enable_file: bool = False

    def __post_init__(self) -> None:
        if self.level.upper() not in _VALID_LOG_LEVELS:
            raise ValueError(f"Invalid log level: {self.level}")


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Local API identity and endpoint. Binds to loopback by default."""

    app_name: str = "Passtable"
    version: str = "1.4.5"
    host: str = "127.0.0.1"
    port: int = 5710

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}")


_SECTIONS: Final[dict[str, type]] = {
    "paths": PathConfig,
    "vault": VaultConfig,
    "generator": GeneratorConfig,
    "logging": LoggingConfig,
    "app": AppConfig,
}

# Field annotations are strings under postponed evaluation
_COERCE: Final[dict[str, Callable[[str], Any]]] = {
    "str": str,
    "int": int,
    "bool": lambda raw: raw.strip().lower() in ("1", "true", "yes", "on"),
    "Path": Path,
    "Optional[Path]": lambda raw: Path(raw) if raw else None,
}


def _looks_sensitive(key: str) -> bool:
    return any(word in key.lower() for word in _SENSITIVE_WORDS)


class PasstableConfig:
    """
    Immutable bundle of every configuration section.

    Usage:
        config = PasstableConfig.get_instance()
        vault = Vault(path, passphrase, content, config=config.vault)
        config.ensure_directories()

    Tests and embedding hosts build one directly:
        PasstableConfig(paths=PathConfig(data_dir=tmp, log_dir=tmp / "logs"))
    """

    __slots__ = ("_paths", "_vault", "_generator", "_logging", "_app", "_frozen")

    _instance: Optional[PasstableConfig] = None

    def __init__(
        self,
        paths: Optional[PathConfig] = None,
        vault: Optional[VaultConfig] = None,
        generator: Optional[GeneratorConfig] = None,
        logging: Optional[LoggingConfig] = None,
        app: Optional[AppConfig] = None,
    ) -> None:
        given = {"paths": paths, "vault": vault, "generator": generator, "logging": logging, "app": app}
        object.__setattr__(self, "_frozen", False)
        for name, section_type in _SECTIONS.items():
            object.__setattr__(self, f"_{name}", given[name] or section_type())
        object.__setattr__(self, "_frozen", True)

    @property
    def paths(self) -> PathConfig:
        return self._paths

    @property
    def vault(self) -> VaultConfig:
        return self._vault

    @property
    def generator(self) -> GeneratorConfig:
        return self._generator

    @property
    def logging(self) -> LoggingConfig:
        return self._logging

    @property
    def app(self) -> AppConfig:
        return self._app

    @classmethod
    def load(cls, env_prefix: str = "PASSTABLE") -> PasstableConfig:
        """
        Build a configuration from defaults plus environment overrides.

        Variables are named <PREFIX>_<SECTION>__<FIELD>, for example:
            PASSTABLE_LOGGING__LEVEL=DEBUG
            PASSTABLE_PATHS__DATA_DIR=/srv/vaults
            PASSTABLE_VAULT__FALLBACK_DIR=/var/tmp/rescue
            PASSTABLE_GENERATOR__EASY_SYMBOLS_MODE=false

        Unknown sections or fields are ignored.

        Raises:
            ValueError: If an override cannot be converted or fails validation
        """
        overrides = cls._parse_env_overrides(env_prefix)

        sections: dict[str, Any] = {}
        for name, section_type in _SECTIONS.items():
            kwargs = {
                f.name: _COERCE[f.type](overrides[f"{name}.{f.name}"])
                for f in fields(section_type)
                if f"{name}.{f.name}" in overrides
            }
            sections[name] = section_type(**kwargs) if kwargs else None

        return cls(**sections)

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Map <PREFIX>_A__B=value to {"a.b": value}, skipping secret-like keys."""
        head = f"{prefix.upper()}_"
        return {
            key[len(head):].lower().replace("__", "."): value
            for key, value in os.environ.items()
            if key.startswith(head) and not _looks_sensitive(key[len(head):])
        }

    @classmethod
    def get_instance(cls) -> PasstableConfig:
        """Process-wide configuration, loaded on first use."""
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Forget the cached instance. Meant for tests."""
        cls._instance = None

    def ensure_directories(self) -> None:
        """Create the data and log directories, owner access only."""
        for directory in (self._paths.data_dir, self._paths.log_dir):
            directory.mkdir(parents=True, exist_ok=True)
            if platform.system().lower() != "windows":
                directory.chmod(stat.S_IRWXU)

    def __repr__(self) -> str:
        return f"PasstableConfig(app={self._app.app_name!r}, data_dir={str(self._paths.data_dir)!r})"

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise AttributeError("PasstableConfig is immutable after initialization")
        object.__setattr__(self, name, value)
