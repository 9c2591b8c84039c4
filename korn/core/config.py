"""Typed configuration loading and access.

korn reads an optional ``config.toml`` holding defaults for the global flags.
Every value can be overridden on the command line; nothing here is global
mutable state, the loaded Config is passed down explicitly.

Example ``~/.config/korn/config.toml``::

    namespace = "my-tenant"
    kubeconfig = "~/.kube/konflux"
    environment = "staging"

    [wait]
    timeout_minutes = 90

    [images]
    os = "linux"
    arch = "amd64"
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_int, get_str, get_table

__all__ = [
    "Config",
    "ConfigError",
    "DEFAULT_ENVIRONMENT",
    "DEFAULT_WAIT_TIMEOUT_MINUTES",
    "ENVIRONMENTS",
    "default_config_path",
    "default_kubeconfig_path",
    "load_config",
    "load_config_or_default",
]

ENVIRONMENTS = ("staging", "production")
DEFAULT_ENVIRONMENT = "staging"
DEFAULT_WAIT_TIMEOUT_MINUTES = 60


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class Config:
    """Defaults for the global CLI flags."""

    namespace: str | None = None
    kubeconfig: str | None = None
    environment: str = DEFAULT_ENVIRONMENT
    wait_timeout_minutes: int = DEFAULT_WAIT_TIMEOUT_MINUTES
    image_os: str = "linux"
    image_arch: str = "amd64"

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        wait: StrDict = get_table(data, "wait") or {}
        images: StrDict = get_table(data, "images") or {}

        environment = get_str(data, "environment") or DEFAULT_ENVIRONMENT
        if environment not in ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {', '.join(ENVIRONMENTS)}, got {environment!r}"
            )

        timeout = get_int(wait, "timeout_minutes")
        if timeout is not None and timeout <= 0:
            raise ValueError("wait.timeout_minutes must be positive")

        return cls(
            namespace=get_str(data, "namespace"),
            kubeconfig=get_str(data, "kubeconfig"),
            environment=environment,
            wait_timeout_minutes=timeout or DEFAULT_WAIT_TIMEOUT_MINUTES,
            image_os=get_str(images, "os") or "linux",
            image_arch=get_str(images, "arch") or "amd64",
        )


@dataclass(frozen=True, slots=True)
class ReleaseOptions:
    """Options of one ``create release`` invocation, after flag/config merging."""

    application: str
    environment: str = DEFAULT_ENVIRONMENT
    force_release: bool = False
    wait: bool = True
    timeout_minutes: int = DEFAULT_WAIT_TIMEOUT_MINUTES
    dry_run: bool = False
    snapshot: str | None = None
    sha: str | None = None
    release_type: str | None = None
    notes_file: Path | None = None

    def __post_init__(self) -> None:
        if self.environment not in ENVIRONMENTS:
            raise ValueError(
                f"environment must be one of {', '.join(ENVIRONMENTS)}, got {self.environment!r}"
            )
        if self.timeout_minutes <= 0:
            raise ValueError("timeout must be positive")
        if self.snapshot and self.sha:
            raise ValueError("--snapshot and --sha are mutually exclusive")

    @property
    def timeout_seconds(self) -> int:
        return self.timeout_minutes * 60


def default_config_path() -> Path:
    env = os.environ.get("KORN_CONFIG")
    if env:
        return Path(env).expanduser()
    return Path.home() / ".config" / "korn" / "config.toml"


def default_kubeconfig_path() -> Path:
    env = os.environ.get("KUBECONFIG")
    if env:
        # KUBECONFIG may hold a path list; the first entry wins.
        return Path(env.split(os.pathsep)[0]).expanduser()
    return Path.home() / ".kube" / "config"


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling read and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Load config from file, or return the default config if the file is absent.

    A file that exists but cannot be parsed is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
