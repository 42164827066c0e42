"""Where quicktoshl keeps its files, and how settings are layered.

Only two things live on disk: ``config.json`` (a
:class:`~quicktoshl.models.GlobalConfig`) and crash logs. Reference data
is cached in memory for the life of the process, so there is no cache
directory.

Linux and the BSDs follow the XDG base-directory layout; other platforms
use a single ``~/.quicktoshl`` directory.
"""

from __future__ import annotations

import getpass
import json
import os
import platform
import sys
from pathlib import Path
from typing import Callable, Optional

from quicktoshl.exceptions import ConfigError
from quicktoshl.models import GlobalConfig

_APP_NAME = "quicktoshl"
_CONFIG_FILENAME = "config.json"

_TRUTHY = frozenset({"1", "true", "yes", "on"})

# kind -> (XDG variable, default under $HOME, subdirectory on non-XDG platforms)
_DIRS: dict[str, tuple[str, tuple[str, ...], tuple[str, ...]]] = {
    "config": ("XDG_CONFIG_HOME", (".config",), ()),
    "data": ("XDG_DATA_HOME", (".local", "share"), ("logs",)),
}


def _is_xdg_platform() -> bool:
    system = platform.system()
    return system == "Linux" or system.endswith("BSD")


def _app_dir(kind: str) -> Path:
    env_var, xdg_default, fallback_sub = _DIRS[kind]
    if _is_xdg_platform():
        base = os.environ.get(env_var) or Path.home().joinpath(*xdg_default)
        path = Path(base) / _APP_NAME
    else:
        path = Path.home().joinpath(f".{_APP_NAME}", *fallback_sub)
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_config_dir() -> Path:
    """``$XDG_CONFIG_HOME/quicktoshl`` or ``~/.quicktoshl``; created on demand."""
    return _app_dir("config")


def get_data_dir() -> Path:
    """``$XDG_DATA_HOME/quicktoshl`` or ``~/.quicktoshl/logs``; created on demand."""
    return _app_dir("data")


def _atomic_write(path: Path, data: str) -> None:
    """Replace *path* with *data* so readers never see a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f".{path.name}.{os.getpid()}.tmp")
    try:
        with open(tmp, "w", encoding="utf-8") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, path)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def load_global_config() -> GlobalConfig:
    """Read ``config.json``; a missing file yields the defaults.

    Raises:
        ConfigError: The file is not JSON or does not validate.
    """
    path = get_config_dir() / _CONFIG_FILENAME
    if not path.is_file():
        return GlobalConfig()
    try:
        return GlobalConfig.model_validate(json.loads(path.read_text(encoding="utf-8")))
    except ValueError as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    body = json.dumps(config.model_dump(mode="json"), indent=2) + "\n"
    _atomic_write(get_config_dir() / _CONFIG_FILENAME, body)


def resolve_config(
    cli_base_url: Optional[str] = None,
    cli_format: Optional[str] = None,
    cli_force_refresh: bool = False,
) -> GlobalConfig:
    """Layer CLI flags over ``QUICKTOSHL_*`` variables over the config file.

    Force refresh can only be switched on by a higher layer, never off.
    """
    config = load_global_config()

    base_url = cli_base_url if cli_base_url is not None else os.environ.get("QUICKTOSHL_BASE_URL")
    if base_url:
        config.base_url = base_url

    env_force = os.environ.get("QUICKTOSHL_FORCE_REFRESH", "").strip().lower()
    if cli_force_refresh or env_force in _TRUTHY:
        config.cache.force_refresh = True

    if cli_format is not None:
        config.output.format = cli_format
    return config


def _from_env(name: str) -> str:
    value = os.environ.get(name)
    if value is None:
        raise ConfigError(f"Environment variable '{name}' is not set")
    return value


def _from_file(location: str) -> str:
    path = Path(location).expanduser()
    if not path.is_file():
        raise ConfigError(f"Credential file not found: {path}")
    try:
        return path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc


def _from_prompt() -> str:
    if not sys.stdin.isatty():
        raise ConfigError("Cannot prompt for the API key: stdin is not a TTY")
    return getpass.getpass("Toshl API key: ")


_CREDENTIAL_READERS: dict[str, Callable[[str], str]] = {
    "env": _from_env,
    "file": _from_file,
}


def resolve_credential(source: str) -> str:
    """Read the API key from ``env:NAME``, ``file:PATH`` or ``prompt``.

    Raises:
        ConfigError: The source is unknown or yields nothing.
    """
    if source == "prompt":
        return _from_prompt()
    scheme, sep, argument = source.partition(":")
    reader = _CREDENTIAL_READERS.get(scheme) if sep else None
    if reader is None:
        raise ConfigError(f"Unknown credential source format: {source}")
    return reader(argument)
