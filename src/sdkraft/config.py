"""Configuration loading and precedence resolution.

A run is configured by a single :class:`~sdkraft.models.GeneratorConfig`
assembled from four layers (high to low):

1. CLI flags (``--output``, ``--package``, ``--with-tests``, ``--verbose``)
2. Environment variables (``SDKRAFT_OUTPUT_DIR``, ``SDKRAFT_PACKAGE_NAME``)
3. The config file (YAML or JSON, camelCase keys)
4. Defaults declared on the models

When no file is named explicitly, the first existing entry of
:data:`CONFIG_SEARCH_PATHS` (relative to the working directory) is used;
having no config file at all is fine.

Crash logs of unexpected failures go to the data directory returned by
:func:`get_data_dir` (XDG compliant on Linux/BSD).
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from sdkraft.exceptions import ConfigError
from sdkraft.models import GeneratorConfig

CONFIG_SEARCH_PATHS: tuple[str, ...] = (
    "sdkraft.yaml",
    "sdkraft.yml",
    "sdkraft.json",
    "config.yaml",
    os.path.join("config", "config.yaml"),
)

_ENV_OVERRIDES: dict[str, str] = {
    "SDKRAFT_OUTPUT_DIR": "output_dir",
    "SDKRAFT_PACKAGE_NAME": "package_name",
}

_APP_NAME = "sdkraft"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/sdkraft/`` (default ``~/.local/share/sdkraft/``).
    On macOS/Windows: ``~/.sdkraft/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Config files ---


def find_config_file(base_dir: Optional[Path] = None) -> Optional[Path]:
    """Return the first config file found under *base_dir*, or ``None``.

    Args:
        base_dir: Directory to search; defaults to the working directory.
    """
    base = base_dir or Path.cwd()
    for candidate in CONFIG_SEARCH_PATHS:
        path = base / candidate
        if path.is_file():
            return path
    return None


def _read_config_data(path: Path) -> dict[str, Any]:
    """Parse a config file as JSON or YAML, chosen by extension."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc

    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            f"Invalid config file {path}: expected a mapping, got {type(data).__name__}"
        )
    return data


def load_config(path: Optional[str | Path] = None) -> GeneratorConfig:
    """Load a :class:`~sdkraft.models.GeneratorConfig` from disk.

    Args:
        path: Explicit config file. When ``None`` the search paths are
            tried and defaults are returned if none exists.

    Returns:
        The validated configuration.

    Raises:
        ConfigError: If an explicit *path* does not exist, or the file is
            unreadable, malformed, or fails validation.
    """
    if path is not None:
        config_path = Path(path)
        if not config_path.is_file():
            raise ConfigError(f"Config file not found: {config_path}")
    else:
        config_path = find_config_file()
        if config_path is None:
            return GeneratorConfig()

    data = _read_config_data(config_path)
    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid config file {config_path}: {exc}") from exc


def resolve_config(
    config_path: Optional[str | Path] = None,
    output_dir: Optional[str] = None,
    package_name: Optional[str] = None,
    with_tests: Optional[bool] = None,
    verbose: Optional[bool] = None,
) -> GeneratorConfig:
    """Resolve the effective configuration with the full precedence chain.

    ``None`` for any CLI argument means "not given on the command line".

    Returns:
        A new, fully validated :class:`~sdkraft.models.GeneratorConfig`.

    Raises:
        ConfigError: If the file or any override produces an invalid config.
    """
    base = load_config(config_path)
    data = base.model_dump()

    for env_var, field in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            data[field] = value

    if output_dir is not None:
        data["output_dir"] = output_dir
    if package_name is not None:
        data["package_name"] = package_name
    if with_tests is not None:
        data["testing"]["generate"] = with_tests
    if verbose is not None:
        data["generator"]["verbose"] = verbose

    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
