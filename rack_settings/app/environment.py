# rack_settings/app/environment.py
"""
Asset path resolution.

Three categories of files exist:

* system -- shipped with the application, read only by convention;
* user   -- the only location the application writes to (settings, logs,
  patches, user-installed plugins);
* plugin -- a plugin's own folder, read only by convention.

Nothing here checks permissions or existence; callers doing real I/O handle a
missing file themselves.
"""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from platformdirs import user_documents_dir

from .configuration import RuntimeConfig
from .exceptions import AssetsNotInitializedError

_LOGGER = logging.getLogger(__name__)

USER_FOLDER_NAME = "Rack"
PLUGINS_FOLDER_NAME = "plugins"
_SLUG_FORBIDDEN = frozenset("/\\:\0")

StrPath = Union[str, Path]


@dataclass(frozen=True)
class Plugin:
    """Identity of an installed plugin, as far as path resolution cares."""

    slug: str
    path: Optional[Path] = None
    system_installed: bool = False

    def __post_init__(self) -> None:
        # The slug names one folder under plugins/; it must not climb out of it.
        if self.slug in ("", ".", "..") or any(ch in self.slug for ch in _SLUG_FORBIDDEN):
            raise ValueError(f"invalid plugin slug: {self.slug!r}")


@dataclass(frozen=True)
class AssetPaths:
    """Resolved asset roots. Immutable once built."""

    system_dir: Path
    user_dir: Path

    def system(self, filename: StrPath) -> str:
        """Path of a system resource. Only read files from this location."""
        return str(self.system_dir / filename)

    def user(self, filename: StrPath) -> str:
        """Path of a user resource. Files here may be read and written."""
        return str(self.user_dir / filename)

    def plugin_dir(self, plugin: Plugin) -> Path:
        if plugin.path is not None:
            return Path(plugin.path)
        root = self.system_dir if plugin.system_installed else self.user_dir
        return root / PLUGINS_FOLDER_NAME / plugin.slug

    def plugin(self, plugin: Plugin, filename: StrPath) -> str:
        """Path of a resource in the plugin's folder. Only read files from this location."""
        return str(self.plugin_dir(plugin) / filename)


def default_system_dir() -> Path:
    """Install location: the frozen bundle when packaged, else the package folder."""
    module_path = Path(__file__).resolve()
    return Path(getattr(sys, "_MEIPASS", module_path.parents[1]))


def default_user_dir() -> Path:
    return Path(user_documents_dir()) / USER_FOLDER_NAME


def build_asset_paths(config: Optional[RuntimeConfig] = None) -> AssetPaths:
    """Compute asset roots without installing them process-wide."""
    config = config or RuntimeConfig()
    if config.dev_mode:
        system_dir = user_dir = Path.cwd()
    else:
        system_dir = default_system_dir()
        user_dir = default_user_dir()
    if config.system_dir is not None:
        system_dir = Path(config.system_dir)
    if config.user_dir is not None:
        user_dir = Path(config.user_dir)
    return AssetPaths(system_dir=system_dir.resolve(), user_dir=user_dir.resolve())


_paths: Optional[AssetPaths] = None


def init(config: Optional[RuntimeConfig] = None) -> AssetPaths:
    """Install the process-wide asset roots. Later calls return the first result."""
    global _paths
    if _paths is not None:
        return _paths
    paths = build_asset_paths(config)
    try:
        paths.user_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _LOGGER.warning("Could not create user directory '%s': %s", paths.user_dir, exc)
    _LOGGER.info("System directory: %s", paths.system_dir)
    _LOGGER.info("User directory: %s", paths.user_dir)
    _paths = paths
    return paths


def reset() -> None:
    """Forget the installed roots (tests only)."""
    global _paths
    _paths = None


def current() -> AssetPaths:
    if _paths is None:
        raise AssetsNotInitializedError("asset paths requested before environment.init()")
    return _paths


def system_dir() -> Path:
    return current().system_dir


def user_dir() -> Path:
    return current().user_dir


def system(filename: StrPath) -> str:
    return current().system(filename)


def user(filename: StrPath) -> str:
    return current().user(filename)


def plugin(handle: Plugin, filename: StrPath) -> str:
    return current().plugin(handle, filename)
