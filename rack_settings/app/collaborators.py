"""
Narrow accessor interfaces for the state the settings document mirrors.

Each protocol exposes only the get/set pairs the settings store needs, so the
persistence code never reaches into the wider application object graph.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, Tuple

Vec = Tuple[float, float]


class TokenHolder(Protocol):  # pragma: no cover - interface only
    """Plugin manager identity token."""

    token: str


class WindowGeometry(Protocol):  # pragma: no cover - interface only
    """Main window size/position and maximize state."""

    def is_maximized(self) -> bool:
        ...

    def get_size(self) -> Vec:
        ...

    def set_size(self, size: Vec) -> None:
        ...

    def get_position(self) -> Vec:
        ...

    def set_position(self, position: Vec) -> None:
        ...


class WireStyle(Protocol):  # pragma: no cover - interface only
    """Cable rendering parameters owned by the toolbar."""

    wire_opacity: float
    wire_tension: float


class ZoomControl(Protocol):  # pragma: no cover - interface only
    """Scene zoom widget."""

    @property
    def zoom(self) -> float:
        ...

    def set_zoom(self, zoom: float) -> None:
        ...


class CursorLock(Protocol):  # pragma: no cover - interface only
    allow_cursor_lock: bool


class AudioEngine(Protocol):  # pragma: no cover - interface only
    """Engine sample rate control and power metering flag."""

    power_meter: bool

    def get_sample_rate(self) -> float:
        ...

    def set_sample_rate(self, sample_rate: float) -> None:
        ...


class LastPathHolder(Protocol):  # pragma: no cover - interface only
    last_path: str


class ModuleBrowserState(Protocol):  # pragma: no cover - interface only
    """Module browser with its own (de)serializer; the payload is opaque to us."""

    def to_json(self) -> Any:
        ...

    def from_json(self, data: Any) -> None:
        ...


class VersionCheck(Protocol):  # pragma: no cover - interface only
    check_version: bool


@dataclass
class Collaborators:
    """Everything the settings store reads on save and writes on load."""

    plugin_manager: TokenHolder
    window: WindowGeometry
    wires: WireStyle
    zoom: ZoomControl
    cursor: CursorLock
    engine: AudioEngine
    rack: LastPathHolder
    module_browser: ModuleBrowserState
    updates: VersionCheck
