"""Headless collaborator implementations.

Used by the CLI, the host for everything that is not the Tk window, and the
test-suite. Defaults match a fresh install of the host application.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict

from .collaborators import Collaborators, Vec

DEFAULT_WINDOW_SIZE: Vec = (1024.0, 768.0)
DEFAULT_SAMPLE_RATE = 44100.0


@dataclass
class PluginManagerState:
    token: str = ""


@dataclass
class MemoryWindow:
    size: Vec = DEFAULT_WINDOW_SIZE
    position: Vec = (0.0, 0.0)
    maximized: bool = False

    def is_maximized(self) -> bool:
        return self.maximized

    def get_size(self) -> Vec:
        return self.size

    def set_size(self, size: Vec) -> None:
        self.size = (float(size[0]), float(size[1]))

    def get_position(self) -> Vec:
        return self.position

    def set_position(self, position: Vec) -> None:
        self.position = (float(position[0]), float(position[1]))


@dataclass
class ToolbarState:
    wire_opacity: float = 0.5
    wire_tension: float = 0.5


@dataclass
class ZoomState:
    _zoom: float = 1.0

    @property
    def zoom(self) -> float:
        return self._zoom

    def set_zoom(self, zoom: float) -> None:
        self._zoom = float(zoom)


@dataclass
class CursorState:
    allow_cursor_lock: bool = True


@dataclass
class EngineState:
    sample_rate: float = DEFAULT_SAMPLE_RATE
    power_meter: bool = False

    def get_sample_rate(self) -> float:
        return self.sample_rate

    def set_sample_rate(self, sample_rate: float) -> None:
        self.sample_rate = float(sample_rate)


@dataclass
class RackState:
    last_path: str = ""


@dataclass
class ModuleBrowserMemory:
    """Keeps the browser sub-document exactly as it was last handed over."""

    data: Dict[str, Any] = field(default_factory=lambda: {"favorites": []})

    def to_json(self) -> Any:
        return copy.deepcopy(self.data)

    def from_json(self, data: Any) -> None:
        self.data = copy.deepcopy(data)


@dataclass
class UpdateState:
    check_version: bool = True


def build_memory_collaborators(**overrides: Any) -> Collaborators:
    """Return a fresh set of in-memory collaborators, optionally replacing some."""

    parts: Dict[str, Any] = {
        "plugin_manager": PluginManagerState(),
        "window": MemoryWindow(),
        "wires": ToolbarState(),
        "zoom": ZoomState(),
        "cursor": CursorState(),
        "engine": EngineState(),
        "rack": RackState(),
        "module_browser": ModuleBrowserMemory(),
        "updates": UpdateState(),
    }
    parts.update(overrides)
    return Collaborators(**parts)
