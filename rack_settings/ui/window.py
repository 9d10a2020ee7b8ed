# rack_settings/ui/window.py
from __future__ import annotations

import logging
import math
import re
import tkinter as tk
from typing import Any, Optional, Tuple

from rack_settings.app.collaborators import Vec

_LOGGER = logging.getLogger(__name__)

# "WIDTHxHEIGHT+X+Y"; offsets may be negative ("+-8") on multi-monitor setups.
_GEOMETRY_RE = re.compile(r"^(\d+)x(\d+)([+-]-?\d+)([+-]-?\d+)$")


def parse_geometry(geometry: str) -> Optional[Tuple[int, int, int, int]]:
    """Split a Tk geometry string into (width, height, x, y)."""

    match = _GEOMETRY_RE.match(str(geometry).strip())
    if not match:
        return None
    width, height, x, y = match.groups()
    return int(width), int(height), _offset(x), _offset(y)


def _offset(token: str) -> int:
    if token.startswith("+"):
        token = token[1:]
    return int(token)


def _is_true(value: Any) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes"}


def _finite_pair(pair: Vec) -> bool:
    return all(math.isfinite(v) for v in pair)


class TkWindowGeometry:
    """Window geometry collaborator backed by a Tk (or ttkbootstrap) root window."""

    def __init__(self, root: Any) -> None:
        self.root = root

    def is_maximized(self) -> bool:
        try:
            if self.root.state() == "zoomed":
                return True
        except tk.TclError:
            pass
        # X11 window managers report maximize through the -zoomed attribute.
        try:
            return _is_true(self.root.attributes("-zoomed"))
        except tk.TclError:
            return False

    def _geometry(self) -> Tuple[int, int, int, int]:
        parsed = parse_geometry(self.root.geometry())
        if parsed is None:
            _LOGGER.debug("Unexpected window geometry %r", self.root.geometry())
            return 0, 0, 0, 0
        return parsed

    def get_size(self) -> Vec:
        width, height, _x, _y = self._geometry()
        return float(width), float(height)

    def set_size(self, size: Vec) -> None:
        if not _finite_pair(size):
            _LOGGER.debug("Ignoring window size %r", size)
            return
        width, height = (max(1, int(round(v))) for v in size)
        try:
            self.root.geometry(f"{width}x{height}")
        except tk.TclError as exc:
            _LOGGER.debug("Could not resize window: %s", exc)

    def get_position(self) -> Vec:
        _w, _h, x, y = self._geometry()
        return float(x), float(y)

    def set_position(self, position: Vec) -> None:
        if not _finite_pair(position):
            _LOGGER.debug("Ignoring window position %r", position)
            return
        x, y = (int(round(v)) for v in position)
        try:
            self.root.geometry(f"+{x}+{y}")
        except tk.TclError as exc:
            _LOGGER.debug("Could not move window: %s", exc)
