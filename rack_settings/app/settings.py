# rack_settings/app/settings.py
from __future__ import annotations

import enum
import json
import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from .collaborators import Collaborators, Vec
from .environment import AssetPaths
from .exceptions import ParseErrorLocation, SettingsParseError

_LOGGER = logging.getLogger(__name__)

ZOOM_MIN = 0.25
ZOOM_MAX = 4.0
FLOAT_PRECISION = 9
MAX_NESTING = 256
SETTINGS_FILENAME = "settings.json"

PathLike = Union[str, "os.PathLike[str]"]


class OutcomeStatus(enum.Enum):
    SAVED = "saved"
    LOADED = "loaded"
    MISSING = "missing"
    UNWRITABLE = "unwritable"
    PARSE_ERROR = "parse_error"


@dataclass(frozen=True)
class SettingsOutcome:
    """Result of a save/load call. Callers are free to ignore it."""

    status: OutcomeStatus
    path: Path
    error: Optional[ParseErrorLocation] = None

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.SAVED, OutcomeStatus.LOADED)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _round_float(value: float) -> float:
    # "%.9g" keeps single-precision values exact while making output stable.
    return float(f"{float(value):.{FLOAT_PRECISION}g}")


def _finite(raw: Any) -> Optional[float]:
    try:
        value = float(raw)
    except OverflowError:
        return None
    return value if math.isfinite(value) else None


def _number_value(raw: Any) -> Optional[float]:
    """JSON number semantics: non-numbers read as 0.0, unrepresentable numbers as None."""
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return 0.0
    return _finite(raw)


def _string_value(raw: Any) -> str:
    return raw if isinstance(raw, str) else ""


def _pair_value(raw: Any) -> Optional[Vec]:
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        return None
    pair = []
    for item in raw[:2]:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return None
        value = _finite(item)
        if value is None:
            return None
        pair.append(value)
    return pair[0], pair[1]


def _float_json(value: float) -> Optional[float]:
    value = _finite(value)
    return None if value is None else _round_float(value)


def _pair_json(pair: Vec) -> Optional[list]:
    items = [_float_json(pair[0]), _float_json(pair[1])]
    return None if None in items else items


def dumps_document(document: Mapping[str, Any], ensure_ascii: bool = False) -> str:
    """Serialize a settings document: 2-space indent, insertion order kept.

    Raises ``ValueError`` if a verbatim payload carries NaN or infinity, which
    JSON cannot represent.
    """

    return json.dumps(document, indent=2, ensure_ascii=ensure_ascii, allow_nan=False) + "\n"


def encode_document(document: Mapping[str, Any]) -> bytes:
    """UTF-8 bytes of a settings document.

    Non-ASCII text is kept as-is unless a string holds a lone surrogate (a
    ``\\udXXX`` escape read from an earlier file), in which case the whole
    document is written with ``\\u`` escapes so it still round-trips.
    """

    try:
        return dumps_document(document).encode("utf-8")
    except UnicodeEncodeError:
        return dumps_document(document, ensure_ascii=True).encode("ascii")


def _location_from_offset(source: str, text: str, offset: int, message: str) -> ParseErrorLocation:
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return ParseErrorLocation(source=source, line=line, column=column, message=message)


class _NonFiniteNumber(ValueError):
    def __init__(self, token: str) -> None:
        super().__init__(token)
        self.token = token


def _reject_constant(token: str) -> float:
    raise _NonFiniteNumber(token)


def _parse_real(token: str) -> float:
    value = float(token)
    if math.isinf(value):
        raise _NonFiniteNumber(token)
    return value


def _nesting_exceeds(data: Any, limit: int) -> bool:
    stack = [(data, 1)]
    while stack:
        item, depth = stack.pop()
        if isinstance(item, dict):
            children = list(item.values())
        elif isinstance(item, list):
            children = item
        else:
            continue
        if depth > limit:
            return True
        stack.extend((child, depth + 1) for child in children)
    return False


def parse_document(raw: bytes, source: str) -> Dict[str, Any]:
    """Decode and parse a settings file; raise ``SettingsParseError`` on any failure.

    Failures are: undecodable UTF-8, JSON syntax errors, the non-standard
    ``NaN``/``Infinity`` literals, reals that overflow a double, nesting deeper
    than ``MAX_NESTING`` and a root that is not an object. A non-object root is
    rejected with a warning rather than loaded as an empty document, so a
    truncated or hand-edited file does not pass silently.
    """

    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        prefix = raw[: exc.start].decode("utf-8", errors="replace")
        raise SettingsParseError(
            _location_from_offset(source, prefix, len(prefix), "unable to decode byte as UTF-8")
        ) from exc
    try:
        data = json.loads(text, parse_constant=_reject_constant, parse_float=_parse_real)
    except json.JSONDecodeError as exc:
        raise SettingsParseError(
            ParseErrorLocation(source=source, line=exc.lineno, column=exc.colno, message=exc.msg)
        ) from exc
    except _NonFiniteNumber as exc:
        offset = max(text.find(exc.token), 0)
        raise SettingsParseError(
            _location_from_offset(source, text, offset, f"number out of range: {exc.token}")
        ) from exc
    except RecursionError as exc:
        raise SettingsParseError(
            ParseErrorLocation(source=source, line=1, column=1, message="document nested too deeply")
        ) from exc
    if not isinstance(data, dict):
        raise SettingsParseError(ParseErrorLocation(source=source, line=1, column=1, message="root is not an object"))
    if _nesting_exceeds(data, MAX_NESTING):
        raise SettingsParseError(
            ParseErrorLocation(source=source, line=1, column=1, message="document nested too deeply")
        )
    return data


def _put_float(document: Dict[str, Any], key: str, value: float) -> None:
    rounded = _float_json(value)
    if rounded is not None:
        document[key] = rounded


class SettingsStore:
    """Maps collaborator state to the on-disk settings document and back."""

    def __init__(self, collaborators: Collaborators, skip_autosave_on_launch: bool = False) -> None:
        self.collaborators = collaborators
        self.skip_autosave_on_launch = skip_autosave_on_launch

    # ------------------------------------------------------------------
    # Document construction / distribution
    # ------------------------------------------------------------------
    def to_document(self) -> Dict[str, Any]:
        c = self.collaborators
        document: Dict[str, Any] = {"token": c.plugin_manager.token}
        if not c.window.is_maximized():
            size = _pair_json(c.window.get_size())
            position = _pair_json(c.window.get_position())
            if size is not None and position is not None:
                document["windowSize"] = size
                document["windowPos"] = position
        # NaN and infinity have no JSON form; such slots are left out.
        _put_float(document, "wireOpacity", c.wires.wire_opacity)
        _put_float(document, "wireTension", c.wires.wire_tension)
        _put_float(document, "zoom", c.zoom.zoom)
        document["allowCursorLock"] = bool(c.cursor.allow_cursor_lock)
        _put_float(document, "sampleRate", c.engine.get_sample_rate())
        document["lastPath"] = c.rack.last_path
        if self.skip_autosave_on_launch:
            document["skipAutosaveOnLaunch"] = True
        document["moduleBrowser"] = c.module_browser.to_json()
        document["powerMeter"] = bool(c.engine.power_meter)
        document["checkVersion"] = bool(c.updates.check_version)
        return document

    def apply_document(self, document: Mapping[str, Any]) -> None:
        """Push every recognized key into its collaborator; absent keys are left alone."""

        if not isinstance(document, Mapping):
            return
        c = self.collaborators

        if "token" in document:
            c.plugin_manager.token = _string_value(document["token"])

        if "windowSize" in document:
            size = _pair_value(document["windowSize"])
            if size is not None:
                c.window.set_size(size)

        if "windowPos" in document:
            position = _pair_value(document["windowPos"])
            if position is not None:
                c.window.set_position(position)

        # Non-finite numbers and integers too large for a double leave their slot untouched.
        if "wireOpacity" in document:
            opacity = _number_value(document["wireOpacity"])
            if opacity is not None:
                c.wires.wire_opacity = opacity

        if "wireTension" in document:
            tension = _number_value(document["wireTension"])
            if tension is not None:
                c.wires.wire_tension = tension

        if "zoom" in document:
            zoom = _number_value(document["zoom"])
            if zoom is not None:
                c.zoom.set_zoom(clamp(zoom, ZOOM_MIN, ZOOM_MAX))

        if "allowCursorLock" in document:
            c.cursor.allow_cursor_lock = bool(document["allowCursorLock"])

        if "sampleRate" in document:
            sample_rate = _number_value(document["sampleRate"])
            if sample_rate is not None:
                c.engine.set_sample_rate(sample_rate)

        if "lastPath" in document:
            c.rack.last_path = _string_value(document["lastPath"])

        if "skipAutosaveOnLaunch" in document:
            self.skip_autosave_on_launch = bool(document["skipAutosaveOnLaunch"])

        if "moduleBrowser" in document:
            c.module_browser.from_json(document["moduleBrowser"])

        if "powerMeter" in document:
            c.engine.power_meter = bool(document["powerMeter"])

        if "checkVersion" in document:
            c.updates.check_version = bool(document["checkVersion"])

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------
    def save(self, path: PathLike) -> SettingsOutcome:
        target = Path(path)
        _LOGGER.info("Saving settings %s", target)
        try:
            payload = encode_document(self.to_document())
        except ValueError as exc:
            _LOGGER.debug("Could not serialize settings for %s: %s", target, exc)
            return SettingsOutcome(OutcomeStatus.UNWRITABLE, target)
        tmp = target.with_name(target.name + ".tmp")
        try:
            tmp.write_bytes(payload)
            os.replace(tmp, target)
        except OSError as exc:
            _LOGGER.debug("Could not write settings to %s: %s", target, exc)
            try:
                tmp.unlink()
            except OSError:
                pass
            return SettingsOutcome(OutcomeStatus.UNWRITABLE, target)
        return SettingsOutcome(OutcomeStatus.SAVED, target)

    def load(self, path: PathLike) -> SettingsOutcome:
        source = Path(path)
        _LOGGER.info("Loading settings %s", source)
        try:
            raw = source.read_bytes()
        except OSError:
            return SettingsOutcome(OutcomeStatus.MISSING, source)
        try:
            document = parse_document(raw, str(source))
        except SettingsParseError as exc:
            loc = exc.location
            _LOGGER.warning("JSON parsing error at %s %d:%d %s", loc.source, loc.line, loc.column, loc.message)
            return SettingsOutcome(OutcomeStatus.PARSE_ERROR, source, error=loc)
        self.apply_document(document)
        return SettingsOutcome(OutcomeStatus.LOADED, source)


def settings_path(paths: AssetPaths) -> Path:
    """Location of the settings file inside the user asset root."""

    return Path(paths.user(SETTINGS_FILENAME))


def save_settings(store: SettingsStore, paths: AssetPaths) -> SettingsOutcome:
    return store.save(settings_path(paths))


def load_settings(store: SettingsStore, paths: AssetPaths) -> SettingsOutcome:
    return store.load(settings_path(paths))


__all__ = [
    "OutcomeStatus",
    "SettingsOutcome",
    "SettingsStore",
    "ZOOM_MIN",
    "ZOOM_MAX",
    "SETTINGS_FILENAME",
    "clamp",
    "dumps_document",
    "encode_document",
    "parse_document",
    "settings_path",
    "save_settings",
    "load_settings",
]
