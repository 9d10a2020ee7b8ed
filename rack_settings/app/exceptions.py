"""Exception types for the settings and asset layers."""

from __future__ import annotations

from dataclasses import dataclass


class RackSettingsError(RuntimeError):
    """Base class for settings/asset failures."""


class AssetsNotInitializedError(RackSettingsError):
    """Raised when an asset path is requested before ``environment.init()``."""


@dataclass(frozen=True)
class ParseErrorLocation:
    """Where a settings document failed to parse."""

    source: str
    line: int
    column: int
    message: str

    def __str__(self) -> str:
        return f"{self.source} {self.line}:{self.column} {self.message}"


class SettingsParseError(RackSettingsError):
    """Raised inside ``SettingsStore.load`` when the document cannot be decoded."""

    def __init__(self, location: ParseErrorLocation) -> None:
        super().__init__(str(location))
        self.location = location
