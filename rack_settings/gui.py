# rack_settings/gui.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import ttkbootstrap as ttk

from rack_settings.app import environment
from rack_settings.app.configuration import RuntimeConfig, load_runtime_config
from rack_settings.app.logging_setup import LOG_FILENAME, configure_logging
from rack_settings.app.memory import build_memory_collaborators
from rack_settings.app.settings import SETTINGS_FILENAME, SettingsStore
from rack_settings.ui.window import TkWindowGeometry

_LOGGER = logging.getLogger(__name__)


class HostWindow:
    """Minimal host: restores preferences at startup, persists them on close."""

    def __init__(self, runtime_config: Optional[RuntimeConfig] = None) -> None:
        self.runtime_config = runtime_config or RuntimeConfig()
        self.paths = environment.init(self.runtime_config)
        configure_logging(Path(self.paths.user(LOG_FILENAME)), self.runtime_config.log_level or "INFO")
        self.settings_path = self.runtime_config.settings_file or Path(self.paths.user(SETTINGS_FILENAME))

        self.root = ttk.Window(themename="darkly")
        self.root.title("Rack")
        self.root.geometry("1024x768")
        self.store = SettingsStore(build_memory_collaborators(window=TkWindowGeometry(self.root)))
        self.store.load(self.settings_path)
        self.root.protocol("WM_DELETE_WINDOW", self._on_window_close)

    def _on_window_close(self) -> None:
        self.root.update_idletasks()
        outcome = self.store.save(self.settings_path)
        if not outcome.ok:
            _LOGGER.debug("Settings not saved: %s", outcome.status.value)
        self.root.destroy()

    def run(self) -> None:
        self.root.mainloop()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    runtime_config = load_runtime_config()
    if runtime_config.config_source:
        logging.info("Loaded runtime config from %s", runtime_config.config_source)
    HostWindow(runtime_config=runtime_config).run()


if __name__ == "__main__":
    main()
