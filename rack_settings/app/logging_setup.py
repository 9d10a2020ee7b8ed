from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FILENAME = "log.txt"
_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def configure_logging(log_file: Optional[Path] = None, level: str = "INFO") -> None:
    """Attach a rotating file handler for ``log_file`` (once) and set the root level."""

    root_logger = logging.getLogger()
    formatter = logging.Formatter(_FORMAT)
    if log_file is not None:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            attached = any(
                isinstance(handler, logging.FileHandler) and getattr(handler, "baseFilename", None) == os.path.abspath(log_file)
                for handler in root_logger.handlers
            )
            if not attached:
                file_handler = RotatingFileHandler(log_file, maxBytes=1_048_576, backupCount=3, encoding="utf-8")
                file_handler.setFormatter(formatter)
                root_logger.addHandler(file_handler)
        except OSError:
            logging.exception("Failed to initialize file logging")

    if not root_logger.handlers:
        logging.basicConfig(level=getattr(logging, level, logging.INFO), format=_FORMAT)
    else:
        root_logger.setLevel(getattr(logging, level, logging.INFO))
