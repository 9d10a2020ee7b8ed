"""Runtime configuration loading for asset roots, dev mode and logging."""

from __future__ import annotations

import configparser
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

_ENV_PREFIX = "RACK_"
_BOOL_TRUE = {"1", "true", "yes", "on"}
_BOOL_FALSE = {"0", "false", "no", "off"}
_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(slots=True)
class RuntimeConfig:
    """Startup overrides sourced from environment variables or an INI file."""

    config_source: Optional[Path] = None
    system_dir: Optional[Path] = None
    user_dir: Optional[Path] = None
    dev_mode: bool = False
    log_level: Optional[str] = None
    settings_file: Optional[Path] = None


def load_runtime_config(
    env: Mapping[str, str] | None = None,
    config_path: Optional[Path] = None,
) -> RuntimeConfig:
    """Load overrides from an optional ``[runtime]`` INI section, then ``RACK_*`` variables."""

    source_env = os.environ if env is None else env
    config_file = _determine_config_path(source_env, config_path)
    config = RuntimeConfig(config_source=config_file)

    if config_file is not None and config_file.is_file():
        parser: Optional[configparser.ConfigParser] = configparser.ConfigParser()
        try:
            parser.read(config_file, encoding="utf-8")
        except configparser.Error:
            parser = None  # pragma: no cover - invalid file handled via env overrides only
        if parser and parser.has_section("runtime"):
            section = parser["runtime"]
            config.system_dir = _get_path(section, "system_dir", config.system_dir)
            config.user_dir = _get_path(section, "user_dir", config.user_dir)
            config.dev_mode = bool(_get_bool(section, "dev_mode", config.dev_mode))
            config.log_level = _get_level(section, "log_level", config.log_level)
            config.settings_file = _get_path(section, "settings_file", config.settings_file)

    _apply_env_overrides(config, source_env)
    return config


def _determine_config_path(env: Mapping[str, str], explicit: Optional[Path]) -> Optional[Path]:
    if explicit is not None:
        return explicit
    env_override = env.get(f"{_ENV_PREFIX}CONFIG_FILE")
    if env_override:
        return Path(env_override).expanduser()
    candidate = Path.cwd() / "rack.ini"
    if candidate.is_file():
        return candidate
    return None


def _apply_env_overrides(config: RuntimeConfig, env: Mapping[str, str]) -> None:
    config.system_dir = _get_path(env, f"{_ENV_PREFIX}SYSTEM_DIR", config.system_dir)
    config.user_dir = _get_path(env, f"{_ENV_PREFIX}USER_DIR", config.user_dir)
    config.dev_mode = bool(_get_bool(env, f"{_ENV_PREFIX}DEV_MODE", config.dev_mode))
    config.log_level = _get_level(env, f"{_ENV_PREFIX}LOG_LEVEL", config.log_level)
    config.settings_file = _get_path(env, f"{_ENV_PREFIX}SETTINGS_FILE", config.settings_file)


def _get_path(source: Mapping[str, str], key: str, default: Optional[Path]) -> Optional[Path]:
    raw = source.get(key)
    if raw is None or not str(raw).strip():
        return default
    return Path(str(raw).strip()).expanduser()


def _get_bool(source: Mapping[str, str], key: str, default: Optional[bool]) -> Optional[bool]:
    raw = source.get(key)
    if raw is None:
        return default
    value = str(raw).strip().lower()
    if value in _BOOL_TRUE:
        return True
    if value in _BOOL_FALSE:
        return False
    return default


def _get_level(source: Mapping[str, str], key: str, default: Optional[str]) -> Optional[str]:
    raw = source.get(key)
    if raw is None:
        return default
    value = str(raw).strip().upper()
    return value if value in _LOG_LEVELS else default
