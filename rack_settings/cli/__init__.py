from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

from rack_settings.app import environment
from rack_settings.app.configuration import RuntimeConfig, load_runtime_config
from rack_settings.app.environment import AssetPaths
from rack_settings.app.memory import build_memory_collaborators
from rack_settings.app.settings import (
    SETTINGS_FILENAME,
    OutcomeStatus,
    SettingsOutcome,
    SettingsStore,
    encode_document,
)

logger = logging.getLogger("rack_settings.cli")

EXIT_OK = 0
EXIT_MISSING = 1
EXIT_PARSE_ERROR = 2
EXIT_UNWRITABLE = 3


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="rack-settings", description="Inspect and maintain Rack settings")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--dev", action="store_true", help="Development mode: use the current directory for both roots")
    parser.add_argument("--system-dir", type=Path, help="Override the system asset directory")
    parser.add_argument("--user-dir", type=Path, help="Override the user asset directory")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("paths", help="Print the resolved asset roots and settings file")

    show_parser = subparsers.add_parser("show", help="Print the settings document as it would be applied")
    show_parser.add_argument("--settings", type=Path, help="Settings file (defaults to <user>/settings.json)")

    normalize_parser = subparsers.add_parser("normalize", help="Rewrite the settings file in canonical form")
    normalize_parser.add_argument("--settings", type=Path, help="Settings file (defaults to <user>/settings.json)")

    skip_parser = subparsers.add_parser("set-skip-autosave", help="Toggle skipping the autosave patch on next launch")
    skip_parser.add_argument("value", choices=("on", "off"))
    skip_parser.add_argument("--settings", type=Path, help="Settings file (defaults to <user>/settings.json)")

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s - %(message)s")

    runtime_cfg = load_runtime_config()
    logger.debug("Loaded runtime config overrides: %s", runtime_cfg)
    _apply_cli_overrides(runtime_cfg, args)
    paths = environment.init(runtime_cfg)
    settings_file = getattr(args, "settings", None) or runtime_cfg.settings_file or Path(paths.user(SETTINGS_FILENAME))

    if args.command == "paths":
        return _handle_paths(paths, settings_file)
    if args.command == "show":
        return _handle_show(settings_file)
    if args.command == "normalize":
        return _handle_normalize(settings_file)
    if args.command == "set-skip-autosave":
        return _handle_skip_autosave(settings_file, args.value == "on")
    parser.print_help()
    return 1


def _apply_cli_overrides(runtime_cfg: RuntimeConfig, args: argparse.Namespace) -> None:
    if args.dev:
        runtime_cfg.dev_mode = True
    if args.system_dir is not None:
        runtime_cfg.system_dir = args.system_dir
    if args.user_dir is not None:
        runtime_cfg.user_dir = args.user_dir


def _handle_paths(paths: AssetPaths, settings_file: Path) -> int:
    print(f"system\t{paths.system_dir}")
    print(f"user\t{paths.user_dir}")
    print(f"settings\t{settings_file}")
    return EXIT_OK


def _load_store(settings_file: Path) -> tuple[SettingsStore, SettingsOutcome]:
    store = SettingsStore(build_memory_collaborators())
    return store, store.load(settings_file)


def _report_parse_error(outcome: SettingsOutcome) -> int:
    print(f"Cannot parse {outcome.path}: {outcome.error}", file=sys.stderr)
    return EXIT_PARSE_ERROR


def _handle_show(settings_file: Path) -> int:
    store, outcome = _load_store(settings_file)
    if outcome.status is OutcomeStatus.PARSE_ERROR:
        return _report_parse_error(outcome)
    if outcome.status is OutcomeStatus.MISSING:
        logger.info("No settings at %s; showing defaults", settings_file)
    sys.stdout.write(encode_document(store.to_document()).decode("utf-8"))
    return EXIT_OK


def _handle_normalize(settings_file: Path) -> int:
    store, outcome = _load_store(settings_file)
    if outcome.status is OutcomeStatus.PARSE_ERROR:
        return _report_parse_error(outcome)
    if outcome.status is OutcomeStatus.MISSING:
        print(f"No settings file at {settings_file}", file=sys.stderr)
        return EXIT_MISSING
    return _save(store, settings_file)


def _handle_skip_autosave(settings_file: Path, enabled: bool) -> int:
    store, outcome = _load_store(settings_file)
    if outcome.status is OutcomeStatus.PARSE_ERROR:
        return _report_parse_error(outcome)
    store.skip_autosave_on_launch = enabled
    return _save(store, settings_file)


def _save(store: SettingsStore, settings_file: Path) -> int:
    outcome = store.save(settings_file)
    if outcome.status is OutcomeStatus.UNWRITABLE:
        print(f"Cannot write {settings_file}", file=sys.stderr)
        return EXIT_UNWRITABLE
    logger.info("Wrote %s", settings_file)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
