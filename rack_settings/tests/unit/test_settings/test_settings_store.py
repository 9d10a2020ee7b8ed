from __future__ import annotations

import json
import math
import logging
from pathlib import Path
from typing import Any, Dict

import pytest

from rack_settings.app.collaborators import Collaborators
from rack_settings.app.memory import DEFAULT_SAMPLE_RATE, build_memory_collaborators
from rack_settings.app.settings import OutcomeStatus, SettingsStore, dumps_document


def _customised() -> Collaborators:
    c = build_memory_collaborators()
    c.plugin_manager.token = "abc123"
    c.window.set_size((1280.0, 720.0))
    c.window.set_position((40.0, -8.0))
    c.wires.wire_opacity = 0.75
    c.wires.wire_tension = 0.25
    c.zoom.set_zoom(1.5)
    c.cursor.allow_cursor_lock = False
    c.engine.set_sample_rate(48000.0)
    c.engine.power_meter = True
    c.rack.last_path = "/home/user/patches/bass.vcv"
    c.module_browser.from_json({"favorites": [{"plugin": "Fundamental", "model": "VCO"}]})
    c.updates.check_version = False
    return c


def _snapshot(c: Collaborators) -> Dict[str, Any]:
    return {
        "token": c.plugin_manager.token,
        "size": c.window.get_size(),
        "pos": c.window.get_position(),
        "opacity": c.wires.wire_opacity,
        "tension": c.wires.wire_tension,
        "zoom": c.zoom.zoom,
        "cursor": c.cursor.allow_cursor_lock,
        "rate": c.engine.get_sample_rate(),
        "power": c.engine.power_meter,
        "last_path": c.rack.last_path,
        "browser": c.module_browser.to_json(),
        "check": c.updates.check_version,
    }


def _write(path: Path, payload: Any) -> Path:
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_round_trip_restores_every_field(tmp_path: Path) -> None:
    source = SettingsStore(_customised(), skip_autosave_on_launch=True)
    target_file = tmp_path / "settings.json"
    assert source.save(target_file).status is OutcomeStatus.SAVED

    fresh = SettingsStore(build_memory_collaborators())
    outcome = fresh.load(target_file)

    assert outcome.ok
    assert outcome.status is OutcomeStatus.LOADED
    assert _snapshot(fresh.collaborators) == _snapshot(source.collaborators)
    assert fresh.skip_autosave_on_launch is True


def test_saved_document_has_fixed_key_order(tmp_path: Path) -> None:
    store = SettingsStore(_customised(), skip_autosave_on_launch=True)
    target_file = tmp_path / "settings.json"
    store.save(target_file)
    data = json.loads(target_file.read_text(encoding="utf-8"))
    assert list(data) == [
        "token",
        "windowSize",
        "windowPos",
        "wireOpacity",
        "wireTension",
        "zoom",
        "allowCursorLock",
        "sampleRate",
        "lastPath",
        "skipAutosaveOnLaunch",
        "moduleBrowser",
        "powerMeter",
        "checkVersion",
    ]


def test_saved_text_uses_two_space_indent_and_is_deterministic(tmp_path: Path) -> None:
    store = SettingsStore(_customised())
    first = tmp_path / "a.json"
    second = tmp_path / "b.json"
    store.save(first)
    store.save(second)
    text = first.read_text(encoding="utf-8")
    assert text.startswith('{\n  "token": "abc123",\n')
    assert first.read_bytes() == second.read_bytes()


def test_floats_are_written_with_nine_significant_digits() -> None:
    c = build_memory_collaborators()
    c.wires.wire_opacity = 0.10000000149011612  # 0.1 as single precision
    c.wires.wire_tension = 1.0 / 3.0
    document = SettingsStore(c).to_document()
    assert document["wireOpacity"] == 0.100000001
    assert document["wireTension"] == 0.333333333
    assert '"sampleRate": 44100.0' in dumps_document(document)


def test_maximized_window_suppresses_geometry(tmp_path: Path) -> None:
    c = _customised()
    c.window.maximized = True
    target_file = tmp_path / "settings.json"
    SettingsStore(c).save(target_file)
    data = json.loads(target_file.read_text(encoding="utf-8"))
    assert "windowSize" not in data
    assert "windowPos" not in data

    fresh = build_memory_collaborators()
    fresh.window.set_size((300.0, 200.0))
    fresh.window.set_position((5.0, 6.0))
    SettingsStore(fresh).load(target_file)
    assert fresh.window.get_size() == (300.0, 200.0)
    assert fresh.window.get_position() == (5.0, 6.0)


@pytest.mark.parametrize(
    ("stored", "expected"),
    [(10.0, 4.0), (-1.0, 0.25), (1.5, 1.5), (0.25, 0.25), (4.0, 4.0), ("big", 0.25)],
)
def test_zoom_is_clamped_on_load(tmp_path: Path, stored: Any, expected: float) -> None:
    c = build_memory_collaborators()
    SettingsStore(c).load(_write(tmp_path / "settings.json", {"zoom": stored}))
    assert c.zoom.zoom == pytest.approx(expected)


def test_skip_autosave_written_only_when_true() -> None:
    store = SettingsStore(build_memory_collaborators())
    assert "skipAutosaveOnLaunch" not in store.to_document()
    store.skip_autosave_on_launch = True
    assert store.to_document()["skipAutosaveOnLaunch"] is True


def test_partial_document_only_touches_present_fields(tmp_path: Path) -> None:
    c = _customised()
    before = _snapshot(c)
    SettingsStore(c).load(_write(tmp_path / "settings.json", {"zoom": 2.0}))
    after = _snapshot(c)
    assert after.pop("zoom") == 2.0
    before.pop("zoom")
    assert after == before


def test_window_keys_apply_independently(tmp_path: Path) -> None:
    c = build_memory_collaborators()
    original_size = c.window.get_size()
    SettingsStore(c).load(_write(tmp_path / "settings.json", {"windowPos": [12, 34]}))
    assert c.window.get_position() == (12.0, 34.0)
    assert c.window.get_size() == original_size


def test_malformed_document_changes_nothing_and_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    c = _customised()
    before = _snapshot(c)
    bad = tmp_path / "settings.json"
    bad.write_text('{\n  "zoom": 2.0,\n  "token": \n}', encoding="utf-8")
    store = SettingsStore(c)

    with caplog.at_level(logging.WARNING):
        outcome = store.load(bad)

    assert outcome.status is OutcomeStatus.PARSE_ERROR
    assert outcome.error is not None
    assert outcome.error.line == 4
    assert outcome.error.source == str(bad)
    assert _snapshot(c) == before
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "JSON parsing error at" in warnings[0].getMessage()
    assert str(bad) in warnings[0].getMessage()


def test_non_object_root_is_rejected(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    c = _customised()
    before = _snapshot(c)
    with caplog.at_level(logging.WARNING):
        outcome = SettingsStore(c).load(_write(tmp_path / "settings.json", [1, 2, 3]))
    assert outcome.status is OutcomeStatus.PARSE_ERROR
    assert _snapshot(c) == before
    assert any("root is not an object" in r.getMessage() for r in caplog.records)


def test_invalid_utf8_is_a_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "settings.json"
    path.write_bytes(b'{\n"lastPath": "\xff"}')
    outcome = SettingsStore(build_memory_collaborators()).load(path)
    assert outcome.status is OutcomeStatus.PARSE_ERROR
    assert outcome.error is not None
    assert outcome.error.line == 2


def test_missing_file_is_silent(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    c = _customised()
    before = _snapshot(c)
    with caplog.at_level(logging.INFO):
        outcome = SettingsStore(c).load(tmp_path / "nope.json")
    assert outcome.status is OutcomeStatus.MISSING
    assert not outcome.ok
    assert _snapshot(c) == before
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_unwritable_destination_is_absorbed(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    target_file = tmp_path / "missing-dir" / "settings.json"
    with caplog.at_level(logging.INFO):
        outcome = SettingsStore(build_memory_collaborators()).save(target_file)
    assert outcome.status is OutcomeStatus.UNWRITABLE
    assert not target_file.exists()
    assert not list(tmp_path.rglob("*.tmp"))
    assert any(r.getMessage().startswith("Saving settings") for r in caplog.records)
    assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


def test_save_overwrites_existing_file(tmp_path: Path) -> None:
    target_file = _write(tmp_path / "settings.json", {"legacy": True, "zoom": 3.0})
    SettingsStore(build_memory_collaborators()).save(target_file)
    data = json.loads(target_file.read_text(encoding="utf-8"))
    assert "legacy" not in data
    assert data["zoom"] == 1.0
    assert not (tmp_path / "settings.json.tmp").exists()


def test_unknown_keys_are_ignored(tmp_path: Path) -> None:
    c = build_memory_collaborators()
    outcome = SettingsStore(c).load(_write(tmp_path / "settings.json", {"futureFeature": {"x": 1}, "lastPath": "p"}))
    assert outcome.ok
    assert c.rack.last_path == "p"


def test_permissive_coercion_of_mismatched_types(tmp_path: Path) -> None:
    c = _customised()
    store = SettingsStore(c)
    store.load(
        _write(
            tmp_path / "settings.json",
            {
                "token": 42,
                "lastPath": None,
                "wireOpacity": True,
                "sampleRate": "fast",
                "powerMeter": 1,
                "checkVersion": 0,
                "allowCursorLock": "yes",
                "skipAutosaveOnLaunch": [],
            },
        )
    )
    assert c.plugin_manager.token == ""
    assert c.rack.last_path == ""
    assert c.wires.wire_opacity == 0.0
    assert c.engine.get_sample_rate() == 0.0
    assert c.engine.power_meter is True
    assert c.updates.check_version is False
    assert c.cursor.allow_cursor_lock is True
    assert store.skip_autosave_on_launch is False


@pytest.mark.parametrize(
    "payload", [[100], "800x600", [1, "two"], {"w": 1, "h": 2}, [True, False], [10**400, 600], [1, -(10**400)]]
)
def test_malformed_window_pairs_are_ignored(tmp_path: Path, payload: Any) -> None:
    c = build_memory_collaborators()
    original = c.window.get_size()
    SettingsStore(c).load(_write(tmp_path / "settings.json", {"windowSize": payload}))
    assert c.window.get_size() == original


def test_module_browser_payload_is_passed_verbatim(tmp_path: Path) -> None:
    payload = {"favorites": [{"plugin": "Befaco", "model": "EvenVCO"}], "extra": [1, None, "x"]}
    c = build_memory_collaborators()
    SettingsStore(c).load(_write(tmp_path / "settings.json", {"moduleBrowser": payload}))
    assert c.module_browser.to_json() == payload


def test_defaults_document_matches_fresh_install() -> None:
    document = SettingsStore(build_memory_collaborators()).to_document()
    assert document["sampleRate"] == DEFAULT_SAMPLE_RATE
    assert document["zoom"] == 1.0
    assert document["checkVersion"] is True
    assert document["moduleBrowser"] == {"favorites": []}


@pytest.mark.parametrize("payload", [[math.inf, 600.0], [math.nan, 1.0], [1.0, -math.inf]])
def test_non_finite_window_pairs_are_ignored(payload: Any) -> None:
    c = build_memory_collaborators()
    original = c.window.get_size()
    SettingsStore(c).apply_document({"windowSize": payload, "windowPos": payload, "zoom": 2.0})
    assert c.window.get_size() == original
    assert c.zoom.zoom == 2.0


@pytest.mark.parametrize(
    "text",
    [
        '{"zoom": 1e999}',
        '{"wireOpacity": NaN}',
        '{"sampleRate": -Infinity}',
        '{"windowSize": [1e999, 600], "zoom": 2.0}',
        '{"moduleBrowser": {"scores": [Infinity]}}',
    ],
)
def test_non_finite_numbers_are_parse_errors(tmp_path: Path, text: str, caplog: pytest.LogCaptureFixture) -> None:
    c = _customised()
    before = _snapshot(c)
    path = tmp_path / "settings.json"
    path.write_text(text, encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        outcome = SettingsStore(c).load(path)
    assert outcome.status is OutcomeStatus.PARSE_ERROR
    assert outcome.error is not None
    assert "number out of range" in outcome.error.message
    assert _snapshot(c) == before
    assert len([r for r in caplog.records if r.levelno == logging.WARNING]) == 1


def test_integers_too_large_for_a_double_leave_slots_alone(tmp_path: Path) -> None:
    c = _customised()
    before = _snapshot(c)
    outcome = SettingsStore(c).load(
        _write(
            tmp_path / "settings.json",
            {"zoom": 10**400, "wireOpacity": -(10**400), "sampleRate": 10**400, "lastPath": "kept.vcv"},
        )
    )
    assert outcome.status is OutcomeStatus.LOADED
    after = _snapshot(c)
    assert after.pop("last_path") == "kept.vcv"
    before.pop("last_path")
    assert after == before


@pytest.mark.parametrize("depth", [300, 100_000])
def test_deeply_nested_document_is_a_parse_error(tmp_path: Path, depth: int, caplog: pytest.LogCaptureFixture) -> None:
    c = _customised()
    before = _snapshot(c)
    path = tmp_path / "settings.json"
    path.write_text('{"zoom": 2.0, "moduleBrowser": ' + "[" * depth + "]" * depth + "}", encoding="utf-8")
    with caplog.at_level(logging.WARNING):
        outcome = SettingsStore(c).load(path)
    assert outcome.status is OutcomeStatus.PARSE_ERROR
    assert outcome.error is not None
    assert outcome.error.message == "document nested too deeply"
    assert _snapshot(c) == before
    assert any("nested too deeply" in r.getMessage() for r in caplog.records)


def test_moderately_nested_browser_state_still_loads(tmp_path: Path) -> None:
    payload: Any = []
    for _ in range(50):
        payload = [payload]
    c = build_memory_collaborators()
    store = SettingsStore(c)
    assert store.load(_write(tmp_path / "settings.json", {"moduleBrowser": payload})).ok
    assert store.save(tmp_path / "again.json").ok
    assert c.module_browser.to_json() == payload


def test_lone_surrogate_token_survives_save(tmp_path: Path) -> None:
    source = tmp_path / "settings.json"
    source.write_text('{"token": "\\ud800", "lastPath": "caf\\u00e9.vcv"}', encoding="utf-8")
    c = build_memory_collaborators()
    store = SettingsStore(c)
    assert store.load(source).status is OutcomeStatus.LOADED
    assert c.plugin_manager.token == "\ud800"

    target = tmp_path / "out.json"
    outcome = store.save(target)

    assert outcome.status is OutcomeStatus.SAVED
    assert not (tmp_path / "out.json.tmp").exists()
    assert b"\\ud800" in target.read_bytes()
    fresh = build_memory_collaborators()
    assert SettingsStore(fresh).load(target).ok
    assert fresh.plugin_manager.token == "\ud800"
    assert fresh.rack.last_path == "café.vcv"


def test_non_ascii_text_is_written_unescaped(tmp_path: Path) -> None:
    c = build_memory_collaborators()
    c.rack.last_path = "/home/zoë/patches/räum.vcv"
    target = tmp_path / "settings.json"
    SettingsStore(c).save(target)
    assert "räum.vcv" in target.read_text(encoding="utf-8")


@pytest.mark.parametrize(
    "value",
    ['quote " and \\ backslash', "line\nbreak\ttab", "nul\x00byte", "\u202eevil.vcv", "\U0001f3b9 keys", "}\n{"],
)
def test_awkward_strings_round_trip_through_file(tmp_path: Path, value: str) -> None:
    c = build_memory_collaborators()
    c.plugin_manager.token = value
    c.rack.last_path = value
    target = tmp_path / "settings.json"
    assert SettingsStore(c).save(target).ok

    fresh = build_memory_collaborators()
    assert SettingsStore(fresh).load(target).ok
    assert fresh.plugin_manager.token == value
    assert fresh.rack.last_path == value


def test_non_finite_state_is_left_out_of_document(tmp_path: Path) -> None:
    c = build_memory_collaborators()
    c.wires.wire_opacity = math.nan
    c.engine.set_sample_rate(math.inf)
    c.window.set_size((math.inf, 600.0))
    target = tmp_path / "settings.json"

    assert SettingsStore(c).save(target).status is OutcomeStatus.SAVED

    text = target.read_text(encoding="utf-8")
    assert "NaN" not in text and "Infinity" not in text
    data = json.loads(text)
    assert "wireOpacity" not in data
    assert "sampleRate" not in data
    assert "windowSize" not in data and "windowPos" not in data
    assert data["wireTension"] == 0.5


def test_unserializable_browser_payload_is_reported_unwritable(tmp_path: Path) -> None:
    c = build_memory_collaborators()
    c.module_browser.from_json({"weights": [math.nan]})
    target = _write(tmp_path / "settings.json", {"zoom": 3.0})

    outcome = SettingsStore(c).save(target)

    assert outcome.status is OutcomeStatus.UNWRITABLE
    assert json.loads(target.read_text(encoding="utf-8")) == {"zoom": 3.0}
    assert not (tmp_path / "settings.json.tmp").exists()
