from __future__ import annotations

from pathlib import Path

import pytest

from beaconprov.core.errors import StationConfigError
from beaconprov.core.settings import default_ledger_path, firmware_cache_dir, load_settings


def _write(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def _isolated_xdg(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))


def test_packaged_defaults_load() -> None:
    loaded = load_settings()
    settings = loaded.settings
    assert loaded.warnings == ()
    assert settings.device.factory_pin == "00000000"
    assert settings.firmware.size > 0
    assert settings.firmware.url.endswith("/" + settings.firmware.name)
    assert settings.printer.enabled is True


def test_user_settings_merge_over_defaults(tmp_path: Path) -> None:
    _write(
        tmp_path / "cfg" / "beaconprov" / "station.yaml",
        """
device:
  port: /dev/ttyACM3
printer:
  enabled: false
""",
    )
    loaded = load_settings()
    assert loaded.settings.device.port == "/dev/ttyACM3"
    assert loaded.settings.device.dfu_port == "/dev/beacon-dfu"
    assert loaded.settings.printer.enabled is False
    assert any("overridden" in warning for warning in loaded.warnings)


def test_explicit_settings_path(tmp_path: Path) -> None:
    path = _write(tmp_path / "line2.yaml", "station:\n  model: Line 2\n")
    assert load_settings(path).settings.model == "Line 2"


def test_schema_violation_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.yaml", "device:\n  factory_pin: '123'\n")
    with pytest.raises(StationConfigError) as exc:
        load_settings(path)
    assert "device.factory_pin" in str(exc.value)


def test_unknown_key_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "bad.yaml", "device:\n  baud: 115200\n")
    with pytest.raises(StationConfigError):
        load_settings(path)


def test_duplicate_keys_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "dup.yaml", "station:\n  model: A\n  model: B\n")
    with pytest.raises(StationConfigError):
        load_settings(path)


def test_non_mapping_rejected(tmp_path: Path) -> None:
    path = _write(tmp_path / "list.yaml", "- a\n- b\n")
    with pytest.raises(StationConfigError):
        load_settings(path)


def test_missing_explicit_file_rejected(tmp_path: Path) -> None:
    with pytest.raises(StationConfigError):
        load_settings(tmp_path / "nope.yaml")


def test_xdg_paths(tmp_path: Path) -> None:
    assert default_ledger_path() == tmp_path / "state" / "beaconprov" / "resume"
    assert firmware_cache_dir() == tmp_path / "cache" / "beaconprov" / "firmware"
