"""Station settings loading and validation for YAML-based beaconprov configs."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from beaconprov.core.errors import StationConfigError

LOGGER = logging.getLogger(__name__)
USER_SETTINGS_NAME = "station.yaml"


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise StationConfigError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class DeviceSettings:
    port: str
    dfu_port: str
    factory_pin: str
    poll_interval_s: float = 0.5
    dfu_pause_s: float = 2.0


@dataclass(frozen=True)
class FirmwareSettings:
    name: str
    base_url: str
    size: int
    timeout_s: float = 30.0

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}/{self.name}"


@dataclass(frozen=True)
class ToolSettings:
    flash: str
    config: str
    printer: str
    timeout_s: float = 60.0


@dataclass(frozen=True)
class PrinterSettings:
    enabled: bool
    queue: str | None = None


@dataclass(frozen=True)
class StationSettings:
    model: str
    label_width: int
    device: DeviceSettings
    firmware: FirmwareSettings
    tools: ToolSettings
    printer: PrinterSettings


@dataclass(frozen=True)
class LoadedSettings:
    settings: StationSettings
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("beaconprov.schemas").joinpath("station.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_dir() -> Path:
    return Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config")) / "beaconprov"


def cache_dir() -> Path:
    return Path(os.environ.get("XDG_CACHE_HOME", Path.home() / ".cache")) / "beaconprov"


def state_dir() -> Path:
    return Path(os.environ.get("XDG_STATE_HOME", Path.home() / ".local/state")) / "beaconprov"


def default_ledger_path() -> Path:
    return state_dir() / "resume"


def firmware_cache_dir() -> Path:
    return cache_dir() / "firmware"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise StationConfigError(f"Could not read settings file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise StationConfigError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise StationConfigError(f"Settings file {path} must contain a mapping at root")
    return loaded


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _build_settings(doc: dict[str, Any], source: str) -> StationSettings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise StationConfigError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    station = doc["station"]
    return StationSettings(
        model=station["model"],
        label_width=int(station.get("label_width", 32)),
        device=DeviceSettings(**doc["device"]),
        firmware=FirmwareSettings(**doc["firmware"]),
        tools=ToolSettings(**doc["tools"]),
        printer=PrinterSettings(**doc["printer"]),
    )


def load_settings(path: Path | None = None) -> LoadedSettings:
    """Load packaged defaults, then overlay ``path`` or the user settings file."""
    warnings: list[str] = []
    doc = _read_yaml(resources.files("beaconprov.stations").joinpath("default.yaml"))
    source = "packaged defaults"

    override_path = path or config_dir() / USER_SETTINGS_NAME
    if path is not None or override_path.is_file():
        doc = _merge(doc, _read_yaml(override_path))
        source = str(override_path)
        warning = f"Station settings overridden by {override_path}"
        LOGGER.info(warning)
        warnings.append(warning)

    return LoadedSettings(settings=_build_settings(doc, source), warnings=tuple(warnings))
