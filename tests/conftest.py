from __future__ import annotations

import dataclasses
from collections.abc import Sequence
from pathlib import Path

import pytest

from beaconprov.core.cancel import CancellationToken
from beaconprov.core.machine import Collaborators
from beaconprov.core.model import SLOTS, CommandResult, DeviceState
from beaconprov.core.settings import DeviceSettings

FACTORY_PIN = "00000000"

VALID_ROW: dict[str, str] = {
    "name": "Lobby-01",
    "ib-enable": "1",
    "ab-enable": "1",
    "euid-enable": "1",
    "eurl-enable": "0",
    "ia-uuid": "2f234454-cf6d-4a0f-adf2-f4911ba9ffa6",
    "ia-major": "1",
    "ia-minor": "1",
    "ia-power": "-59",
    "euid-namespace": "EDD1EBEAC04E5DEFA017",
    "euid-instance": "0BDB87539B67",
    "euid-power": "-20",
    "eurl-url": "",
    "eurl-power": "",
    "rate": "5",
    "txpower": "-12",
    "pin": "S3cretP1",
    "label1": "Lobby beacon",
    "label2": "",
    "label3": "",
    "label4": "",
    "label5": "",
    "label6": "",
}


def csv_text(rows: Sequence[dict[str, str]], newline: str = "\n") -> str:
    header = list(VALID_ROW)
    lines = [",".join(header)]
    for row in rows:
        lines.append(",".join(row.get(column, "") for column in header))
    return newline.join(lines) + newline


def write_batch(path: Path, rows: Sequence[dict[str, str]]) -> Path:
    path.write_text(csv_text(rows), encoding="utf-8")
    return path


def numbered_rows(count: int) -> list[dict[str, str]]:
    return [{**VALID_ROW, "name": f"Lobby-{i:02d}", "ia-minor": str(i)} for i in range(1, count + 1)]


class SimulatedBeacon:
    """In-memory beacon plus the operator plugging it in and out.

    Flashing wipes the configuration and PIN, so each record starts from a
    factory-fresh device with its own MAC.
    """

    def __init__(self) -> None:
        self.inserted = False
        self.dfu = False
        self.pin = FACTORY_PIN
        self.mac = "C0:FF:EE:00:00:00"
        self.settings: dict[str, str] = {}
        self.enters_dfu = True
        self.flash_failures = 0
        self.reject: set[str] = set()
        self.overrides: dict[str, object] = {}
        self.label_ok = True
        self.flashes = 0
        self.operator_actions = 0
        self.triggers: list[str] = []
        self.writes: list[tuple[str, str, str]] = []
        self.labels: list[tuple[list[str], str]] = []

    def act(self) -> None:
        self.operator_actions += 1
        if self.inserted:
            self.inserted = False
            self.dfu = False
        else:
            self.inserted = True

    def is_present(self) -> bool:
        return self.inserted and not self.dfu

    def in_dfu_mode(self) -> bool:
        return self.inserted and self.dfu

    def trigger(self, port: str, command: str) -> CommandResult:
        self.triggers.append(command)
        if self.enters_dfu and self.inserted:
            self.dfu = True
            return CommandResult(ok=True)
        return CommandResult(ok=False, output=f"unknown command {command}")

    def flash(self, image: Path, port: str) -> CommandResult:
        if not self.in_dfu_mode():
            return CommandResult(ok=False, output="no DFU target")
        if self.flash_failures:
            self.flash_failures -= 1
            return CommandResult(ok=False, output="DFU transfer aborted")
        self.flashes += 1
        self.dfu = False
        self.pin = FACTORY_PIN
        self.settings = {}
        self.mac = f"C0:FF:EE:00:00:{self.flashes:02X}"
        return CommandResult(ok=True)

    def write(self, setting: str, value: str, *, pin: str) -> CommandResult:
        self.writes.append((setting, value, pin))
        if not self.is_present():
            return CommandResult(ok=False, output="device not connected")
        if pin != self.pin:
            return CommandResult(ok=False, output="authentication failed")
        if setting in self.reject:
            return CommandResult(ok=False, output=f"{setting} rejected")
        if setting == "pin":
            self.pin = value
        else:
            self.settings[setting] = value
        return CommandResult(ok=True)

    def dump(self) -> DeviceState:
        state = DeviceState(
            name=self.settings.get("name", ""),
            frames={slot: self.settings[slot] for slot in SLOTS if slot in self.settings},
            mode=int(self.settings.get("mode", "0")),
            rate=int(self.settings.get("rate", "0")),
            txpower=int(self.settings.get("txpower", "0")),
            mac=self.mac,
        )
        return dataclasses.replace(state, **self.overrides)

    def print_label(self, lines: Sequence[str], footer: str) -> CommandResult:
        self.labels.append((list(lines), footer))
        return CommandResult(ok=self.label_ok, output="" if self.label_ok else "printer offline")


class OperatorToken(CancellationToken):
    """The operator acts every time the workflow waits.

    ``max_actions`` cancels the run once the operator has acted that often.
    """

    def __init__(self, beacon: SimulatedBeacon, max_actions: int | None = None) -> None:
        super().__init__()
        self.beacon = beacon
        self.max_actions = max_actions

    def sleep(self, seconds: float) -> None:
        self.raise_if_cancelled()
        self.beacon.act()
        if self.max_actions is not None and self.beacon.operator_actions >= self.max_actions:
            self.cancel()


@pytest.fixture
def beacon() -> SimulatedBeacon:
    return SimulatedBeacon()


@pytest.fixture
def collaborators(beacon: SimulatedBeacon) -> Collaborators:
    return Collaborators(
        presence=beacon,
        dfu=beacon,
        flasher=beacon,
        configurator=beacon,
        printer=beacon,
    )


@pytest.fixture
def device_settings() -> DeviceSettings:
    return DeviceSettings(
        port="/dev/beacon-sim",
        dfu_port="/dev/beacon-sim-dfu",
        factory_pin=FACTORY_PIN,
        poll_interval_s=0.0,
        dfu_pause_s=0.0,
    )
