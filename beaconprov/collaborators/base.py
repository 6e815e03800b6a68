"""Collaborator interfaces the provisioning core calls through."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from beaconprov.core.model import CommandResult, DeviceState


class DevicePresence(Protocol):
    def is_present(self) -> bool:
        """True when the device is attached in application mode."""

    def in_dfu_mode(self) -> bool:
        """True when the device is attached and exposing its DFU transport."""


class DfuTrigger(Protocol):
    def trigger(self, port: str, command: str) -> CommandResult:
        """Send one DFU trigger command to the device on ``port``."""


class Flasher(Protocol):
    def flash(self, image: Path, port: str) -> CommandResult:
        """Write ``image`` to the device in DFU mode on ``port``."""


class Configurator(Protocol):
    def write(self, setting: str, value: str, *, pin: str) -> CommandResult:
        """Write one setting, authenticated with ``pin``."""

    def dump(self) -> DeviceState:
        """Read back the device's current configuration."""


class LabelPrinter(Protocol):
    def print_label(self, lines: Sequence[str], footer: str) -> CommandResult:
        """Print ``lines`` followed by the model/serial ``footer`` line."""
