"""Firmware flashing through Nordic's ``nrfutil`` USB-serial DFU."""

from __future__ import annotations

from pathlib import Path

from beaconprov.collaborators.process import run_tool
from beaconprov.core.model import CommandResult


class NrfutilFlasher:
    def __init__(self, executable: str = "nrfutil", *, timeout_s: float = 60.0) -> None:
        self.executable = executable
        self.timeout_s = timeout_s

    def flash(self, image: Path, port: str) -> CommandResult:
        return run_tool(
            [self.executable, "dfu", "usb-serial", "-pkg", str(image), "-p", port],
            timeout_s=self.timeout_s,
        )
