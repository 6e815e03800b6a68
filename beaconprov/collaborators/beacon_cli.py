"""Device configuration through the vendor ``beacon-cli`` tool."""

from __future__ import annotations

import json
from typing import Any

from beaconprov.collaborators.process import run_tool
from beaconprov.core.errors import DeviceError, DeviceTimeoutError
from beaconprov.core.model import SLOTS, CommandResult, DeviceState


class BeaconCliConfigurator:
    """Sends one ``set`` command per setting and parses ``dump --json``.

    The same tool forwards raw serial commands, which is how DFU mode is
    requested from the application firmware.
    """

    def __init__(self, executable: str, port: str, *, timeout_s: float = 10.0) -> None:
        self.executable = executable
        self.port = port
        self.timeout_s = timeout_s

    def write(self, setting: str, value: str, *, pin: str) -> CommandResult:
        return run_tool(
            [self.executable, "--port", self.port, "--pin", pin, "set", setting, value],
            timeout_s=self.timeout_s,
        )

    def trigger(self, port: str, command: str) -> CommandResult:
        return run_tool(
            [self.executable, "--port", port, "raw", command],
            timeout_s=self.timeout_s,
        )

    def dump(self) -> DeviceState:
        result = run_tool([self.executable, "--port", self.port, "dump", "--json"], timeout_s=self.timeout_s)
        if result.timed_out:
            raise DeviceTimeoutError(f"Device on {self.port} did not answer: {result.output}")
        if not result.ok:
            raise DeviceError(f"Could not read device state: {result.output}")
        return parse_dump(result.output)


def parse_dump(output: str) -> DeviceState:
    try:
        doc: Any = json.loads(output)
    except json.JSONDecodeError as exc:
        raise DeviceError(f"Device state is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise DeviceError("Device state must be a JSON object")

    try:
        raw_frames = doc.get("frames") or {}
        frames = {slot: str(raw_frames[slot]).upper() for slot in SLOTS if raw_frames.get(slot)}
        return DeviceState(
            name=str(doc["name"]),
            frames=frames,
            mode=int(doc["mode"]),
            rate=int(doc["rate"]),
            txpower=int(doc["txpower"]),
            mac=str(doc["mac"]).upper(),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise DeviceError(f"Device state is missing or has a malformed field: {exc}") from exc
