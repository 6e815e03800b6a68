"""Single-device provisioning state machine.

One record at a time: wait for the operator to insert a device, flash it,
wait for it to come back in application mode, write its configuration, read
everything back, wait for removal, print its label and move the resume cursor.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from beaconprov.collaborators.base import (
    Configurator,
    DevicePresence,
    DfuTrigger,
    Flasher,
    LabelPrinter,
)
from beaconprov.core import txpower
from beaconprov.core.cancel import CancellationToken
from beaconprov.core.errors import (
    CancelledError,
    ConfigWriteError,
    DeviceError,
    DfuModeError,
    FlashError,
    PinWriteError,
    VerifyMismatchError,
)
from beaconprov.core.frames import build_frames
from beaconprov.core.ledger import ResumeLedger
from beaconprov.core.model import (
    AdvertisementFrames,
    BatchReport,
    BeaconConfig,
    DeviceState,
    OutcomeStatus,
    ProvisioningOutcome,
)
from beaconprov.core.settings import DeviceSettings

# Commands understood by the different application firmware generations, in
# the order they are tried.
DFU_TRIGGER_COMMANDS: tuple[str, ...] = ("$DFU", "AT+DFU", "dfu")

LOGGER = logging.getLogger(__name__)


class State(str, Enum):
    AWAIT_INSERT = "await-insert"
    FLASHING = "flashing"
    AWAIT_REINSERT = "await-reinsert"
    CONFIGURING = "configuring"
    VERIFYING = "verifying"
    AWAIT_REMOVAL = "await-removal"
    ADVANCE = "advance"


@dataclass(frozen=True)
class Collaborators:
    presence: DevicePresence
    dfu: DfuTrigger
    flasher: Flasher
    configurator: Configurator
    printer: LabelPrinter | None = None


def _status_for(exc: Exception) -> OutcomeStatus:
    if isinstance(exc, DfuModeError):
        return OutcomeStatus.DFU_TIMEOUT
    if isinstance(exc, FlashError):
        return OutcomeStatus.FLASH_FAILED
    if isinstance(exc, PinWriteError):
        return OutcomeStatus.PIN_WRITE_FAILED
    if isinstance(exc, ConfigWriteError):
        return OutcomeStatus.CONFIG_WRITE_FAILED
    return OutcomeStatus.VERIFY_MISMATCH


class ProvisioningStateMachine:
    def __init__(
        self,
        collaborators: Collaborators,
        *,
        firmware: Path,
        device: DeviceSettings,
        model: str,
        token: CancellationToken,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        self.collaborators = collaborators
        self.firmware = firmware
        self.device = device
        self.model = model
        self.token = token
        self.notify = notify or LOGGER.info
        self.state = State.AWAIT_INSERT
        self.history: list[ProvisioningOutcome] = []

    def run(
        self,
        configs: Sequence[BeaconConfig],
        ledger: ResumeLedger,
        *,
        start: int,
        total: int,
    ) -> BatchReport:
        """Provision ``configs`` in order, persisting the cursor after each one.

        Device failures other than flashing stop the batch and are returned in
        the report. Cancellation propagates and leaves the ledger untouched.
        """
        report = BatchReport(start=start, next_index=start, total=total)
        for config in configs:
            try:
                outcome = self.provision(config)
            except DeviceError as exc:
                LOGGER.error("Entry %d failed: %s", config.index, exc)
                self._record(ProvisioningOutcome(config.index, _status_for(exc), exc))
                report.error = exc
                break
            ledger.save(config.index + 1)
            report.next_index = config.index + 1
            LOGGER.info("Entry %d done (%s)", config.index, outcome.mac)
        report.outcomes = list(self.history)
        return report

    def provision(self, config: BeaconConfig) -> ProvisioningOutcome:
        frames = build_frames(config)

        self._flash_with_retry(config)

        self._enter(State.AWAIT_REINSERT)
        self.notify("Flashed. Remove and reinsert the device.")
        self._wait_until(lambda: not self._attached())
        self._wait_until(self.collaborators.presence.is_present)

        self._enter(State.CONFIGURING)
        self._configure(config, frames)

        self._enter(State.VERIFYING)
        state = self._verify(config, frames)

        self._enter(State.AWAIT_REMOVAL)
        self.notify(f"Entry {config.index} ({config.name}) verified. Remove the device.")
        self._wait_until(lambda: not self._attached())
        self._print_label(config, state)

        self._enter(State.ADVANCE)
        outcome = ProvisioningOutcome(config.index, OutcomeStatus.SUCCESS, mac=state.mac)
        self._record(outcome)
        return outcome

    def flash_device(self, index: int = 1) -> ProvisioningOutcome:
        """Flash one device without configuring it, then wait for its removal."""
        self._await_insert(f"Insert device {index} to flash.")
        self._enter(State.FLASHING)
        try:
            self._flash()
            outcome = ProvisioningOutcome(index, OutcomeStatus.SUCCESS)
            self.notify(f"Device {index} flashed.")
        except FlashError as exc:
            outcome = ProvisioningOutcome(index, _status_for(exc), exc)
            self.notify(f"Device {index} failed: {exc}")
        self._record(outcome)

        self._enter(State.AWAIT_REMOVAL)
        self.notify("Remove the device.")
        self._wait_until(lambda: not self._attached())
        return outcome

    def watch(self) -> list[ProvisioningOutcome]:
        """Flash every device the operator inserts until cancelled."""
        index = 1
        try:
            while True:
                self.flash_device(index)
                index += 1
        except CancelledError:
            LOGGER.info("Watch loop stopped after %d device(s)", index - 1)
        return list(self.history)

    def _flash_with_retry(self, config: BeaconConfig) -> None:
        while True:
            self._await_insert(f"Insert device for entry {config.index} ({config.name}).")
            self._enter(State.FLASHING)
            try:
                self._flash()
                return
            except FlashError as exc:
                LOGGER.warning("Flashing entry %d failed: %s", config.index, exc)
                self._record(ProvisioningOutcome(config.index, _status_for(exc), exc))
                self.notify(f"Flashing failed: {exc}. Remove the device to retry.")
                self._wait_until(lambda: not self._attached())

    def _await_insert(self, prompt: str) -> None:
        self._enter(State.AWAIT_INSERT)
        self.notify(prompt)
        self._wait_until(self._attached)

    def _flash(self) -> None:
        presence = self.collaborators.presence
        if not presence.in_dfu_mode():
            self._enter_dfu()
        result = self.collaborators.flasher.flash(self.firmware, self.device.dfu_port)
        if not result.ok:
            raise FlashError(f"Flashing {self.firmware.name} failed", result.output)

    def _enter_dfu(self) -> None:
        for command in DFU_TRIGGER_COMMANDS:
            result = self.collaborators.dfu.trigger(self.device.port, command)
            if not result.ok:
                LOGGER.debug("DFU trigger %r rejected: %s", command, result.output)
            if self._wait_for_dfu():
                LOGGER.info("Device entered DFU mode after %r", command)
                return
        raise DfuModeError(f"Device did not enter DFU mode on {self.device.dfu_port}")

    def _wait_for_dfu(self) -> bool:
        deadline = time.monotonic() + self.device.dfu_pause_s
        while True:
            if self.collaborators.presence.in_dfu_mode():
                return True
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self.token.sleep(min(self.device.poll_interval_s, remaining))

    def _configure(self, config: BeaconConfig, frames: AdvertisementFrames) -> None:
        configurator = self.collaborators.configurator
        factory_pin = self.device.factory_pin
        steps = [("name", config.name), ("mode", str(config.mode))]
        steps += frames.items()
        steps += [("rate", str(config.rate)), ("txpower", str(config.txpower_code))]

        for setting, value in steps:
            self.token.raise_if_cancelled()
            result = configurator.write(setting, value, pin=factory_pin)
            if not result.ok:
                raise ConfigWriteError(setting, value, result.output)
            LOGGER.debug("Wrote %s=%s", setting, value)

        result = configurator.write("pin", config.pin, pin=factory_pin)
        if not result.ok:
            raise PinWriteError("pin", "*" * len(config.pin), result.output)

    def _verify(self, config: BeaconConfig, frames: AdvertisementFrames) -> DeviceState:
        configurator = self.collaborators.configurator
        state = configurator.dump()

        checks: list[tuple[str, object, object]] = [
            ("name", config.name, state.name),
            ("mode", config.mode, state.mode),
        ]
        checks += [(slot, frame, state.frames.get(slot)) for slot, frame in frames.items()]
        checks += [
            ("rate", config.rate, state.rate),
            ("txpower", config.txpower_code, state.txpower),
        ]
        for field, expected, actual in checks:
            if expected != actual:
                raise VerifyMismatchError(field, expected, actual)

        # The new PIN has to authenticate a harmless rewrite of the name.
        result = configurator.write("name", config.name, pin=config.pin)
        if not result.ok:
            raise PinWriteError("pin", "*" * len(config.pin), result.output)

        LOGGER.info(
            "Verified %s: mode=%d rate=%d txpower=%s dBm",
            state.mac,
            state.mode,
            state.rate,
            txpower.label_for(state.txpower),
        )
        return state

    def _print_label(self, config: BeaconConfig, state: DeviceState) -> None:
        printer = self.collaborators.printer
        if printer is None or not config.labels:
            return
        result = printer.print_label(config.labels, f"{self.model} S/N {state.mac}")
        if not result.ok:
            # The device itself is done; a reprint is a manual follow-up.
            LOGGER.warning("Label for entry %d not printed: %s", config.index, result.output)
            self.notify(f"Label for entry {config.index} could not be printed: {result.output}")

    def _attached(self) -> bool:
        presence = self.collaborators.presence
        return presence.is_present() or presence.in_dfu_mode()

    def _wait_until(self, predicate: Callable[[], bool]) -> None:
        self.token.raise_if_cancelled()
        while not predicate():
            self.token.sleep(self.device.poll_interval_s)

    def _enter(self, state: State) -> None:
        LOGGER.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    def _record(self, outcome: ProvisioningOutcome) -> None:
        self.history.append(outcome)
