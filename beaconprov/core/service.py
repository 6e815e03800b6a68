"""Service layer used by the CLI and the public API."""

from __future__ import annotations

import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from beaconprov.collaborators.beacon_cli import BeaconCliConfigurator
from beaconprov.collaborators.label_printer import CupsLabelPrinter
from beaconprov.collaborators.nrfutil import NrfutilFlasher
from beaconprov.collaborators.presence import PortPresence
from beaconprov.core import records, validator
from beaconprov.core.cancel import CancellationToken
from beaconprov.core.errors import FirmwareIntegrityError
from beaconprov.core.firmware import FirmwareCache
from beaconprov.core.frames import build_frames
from beaconprov.core.ledger import FIRST_INDEX, ResumeLedger
from beaconprov.core.machine import Collaborators, ProvisioningStateMachine
from beaconprov.core.model import (
    AdvertisementFrames,
    BatchReport,
    BeaconConfig,
    OutcomeStatus,
    ProvisioningOutcome,
)
from beaconprov.core.settings import (
    StationSettings,
    default_ledger_path,
    firmware_cache_dir,
    load_settings,
)

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewEntry:
    config: BeaconConfig
    frames: AdvertisementFrames


class ProvisioningService:
    def __init__(
        self,
        *,
        settings_path: Path | None = None,
        settings: StationSettings | None = None,
        collaborators: Collaborators | None = None,
        firmware_cache: FirmwareCache | None = None,
        token: CancellationToken | None = None,
        notify: Callable[[str], None] | None = None,
    ) -> None:
        if settings is None:
            loaded = load_settings(settings_path)
            settings = loaded.settings
            self.load_warnings = loaded.warnings
        else:
            self.load_warnings = ()
        self.settings = settings
        self.runtime_warnings = _runtime_warnings(settings) if collaborators is None else ()
        self.collaborators = collaborators or _default_collaborators(settings)
        self.firmware_cache = firmware_cache or FirmwareCache(settings.firmware, firmware_cache_dir())
        self.token = token or CancellationToken()
        self.notify = notify

    def preview(self, path: Path) -> list[PreviewEntry]:
        configs = validator.validate_all(records.load_path(path))
        return [PreviewEntry(config=config, frames=build_frames(config)) for config in configs]

    def prepare_firmware(self) -> Path:
        return self.firmware_cache.ensure()

    def flash_once(self) -> ProvisioningOutcome:
        image = self.prepare_firmware()
        return self._machine(image).flash_device()

    def watch(self) -> list[ProvisioningOutcome]:
        image = self.prepare_firmware()
        return self._machine(image).watch()

    def run_batch(
        self,
        path: Path,
        *,
        resume: bool = False,
        ledger_path: Path | None = None,
    ) -> BatchReport:
        """Validate the whole source, then provision from the resume cursor.

        Input errors raise before any device is touched.
        """
        ledger = ResumeLedger(ledger_path or default_ledger_path())
        start = ledger.load() if resume else FIRST_INDEX
        all_records = records.load_path(path)
        configs = validator.validate_all(all_records, start=start)
        total = len(all_records)

        if not configs:
            LOGGER.info("Nothing to do: cursor %d is past the last entry %d", start, total)
            return BatchReport(start=start, next_index=start, total=total)

        try:
            image = self.prepare_firmware()
        except FirmwareIntegrityError as exc:
            outcome = ProvisioningOutcome(start, OutcomeStatus.BAD_FIRMWARE, exc)
            return BatchReport(start=start, next_index=start, total=total, outcomes=[outcome], error=exc)

        LOGGER.info("Provisioning entries %d..%d of %s", start, total, path)
        return self._machine(image).run(configs, ledger, start=start, total=total)

    def _machine(self, image: Path) -> ProvisioningStateMachine:
        return ProvisioningStateMachine(
            self.collaborators,
            firmware=image,
            device=self.settings.device,
            model=self.settings.model,
            token=self.token,
            notify=self.notify,
        )


def _default_collaborators(settings: StationSettings) -> Collaborators:
    tools = settings.tools
    configurator = BeaconCliConfigurator(tools.config, settings.device.port, timeout_s=tools.timeout_s)
    printer = None
    if settings.printer.enabled:
        printer = CupsLabelPrinter(
            tools.printer,
            queue=settings.printer.queue,
            width=settings.label_width,
            timeout_s=tools.timeout_s,
        )
    return Collaborators(
        presence=PortPresence(settings.device.port, settings.device.dfu_port),
        dfu=configurator,
        flasher=NrfutilFlasher(tools.flash, timeout_s=tools.timeout_s),
        configurator=configurator,
        printer=printer,
    )


def _runtime_warnings(settings: StationSettings) -> tuple[str, ...]:
    warnings: list[str] = []
    tools = [settings.tools.flash, settings.tools.config]
    if settings.printer.enabled:
        tools.append(settings.tools.printer)
    for tool in tools:
        if shutil.which(tool) is None:
            warnings.append(f"'{tool}' not found on PATH; device commands using it will fail.")
    return tuple(warnings)
