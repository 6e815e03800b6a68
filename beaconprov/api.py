"""Stable public API for building tooling on top of beaconprov.

This module is the supported integration surface for third-party callers
(line-side dashboards, test jigs, scripts). Avoid importing from the internal
modules unless intentionally depending on non-stable internals.
"""

from __future__ import annotations

from pathlib import Path

from beaconprov.collaborators.label_printer import render_label
from beaconprov.core.cancel import CancellationToken
from beaconprov.core.errors import (
    BeaconprovError,
    CancelledError,
    CollaboratorError,
    ConfigWriteError,
    DeviceError,
    DeviceTimeoutError,
    DfuModeError,
    FieldError,
    FirmwareError,
    FirmwareFetchError,
    FirmwareIntegrityError,
    FlashError,
    InputError,
    InvalidSchemeError,
    InvalidTxPowerError,
    LedgerError,
    PinWriteError,
    RecordParseError,
    StationConfigError,
    UrlEncodingError,
    UrlLengthExceededError,
    VerifyMismatchError,
)
from beaconprov.core.frames import build_frames
from beaconprov.core.machine import Collaborators
from beaconprov.core.model import (
    AdvertisementFrames,
    BatchReport,
    BeaconConfig,
    ConfigRecord,
    DeviceState,
    OutcomeStatus,
    ProvisioningOutcome,
)
from beaconprov.core.service import PreviewEntry, ProvisioningService
from beaconprov.core.txpower import code_for
from beaconprov.core.urlcodec import encode as encode_url
from beaconprov.core.validator import validate

__all__ = [
    "BeaconprovError",
    "CancelledError",
    "CollaboratorError",
    "ConfigWriteError",
    "DeviceError",
    "DeviceTimeoutError",
    "DfuModeError",
    "FieldError",
    "FirmwareError",
    "FirmwareFetchError",
    "FirmwareIntegrityError",
    "FlashError",
    "InputError",
    "InvalidSchemeError",
    "InvalidTxPowerError",
    "LedgerError",
    "PinWriteError",
    "RecordParseError",
    "StationConfigError",
    "UrlEncodingError",
    "UrlLengthExceededError",
    "VerifyMismatchError",
    "AdvertisementFrames",
    "BatchReport",
    "BeaconConfig",
    "ConfigRecord",
    "DeviceState",
    "OutcomeStatus",
    "ProvisioningOutcome",
    "PreviewEntry",
    "CancellationToken",
    "Collaborators",
    "Client",
    "build_frames",
    "code_for",
    "encode_url",
    "render_label",
    "validate",
]


class Client:
    """Public client for the provisioning workflow.

    A `Client` wraps station settings, firmware caching and the provisioning
    state machine behind a stable API. Pass ``collaborators`` to drive
    something other than the stock external tools (a simulator, a fixture).
    """

    def __init__(
        self,
        *,
        settings_path: Path | None = None,
        collaborators: Collaborators | None = None,
        token: CancellationToken | None = None,
    ) -> None:
        self.token = token or CancellationToken()
        self._service = ProvisioningService(
            settings_path=settings_path,
            collaborators=collaborators,
            token=self.token,
        )

    @property
    def load_warnings(self) -> tuple[str, ...]:
        return self._service.load_warnings

    @property
    def runtime_warnings(self) -> tuple[str, ...]:
        return self._service.runtime_warnings

    def cancel(self) -> None:
        self.token.cancel()

    def preview(self, source: Path) -> list[PreviewEntry]:
        return self._service.preview(source)

    def prepare_firmware(self) -> Path:
        return self._service.prepare_firmware()

    def flash_once(self) -> ProvisioningOutcome:
        return self._service.flash_once()

    def run_batch(
        self,
        source: Path,
        *,
        resume: bool = False,
        ledger_path: Path | None = None,
    ) -> BatchReport:
        return self._service.run_batch(source, resume=resume, ledger_path=ledger_path)
