from __future__ import annotations

import dataclasses
from pathlib import Path

import pytest

from beaconprov.core.errors import FieldError, FirmwareIntegrityError
from beaconprov.core.ledger import ResumeLedger
from beaconprov.core.model import OutcomeStatus
from beaconprov.core.service import ProvisioningService
from beaconprov.core.settings import load_settings

from conftest import VALID_ROW, OperatorToken, SimulatedBeacon, numbered_rows, write_batch


class FakeFirmware:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls = 0

    def ensure(self) -> Path:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return Path("/cache/beacon-fw.zip")


@pytest.fixture
def firmware() -> FakeFirmware:
    return FakeFirmware()


@pytest.fixture
def service(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
    beacon: SimulatedBeacon,
    collaborators,
    device_settings,
    firmware: FakeFirmware,
) -> ProvisioningService:
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "cfg"))
    monkeypatch.setenv("XDG_STATE_HOME", str(tmp_path / "state"))
    settings = dataclasses.replace(load_settings().settings, device=device_settings)
    return ProvisioningService(
        settings=settings,
        collaborators=collaborators,
        firmware_cache=firmware,
        token=OperatorToken(beacon),
    )


def test_run_batch_from_start(service: ProvisioningService, beacon: SimulatedBeacon, tmp_path: Path) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(2))
    ledger_path = tmp_path / "resume"

    report = service.run_batch(source, ledger_path=ledger_path)

    assert report.completed
    assert ResumeLedger(ledger_path).load() == 3
    assert beacon.flashes == 2


def test_run_batch_uses_default_ledger_location(service: ProvisioningService, tmp_path: Path) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(1))
    service.run_batch(source)
    assert (tmp_path / "state" / "beaconprov" / "resume").read_text(encoding="utf-8").strip() == "2"


def test_resume_starts_at_saved_cursor(service: ProvisioningService, beacon: SimulatedBeacon, tmp_path: Path) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(3))
    ledger_path = tmp_path / "resume"
    ResumeLedger(ledger_path).save(3)

    report = service.run_batch(source, resume=True, ledger_path=ledger_path)

    assert report.start == 3
    assert [o.index for o in report.outcomes] == [3]
    assert ResumeLedger(ledger_path).load() == 4


def test_without_resume_flag_starts_over(service: ProvisioningService, tmp_path: Path) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(2))
    ledger_path = tmp_path / "resume"
    ResumeLedger(ledger_path).save(2)

    report = service.run_batch(source, ledger_path=ledger_path)
    assert [o.index for o in report.outcomes] == [1, 2]


def test_invalid_input_rejected_before_device_io(
    service: ProvisioningService, beacon: SimulatedBeacon, firmware: FakeFirmware, tmp_path: Path
) -> None:
    rows = numbered_rows(2) + [{**VALID_ROW, "ia-major": "70000"}]
    source = write_batch(tmp_path / "batch.csv", rows)

    with pytest.raises(FieldError) as exc:
        service.run_batch(source, ledger_path=tmp_path / "resume")

    assert exc.value.entry == 3
    assert beacon.operator_actions == 0
    assert firmware.calls == 0


def test_cursor_past_end_does_nothing(
    service: ProvisioningService, firmware: FakeFirmware, tmp_path: Path
) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(2))
    ledger_path = tmp_path / "resume"
    ResumeLedger(ledger_path).save(3)

    report = service.run_batch(source, resume=True, ledger_path=ledger_path)

    assert report.outcomes == []
    assert report.completed
    assert firmware.calls == 0


def test_bad_firmware_reported(
    service: ProvisioningService, firmware: FakeFirmware, beacon: SimulatedBeacon, tmp_path: Path
) -> None:
    firmware.error = FirmwareIntegrityError("wrong size")
    source = write_batch(tmp_path / "batch.csv", numbered_rows(1))

    report = service.run_batch(source, ledger_path=tmp_path / "resume")

    assert report.outcomes[0].status is OutcomeStatus.BAD_FIRMWARE
    assert report.error is firmware.error
    assert beacon.operator_actions == 0


def test_preview_lists_frames(service: ProvisioningService, tmp_path: Path) -> None:
    source = write_batch(tmp_path / "batch.csv", numbered_rows(2))
    entries = service.preview(source)
    assert [e.config.index for e in entries] == [1, 2]
    assert entries[1].frames.ibeacon.endswith("0001" "0002" "C5" "00")


def test_flash_once(service: ProvisioningService, beacon: SimulatedBeacon) -> None:
    outcome = service.flash_once()
    assert outcome.ok
    assert beacon.flashes == 1
