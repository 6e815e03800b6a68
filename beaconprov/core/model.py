"""Core data models used across validator, state machine, service, and CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# CSV column name -> ConfigRecord attribute.
RECORD_FIELDS: dict[str, str] = {
    "name": "name",
    "ib-enable": "ib_enable",
    "ab-enable": "ab_enable",
    "euid-enable": "euid_enable",
    "eurl-enable": "eurl_enable",
    "ia-uuid": "ia_uuid",
    "ia-major": "ia_major",
    "ia-minor": "ia_minor",
    "ia-power": "ia_power",
    "euid-namespace": "euid_namespace",
    "euid-instance": "euid_instance",
    "euid-power": "euid_power",
    "eurl-url": "eurl_url",
    "eurl-power": "eurl_power",
    "rate": "rate",
    "txpower": "txpower",
    "pin": "pin",
}
LABEL_FIELDS: tuple[str, ...] = tuple(f"label{i}" for i in range(1, 7))

SLOT_IBEACON = "ibeacon"
SLOT_ALTBEACON = "altbeacon"
SLOT_EDDYSTONE_UID = "euid"
SLOT_EDDYSTONE_URL = "eurl"
SLOTS: tuple[str, ...] = (SLOT_IBEACON, SLOT_ALTBEACON, SLOT_EDDYSTONE_UID, SLOT_EDDYSTONE_URL)

# Bit assigned to each slot in the device's BLE mode register.
SLOT_MODE_BITS: dict[str, int] = {
    SLOT_IBEACON: 0x01,
    SLOT_ALTBEACON: 0x02,
    SLOT_EDDYSTONE_UID: 0x04,
    SLOT_EDDYSTONE_URL: 0x08,
}


@dataclass(frozen=True)
class ConfigRecord:
    """One raw row of provisioning input. ``None`` means the cell was absent."""

    name: str | None = None
    ib_enable: str | None = None
    ab_enable: str | None = None
    euid_enable: str | None = None
    eurl_enable: str | None = None
    ia_uuid: str | None = None
    ia_major: str | None = None
    ia_minor: str | None = None
    ia_power: str | None = None
    euid_namespace: str | None = None
    euid_instance: str | None = None
    euid_power: str | None = None
    eurl_url: str | None = None
    eurl_power: str | None = None
    rate: str | None = None
    txpower: str | None = None
    pin: str | None = None
    labels: tuple[str | None, ...] = (None,) * len(LABEL_FIELDS)

    @classmethod
    def from_row(cls, row: dict[str, str]) -> ConfigRecord:
        values: dict[str, str | None] = {}
        for column, attr in RECORD_FIELDS.items():
            values[attr] = _cell(row.get(column))
        labels = tuple(_cell(row.get(column)) for column in LABEL_FIELDS)
        return cls(**values, labels=labels)

    def get(self, column: str) -> str | None:
        """Return a value by its column name (``ia-uuid``, ``label3``...)."""
        if column in LABEL_FIELDS:
            return self.labels[LABEL_FIELDS.index(column)]
        return getattr(self, RECORD_FIELDS[column])


def _cell(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


@dataclass(frozen=True)
class IBeaconSlot:
    """Identity shared by the iBeacon and AltBeacon slots."""

    uuid: str
    major: int
    minor: int
    power: int


@dataclass(frozen=True)
class EddystoneUidSlot:
    namespace: str
    instance: str
    power: int


@dataclass(frozen=True)
class EddystoneUrlSlot:
    url: str
    encoded: str
    power: int


@dataclass(frozen=True)
class SlotFlags:
    ibeacon: bool
    altbeacon: bool
    eddystone_uid: bool
    eddystone_url: bool

    def enabled(self, slot: str) -> bool:
        return {
            SLOT_IBEACON: self.ibeacon,
            SLOT_ALTBEACON: self.altbeacon,
            SLOT_EDDYSTONE_UID: self.eddystone_uid,
            SLOT_EDDYSTONE_URL: self.eddystone_url,
        }[slot]


@dataclass(frozen=True)
class BeaconConfig:
    """A validated record, ready for frame encoding and device writes."""

    index: int
    name: str
    flags: SlotFlags
    ibeacon: IBeaconSlot | None
    eddystone_uid: EddystoneUidSlot | None
    eddystone_url: EddystoneUrlSlot | None
    rate: int
    txpower_label: str
    txpower_code: int
    pin: str
    labels: tuple[str, ...] = ()

    @property
    def mode(self) -> int:
        return sum(bit for slot, bit in SLOT_MODE_BITS.items() if self.flags.enabled(slot))


@dataclass(frozen=True)
class AdvertisementFrames:
    """Uppercase hex advertising PDUs, one per slot that carries data."""

    ibeacon: str | None = None
    altbeacon: str | None = None
    eddystone_uid: str | None = None
    eddystone_url: str | None = None

    def items(self) -> list[tuple[str, str]]:
        pairs = [
            (SLOT_IBEACON, self.ibeacon),
            (SLOT_ALTBEACON, self.altbeacon),
            (SLOT_EDDYSTONE_UID, self.eddystone_uid),
            (SLOT_EDDYSTONE_URL, self.eddystone_url),
        ]
        return [(slot, frame) for slot, frame in pairs if frame is not None]


@dataclass(frozen=True)
class DeviceState:
    """What the configuration tool reports for the attached device."""

    name: str
    frames: dict[str, str]
    mode: int
    rate: int
    txpower: int
    mac: str


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    output: str = ""
    timed_out: bool = False


class OutcomeStatus(str, Enum):
    SUCCESS = "success"
    BAD_FIRMWARE = "bad-firmware"
    DFU_TIMEOUT = "dfu-timeout"
    FLASH_FAILED = "flash-failed"
    CONFIG_WRITE_FAILED = "config-write-failed"
    VERIFY_MISMATCH = "verify-mismatch"
    PIN_WRITE_FAILED = "pin-write-failed"


@dataclass(frozen=True)
class ProvisioningOutcome:
    index: int
    status: OutcomeStatus
    error: Exception | None = None
    mac: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCESS


@dataclass
class BatchReport:
    start: int
    next_index: int
    total: int
    outcomes: list[ProvisioningOutcome] = field(default_factory=list)
    error: Exception | None = None

    @property
    def completed(self) -> bool:
        return self.error is None and self.next_index > self.total
