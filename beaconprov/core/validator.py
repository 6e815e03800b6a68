"""Field-by-field validation of raw configuration records."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from beaconprov.core import txpower, urlcodec
from beaconprov.core.errors import FieldError, InvalidTxPowerError, UrlEncodingError
from beaconprov.core.model import (
    BeaconConfig,
    ConfigRecord,
    EddystoneUidSlot,
    EddystoneUrlSlot,
    IBeaconSlot,
    SlotFlags,
)

_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)
_NAMESPACE_RE = re.compile(r"^[0-9a-fA-F]{20}$")
_INSTANCE_RE = re.compile(r"^[0-9a-fA-F]{12}$")
_INT_RE = re.compile(r"^[+-]?\d+$")
_TRUE_FLAGS = {"1", "true", "yes", "y", "on"}

MAX_NAME_LENGTH = 24
PIN_LENGTH = 8
UINT16_MAX = 65535
POWER_RANGE = (-127, -1)
RATE_RANGE = (1, 10)

ENABLE_FIELDS = ("ib-enable", "ab-enable", "euid-enable", "eurl-enable")
IBEACON_FIELDS = ("ia-uuid", "ia-major", "ia-minor", "ia-power")
EDDYSTONE_UID_FIELDS = ("euid-namespace", "euid-instance", "euid-power")
EDDYSTONE_URL_FIELDS = ("eurl-url", "eurl-power")

LOGGER = logging.getLogger(__name__)


def _require(record: ConfigRecord, index: int, column: str) -> str:
    value = record.get(column)
    if value is None:
        raise FieldError(index, column, "is required")
    return value


def _int_in_range(record: ConfigRecord, index: int, column: str, low: int, high: int) -> int:
    raw = _require(record, index, column)
    if not _INT_RE.match(raw):
        raise FieldError(index, column, f"must be an integer, got '{raw}'")
    value = int(raw)
    if not low <= value <= high:
        raise FieldError(index, column, f"must be in [{low}, {high}], got {value}")
    return value


def _matches(record: ConfigRecord, index: int, column: str, pattern: re.Pattern[str], what: str) -> str:
    raw = _require(record, index, column)
    if not pattern.match(raw):
        raise FieldError(index, column, f"must be {what}, got '{raw}'")
    return raw


def _flag(value: str) -> bool:
    return value.strip().lower() in _TRUE_FLAGS


def _wanted(record: ConfigRecord, columns: Sequence[str], *enabled: bool) -> bool:
    """A slot is validated when it is enabled or any of its fields is present."""
    return any(enabled) or any(record.get(column) is not None for column in columns)


def validate(record: ConfigRecord, index: int) -> BeaconConfig:
    """Validate ``record`` (1-based ``index``) and return its typed form.

    Rules run in a fixed order and the first failure raises ``FieldError``.
    """
    name = _require(record, index, "name")
    if len(name) > MAX_NAME_LENGTH:
        raise FieldError(index, "name", f"must be at most {MAX_NAME_LENGTH} characters")

    ib, ab, euid, eurl = (_flag(_require(record, index, column)) for column in ENABLE_FIELDS)
    flags = SlotFlags(ibeacon=ib, altbeacon=ab, eddystone_uid=euid, eddystone_url=eurl)

    ibeacon = None
    if _wanted(record, IBEACON_FIELDS, ib, ab):
        uuid = _matches(record, index, "ia-uuid", _UUID_RE, "a hyphenated 128-bit UUID")
        ibeacon = IBeaconSlot(
            uuid=uuid,
            major=_int_in_range(record, index, "ia-major", 0, UINT16_MAX),
            minor=_int_in_range(record, index, "ia-minor", 0, UINT16_MAX),
            power=_int_in_range(record, index, "ia-power", *POWER_RANGE),
        )

    eddystone_uid = None
    if _wanted(record, EDDYSTONE_UID_FIELDS, euid):
        eddystone_uid = EddystoneUidSlot(
            namespace=_matches(record, index, "euid-namespace", _NAMESPACE_RE, "20 hex digits"),
            instance=_matches(record, index, "euid-instance", _INSTANCE_RE, "12 hex digits"),
            power=_int_in_range(record, index, "euid-power", *POWER_RANGE),
        )

    eddystone_url = None
    if _wanted(record, EDDYSTONE_URL_FIELDS, eurl):
        url = _require(record, index, "eurl-url")
        try:
            encoded = urlcodec.encode(url)
        except UrlEncodingError as exc:
            raise FieldError(index, "eurl-url", f"cannot be encoded: {exc}") from exc
        eddystone_url = EddystoneUrlSlot(
            url=url,
            encoded=encoded,
            power=_int_in_range(record, index, "eurl-power", *POWER_RANGE),
        )

    rate = _int_in_range(record, index, "rate", *RATE_RANGE)

    txpower_label = _require(record, index, "txpower")
    try:
        txpower_code = txpower.code_for(txpower_label)
    except InvalidTxPowerError as exc:
        raise FieldError(index, "txpower", str(exc)) from exc

    pin = _require(record, index, "pin")
    if len(pin) != PIN_LENGTH:
        raise FieldError(index, "pin", f"must be exactly {PIN_LENGTH} characters")

    return BeaconConfig(
        index=index,
        name=name,
        flags=flags,
        ibeacon=ibeacon,
        eddystone_uid=eddystone_uid,
        eddystone_url=eddystone_url,
        rate=rate,
        txpower_label=txpower_label,
        txpower_code=txpower_code,
        pin=pin,
        labels=tuple(label for label in record.labels if label is not None),
    )


def validate_all(records: Sequence[ConfigRecord], start: int = 1) -> list[BeaconConfig]:
    """Validate every record and return those from ``start`` on.

    Records before ``start`` are still checked so a resumed batch rejects the
    same input a fresh run would.
    """
    configs = [validate(record, index) for index, record in enumerate(records, start=1)]
    LOGGER.info("Validated %d record(s)", len(configs))
    return configs[start - 1 :]
