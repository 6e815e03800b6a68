"""Advertising frame construction for the four beacon slots.

Every frame is a complete legacy advertising payload (flags AD structure
followed by the beacon AD structure), rendered as uppercase hex exactly the way
the device reports it back on a dump.
"""

from __future__ import annotations

from beaconprov.core.model import (
    AdvertisementFrames,
    BeaconConfig,
    EddystoneUidSlot,
    EddystoneUrlSlot,
    IBeaconSlot,
)

IBEACON_PREFIX = "0201061AFF4C000215"
ALTBEACON_PREFIX = "0201061BFF1801BEAC"
BEACON_SUFFIX = "00"

EDDYSTONE_UID_PREFIX = "0201060303AAFE1716AAFE00"
EDDYSTONE_UID_SUFFIX = "0000"

EDDYSTONE_PREFIX = "0201060303AAFE"
EDDYSTONE_URL_SERVICE = "16AAFE"
EDDYSTONE_URL_FRAME_TYPE = "10"
# Frame type, tx power and compressed URL share a fixed 20-byte field.
EDDYSTONE_URL_FIELD_HEX = 40
# Service data type, 16-bit service UUID, frame type and tx power bytes.
EDDYSTONE_URL_OVERHEAD = 5


def power_byte(power: int) -> str:
    """Two's-complement byte for a signed dBm value, as two hex digits."""
    return f"{(256 + power) % 256:02X}"


def _proximity_frame(prefix: str, slot: IBeaconSlot) -> str:
    return (
        prefix
        + slot.uuid.replace("-", "").upper()
        + f"{slot.major:04X}"
        + f"{slot.minor:04X}"
        + power_byte(slot.power)
        + BEACON_SUFFIX
    )


def ibeacon_frame(slot: IBeaconSlot) -> str:
    return _proximity_frame(IBEACON_PREFIX, slot)


def altbeacon_frame(slot: IBeaconSlot) -> str:
    return _proximity_frame(ALTBEACON_PREFIX, slot)


def eddystone_uid_frame(slot: EddystoneUidSlot) -> str:
    return (
        EDDYSTONE_UID_PREFIX
        + power_byte(slot.power)
        + slot.namespace.upper()
        + slot.instance.upper()
        + EDDYSTONE_UID_SUFFIX
    )


def eddystone_url_frame(slot: EddystoneUrlSlot) -> str:
    length = len(slot.encoded) // 2 + EDDYSTONE_URL_OVERHEAD
    payload = EDDYSTONE_URL_FRAME_TYPE + power_byte(slot.power) + slot.encoded.upper()
    return (
        EDDYSTONE_PREFIX
        + f"{length:02X}"
        + EDDYSTONE_URL_SERVICE
        + payload.ljust(EDDYSTONE_URL_FIELD_HEX, "0")
    )


def build_frames(config: BeaconConfig) -> AdvertisementFrames:
    """Build the frame for every slot whose data the record carries."""
    ibeacon = altbeacon = eddystone_uid = eddystone_url = None
    if config.ibeacon is not None:
        ibeacon = ibeacon_frame(config.ibeacon)
        altbeacon = altbeacon_frame(config.ibeacon)
    if config.eddystone_uid is not None:
        eddystone_uid = eddystone_uid_frame(config.eddystone_uid)
    if config.eddystone_url is not None:
        eddystone_url = eddystone_url_frame(config.eddystone_url)
    return AdvertisementFrames(
        ibeacon=ibeacon,
        altbeacon=altbeacon,
        eddystone_uid=eddystone_uid,
        eddystone_url=eddystone_url,
    )
