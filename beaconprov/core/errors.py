"""Domain-specific errors for beaconprov."""

from __future__ import annotations


class BeaconprovError(Exception):
    """Base error for beaconprov."""


class InputError(BeaconprovError):
    """Raised when provisioning input is malformed or out of range."""


class RecordParseError(InputError):
    """Raised when the tabular configuration source cannot be parsed."""


class FieldError(InputError):
    """Raised when one field of a configuration record fails validation."""

    def __init__(self, entry: int, field: str, reason: str) -> None:
        super().__init__(f"Entry {entry}: field '{field}' {reason}")
        self.entry = entry
        self.field = field
        self.reason = reason


class InvalidTxPowerError(InputError):
    """Raised when a tx power label is not one of the supported dBm values."""


class UrlEncodingError(InputError):
    """Base error for Eddystone-URL compression failures."""


class InvalidSchemeError(UrlEncodingError):
    """Raised when a URL does not start with a compressible scheme."""


class UrlLengthExceededError(UrlEncodingError):
    """Raised when a compressed URL does not fit the Eddystone-URL payload."""


class StationConfigError(BeaconprovError):
    """Raised when the station settings file is unreadable or invalid."""


class LedgerError(BeaconprovError):
    """Raised when the resume ledger holds an unusable value."""


class FirmwareError(BeaconprovError):
    """Base firmware acquisition error."""


class FirmwareFetchError(FirmwareError):
    """Raised when the firmware image cannot be downloaded."""


class FirmwareIntegrityError(FirmwareError):
    """Raised when a cached firmware image has the wrong size."""


class CollaboratorError(BeaconprovError):
    """Raised when an external tool cannot be invoked at all."""


class DeviceError(BeaconprovError):
    """Base device interaction error."""


class DeviceTimeoutError(DeviceError):
    """Raised when a device never shows up where it is expected."""


class FlashError(DeviceError):
    """Raised when writing firmware to the device fails."""

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output


class DfuModeError(FlashError):
    """Raised when no trigger command puts the device into DFU mode."""


class ConfigWriteError(DeviceError):
    """Raised when the device rejects a configuration setting."""

    def __init__(self, setting: str, value: str, output: str = "") -> None:
        detail = f": {output}" if output else ""
        super().__init__(f"Writing '{setting}'={value!r} failed{detail}")
        self.setting = setting
        self.value = value
        self.output = output


class PinWriteError(ConfigWriteError):
    """Raised when the security PIN cannot be written or does not take effect."""


class VerifyMismatchError(DeviceError):
    """Raised when the device reports a value other than the one written."""

    def __init__(self, field: str, expected: object, actual: object) -> None:
        super().__init__(
            f"Verification failed for '{field}': expected {expected}, device reports {actual}"
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class CancelledError(BeaconprovError):
    """Raised at a suspension point once cancellation has been requested."""
