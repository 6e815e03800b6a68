"""Transmit power labels and the register codes the beacon firmware expects."""

from __future__ import annotations

from beaconprov.core.errors import InvalidTxPowerError

_CANONICAL_LABELS: tuple[str, ...] = (
    "-23",
    "-21",
    "-20",
    "-18",
    "-16",
    "-14",
    "-12",
    "-11",
    "-8",
    "-7",
    "-5",
    "-4",
    "-2",
    "-1",
    "+0",
    "+3",
)

TX_POWER_CODES: dict[str, int] = {label: code for code, label in enumerate(_CANONICAL_LABELS)}
# Unsigned spellings of the non-negative levels.
TX_POWER_CODES["0"] = TX_POWER_CODES["+0"]
TX_POWER_CODES["3"] = TX_POWER_CODES["+3"]


def code_for(label: str) -> int:
    """Return the register code for a dBm label such as ``"-12"`` or ``"+0"``.

    Lookup is by exact string; ``"-12.0"`` or ``" -12"`` are not accepted.
    """
    try:
        return TX_POWER_CODES[label]
    except KeyError:
        allowed = ", ".join(TX_POWER_CODES)
        raise InvalidTxPowerError(f"Unsupported tx power '{label}'. Allowed: {allowed}") from None


def label_for(code: int) -> str:
    if not 0 <= code < len(_CANONICAL_LABELS):
        raise InvalidTxPowerError(f"Unknown tx power code {code}")
    return _CANONICAL_LABELS[code]
