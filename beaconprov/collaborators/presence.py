"""Device presence detection through its udev-named serial ports."""

from __future__ import annotations

from pathlib import Path


class PortPresence:
    """The device is present while its port node exists.

    Application firmware and the DFU bootloader enumerate as different USB
    devices, so each mode is told apart by its own port node.
    """

    def __init__(self, port: str, dfu_port: str) -> None:
        self.port = Path(port)
        self.dfu_port = Path(dfu_port)

    def is_present(self) -> bool:
        return self.port.exists()

    def in_dfu_mode(self) -> bool:
        return self.dfu_port.exists()
