"""Cooperative cancellation for the blocking poll loops."""

from __future__ import annotations

import threading

from beaconprov.core.errors import CancelledError


class CancellationToken:
    """Set from a signal handler, checked wherever the workflow may block."""

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise CancelledError("Provisioning cancelled")

    def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled first, in which case raise."""
        if self._event.wait(seconds):
            raise CancelledError("Provisioning cancelled")
