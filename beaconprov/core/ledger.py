"""Resume cursor persistence for batch runs."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from beaconprov.core.errors import LedgerError

FIRST_INDEX = 1
LOGGER = logging.getLogger(__name__)


class ResumeLedger:
    """Stores the 1-based index of the next record to provision as plain text."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> int:
        try:
            content = self.path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return FIRST_INDEX
        except OSError as exc:
            raise LedgerError(f"Could not read resume ledger {self.path}: {exc}") from exc

        try:
            index = int(content)
        except ValueError:
            raise LedgerError(f"Resume ledger {self.path} holds '{content}', expected an integer") from None
        if index < FIRST_INDEX:
            raise LedgerError(f"Resume ledger {self.path} holds {index}, expected >= {FIRST_INDEX}")
        return index

    def save(self, index: int) -> None:
        if index < FIRST_INDEX:
            raise LedgerError(f"Refusing to store resume index {index}")
        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(f"{index}\n", encoding="utf-8")
            os.replace(tmp_path, self.path)
        except OSError as exc:
            raise LedgerError(f"Could not write resume ledger {self.path}: {exc}") from exc
        LOGGER.debug("Resume ledger %s -> %d", self.path, index)

    def reset(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            return
        except OSError as exc:
            raise LedgerError(f"Could not remove resume ledger {self.path}: {exc}") from exc
