"""Label rendering and printing through a CUPS queue."""

from __future__ import annotations

from collections.abc import Sequence

from beaconprov.collaborators.process import run_tool
from beaconprov.core.model import CommandResult

MAX_LABEL_LINES = 6


def render_label(lines: Sequence[str], footer: str, width: int = 32) -> str:
    """Lay out up to six lines plus ``footer`` in a bordered block.

    Every row is exactly ``width`` characters; long text is truncated.
    """
    inner = width - 4
    border = "+" + "-" * (width - 2) + "+"
    rows = [border]
    for line in list(lines)[:MAX_LABEL_LINES]:
        rows.append(f"| {line[:inner].ljust(inner)} |")
    rows.append("|" + " " * (width - 2) + "|")
    rows.append(f"| {footer[:inner].ljust(inner)} |")
    rows.append(border)
    return "\n".join(rows) + "\n"


class CupsLabelPrinter:
    def __init__(
        self,
        executable: str = "lp",
        *,
        queue: str | None = None,
        width: int = 32,
        timeout_s: float = 30.0,
    ) -> None:
        self.executable = executable
        self.queue = queue
        self.width = width
        self.timeout_s = timeout_s

    def print_label(self, lines: Sequence[str], footer: str) -> CommandResult:
        cmd = [self.executable]
        if self.queue:
            cmd += ["-d", self.queue]
        return run_tool(cmd, timeout_s=self.timeout_s, stdin=render_label(lines, footer, self.width))
