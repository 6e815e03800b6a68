"""Thin subprocess helper shared by the external tool wrappers."""

from __future__ import annotations

import logging
import subprocess
from collections.abc import Sequence

from beaconprov.core.errors import CollaboratorError
from beaconprov.core.model import CommandResult

LOGGER = logging.getLogger(__name__)


def run_tool(cmd: Sequence[str], *, timeout_s: float, stdin: str | None = None) -> CommandResult:
    LOGGER.debug("Running %s", " ".join(cmd))
    try:
        result = subprocess.run(
            list(cmd),
            check=False,
            capture_output=True,
            text=True,
            input=stdin,
            timeout=timeout_s,
        )
    except FileNotFoundError as exc:
        raise CollaboratorError(f"'{cmd[0]}' not found. Install it or fix the station settings.") from exc
    except subprocess.TimeoutExpired:
        return CommandResult(ok=False, output=f"{cmd[0]} timed out after {timeout_s}s", timed_out=True)

    output = "\n".join(part.strip() for part in (result.stdout, result.stderr) if part and part.strip())
    return CommandResult(ok=result.returncode == 0, output=output)
