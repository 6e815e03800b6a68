"""CSV loading for batch configuration records."""

from __future__ import annotations

import csv
import io
import logging
import re
from pathlib import Path

from beaconprov.core.errors import RecordParseError
from beaconprov.core.model import LABEL_FIELDS, RECORD_FIELDS, ConfigRecord

_LINE_BREAKS_RE = re.compile(r"[\r\n]+")
KNOWN_COLUMNS = frozenset(RECORD_FIELDS) | frozenset(LABEL_FIELDS)
LOGGER = logging.getLogger(__name__)


def normalize_line_endings(text: str) -> str:
    """Collapse every run of CR/LF characters into a single newline."""
    return _LINE_BREAKS_RE.sub("\n", text).strip("\n")


def load(source: str) -> list[ConfigRecord]:
    """Parse CSV text whose first row names the columns.

    Rows keep their order; that order is the provisioning order.
    """
    text = normalize_line_endings(source.lstrip("\ufeff"))
    if not text:
        raise RecordParseError("Configuration source is empty")

    reader = csv.reader(io.StringIO(text))
    try:
        header = [column.strip() for column in next(reader)]
        rows = list(reader)
    except csv.Error as exc:
        raise RecordParseError(f"Invalid CSV: {exc}") from exc

    unknown = [column for column in header if column not in KNOWN_COLUMNS]
    if unknown:
        raise RecordParseError(f"Unknown column(s) in header: {', '.join(unknown)}")
    if len(set(header)) != len(header):
        raise RecordParseError("Header names a column more than once")

    records: list[ConfigRecord] = []
    for line_no, row in enumerate(rows, start=2):
        if len(row) != len(header):
            raise RecordParseError(
                f"Line {line_no} has {len(row)} field(s), header defines {len(header)}"
            )
        records.append(ConfigRecord.from_row(dict(zip(header, row))))

    LOGGER.debug("Loaded %d configuration record(s)", len(records))
    return records


def load_path(path: Path) -> list[ConfigRecord]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RecordParseError(f"Could not read configuration file {path}: {exc}") from exc
    return load(content)
