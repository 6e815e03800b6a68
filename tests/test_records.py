from __future__ import annotations

from pathlib import Path

import pytest

from beaconprov.core.errors import RecordParseError
from beaconprov.core.records import load, load_path, normalize_line_endings

from conftest import VALID_ROW, csv_text, numbered_rows


def test_rows_keep_order() -> None:
    records = load(csv_text(numbered_rows(3)))
    assert [r.name for r in records] == ["Lobby-01", "Lobby-02", "Lobby-03"]


def test_empty_cells_are_absent() -> None:
    record = load(csv_text([VALID_ROW]))[0]
    assert record.eurl_url is None
    assert record.get("label2") is None
    assert record.get("label1") == "Lobby beacon"
    assert record.get("ia-uuid") == VALID_ROW["ia-uuid"]


def test_blank_and_duplicate_line_endings_collapsed() -> None:
    text = csv_text(numbered_rows(2), newline="\r\n").replace("\r\n", "\r\n\r\n\n")
    assert len(load(text)) == 2


def test_normalize_line_endings() -> None:
    assert normalize_line_endings("a\r\n\r\nb\n\n\rc\n") == "a\nb\nc"


def test_byte_order_mark_tolerated() -> None:
    assert load("\ufeff" + csv_text([VALID_ROW]))[0].name == "Lobby-01"


def test_header_only_subset_of_columns() -> None:
    records = load("name,pin\nFoo,12345678\n")
    assert records[0].name == "Foo"
    assert records[0].rate is None


def test_row_shape_mismatch_is_parse_error() -> None:
    with pytest.raises(RecordParseError) as exc:
        load("name,pin\nFoo,12345678\nBar\n")
    assert "Line 3" in str(exc.value)


def test_unknown_column_rejected() -> None:
    with pytest.raises(RecordParseError):
        load("name,colour\nFoo,red\n")


def test_duplicate_column_rejected() -> None:
    with pytest.raises(RecordParseError):
        load("name,name\nFoo,Bar\n")


def test_empty_source_rejected() -> None:
    with pytest.raises(RecordParseError):
        load("\r\n\n")


def test_load_path_missing_file(tmp_path: Path) -> None:
    with pytest.raises(RecordParseError):
        load_path(tmp_path / "missing.csv")
