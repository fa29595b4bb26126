from __future__ import annotations

import pytest

from zclpoke.core.commands import (
    DiscoverClusters,
    ReadOne,
    Scan,
    SnapshotCapture,
    SnapshotClear,
    SnapshotCompare,
    SnapshotExport,
    SnapshotImport,
    parse_bulk_write,
    parse_discover,
    parse_read,
    parse_read_list,
    parse_scan,
    parse_snapshot,
    parse_write,
)
from zclpoke.core.errors import InvalidFormatError


def test_read_and_write_commands() -> None:
    assert parse_read(" 0x051a ") == ReadOne(0x051A)
    assert parse_write("0524:uint16:0014").spec.attribute_id == 0x0524


def test_list_commands_split_and_drop_blanks() -> None:
    assert parse_read_list("0515, 0516,,0515 ").tokens == ("0515", "0516", "0515")
    assert parse_bulk_write("0515:0a,0516:ff").specs == ("0515:0a", "0516:ff")


def test_scan_range() -> None:
    assert parse_scan("0515-0530") == Scan(0x0515, 0x0530)
    assert parse_scan("0x0515-0x0530") == Scan(0x0515, 0x0530)


@pytest.mark.parametrize("text", ["0515", "0515-0516-0517", "zz-0516", ""])
def test_scan_range_rejects_bad_input(text: str) -> None:
    with pytest.raises(InvalidFormatError):
        parse_scan(text)


def test_snapshot_grammar() -> None:
    assert parse_snapshot("snapshot:0515-0530") == SnapshotCapture(0x0515, 0x0530)
    assert parse_snapshot("SNAPSHOT: 0515-0516") == SnapshotCapture(0x0515, 0x0516)
    assert parse_snapshot(" compare ") == SnapshotCompare()
    assert parse_snapshot("Export") == SnapshotExport()
    assert parse_snapshot("clear") == SnapshotClear()
    assert parse_snapshot('import:{"A": 1}') == SnapshotImport('{"A": 1}')


def test_snapshot_grammar_rejects_unknown() -> None:
    with pytest.raises(InvalidFormatError):
        parse_snapshot("diff")


def test_discover_grammar() -> None:
    assert parse_discover("all") == DiscoverClusters(None)
    assert parse_discover(" 2 ") == DiscoverClusters(2)
    for bad in ("0", "-1", "two"):
        with pytest.raises(InvalidFormatError):
            parse_discover(bad)
