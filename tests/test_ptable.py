import io
import struct

import pytest

from ldrkit.errors import BoundsViolation, FormatInvalid, NotFound
from ldrkit.ptable import (
    HEAD_MAGIC,
    MAX_PARTITIONS,
    PTABLE_SIZE,
    PartitionEntry,
    PartitionTable,
    decode_binary,
    encode_binary,
    format_map,
    locate,
    read_table,
    replace_table,
)
from ldrkit.readers import MemoryRegion


def _sample_table() -> PartitionTable:
    return PartitionTable(
        version="V7R11",
        product="E3372h",
        entries=[
            PartitionEntry("fastboot", 0x0, 0x80000, 0x80000, 0x0, 0x0, 0x1, 0x0, 0x1),
            PartitionEntry("modem", 0x100000, 0x200000, 0x200000, 0x50000000, 0x50000000, 0x2, 0x11, 0x0),
            PartitionEntry("T", 0x300000, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0, 0x0),
        ],
        tail=bytes(range(0x20)),
    )


def test_sizes():
    assert PTABLE_SIZE == 2048
    assert len(HEAD_MAGIC) == 16
    assert HEAD_MAGIC.startswith(b"pTableHead")


def test_encode_layout():
    data = encode_binary(_sample_table())
    assert len(data) == PTABLE_SIZE
    assert data[:16] == HEAD_MAGIC
    assert data[0x10:0x20] == b"V7R11".ljust(16, b"\0")
    assert data[0x20:0x30] == b"E3372h".ljust(16, b"\0")

    # second entry: name, start, lsize, length, loadaddr, entry, type, nproperty, count
    entry = data[0x60:0x90]
    assert entry[:16] == b"modem".ljust(16, b"\0")
    assert struct.unpack("<8I", entry[16:]) == (
        0x100000, 0x200000, 0x200000, 0x50000000, 0x50000000, 0x2, 0x11, 0x0
    )
    assert data[-32:] == bytes(range(0x20))


def test_binary_round_trip():
    table = _sample_table()
    assert decode_binary(encode_binary(table)) == table


def test_empty_table_encodes_to_fixed_size():
    data = encode_binary(PartitionTable())
    assert len(data) == PTABLE_SIZE
    assert decode_binary(data) == PartitionTable()


def test_full_table_round_trip():
    entries = [PartitionEntry(f"p{x}", start=x) for x in range(MAX_PARTITIONS)]
    table = PartitionTable(entries=entries)
    assert decode_binary(encode_binary(table)) == table


def test_entries_after_terminator_dropped():
    table = _sample_table()
    table.entries.append(PartitionEntry("ghost", start=0x1234))

    decoded = decode_binary(encode_binary(table))
    assert [x.name for x in decoded.entries] == ["fastboot", "modem", "T"]


def test_decode_ignores_slots_after_terminator():
    buf = bytearray(encode_binary(_sample_table()))
    # a populated looking slot after the "T" line
    off = 0x30 + 3 * 0x30
    buf[off : off + 16] = b"ghost".ljust(16, b"\0")

    decoded = decode_binary(bytes(buf))
    assert [x.name for x in decoded.entries] == ["fastboot", "modem", "T"]


def test_decode_stops_at_empty_name():
    table = PartitionTable(entries=[PartitionEntry("a"), PartitionEntry(""), PartitionEntry("b")])
    decoded = decode_binary(encode_binary(table))
    assert [x.name for x in decoded.entries] == ["a"]


def test_decode_short_input():
    with pytest.raises(FormatInvalid):
        decode_binary(bytes(PTABLE_SIZE - 1))


def test_decode_does_not_check_head():
    data = bytearray(encode_binary(_sample_table()))
    data[:16] = b"X" * 16
    table = decode_binary(bytes(data))
    assert not table.is_valid
    assert table.head == b"X" * 16


def test_encode_rejects_bad_fields():
    with pytest.raises(FormatInvalid):
        encode_binary(PartitionTable(entries=[PartitionEntry("x" * 16)]))
    with pytest.raises(FormatInvalid):
        encode_binary(PartitionTable(entries=[PartitionEntry("x", start=1 << 32)]))
    with pytest.raises(FormatInvalid):
        encode_binary(PartitionTable(version="v" * 17))
    with pytest.raises(FormatInvalid):
        encode_binary(PartitionTable(tail=b"\0" * 31))


def test_too_many_entries():
    with pytest.raises(FormatInvalid):
        PartitionTable(entries=[PartitionEntry("x")] * (MAX_PARTITIONS + 1))

    table = PartitionTable(entries=[PartitionEntry("x")] * MAX_PARTITIONS)
    with pytest.raises(FormatInvalid):
        table.add_entry()


def test_locate_in_buffer():
    buf = bytes(0x123) + HEAD_MAGIC + bytes(100)
    assert locate(buf) == 0x123
    assert locate(bytes(4096)) is None


def test_locate_across_chunk_boundary():
    # the magic straddles the 64 KiB window boundary
    offset = 0x10000 - 5
    buf = bytes(offset) + HEAD_MAGIC + bytes(64)
    assert locate(io.BytesIO(buf)) == offset
    assert locate(MemoryRegion(buf)) == offset


def test_locate_in_stream_missing():
    assert locate(io.BytesIO(bytes(0x30000))) is None


def test_read_table():
    table = _sample_table()
    loader = b"\x90" * 0x400 + encode_binary(table) + b"\x90" * 0x10

    offset, found = read_table(loader)
    assert offset == 0x400
    assert found == table


def test_read_table_missing():
    with pytest.raises(NotFound):
        read_table(bytes(0x1000))


def test_read_table_cut_short():
    loader = bytes(16) + encode_binary(_sample_table())[:100]
    with pytest.raises(FormatInvalid):
        read_table(loader)


def test_replace_table():
    old = _sample_table()
    loader = bytearray(b"\x90" * 0x200 + encode_binary(old) + b"\x91" * 0x20)

    new = _sample_table()
    new.entries[1].length = 0x400000
    new.version = "V7R22"

    assert replace_table(loader, new) == 0x200
    assert loader[:0x200] == b"\x90" * 0x200
    assert loader[-0x20:] == b"\x91" * 0x20
    assert read_table(bytes(loader))[1] == new


def test_replace_table_rejects_bad_head():
    loader = bytearray(encode_binary(_sample_table()))
    orig = bytes(loader)
    table = _sample_table()
    table.head = bytes(16)

    with pytest.raises(FormatInvalid):
        replace_table(loader, table)
    assert bytes(loader) == orig


def test_replace_table_past_end():
    loader = bytearray(bytes(8) + encode_binary(_sample_table())[:64])
    with pytest.raises(BoundsViolation):
        replace_table(loader, _sample_table())


def test_format_map():
    lines = format_map(_sample_table())
    assert lines[0] == "Version: V7R11"
    assert lines[1] == "Product: E3372h"
    rows = [x for x in lines if x.startswith(" 0")]
    assert len(rows) == 3
    assert "modem" in rows[1]
    assert "00100000" in rows[1]


def test_entry_repr_is_hex():
    assert "start=0x100" in repr(PartitionEntry("a", start=0x100))
