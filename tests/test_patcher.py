import os
import tempfile

import pytest

from ldrkit.errors import BoundsViolation, FormatInvalid, PatchTableNotFound
from ldrkit.patcher import (
    PatchTable,
    SignatureDefinition,
    find,
    find_first,
    patch,
    patch_first,
    patch_loader,
)
from ldrkit.patcher.table import PATCHES_ENV

SIG = bytes.fromhex("0a1b2c3d4e5f6071")


def _image(*parts) -> bytearray:
    return bytearray(b"".join(parts))


def test_find_returns_lowest_offset():
    buf = _image(b"\x00" * 5, SIG, b"\x11" * 7, SIG, b"\x22" * 3)
    d = SignatureDefinition("V7R1", SIG)
    assert find(buf, d) == 5


def test_find_missing():
    d = SignatureDefinition("V7R1", SIG)
    assert find(bytes(64), d) is None


def test_empty_pattern_rejected():
    with pytest.raises(FormatInvalid):
        SignatureDefinition("V7R1", b"")


def test_patch_writes_after_match_end():
    buf = _image(b"\xaa" * 4, SIG, b"\xbb" * 8)
    d = SignatureDefinition("V7R1", SIG, patch_offset=2, payload=b"\x01\x02")

    assert patch(buf, d) == 4
    assert buf[14:16] == b"\x01\x02"
    assert buf[12:14] == b"\xbb\xbb"
    assert buf[16:] == b"\xbb" * 4


def test_patch_negative_offset_lands_inside_match():
    buf = _image(b"\xaa" * 4, SIG, b"\xbb" * 4)
    d = SignatureDefinition("V7R1", SIG, patch_offset=-8, payload=b"\xff")

    patch(buf, d)
    assert buf[4] == 0xFF
    assert buf[5:12] == SIG[1:]


def test_patch_missing_leaves_buffer():
    buf = bytearray(32)
    d = SignatureDefinition("V7R1", SIG, payload=b"\x01")
    assert patch(buf, d) is None
    assert buf == bytearray(32)


def test_patch_out_of_bounds():
    buf = _image(b"\xaa" * 4, SIG, b"\xbb" * 2)
    orig = bytes(buf)
    d = SignatureDefinition("V7R1", SIG, patch_offset=1, payload=b"\x01\x02")

    with pytest.raises(BoundsViolation):
        patch(buf, d)
    assert bytes(buf) == orig


def test_patch_before_start_of_buffer():
    buf = _image(SIG, b"\x00" * 4)
    d = SignatureDefinition("V7R1", SIG, patch_offset=-9, payload=b"\x01")

    with pytest.raises(BoundsViolation):
        patch(buf, d)


def test_patch_requires_payload():
    buf = _image(SIG)
    with pytest.raises(FormatInvalid):
        patch(buf, SignatureDefinition("V7R1", SIG))


def test_find_first_keeps_order():
    other = bytes.fromhex("9988776655443322")
    buf = _image(other, SIG)
    a = SignatureDefinition("A", SIG)
    b = SignatureDefinition("B", other)

    definition, offset = find_first(buf, [a, b])
    assert definition is a
    assert offset == 8
    assert find_first(buf, []) is None


def test_patch_first():
    buf = _image(SIG, b"\x00" * 4)
    d = SignatureDefinition("A", SIG, payload=b"\x55")

    definition, offset = patch_first(buf, [d])
    assert definition is d
    assert offset == 0
    assert buf[8] == 0x55


TABLE_TEXT = """
# test table
version = 1.2

[V7R22]
signature = 0a 1b 2c 3d 4e 5f 60 71
offset = 0
payload = 11

[V7R1]
signature = 9988776655443322
offset = -0x2
payload = 22 22

[isbad]
signature = ffeeddccbbaa0099
offset = 1
payload = 33
"""


def test_table_parse():
    table = PatchTable.parse(TABLE_TEXT)

    assert table.version == "1.2"
    assert [x.name for x in table.revisions()] == ["V7R1", "V7R22"]
    assert table.definitions["V7R1"].patch_offset == -2
    assert table.definitions["V7R1"].payload == b"\x22\x22"
    assert table.bad_block().pattern == bytes.fromhex("ffeeddccbbaa0099")
    assert table.warnings == []


def test_table_extra_sections_follow_curated_order():
    table = PatchTable.parse(
        "[custom]\nsignature=0102030405060708\n[V7R2]\nsignature=1112131415161718\n"
    )
    assert [x.name for x in table.revisions()] == ["V7R2", "custom"]


def test_table_short_signature_warning():
    table = PatchTable.parse("[V7R1]\nsignature=0102\n")
    assert len(table.warnings) == 1
    assert table.warnings[0].name == "V7R1"


@pytest.mark.parametrize(
    "text",
    [
        "[V7R1]\nsignature=0102030405060708\nfoo=1\n",
        "[V7R1]\noffset=1\n",
        "signature=0102030405060708\n",
        "[V7R1]\nsignature=zz\n",
        "[V7R1]\nsignature=0102030405060708\noffset=abc\n",
        "[V7R1]\nsignature=0102030405060708\n[V7R1]\nsignature=0102030405060708\n",
        "[V7R1]\njust a line\n",
    ],
)
def test_table_rejects(text):
    with pytest.raises(FormatInvalid):
        PatchTable.parse(text)


def test_table_load_from_env(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        path = os.path.join(tmp, "patches.txt")
        with open(path, "w") as f:
            f.write(TABLE_TEXT)

        monkeypatch.setenv(PATCHES_ENV, path)
        table = PatchTable.load()
        assert table.version == "1.2"


def test_table_load_missing(monkeypatch):
    with tempfile.TemporaryDirectory() as tmp:
        monkeypatch.setenv(PATCHES_ENV, os.path.join(tmp, "none.txt"))
        with pytest.raises(PatchTableNotFound):
            PatchTable.load()


def test_patch_loader_first_revision_wins():
    table = PatchTable.parse(TABLE_TEXT)
    v7r1 = bytes.fromhex("9988776655443322")
    # both V7R22 and V7R1 occur; V7R1 is earlier in the curated order
    buf = _image(SIG, b"\x00" * 4, v7r1, b"\x00" * 4)

    report = patch_loader(buf, table)
    assert report.revision.name == "V7R1"
    assert report.revision_offset == 12
    assert buf[18:20] == b"\x22\x22"
    # V7R22 is not applied
    assert buf[8] == 0
    assert report.changed


def test_patch_loader_bad_block_missing_is_reported():
    table = PatchTable.parse(TABLE_TEXT)
    buf = _image(SIG, b"\x00" * 4)

    report = patch_loader(buf, table, bad_block=True)
    assert report.revision.name == "V7R22"
    assert report.bad_block_checked
    assert report.bad_block_offset is None
    assert buf[8] == 0x11


def test_patch_loader_bad_block_without_revision():
    table = PatchTable.parse(TABLE_TEXT)
    isbad = bytes.fromhex("ffeeddccbbaa0099")
    buf = _image(isbad, b"\x00" * 4)

    report = patch_loader(buf, table, bad_block=True)
    assert report.revision is None
    assert report.bad_block_offset == 0
    assert buf[9] == 0x33


def test_patch_loader_check_only():
    table = PatchTable.parse(TABLE_TEXT)
    buf = _image(SIG, b"\x00" * 4)
    orig = bytes(buf)

    report = patch_loader(bytes(buf), table, apply=False)
    assert report.revision.name == "V7R22"
    assert not report.changed
    assert bytes(buf) == orig


def test_patch_loader_is_all_or_nothing():
    table = PatchTable.parse(
        "[V7R1]\nsignature=0a1b2c3d4e5f6071\npayload=11\n"
        "[isbad]\nsignature=ffeeddccbbaa0099\noffset=100\npayload=33\n"
    )
    buf = _image(SIG, b"\x00" * 4, bytes.fromhex("ffeeddccbbaa0099"))
    orig = bytes(buf)

    with pytest.raises(BoundsViolation):
        patch_loader(buf, table, bad_block=True)
    assert bytes(buf) == orig
