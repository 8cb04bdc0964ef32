"""
Binary codec for the Balong partition table.

The table is a 2048 byte record: a 16 byte head magic, version and product
strings, 41 partition lines and a 32 byte opaque tail. Loaders embed it
verbatim, so the head magic is also what `locate` searches for.
"""

from dataclasses import dataclass, field

from ..binary.repr import HexRepr
from ..binary.types import Bytes, Struct, Text, UInt32
from ..errors import BoundsViolation, FormatInvalid, NotFound
from ..readers import as_readable, find_pattern
from ..utils import trim_padding

HEAD_MAGIC = b"pTableHead".ljust(0x10, b"\0")
MAX_PARTITIONS = 41
TERMINATOR = "T"

ENTRY_SIZE = 0x30
ENTRIES_OFFSET = 0x30
TAIL_OFFSET = ENTRIES_OFFSET + MAX_PARTITIONS * ENTRY_SIZE
TAIL_SIZE = 0x20
PTABLE_SIZE = TAIL_OFFSET + TAIL_SIZE


class EntryLayout(Struct):
    record_size = ENTRY_SIZE

    name = Text(0x0, 0x10, terminated=True)
    start = UInt32(0x10)
    lsize = UInt32(0x14)
    length = UInt32(0x18)
    loadaddr = UInt32(0x1C)
    entry = UInt32(0x20)
    type = UInt32(0x24)
    nproperty = UInt32(0x28)  # partition flags
    count = UInt32(0x2C)


class TableLayout(Struct):
    record_size = PTABLE_SIZE

    head = Bytes(0x0, 0x10)
    version = Text(0x10, 0x10)
    product = Text(0x20, 0x10)
    tail = Bytes(TAIL_OFFSET, TAIL_SIZE)


@dataclass(repr=False)
class PartitionEntry(HexRepr):
    name: str = ""
    start: int = 0
    lsize: int = 0
    length: int = 0
    loadaddr: int = 0
    entry: int = 0
    type: int = 0
    nproperty: int = 0
    count: int = 0

    @property
    def is_terminator(self) -> bool:
        return self.name == "" or self.name == TERMINATOR

    @classmethod
    def from_bytes(cls, data, offset: int = 0):
        return cls(**EntryLayout.unpack(data, offset))

    def to_bytes(self) -> bytes:
        return EntryLayout.pack(self)


@dataclass
class PartitionTable:
    head: bytes = HEAD_MAGIC
    version: str = ""
    product: str = ""
    entries: list[PartitionEntry] = field(default_factory=list)
    tail: bytes = bytes(TAIL_SIZE)

    def __post_init__(self):
        if len(self.entries) > MAX_PARTITIONS:
            raise FormatInvalid(
                f"too many partitions: {len(self.entries)} (max {MAX_PARTITIONS})"
            )

    @property
    def is_valid(self) -> bool:
        return self.head == HEAD_MAGIC

    def add_entry(self, entry: PartitionEntry | None = None) -> PartitionEntry:
        if len(self.entries) >= MAX_PARTITIONS:
            raise FormatInvalid(f"too many partitions (max {MAX_PARTITIONS})")

        entry = entry or PartitionEntry()
        self.entries.append(entry)
        return entry

    def logical_entries(self) -> list[PartitionEntry]:
        """
        The entries up to the terminator. A "T" entry is part of the table
        and is kept; an entry without a name is not.
        """

        res = []
        for x in self.entries:
            if x.name == "":
                break
            res.append(x)
            if x.name == TERMINATOR:
                break
        return res


def locate(source) -> int | None:
    """
    Finds the table head magic in a buffer or a binary stream.

    Returns:
        int | None: Offset of the first occurrence, None if the magic is absent
    """

    return find_pattern(as_readable(source), HEAD_MAGIC)


def decode_binary(data) -> PartitionTable:
    """
    Decodes a table record. The head magic is not checked, see
    `PartitionTable.is_valid`.

    Raises:
        FormatInvalid: Fewer than PTABLE_SIZE bytes were given
    """

    header = TableLayout.unpack(data)
    table = PartitionTable(**header)

    for index in range(MAX_PARTITIONS):
        entry = PartitionEntry.from_bytes(data, ENTRIES_OFFSET + index * ENTRY_SIZE)
        if entry.name == "":
            break

        table.entries.append(entry)
        if entry.name == TERMINATOR:
            break

    return table


def encode_binary(table: PartitionTable) -> bytes:
    if len(table.entries) > MAX_PARTITIONS:
        raise FormatInvalid(
            f"too many partitions: {len(table.entries)} (max {MAX_PARTITIONS})"
        )

    buf = bytearray(PTABLE_SIZE)
    TableLayout.pack_into(buf, table)

    for index, entry in enumerate(table.logical_entries()):
        EntryLayout.pack_into(buf, entry, ENTRIES_OFFSET + index * ENTRY_SIZE)

    return bytes(buf)


def read_table(loader) -> tuple[int, PartitionTable]:
    """
    Reads the table embedded in a loader image.

    Returns:
        tuple[int, PartitionTable]: The table offset and the decoded table

    Raises:
        NotFound: The loader has no partition table
        FormatInvalid: The image ends before the end of the table
    """

    offset = locate(loader)
    if offset is None:
        raise NotFound("partition table not found in the loader")

    data = as_readable(loader).read_at(offset, PTABLE_SIZE)
    if len(data) < PTABLE_SIZE:
        raise FormatInvalid(
            f"partition table at 0x{offset:x} is cut short "
            f"({len(data)} of {PTABLE_SIZE} bytes)"
        )
    return offset, decode_binary(data)


def replace_table(loader: bytearray, table: PartitionTable) -> int:
    """
    Overwrites the table embedded in `loader` with `table`.

    Returns:
        int: The offset the table was written at
    """

    if not table.is_valid:
        raise FormatInvalid("the input is not a partition table (bad head magic)")

    data = encode_binary(table)

    offset = locate(loader)
    if offset is None:
        raise NotFound("partition table not found in the loader")
    if offset + PTABLE_SIZE > len(loader):
        raise BoundsViolation(
            f"partition table at 0x{offset:x} runs past the end of the loader "
            f"(size 0x{len(loader):x})"
        )

    loader[offset : offset + PTABLE_SIZE] = data
    return offset


def format_map(table: PartitionTable) -> list[str]:
    lines = [
        f"Version: {trim_padding(table.version)}",
        f"Product: {trim_padding(table.product)}",
        "",
        " ## Name             Start    Length   LSize    LoadAddr Entry    Type     Property Count",
        "-" * 97,
    ]

    for index, x in enumerate(table.logical_entries()):
        lines.append(
            f" {index:02d} {x.name:<16} {x.start:08x} {x.length:08x} {x.lsize:08x} "
            f"{x.loadaddr:08x} {x.entry:08x} {x.type:08x} {x.nproperty:08x} {x.count:08x}"
        )

    return lines
