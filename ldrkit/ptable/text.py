"""
Line oriented text form of the partition table, for manual editing.

    # comment
    version=...
    product=...
    tail=<64 hex digits>

    [partition]
    name=boot
    start=0x100
    ...
"""

from typing import Iterable, TextIO

from ..errors import FormatInvalid
from ..utils import parse_hex, parse_u32, trim_padding
from .table import (
    EntryLayout,
    MAX_PARTITIONS,
    PartitionTable,
    TAIL_SIZE,
    TableLayout,
)

PARTITION_MARKER = "[partition]"
NUMERIC_KEYS = ("start", "length", "lsize", "loadaddr", "entry", "nproperty", "type", "count")


def encode_text(table: PartitionTable) -> str:
    if len(table.tail) != TAIL_SIZE:
        raise FormatInvalid(f"tail: expected {TAIL_SIZE} bytes, got {len(table.tail)}")

    lines = [
        f"version={trim_padding(table.version)}",
        f"product={trim_padding(table.product)}",
        f"tail={table.tail.hex()}",
        "",
    ]

    for entry in table.logical_entries():
        lines.append(PARTITION_MARKER)
        lines.append(f"name={entry.name}")
        for key in NUMERIC_KEYS:
            lines.append(f"{key}=0x{getattr(entry, key):x}")
        lines.append("")

    return "\n".join(lines) + "\n"


def _text_value(field, value: str, lineno: int) -> str:
    if len(value) > field.max_length:
        raise FormatInvalid(
            f"line {lineno}: {field.name} is longer than {field.max_length} characters: {value}"
        )
    try:
        value.encode("latin-1")
    except UnicodeEncodeError as e:
        raise FormatInvalid(f"line {lineno}: {field.name} is not latin-1 text: {value}") from e
    return value


def decode_text(source: str | TextIO | Iterable[str]) -> PartitionTable:
    """
    Parses the text form. Fields that are not mentioned stay zero and the
    head is set to the table magic.

    Raises:
        FormatInvalid: On the first malformed line, unknown key, entry key
            outside of a [partition] block or a partition past the 41st
    """

    if isinstance(source, str):
        source = source.splitlines()

    table = PartitionTable()
    current = None

    for lineno, raw in enumerate(source, 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line == PARTITION_MARKER:
            if len(table.entries) >= MAX_PARTITIONS:
                raise FormatInvalid(
                    f"line {lineno}: too many partitions (max {MAX_PARTITIONS})"
                )
            current = table.add_entry()
            continue

        key, sep, value = line.partition("=")
        if not sep:
            raise FormatInvalid(f"line {lineno}: invalid line: {line}")
        key = key.strip()
        value = value.strip()

        match key:
            case "version" | "product":
                field = getattr(TableLayout, key)
                setattr(table, key, _text_value(field, value, lineno))
            case "tail":
                try:
                    tail = parse_hex(value)
                except ValueError:
                    tail = b""
                if len(value) != TAIL_SIZE * 2 or len(tail) != TAIL_SIZE:
                    raise FormatInvalid(
                        f"line {lineno}: tail must be {TAIL_SIZE * 2} hex digits"
                    )
                table.tail = tail
            case _:
                if current is None:
                    raise FormatInvalid(f"line {lineno}: partition data before header: {key}")

                if key == "name":
                    current.name = _text_value(EntryLayout.name, value, lineno)
                elif key in NUMERIC_KEYS:
                    try:
                        setattr(current, key, parse_u32(value))
                    except ValueError as e:
                        raise FormatInvalid(f"line {lineno}: {key}: {e}") from e
                else:
                    raise FormatInvalid(f"line {lineno}: unknown key: {key}")

    return table
