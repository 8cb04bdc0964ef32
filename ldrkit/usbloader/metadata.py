"""
metadata.txt, the side channel written next to unpacked blocks:

    # USB Loader Metadata
    [Block0]
    name=raminit
    lmode=1
    address=0x...
    size=0x...
    offset=0x...
    file=block0_raminit.bin
"""

import re
from dataclasses import dataclass
from typing import Iterable

from ..crypto import Crypto
from ..errors import FormatInvalid
from ..utils import parse_u32
from .container import Block, UsbLoader, block_name
from .header import MAX_BLOCKS, BlockDescriptor

METADATA_NAME = "metadata.txt"
HEADER_NAME = "header.bin"

SECTION_RE = re.compile(r"^\[Block(\d+)\]$")
NUMERIC_KEYS = {"lmode": "mode", "address": "address", "size": "size", "offset": "offset"}


@dataclass
class BlockEntry:
    index: int
    name: str = ""
    mode: int = 0
    address: int = 0
    size: int = 0
    offset: int = 0
    file: str = ""

    @property
    def descriptor(self) -> BlockDescriptor:
        return BlockDescriptor(self.mode, self.size, self.address, self.offset)

    @classmethod
    def from_block(cls, block: Block):
        d = block.descriptor
        return cls(block.index, block.name, d.mode, d.address, d.size, d.offset, block.filename)


def write_metadata(loader: UsbLoader, source_name: str = "") -> str:
    lines = [
        "# USB Loader Metadata",
        f"# Original file: {source_name}",
        f"# File size: {loader.size} bytes",
        "",
    ]

    for block in loader.blocks:
        e = BlockEntry.from_block(block)
        lines += [
            f"[Block{e.index}]",
            f"name={e.name}",
            f"lmode={e.mode}",
            f"address=0x{e.address:08x}",
            f"size=0x{e.size:08x}",
            f"offset=0x{e.offset:08x}",
            f"file={e.file}",
            f"# sha256: {Crypto.sha256(block.data)}",
            "",
        ]

    return "\n".join(lines) + "\n"


def read_metadata(source: str | Iterable[str], name: str = METADATA_NAME) -> list[BlockEntry]:
    """
    Parses metadata.txt.

    Returns:
        list[BlockEntry]: The described blocks, ordered by block index

    Raises:
        FormatInvalid: On malformed lines, unknown keys, block numbers past
            the header capacity, duplicate sections or a block with a size
            but no file
    """

    if isinstance(source, str):
        source = source.splitlines()

    entries: dict[int, BlockEntry] = {}
    current = None

    for lineno, raw in enumerate(source, 1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("["):
            m = SECTION_RE.match(line)
            if m is None:
                raise FormatInvalid(f"{name}:{lineno}: invalid section: {line}")

            index = int(m.group(1))
            if index >= MAX_BLOCKS:
                raise FormatInvalid(f"{name}:{lineno}: block {index} out of range (max {MAX_BLOCKS - 1})")
            if index in entries:
                raise FormatInvalid(f"{name}:{lineno}: duplicate section [Block{index}]")

            current = entries[index] = BlockEntry(index)
            continue

        key, sep, value = line.partition("=")
        if not sep:
            raise FormatInvalid(f"{name}:{lineno}: invalid line: {line}")
        key = key.strip()
        value = value.strip()

        if current is None:
            raise FormatInvalid(f"{name}:{lineno}: '{key}' outside of a [BlockN] section")

        if key == "name":
            current.name = value
        elif key == "file":
            current.file = value
        elif key in NUMERIC_KEYS:
            try:
                setattr(current, NUMERIC_KEYS[key], parse_u32(value))
            except ValueError as e:
                raise FormatInvalid(f"{name}:{lineno}: {key}: {e}") from e
        else:
            raise FormatInvalid(f"{name}:{lineno}: unknown key: {key}")

    for e in entries.values():
        if not e.name:
            e.name = block_name(e.index)
        if e.size and not e.file:
            raise FormatInvalid(f"{name}: [Block{e.index}] has no file")

    return [entries[x] for x in sorted(entries)]
