"""
Codec for the usbloader container: a HEADER_SIZE byte header holding the
magic and ten block descriptors, followed by the block payloads.

Slot 0 is the RAM initializer and slot 1 the loader proper; any later
blocks are carried by position only.
"""

from dataclasses import dataclass, field
from typing import Iterable

from ..errors import FormatInvalid, LdrWarning, SizeMismatch, TruncatedBlock
from ..utils import U32_MAX
from .header import (
    DESCRIPTORS_OFFSET,
    HEADER_SIZE,
    MAGIC,
    MAX_BLOCKS,
    RESERVED_SIZE,
    BlockDescriptor,
    ContainerHeader,
)

BLOCK_NAMES = {0: "raminit", 1: "usbldr"}


def block_name(index: int) -> str:
    return BLOCK_NAMES.get(index, "unknown")


@dataclass
class Block:
    index: int
    descriptor: BlockDescriptor
    data: bytes = field(default=b"", repr=False)
    name: str = ""

    def __post_init__(self):
        if not self.name:
            self.name = block_name(self.index)

    @property
    def filename(self) -> str:
        return f"block{self.index}_{self.name}.bin"


@dataclass
class UsbLoader:
    header: ContainerHeader
    blocks: list[Block]
    warnings: list[LdrWarning] = field(default_factory=list)
    size: int = 0


@dataclass
class PackResult:
    data: bytes = field(repr=False)
    header: ContainerHeader
    warnings: list[LdrWarning] = field(default_factory=list)


def decode(buffer) -> UsbLoader:
    """
    Splits a usbloader image into its header and blocks.

    Descriptor slots are read in order and the scan stops at the first slot
    that is empty or points into the header; later slots are never looked
    at. A block running past the end of the buffer ends the extraction with
    a TruncatedBlock warning, the blocks before it are kept.

    Raises:
        FormatInvalid: The buffer is shorter than the header or the magic is wrong
    """

    header = ContainerHeader.from_bytes(buffer)
    if not header.is_valid:
        raise FormatInvalid(
            f"invalid usbloader signature (expected 0x{MAGIC:08x}, got 0x{header.magic:08x})"
        )

    loader = UsbLoader(header, [], size=len(buffer))

    for index, descriptor in enumerate(header.descriptors):
        if not descriptor.in_use:
            break

        end = descriptor.offset + descriptor.size
        if end > len(buffer):
            loader.warnings.append(
                TruncatedBlock(index, descriptor.offset, descriptor.size, len(buffer))
            )
            break

        loader.blocks.append(
            Block(index, descriptor, bytes(buffer[descriptor.offset : end]))
        )

    return loader


def _template_reserved(template: ContainerHeader | bytes | None) -> bytes:
    if template is None:
        return bytes(RESERVED_SIZE)
    if isinstance(template, ContainerHeader):
        return template.reserved
    return bytes(template[0x4:DESCRIPTORS_OFFSET]).ljust(RESERVED_SIZE, b"\0")


def encode(
    blocks: Iterable[Block], template: ContainerHeader | bytes | None = None
) -> PackResult:
    """
    Builds a usbloader image from blocks.

    Payloads are laid out back to back right after the header, in the given
    order, and each descriptor gets the resulting file offset; the declared
    offsets are ignored. Blocks declared with size 0 are left out. The
    payload length wins over the declared size, a disagreement is reported
    as a SizeMismatch warning. Emitted blocks fill the descriptor slots from
    slot 0, the remaining slots are zero.

    Args:
        blocks: Blocks carrying mode, address, declared size and payload
        template: Header to take the reserved area from (a ContainerHeader
            or the raw bytes of a saved header)
    """

    warnings = []
    descriptors = []
    payloads = []
    cursor = HEADER_SIZE

    for block in blocks:
        declared = block.descriptor.size
        if declared == 0:
            continue

        actual = len(block.data)
        if actual != declared:
            warnings.append(SizeMismatch(block.index, declared, actual))
        if actual == 0:
            # an empty slot would end the block list on decode
            continue

        if len(descriptors) == MAX_BLOCKS:
            raise FormatInvalid(f"too many blocks (max {MAX_BLOCKS})")
        if cursor + actual > U32_MAX:
            raise FormatInvalid(f"block {block.index} ends past the 4 GiB offset limit")

        descriptors.append(
            BlockDescriptor(block.descriptor.mode, actual, block.descriptor.address, cursor)
        )
        payloads.append(bytes(block.data))
        cursor += actual

    header = ContainerHeader(MAGIC, _template_reserved(template), descriptors)
    return PackResult(header.to_bytes() + b"".join(payloads), header, warnings)
