from dataclasses import dataclass, field
from enum import Enum

from ..binary.repr import HexRepr
from ..binary.types import Bytes, Struct, UInt32
from ..errors import FormatInvalid

MAGIC = 0x00020000
MAX_BLOCKS = 10
RESERVED_SIZE = 0x20
DESCRIPTOR_SIZE = 0x10
DESCRIPTORS_OFFSET = 0x4 + RESERVED_SIZE
HEADER_SIZE = DESCRIPTORS_OFFSET + MAX_BLOCKS * DESCRIPTOR_SIZE


class BootMode(Enum):
    DIRECT = 1
    ACORE_RESTART = 2  # started through a restart of the A core
    UNKNOWN = -1

    @classmethod
    def from_data(cls, data):
        try:
            return cls(data)
        except ValueError:
            return cls.UNKNOWN


class DescriptorLayout(Struct):
    record_size = DESCRIPTOR_SIZE

    mode = UInt32(0x0)
    size = UInt32(0x4)
    address = UInt32(0x8)
    offset = UInt32(0xC)


class HeaderLayout(Struct):
    record_size = DESCRIPTORS_OFFSET

    magic = UInt32(0x0)
    reserved = Bytes(0x4, RESERVED_SIZE)


@dataclass(repr=False)
class BlockDescriptor(HexRepr):
    mode: int = 0
    size: int = 0
    address: int = 0
    offset: int = 0  # from the start of the file

    @property
    def boot_mode(self) -> BootMode:
        return BootMode.from_data(self.mode)

    @property
    def in_use(self) -> bool:
        return self.size != 0 and self.offset >= HEADER_SIZE

    @classmethod
    def from_bytes(cls, data, offset: int = 0):
        return cls(**DescriptorLayout.unpack(data, offset))


@dataclass
class ContainerHeader:
    magic: int = MAGIC
    reserved: bytes = bytes(RESERVED_SIZE)
    descriptors: list[BlockDescriptor] = field(default_factory=list)

    def __post_init__(self):
        if len(self.descriptors) > MAX_BLOCKS:
            raise FormatInvalid(
                f"too many block descriptors: {len(self.descriptors)} (max {MAX_BLOCKS})"
            )

        # the header always holds MAX_BLOCKS slots, unused ones are zero
        self.descriptors = list(self.descriptors) + [
            BlockDescriptor() for _ in range(MAX_BLOCKS - len(self.descriptors))
        ]

    @property
    def is_valid(self) -> bool:
        return self.magic == MAGIC

    @classmethod
    def from_bytes(cls, data):
        if len(data) < HEADER_SIZE:
            raise FormatInvalid(
                f"too small to be a usbloader header ({len(data)} of {HEADER_SIZE} bytes)"
            )

        fields = HeaderLayout.unpack(data)
        descriptors = [
            BlockDescriptor.from_bytes(data, DESCRIPTORS_OFFSET + x * DESCRIPTOR_SIZE)
            for x in range(MAX_BLOCKS)
        ]
        return cls(descriptors=descriptors, **fields)

    def to_bytes(self) -> bytes:
        buf = bytearray(HEADER_SIZE)
        HeaderLayout.pack_into(buf, self)

        for index, descriptor in enumerate(self.descriptors):
            DescriptorLayout.pack_into(
                buf, descriptor, DESCRIPTORS_OFFSET + index * DESCRIPTOR_SIZE
            )

        return bytes(buf)
