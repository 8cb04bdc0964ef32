from .container import Block, PackResult, UsbLoader, block_name, decode, encode
from .header import (
    HEADER_SIZE,
    MAGIC,
    MAX_BLOCKS,
    BlockDescriptor,
    BootMode,
    ContainerHeader,
)
from .metadata import BlockEntry, read_metadata, write_metadata
from .tree import default_unpack_dir, pack_from_dir, unpack_to_dir

__all__ = [
    "HEADER_SIZE",
    "MAGIC",
    "MAX_BLOCKS",
    "Block",
    "BlockDescriptor",
    "BlockEntry",
    "BootMode",
    "ContainerHeader",
    "PackResult",
    "UsbLoader",
    "block_name",
    "decode",
    "default_unpack_dir",
    "encode",
    "pack_from_dir",
    "read_metadata",
    "unpack_to_dir",
    "write_metadata",
]
