from .table import (
    HEAD_MAGIC,
    MAX_PARTITIONS,
    PTABLE_SIZE,
    TERMINATOR,
    PartitionEntry,
    PartitionTable,
    decode_binary,
    encode_binary,
    format_map,
    locate,
    read_table,
    replace_table,
)
from .text import decode_text, encode_text

__all__ = [
    "HEAD_MAGIC",
    "MAX_PARTITIONS",
    "PTABLE_SIZE",
    "TERMINATOR",
    "PartitionEntry",
    "PartitionTable",
    "decode_binary",
    "decode_text",
    "encode_binary",
    "encode_text",
    "format_map",
    "locate",
    "read_table",
    "replace_table",
]
