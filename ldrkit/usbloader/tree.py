import os
from pathlib import Path

from ..errors import FormatInvalid, IOFailure
from ..utils import read_file, read_text, write_file
from .container import Block, PackResult, UsbLoader, decode, encode
from .header import HEADER_SIZE
from .metadata import HEADER_NAME, METADATA_NAME, read_metadata, write_metadata


def default_unpack_dir(path) -> Path:
    return Path(f"{path}.unpacked")


def unpack_to_dir(buffer, out_dir, source_name: str = "") -> UsbLoader:
    """
    Writes header.bin, one file per block and metadata.txt into `out_dir`.
    """

    loader = decode(buffer)
    out_dir = Path(out_dir)

    try:
        os.makedirs(out_dir, exist_ok=True)
    except OSError as e:
        raise IOFailure(out_dir, e.strerror or e) from e

    write_file(out_dir / HEADER_NAME, bytes(buffer[:HEADER_SIZE]))
    for block in loader.blocks:
        write_file(out_dir / block.filename, block.data)
    write_file(out_dir / METADATA_NAME, write_metadata(loader, source_name))

    return loader


def pack_from_dir(in_dir) -> PackResult:
    """
    Rebuilds an image from a directory made by `unpack_to_dir`. header.bin
    is optional and only supplies the reserved header area.
    """

    in_dir = Path(in_dir)
    entries = read_metadata(read_text(in_dir / METADATA_NAME), str(in_dir / METADATA_NAME))
    if not entries:
        raise FormatInvalid(f"{in_dir / METADATA_NAME}: no blocks found in metadata")

    header_path = in_dir / HEADER_NAME
    template = read_file(header_path) if header_path.is_file() else None

    blocks = [
        Block(e.index, e.descriptor, read_file(in_dir / e.file) if e.size else b"", e.name)
        for e in entries
    ]
    return encode(blocks, template)
