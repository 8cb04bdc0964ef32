from abc import ABC, abstractmethod
from io import BufferedIOBase, RawIOBase

from .errors import IOFailure


class IReadable(ABC):
    @abstractmethod
    def tell(self) -> int:
        """
        Gets the cursor position

        Returns:
            int: The cursor position
        """
        ...

    @abstractmethod
    def seek(self, offset: int) -> None:
        """
        Moves the cursor to offset

        Args:
            offset (int): The cursor position
        """
        ...

    @abstractmethod
    def read(self, size: int) -> bytes:
        """
        Reads up to `size` bytes from the source.

        Args:
            size (int): The maximum number of bytes to read.

        Returns:
            bytes: The bytes read from the source, empty when no more data is available.
        """
        ...

    @abstractmethod
    def read_at(self, offset: int, size: int) -> bytes:
        """
        Reads a sequence of bytes from the given offset.

        Args:
            offset (int): The position in the data source to start reading from.
            size (int): The number of bytes to read.

        Returns:
            bytes: The bytes read from the specified offset and size.
        """
        ...


class Readable(IReadable):
    """Wraps a binary file object"""

    def __init__(self, obj: BufferedIOBase | RawIOBase):
        self.obj = obj

    def seek(self, offset: int):
        self.obj.seek(offset)

    def tell(self) -> int:
        return self.obj.tell()

    def read(self, size: int) -> bytes:
        return self.obj.read(size) or b""

    def read_at(self, offset: int, size: int) -> bytes:
        self.seek(offset)
        return self.read(size)


class File(Readable):
    def __init__(self, path, mode: str = "rb"):
        self.path = path
        try:
            super().__init__(open(path, mode))
        except OSError as e:
            raise IOFailure(path, e.strerror or e) from e

    def close(self):
        self.obj.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class MemoryRegion(IReadable):
    def __init__(self, source: bytes | bytearray | memoryview):
        self.source = source
        self.pos = 0

    def tell(self):
        return self.pos

    def seek(self, pos):
        self.pos = pos

    def read(self, size):
        res = self.source[self.pos : self.pos + size]
        self.pos += len(res)

        return bytes(res)

    def read_at(self, offset, size):
        return bytes(self.source[offset : offset + size])

    def __len__(self):
        return len(self.source)


def as_readable(source) -> IReadable:
    if isinstance(source, IReadable):
        return source
    if isinstance(source, (bytes, bytearray, memoryview)):
        return MemoryRegion(source)
    if hasattr(source, "read") and hasattr(source, "seek"):
        return Readable(source)
    raise TypeError(f"expected a bytes-like object or a binary stream, got {type(source).__name__}")


def find_pattern(source: IReadable, pattern: bytes, chunk_size: int = 0x10000) -> int | None:
    """
    Finds the lowest offset of `pattern` in `source`.

    The source is read in windows of `chunk_size` bytes that overlap by
    `len(pattern) - 1`, so a match crossing a window boundary is still found.

    Returns:
        int | None: The offset of the first match, None if there is none
    """

    if not pattern:
        raise ValueError("empty pattern")

    overlap = len(pattern) - 1
    offset = 0

    while True:
        window = source.read_at(offset, chunk_size + overlap)
        idx = window.find(pattern)
        if idx >= 0:
            return offset + idx

        if len(window) < chunk_size + overlap:
            return None
        offset += chunk_size
