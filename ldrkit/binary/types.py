import struct
from collections.abc import Mapping
from typing import Any

from ..errors import FormatInvalid


class DataTypeDescriptor:
    def __init__(self, size, offset, format_str=None):
        self.__size = size
        self.__offset = offset
        self.__format_str = format_str

        self.name = None

    @property
    def offset(self) -> int:
        return self.__offset

    @property
    def format_string(self) -> str:
        return self.__format_str

    @property
    def size(self) -> int:
        return self.__size

    def convert(self, val) -> Any:
        return val

    def revert(self, val) -> Any:
        return val

    def unpack_from(self, data, base: int = 0) -> Any:
        start = base + self.__offset
        if self.__format_str:
            return self.convert(struct.unpack_from(self.__format_str, data, start)[0])
        return self.convert(bytes(data[start : start + self.__size]))

    def pack_into(self, buf: bytearray, value, base: int = 0):
        start = base + self.__offset
        raw = self.revert(value)

        if self.__format_str:
            try:
                struct.pack_into(self.__format_str, buf, start, raw)
            except struct.error as e:
                raise FormatInvalid(f"{self.name}: {value!r} does not fit: {e}") from e
        else:
            buf[start : start + self.__size] = raw

    def __set_name__(self, owner, name):
        self.name = name

    def __get__(self, obj, objtype=None):
        return self


class DataType(DataTypeDescriptor):
    size: int
    format_string: str

    def __init__(self, offset):
        super().__init__(self.size, offset, self.format_string)


class UInt32(DataType):
    format_string = "<I"
    size = 0x4


class Bytes(DataTypeDescriptor):
    def __init__(self, offset: int, size: int):
        """
        A fixed width raw bytes field. Packing requires exactly `size` bytes
        """

        super().__init__(size, offset)

    def revert(self, value):
        value = bytes(value)
        if len(value) != self.size:
            raise FormatInvalid(
                f"{self.name}: expected {self.size} bytes, got {len(value)}"
            )
        return value


class Text(DataTypeDescriptor):
    def __init__(self, offset: int, size: int, terminated: bool = False):
        """
        A NUL padded latin-1 string.

        Args:
            offset (int): Field offset inside the record
            size (int): Field width in bytes
            terminated (bool): The value is a C string and always keeps one
                NUL byte, so at most `size - 1` characters fit. Decoding stops
                at the first NUL instead of trimming the trailing ones.
        """

        self.terminated = terminated
        super().__init__(size, offset)

    @property
    def max_length(self) -> int:
        return self.size - 1 if self.terminated else self.size

    def convert(self, value: bytes) -> str:
        if self.terminated:
            value = value.split(b"\0", 1)[0]
        else:
            value = value.rstrip(b"\0")
        return value.decode("latin-1")

    def revert(self, value: str) -> bytes:
        try:
            raw = value.encode("latin-1")
        except UnicodeEncodeError as e:
            raise FormatInvalid(f"{self.name}: {value!r} is not latin-1 text") from e

        if self.terminated and b"\0" in raw:
            raise FormatInvalid(f"{self.name}: {value!r} contains a NUL byte")
        if len(raw) > self.max_length:
            raise FormatInvalid(
                f"{self.name}: {value!r} is longer than {self.max_length} characters"
            )
        return raw.ljust(self.size, b"\0")


class Struct:
    """
    A fixed size little-endian record layout. Subclasses declare their
    fields as class attributes, in layout order, plus `record_size`.
    """

    record_size: int

    @classmethod
    def fields(cls) -> list[DataTypeDescriptor]:
        return [x for x in vars(cls).values() if isinstance(x, DataTypeDescriptor)]

    @classmethod
    def unpack(cls, data, offset: int = 0) -> dict[str, Any]:
        if len(data) < offset + cls.record_size:
            raise FormatInvalid(
                f"{cls.__name__}: need {cls.record_size} bytes at 0x{offset:x}, "
                f"only {max(len(data) - offset, 0)} available"
            )
        return {f.name: f.unpack_from(data, offset) for f in cls.fields()}

    @classmethod
    def pack_into(cls, buf: bytearray, values, offset: int = 0):
        # values is a mapping or any object carrying the field names
        for f in cls.fields():
            if isinstance(values, Mapping):
                value = values[f.name]
            else:
                value = getattr(values, f.name)
            f.pack_into(buf, value, offset)

    @classmethod
    def pack(cls, values) -> bytes:
        buf = bytearray(cls.record_size)
        cls.pack_into(buf, values)
        return bytes(buf)
