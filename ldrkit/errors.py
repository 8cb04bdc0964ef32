"""
Error kinds shared by the ldrkit engines.

Fatal conditions are exceptions derived from `LdrError`; each kind carries
the process exit status the command line front-end reports for it.
Recoverable conditions are `LdrWarning` instances, which the engines
collect in their results instead of raising.
"""


class LdrError(Exception):
    exit_code = 1


class NotFound(LdrError):
    exit_code = 3


class FormatInvalid(LdrError):
    exit_code = 4


class BoundsViolation(LdrError):
    exit_code = 5


class IOFailure(LdrError):
    exit_code = 6

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class PatchTableNotFound(IOFailure):
    pass


class LdrWarning(Warning):
    pass


class SizeMismatch(LdrWarning):
    def __init__(self, index: int, declared: int, actual: int):
        self.index = index
        self.declared = declared
        self.actual = actual
        super().__init__(
            f"block {index} size mismatch (declared: {declared}, actual: {actual})"
        )


class TruncatedBlock(LdrWarning):
    def __init__(self, index: int, offset: int, size: int, available: int):
        self.index = index
        self.offset = offset
        self.size = size
        self.available = available
        super().__init__(
            f"block {index} extends beyond end of data "
            f"(offset=0x{offset:x}, size=0x{size:x}, data size=0x{available:x})"
        )


class ShortSignature(LdrWarning):
    def __init__(self, name: str, length: int):
        self.name = name
        self.length = length
        super().__init__(
            f"signature {name} is only {length} bytes long and may match by accident"
        )
