from dataclasses import dataclass

from ..errors import FormatInvalid

# Scan order for the loader revision patches. The first match wins, so the
# order is part of the patch table contract.
REVISION_ORDER = ("V7R1", "V7R2", "V7R11", "V7R22", "V7R22_2", "V7R22_3")

# Disables the bad block check; tried independently of the revision patch
BAD_BLOCK_CHECK = "isbad"

MIN_SIGNATURE_LENGTH = 8


@dataclass(frozen=True)
class SignatureDefinition:
    name: str
    pattern: bytes
    patch_offset: int = 0  # from the first byte after the match
    payload: bytes = b""

    def __post_init__(self):
        if not self.pattern:
            raise FormatInvalid(f"signature {self.name} has an empty pattern")

    def __repr__(self):
        return (
            f"SignatureDefinition(name={self.name!r}, pattern={self.pattern.hex()}, "
            f"patch_offset={self.patch_offset}, payload={self.payload.hex()})"
        )

    def location(self, match: int) -> int:
        return match + len(self.pattern) + self.patch_offset
