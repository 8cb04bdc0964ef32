"""
Signature search and patch application over an in-memory loader image.

A patch is located by an exact byte pattern; the patch point is measured
from the first byte after the match and receives the definition's payload.
"""

from dataclasses import dataclass
from typing import Iterable

from ..errors import BoundsViolation, FormatInvalid
from .signatures import SignatureDefinition


def find(buffer: bytes | bytearray, definition: SignatureDefinition) -> int | None:
    idx = buffer.find(definition.pattern)
    return idx if idx >= 0 else None


def locate_patch(buffer, definition: SignatureDefinition) -> tuple[int, int] | None:
    """
    Finds the signature and computes where its payload goes.

    Returns:
        tuple[int, int] | None: (match offset, patch location), None if the
            signature does not occur

    Raises:
        FormatInvalid: The definition has no payload
        BoundsViolation: The payload would land outside the buffer
    """

    if not definition.payload:
        raise FormatInvalid(f"signature {definition.name} has no patch payload")

    match = find(buffer, definition)
    if match is None:
        return None

    location = definition.location(match)
    if location < 0 or location + len(definition.payload) > len(buffer):
        raise BoundsViolation(
            f"signature {definition.name}: patch point 0x{location:x} "
            f"(+{len(definition.payload)} bytes) is outside the image "
            f"(size 0x{len(buffer):x})"
        )
    return match, location


def apply_patch(buffer: bytearray, definition: SignatureDefinition, location: int):
    buffer[location : location + len(definition.payload)] = definition.payload


def patch(buffer: bytearray, definition: SignatureDefinition) -> int | None:
    """
    Patches the first occurrence of the signature in place.

    Returns:
        int | None: The match offset, None if the signature was not found
            (the buffer is left untouched)
    """

    found = locate_patch(buffer, definition)
    if found is None:
        return None

    match, location = found
    apply_patch(buffer, definition, location)
    return match


def find_first(
    buffer, definitions: Iterable[SignatureDefinition]
) -> tuple[SignatureDefinition, int] | None:
    for definition in definitions:
        match = find(buffer, definition)
        if match is not None:
            return definition, match
    return None


def patch_first(
    buffer: bytearray, definitions: Iterable[SignatureDefinition]
) -> tuple[SignatureDefinition, int] | None:
    found = find_first(buffer, definitions)
    if found is None:
        return None

    definition, _ = found
    return definition, patch(buffer, definition)


@dataclass
class PatchReport:
    revision: SignatureDefinition | None = None
    revision_offset: int | None = None
    bad_block_checked: bool = False
    bad_block_offset: int | None = None
    applied: bool = False

    @property
    def changed(self) -> bool:
        return self.applied and (
            self.revision_offset is not None or self.bad_block_offset is not None
        )


def patch_loader(buffer, table, bad_block: bool = False, apply: bool = True) -> PatchReport:
    """
    Runs the loader patch procedure.

    The revision signatures of `table` are tried in order and the first one
    found is used. With `bad_block` the bad block check signature is looked
    up as well, whichever revision matched. Missing signatures are reported,
    not raised. Both patch points are validated before the buffer is
    touched, so a BoundsViolation leaves it unchanged.

    Args:
        buffer: The loader image; must be a bytearray when `apply` is set
        table (PatchTable): Source of the signature definitions
        bad_block (bool): Also disable the bad block check
        apply (bool): Write the payloads, otherwise only search
    """

    report = PatchReport(applied=apply)
    pending = []

    found = find_first(buffer, table.revisions())
    if found is not None:
        report.revision, report.revision_offset = found
        if apply:
            pending.append((report.revision, locate_patch(buffer, report.revision)[1]))

    if bad_block:
        definition = table.bad_block()
        if definition is not None:
            report.bad_block_checked = True
            report.bad_block_offset = find(buffer, definition)
            if apply and report.bad_block_offset is not None:
                pending.append((definition, locate_patch(buffer, definition)[1]))

    for definition, location in pending:
        apply_patch(buffer, definition, location)

    return report
