from .scanner import (
    PatchReport,
    find,
    find_first,
    locate_patch,
    patch,
    patch_first,
    patch_loader,
)
from .signatures import BAD_BLOCK_CHECK, REVISION_ORDER, SignatureDefinition
from .table import PatchTable

__all__ = [
    "BAD_BLOCK_CHECK",
    "REVISION_ORDER",
    "PatchReport",
    "PatchTable",
    "SignatureDefinition",
    "find",
    "find_first",
    "locate_patch",
    "patch",
    "patch_first",
    "patch_loader",
]
