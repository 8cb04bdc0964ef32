import os
from pathlib import Path
from typing import Iterable

from ..errors import FormatInvalid, IOFailure, PatchTableNotFound, ShortSignature
from ..utils import parse_hex, parse_int
from .signatures import (
    BAD_BLOCK_CHECK,
    MIN_SIGNATURE_LENGTH,
    REVISION_ORDER,
    SignatureDefinition,
)

PATCHES_PATH = Path.home() / ".ldrkit/patches.txt"
PATCHES_ENV = "LDRKIT_PATCHES"


class PatchTable:
    """
    The integrator supplied signature definitions and patch payloads.

    File format, one definition per section:

        version = 2024.1
        [V7R22]
        signature = 00 00 a0 e3 04 10 9f e5
        offset = -4
        payload = 00 00 a0 e3
    """

    _instance = None

    def __init__(self, definitions: Iterable[SignatureDefinition] = (), version: str | None = None):
        self.version = version
        self.definitions: dict[str, SignatureDefinition] = {}
        self.warnings: list[ShortSignature] = []

        for definition in definitions:
            self.add(definition)

    @classmethod
    def get_default(cls):
        if cls._instance is None:
            cls._instance = cls.load()
        return cls._instance

    @classmethod
    def load(cls, path=None):
        if path is None:
            path = Path(os.environ.get(PATCHES_ENV) or PATCHES_PATH)
            if not path.is_file():
                raise PatchTableNotFound(
                    path, f"put your patch table in {PATCHES_PATH} or set {PATCHES_ENV}"
                )

        try:
            with open(path, "r", encoding="latin-1") as f:
                return cls.parse(f, str(path))
        except OSError as e:
            raise IOFailure(path, e.strerror or e) from e

    @classmethod
    def parse(cls, lines: Iterable[str] | str, source: str = "<patch table>"):
        if isinstance(lines, str):
            lines = lines.splitlines()

        table = cls()
        section = None

        def flush():
            if section is None:
                return
            if "pattern" not in section:
                raise FormatInvalid(
                    f"{source}:{section['line']}: [{section['name']}] has no signature"
                )
            table.add(
                SignatureDefinition(
                    section["name"],
                    section["pattern"],
                    section.get("patch_offset", 0),
                    section.get("payload", b""),
                )
            )

        for lineno, raw in enumerate(lines, 1):
            line = raw.strip()
            if not line or line.startswith("#"):
                continue

            if line.startswith("[") and line.endswith("]"):
                flush()
                name = line[1:-1].strip()
                if not name:
                    raise FormatInvalid(f"{source}:{lineno}: empty section name")
                if name in table.definitions:
                    raise FormatInvalid(f"{source}:{lineno}: duplicate section [{name}]")
                section = {"name": name, "line": lineno}
                continue

            key, sep, value = line.partition("=")
            if not sep:
                raise FormatInvalid(f"{source}:{lineno}: invalid line: {line}")
            key = key.strip()
            value = value.strip()

            if section is None:
                if key != "version":
                    raise FormatInvalid(f"{source}:{lineno}: '{key}' outside of a section")
                table.version = value
                continue

            try:
                match key:
                    case "signature":
                        section["pattern"] = parse_hex(value)
                    case "offset":
                        section["patch_offset"] = parse_int(value)
                    case "payload":
                        section["payload"] = parse_hex(value)
                    case _:
                        raise FormatInvalid(f"{source}:{lineno}: unknown key: {key}")
            except ValueError as e:
                raise FormatInvalid(f"{source}:{lineno}: bad value for {key}: {e}") from e

        flush()
        return table

    def add(self, definition: SignatureDefinition):
        self.definitions[definition.name] = definition
        if len(definition.pattern) < MIN_SIGNATURE_LENGTH:
            self.warnings.append(ShortSignature(definition.name, len(definition.pattern)))

    def revisions(self) -> list[SignatureDefinition]:
        ordered = [self.definitions[x] for x in REVISION_ORDER if x in self.definitions]
        ordered += [
            d
            for name, d in self.definitions.items()
            if name not in REVISION_ORDER and name != BAD_BLOCK_CHECK
        ]
        return ordered

    def bad_block(self) -> SignatureDefinition | None:
        return self.definitions.get(BAD_BLOCK_CHECK)
