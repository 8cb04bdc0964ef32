from dataclasses import fields
from enum import Enum


class HexRepr:
    """repr for dataclasses that shows plain integer fields in hex"""

    def __repr__(self):
        cls = self.__class__.__name__
        items = []

        for f in fields(self):
            if not f.repr:
                continue

            value = getattr(self, f.name)
            if isinstance(value, int) and not isinstance(value, (bool, Enum)):
                items.append(f"{f.name}=0x{value:x}")
            else:
                items.append(f"{f.name}={value!r}")

        return f"{cls}({', '.join(items)})"
