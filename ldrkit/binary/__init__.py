from .repr import HexRepr
from .types import Bytes, Struct, Text, UInt32

__all__ = ["HexRepr", "Bytes", "Struct", "Text", "UInt32"]
