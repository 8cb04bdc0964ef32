import sys
from pathlib import Path

from colorama import Fore, Style

from .errors import IOFailure

U32_MAX = 0xFFFFFFFF


def color(string, color):
    return color + str(string) + Fore.RESET


def colored(*msg, color=Fore.GREEN, level="", file=None):
    print(color + Style.BRIGHT + str(level) + Style.RESET_ALL, *msg, file=file)


def color_ctx(prefix, color=Fore.GREEN):
    def wrapper(*msg, level=""):
        colored(*msg, color=color, level=str(prefix) + str(level))

    return wrapper


def info(*msg):
    colored(*msg, level="INFO")


def warn(*msg):
    colored(*msg, color=Fore.YELLOW, level="WARN", file=sys.stderr)


def error(*msg):
    colored(*msg, color=Fore.RED, level="ERROR", file=sys.stderr)


def trim_padding(string: str) -> str:
    return string.rstrip("\0 ")


def parse_int(value: str) -> int:
    """
    Parses a decimal or 0x prefixed hexadecimal number, optionally signed.

    Raises:
        ValueError: The value is not a number in either notation
    """

    text = value.strip()
    sign = 1
    if text[:1] in ("-", "+"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]

    if text[:2].lower() == "0x":
        return sign * int(text[2:], 16)
    if not text.isdigit():
        raise ValueError(f"invalid number: {value!r}")
    return sign * int(text, 10)


def parse_u32(value: str) -> int:
    n = parse_int(value)
    if not 0 <= n <= U32_MAX:
        raise ValueError(f"{value!r} does not fit in 32 bits")
    return n


def parse_hex(value: str) -> bytes:
    return bytes.fromhex("".join(value.split()))


def read_file(path) -> bytes:
    try:
        return Path(path).read_bytes()
    except OSError as e:
        raise IOFailure(path, e.strerror or e) from e


def read_text(path) -> str:
    try:
        return Path(path).read_text(encoding="latin-1")
    except OSError as e:
        raise IOFailure(path, e.strerror or e) from e


def write_file(path, data: bytes | str):
    try:
        if isinstance(data, str):
            Path(path).write_text(data, encoding="latin-1")
        else:
            Path(path).write_bytes(data)
    except OSError as e:
        raise IOFailure(path, e.strerror or e) from e
