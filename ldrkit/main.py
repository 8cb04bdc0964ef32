import argparse
import sys
from pathlib import Path

from colorama import Fore, just_fix_windows_console

from . import __version__, patcher, ptable, usbloader
from .crypto import Crypto
from .errors import FormatInvalid, LdrError
from .readers import File
from .utils import color, color_ctx, error, info, read_file, read_text, warn, write_file


def cmd_patch(args):
    table = patcher.PatchTable.load(args.table) if args.table else patcher.PatchTable.get_default()
    for w in table.warnings:
        warn(w)
    if table.version:
        info("patch table version:", table.version)

    buf = bytearray(read_file(args.loader))
    report = patcher.patch_loader(buf, table, bad_block=args.bad_block, apply=bool(args.output))

    if report.revision is not None:
        info(f"{report.revision.name} type signature found at offset", color(f"{report.revision_offset:08x}", Fore.CYAN))
    else:
        warn("eraseall patch signature not found")

    if args.bad_block:
        if not report.bad_block_checked:
            warn(f"the patch table has no [{patcher.BAD_BLOCK_CHECK}] section")
        elif report.bad_block_offset is not None:
            info("isbad signature found at offset", color(f"{report.bad_block_offset:08x}", Fore.CYAN))
        else:
            warn("isbad signature not found")

    if args.output:
        write_file(args.output, bytes(buf))
        info("saved to", args.output)


def cmd_ptable_dump(args):
    table = ptable.decode_binary(read_file(args.input))
    if not table.is_valid:
        warn("head magic does not match")

    text = ptable.encode_text(table)
    if args.output:
        write_file(args.output, text)
    else:
        sys.stdout.write(text)


def cmd_ptable_build(args):
    table = ptable.decode_text(read_text(args.input))
    data = ptable.encode_binary(table)

    if args.output:
        write_file(args.output, data)
    else:
        sys.stdout.buffer.write(data)


def show_map(table):
    for line in ptable.format_map(table):
        print(line)


def cmd_ptable_list(args):
    table = ptable.decode_binary(read_file(args.input))
    if not table.is_valid:
        raise FormatInvalid(f"{args.input} is not a partition table")
    show_map(table)


def cmd_ptable_show(args):
    with File(args.loader) as f:
        offset, table = ptable.read_table(f)
    info("partition table found at offset", color(f"{offset:08x}", Fore.CYAN))
    show_map(table)


def cmd_ptable_extract(args):
    with File(args.loader) as f:
        offset, table = ptable.read_table(f)
    info("partition table found at offset", color(f"{offset:08x}", Fore.CYAN))
    write_file(args.output, ptable.encode_binary(table))
    info("saved to", args.output)


def cmd_ptable_replace(args):
    table = ptable.decode_binary(read_file(args.table))
    buf = bytearray(read_file(args.loader))

    offset = ptable.replace_table(buf, table)
    write_file(args.loader, bytes(buf))
    info("partition table replaced at offset", color(f"{offset:08x}", Fore.CYAN))


def print_blocks(blocks):
    for block in blocks:
        d = block.descriptor
        c = color_ctx(f"[{block.index}] ", Fore.CYAN)
        c("block:", block.name)
        c(f"mode: {d.mode} ({d.boot_mode.name.lower()}), address: 0x{d.address:08x}")
        c(f"size: 0x{d.size:08x} ({d.size} bytes), offset: 0x{d.offset:08x}")
        c("sha256:", Crypto.sha256(block.data))


def cmd_usbloader_unpack(args):
    out_dir = Path(args.dir) if args.dir else usbloader.default_unpack_dir(args.input)
    info("usbloader:", args.input)
    info("output directory:", out_dir)

    loader = usbloader.unpack_to_dir(read_file(args.input), out_dir, Path(args.input).name)
    for w in loader.warnings:
        warn(w)

    print_blocks(loader.blocks)
    info("total blocks extracted:", len(loader.blocks))


def cmd_usbloader_pack(args):
    result = usbloader.pack_from_dir(args.dir)
    for w in result.warnings:
        warn(w)

    write_file(args.output, result.data)
    for index, d in enumerate(result.header.descriptors):
        if d.size == 0:
            break
        c = color_ctx(f"[{index}] ", Fore.CYAN)
        c(f"mode: {d.mode}, address: 0x{d.address:08x}, size: 0x{d.size:08x}, offset: 0x{d.offset:08x}")
    info(f"packed to {args.output} ({len(result.data)} bytes)")


def cmd_usbloader_show(args):
    loader = usbloader.decode(read_file(args.input))
    for w in loader.warnings:
        warn(w)

    info("usbloader:", args.input, f"({loader.size} bytes)")
    print_blocks(loader.blocks)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ldrkit", description="Tools for Balong V7 usbloader images"
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = p.add_subparsers(dest="command", required=True)

    s = sub.add_parser("patch", help="patch the loader checks")
    s.add_argument("loader", help="usbloader file")
    s.add_argument("-o", "--output", help="output file; without it only the patch possibility is checked")
    s.add_argument("-b", "--bad-block", action="store_true", help="also disable the bad block check")
    s.add_argument("-t", "--table", help="patch table file (default: ~/.ldrkit/patches.txt)")
    s.set_defaults(func=cmd_patch)

    pt = sub.add_parser("ptable", help="partition table tools").add_subparsers(dest="action", required=True)

    s = pt.add_parser("dump", help="convert a binary table to text")
    s.add_argument("input")
    s.add_argument("output", nargs="?")
    s.set_defaults(func=cmd_ptable_dump)

    s = pt.add_parser("build", help="convert a text table to binary")
    s.add_argument("input")
    s.add_argument("output", nargs="?")
    s.set_defaults(func=cmd_ptable_build)

    s = pt.add_parser("list", help="show the map of a partition table file")
    s.add_argument("input")
    s.set_defaults(func=cmd_ptable_list)

    s = pt.add_parser("show", help="show the partition map inside a loader")
    s.add_argument("loader")
    s.set_defaults(func=cmd_ptable_show)

    s = pt.add_parser("extract", help="save the partition table of a loader")
    s.add_argument("loader")
    s.add_argument("-o", "--output", default="ptable.bin")
    s.set_defaults(func=cmd_ptable_extract)

    s = pt.add_parser("replace", help="replace the partition table of a loader")
    s.add_argument("loader")
    s.add_argument("table", help="binary partition table")
    s.set_defaults(func=cmd_ptable_replace)

    ul = sub.add_parser("usbloader", help="usbloader packer/unpacker").add_subparsers(dest="action", required=True)

    s = ul.add_parser("unpack", help="unpack a usbloader file")
    s.add_argument("input")
    s.add_argument("-d", "--dir", help="output directory (default: <input>.unpacked)")
    s.set_defaults(func=cmd_usbloader_unpack)

    s = ul.add_parser("pack", help="pack a usbloader from a directory")
    s.add_argument("dir")
    s.add_argument("-o", "--output", required=True)
    s.set_defaults(func=cmd_usbloader_pack)

    s = ul.add_parser("show", help="list the blocks of a usbloader file")
    s.add_argument("input")
    s.set_defaults(func=cmd_usbloader_show)

    return p


def main(argv=None) -> int:
    just_fix_windows_console()
    args = build_parser().parse_args(argv)

    try:
        args.func(args)
    except LdrError as e:
        error(e)
        return e.exit_code

    return 0


if __name__ == "__main__":
    sys.exit(main())
