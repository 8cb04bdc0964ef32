"""
ldrkit: tools for Balong V7 usbloader images.

Three independent engines share nothing but the byte buffer they work on:

- `ldrkit.patcher`: signature search and patching of loader code
- `ldrkit.ptable`: the embedded partition table, in binary and text form
- `ldrkit.usbloader`: the usbloader container (header plus blocks)

`ldrkit.main` is the command line front-end over them.
"""

__version__ = "1.0.0"
