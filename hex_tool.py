#!/usr/bin/env python3
"""
Convert an Intel HEX file to a raw binary image of one flash bank.

1. Read the HEX file, keeping only bytes inside [start, start + size)
2. Pad every unprogrammed location with 0xFF
3. Write the raw image (exactly size bytes, no header)
4. Print the CRC-32 hash used by the post-build step to verify the flash

Usage:
    hex_tool.py <input.hex> <output.bin> <start_addr_hex> <size_hex>

Example:
    hex_tool.py app.hex bank1.bin 0x08000000 0xE4F0

Exit status is 0 on success and 1 on any error.
"""

import argparse
import sys

from crc32_hash import crc32, format_hash
from firmware_image import (
    AddressWindow, EmptyRangeError, assemble, load_hex_file, write_binary,
)

EXIT_OK = 0
EXIT_FAILURE = 1

EXAMPLE = "Example: hex_tool app.hex bank1.bin 0x08000000 0xE4F0"


class UsageParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 instead of argparse's 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        print(EXAMPLE, file=sys.stderr)
        sys.exit(EXIT_FAILURE)


def hex_int(text):
    """Parse a hex argument, with or without a 0x prefix."""
    try:
        value = int(text, 16)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a hexadecimal value: {text!r}")
    if value < 0:
        raise argparse.ArgumentTypeError(f"negative value: {text!r}")
    return value


def build_parser():
    parser = UsageParser(
        prog="hex_tool",
        description="Convert an Intel HEX file to a raw binary of one address window",
        epilog=EXAMPLE)
    parser.add_argument("input", help="Input .hex (Intel HEX)")
    parser.add_argument("output", help="Output .bin")
    parser.add_argument("start", type=hex_int, help="Window start address (hex)")
    parser.add_argument("size", type=hex_int, help="Window size in bytes (hex)")
    parser.add_argument("--strict", action="store_true",
                        help="Check each record's checksum byte and skip lines that fail")
    return parser


def report_memory_error(window):
    print(f"Error: Not enough memory for a window of {window.size} bytes",
          file=sys.stderr)
    return EXIT_FAILURE


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        window = AddressWindow(args.start, args.size)
    except ValueError as e:
        parser.error(str(e))

    try:
        loaded = load_hex_file(args.input, window, strict=args.strict)
    except OSError:
        print(f"Error: Could not open input file: {args.input}", file=sys.stderr)
        return EXIT_FAILURE
    except MemoryError:
        return report_memory_error(window)
    print("Successfully parsed HEX file.")
    print(f"  Records: {loaded.records}")
    print(f"  Data bytes set: {len(loaded.window_map)}")
    if loaded.failures:
        print(f"  Skipped {len(loaded.failures)} malformed line(s)")
    if not loaded.reached_eof:
        print("Warning: No end-of-file record found", file=sys.stderr)

    try:
        image = assemble(window, loaded.window_map)
    except EmptyRangeError:
        print("Error: No data found within the specified address range.",
              file=sys.stderr)
        return EXIT_FAILURE
    except MemoryError:
        return report_memory_error(window)

    try:
        size = write_binary(image, args.output)
    except OSError:
        print(f"Error: Could not create output file: {args.output}", file=sys.stderr)
        return EXIT_FAILURE
    print(f"Successfully created binary file: {args.output}")
    print(f"Size: {size} bytes")

    print(f"Generated Hash: {format_hash(crc32(image))}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
