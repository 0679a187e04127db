#!/usr/bin/env python3
"""
CRC-32 hash of a flash image.

Reflected CRC-32 (polynomial 0xEDB88320, init and final XOR 0xFFFFFFFF),
the same value the bootloader computes over the application bank after
flashing. zlib implements exactly this variant. The hash is only reported,
it is never written into the image.
"""

import zlib

POLYNOMIAL = 0xEDB88320
MASK = 0xFFFFFFFF


def crc32(data):
    """CRC-32 over a bytes-like object."""
    return zlib.crc32(data) & MASK


def format_hash(crc):
    return f"0x{crc & MASK:08X}"
