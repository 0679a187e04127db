#!/usr/bin/env python3
"""
Build a fixed-size flash image from Intel HEX records.

1. Track the upper 16 address bits set by extended linear address records
2. Expand data records to absolute addresses
3. Keep only bytes inside the address window [start, start + size)
4. Stop at the end-of-file record
5. Assemble the window into a buffer pre-filled with 0xFF (erased flash)

The window is held as a numpy image pre-filled with 0xFF plus a mask of
written locations, so memory stays bounded by the window no matter how
much of the address space the HEX file describes. Addresses are 32-bit and
wrap past 0xFFFFFFFF.
"""

import sys

import numpy as np

from ihex_records import (
    ParseFailure, RECORD_DATA, RECORD_EOF, RECORD_EXTENDED_LINEAR, decode_line,
)

ERASE_VALUE = 0xFF
ADDRESS_SPACE = 1 << 32
ADDRESS_MASK = ADDRESS_SPACE - 1


class EmptyRangeError(Exception):
    """No byte of the HEX file fell inside the requested window."""

    def __init__(self, window):
        self.window = window
        super().__init__(
            f"No data found within the specified address range "
            f"(0x{window.start:08X}-0x{window.end:08X})")


class AddressWindow:
    """Address range [start, start + size) kept in the output image."""

    def __init__(self, start, size):
        if not 0 <= start < ADDRESS_SPACE:
            raise ValueError(f"start address 0x{start:X} is not a 32-bit value")
        if not 0 <= size <= ADDRESS_SPACE:
            raise ValueError(f"size 0x{size:X} is not a 32-bit value")
        if start + size > ADDRESS_SPACE:
            raise ValueError(
                f"window 0x{start:08X} + 0x{size:X} runs past the end of "
                f"the 32-bit address space")
        self.start = start
        self.size = size

    @property
    def end(self):
        return self.start + self.size

    def __repr__(self):
        return f"AddressWindow(0x{self.start:08X}, size=0x{self.size:X})"


class AddressState:
    """Upper address bits from the most recent extended linear address record."""

    def __init__(self):
        self.base = 0

    def on_extended_address(self, upper16):
        self.base = (upper16 & 0xFFFF) << 16


class WindowMap:
    """Sparse address -> byte map restricted to one AddressWindow.

    image[i] holds the byte for address window.start + i (ERASE_VALUE until
    written) and present[i] records whether anything was ever written there.
    Later writes to the same address replace earlier ones.
    """

    def __init__(self, window):
        self.window = window
        self.image = np.full(window.size, ERASE_VALUE, dtype=np.uint8)
        self.present = np.zeros(window.size, dtype=bool)

    def store(self, address, data):
        """Write data starting at absolute address, dropping bytes outside the window.

        A record running past 0xFFFFFFFF continues at address 0.
        Returns the number of bytes that landed in the window.
        """
        address &= ADDRESS_MASK
        wrap = ADDRESS_SPACE - address
        if len(data) > wrap:
            return self.store(address, data[:wrap]) + self.store(0, data[wrap:])

        lo = max(address, self.window.start)
        hi = min(address + len(data), self.window.end)
        if lo >= hi:
            return 0
        src = np.frombuffer(bytes(data), dtype=np.uint8)
        dst = slice(lo - self.window.start, hi - self.window.start)
        self.image[dst] = src[lo - address:hi - address]
        self.present[dst] = True
        return hi - lo

    def __len__(self):
        """Number of distinct window addresses written."""
        return int(np.count_nonzero(self.present))


class LoadResult:
    """Outcome of reading a HEX file into a WindowMap."""

    def __init__(self, window_map):
        self.window_map = window_map
        self.records = 0
        self.failures = []
        self.reached_eof = False


def load_hex_lines(lines, window, strict=False):
    """Feed Intel HEX lines into a WindowMap for the given window.

    Lines that fail to decode are reported on stderr and skipped. Processing
    stops at the first end-of-file record; anything after it is not read.
    """
    result = LoadResult(WindowMap(window))
    state = AddressState()

    for line in lines:
        record = decode_line(line, strict=strict)
        if record is None:
            continue
        if isinstance(record, ParseFailure):
            print(f"Warning: Could not parse line '{record.line}'. "
                  f"Reason: {record.reason}", file=sys.stderr)
            result.failures.append(record)
            continue

        result.records += 1
        if record.record_type == RECORD_EXTENDED_LINEAR:
            state.on_extended_address(record.upper_address)
        elif record.record_type == RECORD_DATA:
            address = state.base + record.address_offset
            result.window_map.store(address, record.data)
        elif record.record_type == RECORD_EOF:
            result.reached_eof = True
            break

    return result


def load_hex_file(path, window, strict=False):
    """Open an Intel HEX file and load it. OSError propagates to the caller."""
    with open(path, 'r', encoding='ascii', errors='replace') as f:
        return load_hex_lines(f, window, strict=strict)


def assemble(window, window_map):
    """Return the window as a bytes object of exactly window.size bytes.

    Unwritten locations hold ERASE_VALUE. Raises EmptyRangeError when no
    byte fell inside the window, so a window that misses the image never
    turns into an all-0xFF file.
    """
    if not window_map.present.any():
        raise EmptyRangeError(window)
    return window_map.image.tobytes()


def write_binary(image, path):
    """Write the raw image with no header. OSError propagates to the caller."""
    with open(path, 'wb') as f:
        f.write(image)
    return len(image)
