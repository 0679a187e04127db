#!/usr/bin/env python3
"""
Intel HEX record decoding.

Each significant line of an Intel HEX file looks like:

    :LLAAAATT<data...>CC

    LL    byte count
    AAAA  16-bit address offset
    TT    record type
    data  LL bytes
    CC    record checksum (two's complement of the byte sum)

Only three record types matter to the image builder: data (00),
end-of-file (01) and extended linear address (04). Everything else
decodes as RECORD_OTHER and is ignored downstream.

The trailing checksum byte is not checked unless strict=True is passed
to decode_line(). Some generators emit bad or missing checksums and the
flash tooling has always accepted them.
"""

import re

START_CODE = ':'

RECORD_DATA = 0x00
RECORD_EOF = 0x01
RECORD_EXTENDED_LINEAR = 0x04
RECORD_OTHER = -1

RECORD_NAMES = {
    RECORD_DATA: 'data',
    RECORD_EOF: 'end-of-file',
    RECORD_EXTENDED_LINEAR: 'extended-linear-address',
    RECORD_OTHER: 'other',
}

# Character offsets within a line
COUNT_POS = 1
OFFSET_POS = 3
TYPE_POS = 7
DATA_POS = 9

HEX_DIGITS = re.compile(r'^[0-9A-Fa-f]*$')


class Record:
    """One decoded line.

    record_type is one of RECORD_DATA, RECORD_EOF, RECORD_EXTENDED_LINEAR
    or RECORD_OTHER. raw_type keeps the type byte as it appeared in the
    file, which is useful when reporting unknown records.
    """

    def __init__(self, byte_count, address_offset, record_type, data=b'',
                 raw_type=None):
        self.byte_count = byte_count          # u8
        self.address_offset = address_offset  # u16
        self.record_type = record_type
        self.data = bytes(data)
        self.raw_type = record_type if raw_type is None else raw_type

    @property
    def upper_address(self):
        """Upper 16 address bits carried by an extended linear address record."""
        return (self.data[0] << 8) | self.data[1]

    def __eq__(self, other):
        if not isinstance(other, Record):
            return NotImplemented
        return (self.byte_count == other.byte_count and
                self.address_offset == other.address_offset and
                self.record_type == other.record_type and
                self.data == other.data)

    def __repr__(self):
        return (f"Record({RECORD_NAMES[self.record_type]}, "
                f"count={self.byte_count}, offset=0x{self.address_offset:04X}, "
                f"data={self.data.hex().upper()})")


class ParseFailure:
    """A line that could not be decoded. Not fatal: the caller logs it and moves on."""

    def __init__(self, line, reason):
        self.line = line
        self.reason = reason

    def __repr__(self):
        return f"ParseFailure({self.line!r}, {self.reason!r})"


def _hex_field(line, pos, width):
    """Return the integer value of line[pos:pos + width], or None if it is not hex."""
    field = line[pos:pos + width]
    if len(field) != width or not HEX_DIGITS.match(field):
        return None
    return int(field, 16)


def decode_line(line, strict=False):
    """Decode one line of Intel HEX text.

    Returns:
        None          line does not start with ':' (blank, comment, noise)
        Record        successfully decoded
        ParseFailure  malformed hex digits or a line too short for its count
    """
    if not line.startswith(START_CODE):
        return None
    line = line.rstrip()

    byte_count = _hex_field(line, COUNT_POS, 2)
    address_offset = _hex_field(line, OFFSET_POS, 4)
    raw_type = _hex_field(line, TYPE_POS, 2)
    if byte_count is None or address_offset is None or raw_type is None:
        if len(line) < DATA_POS:
            return ParseFailure(line, "line too short for record header")
        return ParseFailure(line, "invalid hex digit in record header")

    data_end = DATA_POS + 2 * byte_count
    if len(line) < data_end:
        return ParseFailure(
            line, f"byte count {byte_count} needs {data_end} characters, "
                  f"line has {len(line)}")

    data_hex = line[DATA_POS:data_end]
    if not HEX_DIGITS.match(data_hex):
        return ParseFailure(line, "invalid hex digit in data field")
    data = bytes.fromhex(data_hex)

    if strict:
        checksum = _hex_field(line, data_end, 2)
        if checksum is None:
            return ParseFailure(line, "missing or malformed record checksum")
        total = (byte_count + (address_offset >> 8) + (address_offset & 0xFF) +
                 raw_type + sum(data) + checksum)
        if total & 0xFF:
            expected = (checksum - total) & 0xFF
            return ParseFailure(
                line, f"record checksum 0x{checksum:02X} does not match "
                      f"computed 0x{expected:02X}")

    if raw_type in (RECORD_DATA, RECORD_EOF, RECORD_EXTENDED_LINEAR):
        record_type = raw_type
    else:
        record_type = RECORD_OTHER

    if record_type == RECORD_EXTENDED_LINEAR and byte_count < 2:
        return ParseFailure(line, "extended linear address record needs 2 data bytes")

    return Record(byte_count, address_offset, record_type, data, raw_type=raw_type)
