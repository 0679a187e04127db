from crc32_hash import POLYNOMIAL, crc32, format_hash

SCENARIO_IMAGE = bytes([0xAA, 0xBB, 0xCC, 0xDD]) + b'\xff' * 12


def crc32_bitwise(data):
    """Bit-at-a-time reflected CRC-32, the reference for crc32()."""
    crc = 0xFFFFFFFF
    for byte in data:
        crc ^= byte
        for _ in range(8):
            if crc & 1:
                crc = (crc >> 1) ^ POLYNOMIAL
            else:
                crc >>= 1
    return crc ^ 0xFFFFFFFF


def test_check_value():
    assert crc32(b'123456789') == 0xCBF43926
    assert crc32_bitwise(b'123456789') == 0xCBF43926


def test_empty_input():
    assert crc32(b'') == 0


def test_scenario_image_vector():
    assert crc32(SCENARIO_IMAGE) == 0xC9A152A7


def test_matches_bitwise_reference():
    blocks = [bytes(range(256)), b'\xff' * 1024, b'\x00' * 7, SCENARIO_IMAGE]
    for block in blocks:
        assert crc32(block) == crc32_bitwise(block)


def test_accepts_bytearray():
    assert crc32(bytearray(SCENARIO_IMAGE)) == crc32(SCENARIO_IMAGE)


def test_format_hash():
    assert format_hash(0xC9A152A7) == '0xC9A152A7'
    assert format_hash(0x1F) == '0x0000001F'
