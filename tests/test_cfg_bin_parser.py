#!/usr/bin/env python3
"""
Test suite for the cfg bin decoder.

Covers, in decode order:
1. Header size and the bin_len length check
2. The wrapping checksum over bytes[5:]
3. Offset table resolution (16-bit offsets, monotonicity, bounds)
4. Package splitting, the 4096 byte payload cap and the cfg_type registry
"""

import sys
import os
# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import struct

import pytest

from cfgbin.errors import CfgBinError, InvalidSize, LengthCheckFail, ChecksumMismatch, InvalidOffset
from parsers import (
    CfgBinParser, decode, decode_head, compute_checksum, resolve_package_ranges,
    CFG_MAX_SIZE, PKG_HEAD_LEN, IcConfig,
)
from cfg_bin_factory import build_cfg_bin, build_package, fix_header


# --- Header ---

@pytest.mark.parametrize("size", range(0, 10))
def test_short_buffer_is_invalid_size(size):
    with pytest.raises(InvalidSize):
        decode(b'\x00' * size)


def test_decode_head_fields():
    data = struct.pack('<IB4sB', 0x1234, 0x56, b'\x01\x02\x03\x04', 3)
    head = decode_head(data)
    assert head.bin_len == 0x1234
    assert head.checksum == 0x56
    assert head.bin_version == b'\x01\x02\x03\x04'
    assert head.pkg_num == 3


def test_length_check_fail():
    data = bytearray(build_cfg_bin([]))
    struct.pack_into('<I', data, 0, len(data) + 1)
    with pytest.raises(LengthCheckFail) as exc_info:
        decode(bytes(data))
    assert exc_info.value.declared == len(data) + 1
    assert exc_info.value.actual == len(data)


def test_length_check_runs_before_checksum():
    data = bytearray(build_cfg_bin([]))
    data[4] ^= 0xFF
    data += b'\x00'
    with pytest.raises(LengthCheckFail):
        decode(bytes(data))


def test_errors_are_value_errors():
    with pytest.raises(ValueError):
        decode(b'')
    assert issubclass(InvalidOffset, CfgBinError)


def test_rejects_non_bytes():
    with pytest.raises(TypeError):
        decode("not bytes")


def test_accepts_bytearray():
    cfg_bin = decode(bytearray(build_cfg_bin([build_package(1, b'\x01\x02')])))
    assert cfg_bin.ic_configs[1].data == b'\x01\x02'


# --- Checksum ---

def test_checksum_wraps_and_skips_length_and_checksum_fields():
    data = b'\xff\xff\xff\xff\xff' + b'\xff' * 3
    assert compute_checksum(data) == (0xff * 3) & 0xFF


def test_checksum_mismatch():
    data = bytearray(build_cfg_bin([build_package(1, b'\x10' * 8)]))
    data[4] = (data[4] + 1) & 0xFF
    with pytest.raises(ChecksumMismatch) as exc_info:
        decode(bytes(data))
    assert exc_info.value.computed == (exc_info.value.expected - 1) & 0xFF


def test_flipped_payload_byte_breaks_checksum():
    data = bytearray(build_cfg_bin([build_package(1, b'\x10' * 8)]))
    data[-1] ^= 0x01
    with pytest.raises(ChecksumMismatch):
        decode(bytes(data))


# --- Offset table ---

def _offset_table_buffer(offsets, total_len):
    buf = bytearray(total_len)
    for i, offset in enumerate(offsets):
        struct.pack_into('<H', buf, 16 + 2 * i, offset)
    return bytes(buf)


def test_offsets_resolve_to_ranges():
    data = _offset_table_buffer([20, 60], 100)
    assert resolve_package_ranges(data, 2) == [(20, 40), (60, 40)]


def test_non_increasing_offset_is_invalid_offset():
    data = _offset_table_buffer([20, 15], 100)
    with pytest.raises(InvalidOffset):
        resolve_package_ranges(data, 2)


def test_equal_offsets_are_invalid_offset():
    data = _offset_table_buffer([20, 20], 100)
    with pytest.raises(InvalidOffset):
        resolve_package_ranges(data, 2)


def test_non_increasing_offset_fails_whole_decode():
    buf = bytearray(100)
    struct.pack_into('<IB4sB', buf, 0, 0, 0, b'\x00' * 4, 2)
    struct.pack_into('<HH', buf, 16, 20, 15)
    with pytest.raises(InvalidOffset):
        decode(fix_header(buf))


def test_offset_uses_high_byte():
    # First package at 0x0110; an 8-bit combine of the two bytes would lose the 0x01
    padding = b'\x00' * (0x110 - 18)
    data = build_cfg_bin([build_package(5, b'\x42' * 4)], padding=padding)
    assert struct.unpack_from('<H', data, 16)[0] == 0x110
    cfg_bin = decode(data)
    assert cfg_bin.packages[0].offset == 0x110
    assert cfg_bin.packages[0].const_info.cfg_type == 5
    assert cfg_bin.ic_configs[5].data == b'\x42' * 4


def test_offset_table_past_end_is_invalid_size():
    data = _offset_table_buffer([], 20)
    with pytest.raises(InvalidSize):
        resolve_package_ranges(data, 3)


def test_oversized_pkg_num_is_invalid_size():
    data = build_cfg_bin([build_package(1)], pkg_num=200)
    with pytest.raises(InvalidSize):
        decode(data)


def test_last_offset_past_end_is_invalid_size():
    data = _offset_table_buffer([0xFFFF], 100)
    with pytest.raises(InvalidSize):
        resolve_package_ranges(data, 1)


def test_next_offset_past_end_is_invalid_size():
    data = _offset_table_buffer([20, 0xFFFF], 100)
    with pytest.raises(InvalidSize):
        resolve_package_ranges(data, 2)


def test_last_offset_at_buffer_end_gives_empty_range():
    data = _offset_table_buffer([100], 100)
    assert resolve_package_ranges(data, 1) == [(100, 0)]


# --- Packages and registry ---

def test_zero_packages():
    cfg_bin = decode(build_cfg_bin([]))
    assert cfg_bin.head.pkg_num == 0
    assert cfg_bin.packages == ()
    assert dict(cfg_bin.ic_configs) == {}


def test_header_only_buffer_with_zero_packages():
    data = fix_header(struct.pack('<IB4sB', 0, 0, b'\x09\x08\x07\x06', 0))
    cfg_bin = decode(data)
    assert cfg_bin.head.bin_len == 10
    assert cfg_bin.head.bin_version == b'\x09\x08\x07\x06'
    assert cfg_bin.packages == ()


def test_single_package_round_trip():
    data = build_cfg_bin([build_package(7, b'\xAA' * 32, sensor_id=2)])
    cfg_bin = decode(data)

    assert cfg_bin.head.bin_len == len(data)
    assert cfg_bin.head.pkg_num == 1
    package = cfg_bin.packages[0]
    assert package.const_info.cfg_type == 7
    assert package.const_info.sensor_id == 2
    assert package.const_info.ic_type_name == 'GT9886'
    assert package.const_info.hw_pid == b'9886\x00\x00\x00\x00'
    assert package.const_info.x_res_offset == 0x10
    assert package.const_info.trigger_offset == 0x14
    assert package.pkg_len == PKG_HEAD_LEN + 32
    assert package.cfg == b'\xAA' * 32

    assert cfg_bin.ic_configs[7].len == 32
    assert cfg_bin.ic_configs[7].data == b'\xAA' * 32


def test_register_fields_in_wire_order():
    cfg_bin = decode(build_cfg_bin([build_package(1, register_base=0x8000)]))
    reg_info = cfg_bin.packages[0].reg_info
    assert reg_info.cfg_send_flag.addr == 0x8000
    assert reg_info.version_base.addr == 0x8001
    assert reg_info.proximity.addr == 0x800d
    assert reg_info.reserved == b'\xee' * 9
    assert [name for name, _ in reg_info.registers()][:3] == ['cfg_send_flag', 'version_base', 'pid']


def test_package_with_empty_payload():
    cfg_bin = decode(build_cfg_bin([build_package(4)]))
    assert cfg_bin.packages[0].pkg_len == PKG_HEAD_LEN
    assert cfg_bin.ic_configs[4].len == 0
    assert cfg_bin.ic_configs[4].data == b''


def test_duplicate_cfg_type_last_write_wins():
    data = build_cfg_bin([
        build_package(3, b'\x01' * 16),
        build_package(9, b'\x02' * 8),
        build_package(3, b'\x03' * 24),
    ])
    cfg_bin = decode(data)

    assert [p.const_info.cfg_type for p in cfg_bin.packages] == [3, 9, 3]
    assert cfg_bin.packages[0].cfg == b'\x01' * 16
    assert set(cfg_bin.ic_configs) == {3, 9}
    assert cfg_bin.ic_configs[3].len == 24
    assert cfg_bin.ic_configs[3].data == b'\x03' * 24


def test_package_smaller_than_head_is_invalid_size():
    data = build_cfg_bin([build_package(1)[:PKG_HEAD_LEN - 1]])
    with pytest.raises(InvalidSize):
        decode(data)


def test_payload_at_cap_is_accepted():
    cfg_bin = decode(build_cfg_bin([build_package(1, b'\x5a' * CFG_MAX_SIZE)]))
    assert cfg_bin.ic_configs[1].len == CFG_MAX_SIZE


def test_payload_over_cap_is_invalid_size():
    data = build_cfg_bin([build_package(1, b'\x5a' * (CFG_MAX_SIZE + 1))])
    with pytest.raises(InvalidSize):
        decode(data)


def test_ic_config_enforces_cap_and_length():
    with pytest.raises(InvalidSize):
        IcConfig(len=CFG_MAX_SIZE + 1, data=b'\x00' * (CFG_MAX_SIZE + 1))
    with pytest.raises(InvalidSize):
        IcConfig(len=3, data=b'\x00\x00')


def test_decoded_tree_does_not_alias_input():
    buf = bytearray(build_cfg_bin([build_package(2, b'\x11' * 4)]))
    cfg_bin = decode(buf)
    buf[-4:] = b'\x00' * 4
    assert cfg_bin.ic_configs[2].data == b'\x11' * 4


def test_records_are_immutable():
    cfg_bin = decode(build_cfg_bin([build_package(2, b'\x11' * 4)]))
    with pytest.raises(AttributeError):
        cfg_bin.head = None
    with pytest.raises(AttributeError):
        cfg_bin.packages[0].const_info.cfg_type = 3


def test_package_sequence_and_registry_are_read_only():
    cfg_bin = decode(build_cfg_bin([build_package(2, b'\x11' * 4)]))
    with pytest.raises(AttributeError):
        cfg_bin.packages.append(cfg_bin.packages[0])
    with pytest.raises(AttributeError):
        cfg_bin.packages.clear()
    with pytest.raises(TypeError):
        cfg_bin.ic_configs[99] = cfg_bin.ic_configs[2]
    with pytest.raises(TypeError):
        del cfg_bin.ic_configs[2]
    assert len(cfg_bin.packages) == 1
    assert list(cfg_bin.ic_configs) == [2]


def test_parse_twice_gives_same_result():
    data = build_cfg_bin([build_package(1, b'\x01' * 8), build_package(1, b'\x02' * 8)])
    parser = CfgBinParser(data)
    first = parser.parse()
    first_regions = parser.get_regions()
    second = parser.parse()

    assert len(second.packages) == second.head.pkg_num == 2
    assert second == first
    assert second.ic_configs[1].data == b'\x02' * 8
    assert [r.start for r in parser.get_regions()] == [r.start for r in first_regions]


def test_decode_package_reports_its_index():
    data = build_cfg_bin([build_package(1, b'\x01' * 8)])
    parser = CfgBinParser(data)
    with pytest.raises(InvalidSize, match="Package 3 "):
        parser.decode_package(18, PKG_HEAD_LEN - 1, 3)


def test_embedded_pkg_len_mismatch_only_warns(caplog):
    data = build_cfg_bin([build_package(1, b'\x00' * 4, pkg_len=999)])
    with caplog.at_level("WARNING"):
        cfg_bin = decode(data)
    assert cfg_bin.packages[0].const_info.pkg_len == 999
    assert cfg_bin.packages[0].pkg_len == PKG_HEAD_LEN + 4
    assert "embedded pkg_len 999" in caplog.text


def test_parser_regions_cover_whole_file():
    data = build_cfg_bin([build_package(1, b'\x01' * 8), build_package(2, b'\x02' * 8)])
    parser = CfgBinParser(data)
    parser.parse()
    regions = parser.get_regions()

    assert regions[0].start == 0
    assert sum(r.size for r in regions) == len(data)
    names = [getattr(r, 'name', None) for r in regions]
    assert names[:4] == ['BinHead', None, 'Offset[0]', 'Offset[1]']
    assert 'Package[1] Config' in names
