"""
Cfg Bin Parsers

This package decodes touch-controller cfg bin files into record trees.
"""

# Re-export commonly used names for convenience
from .cfg_records import (
    BinHead, CfgReg, ConstInfo, RegInfo, Package, IcConfig, CfgBin,
    CFG_MAX_SIZE, CONST_INFO_LEN, REG_INFO_LEN, PKG_HEAD_LEN, CFG_BIN_HEAD_LEN,
)
from .cfg_bin_parser import (
    CfgBinParser, decode, decode_head, compute_checksum, verify_bin,
    read_offset, resolve_package_ranges,
)

__all__ = [
    'BinHead',
    'CfgReg',
    'ConstInfo',
    'RegInfo',
    'Package',
    'IcConfig',
    'CfgBin',
    'CFG_MAX_SIZE',
    'CONST_INFO_LEN',
    'REG_INFO_LEN',
    'PKG_HEAD_LEN',
    'CFG_BIN_HEAD_LEN',
    'CfgBinParser',
    'decode',
    'decode_head',
    'compute_checksum',
    'verify_bin',
    'read_offset',
    'resolve_package_ranges',
]
