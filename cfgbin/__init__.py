"""
cfgbin - Byte-level utilities for touch-controller cfg bin files
"""

from .binary_curator import BinaryCurator, Region, ClaimedRegion, UnclaimedRegion
from .cfg_renderer import (
    render_regions_to_string, hex_dump_lines,
    cfg_bin_to_dict, render_json, render_cfg_bin,
)
from .errors import CfgBinError, InvalidSize, LengthCheckFail, ChecksumMismatch, InvalidOffset

__all__ = [
    'BinaryCurator',
    'Region',
    'ClaimedRegion',
    'UnclaimedRegion',
    'render_regions_to_string',
    'hex_dump_lines',
    'cfg_bin_to_dict',
    'render_json',
    'render_cfg_bin',
    'CfgBinError',
    'InvalidSize',
    'LengthCheckFail',
    'ChecksumMismatch',
    'InvalidOffset',
]
