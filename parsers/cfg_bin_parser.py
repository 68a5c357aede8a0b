# cfg_bin_parser.py - Decoder for touch-controller cfg bin files
"""
Decoder for touch-controller configuration binaries ("cfg bin").

Decoding is one pass over an in-memory buffer:

    1. BinHead (10 bytes) is read from the start of the buffer.
    2. bin_len must equal the buffer length, then the wrapping byte sum of
       bytes[5:] must equal the header checksum.
    3. The offset table at 0x10 is resolved into one (offset, length) range
       per package. A package ends where the next one starts; the last one
       runs to the end of the buffer.
    4. Each range is split into ConstInfo, RegInfo and the config payload.
       Payloads land in a registry keyed by cfg_type; a later package with
       the same cfg_type replaces the earlier entry.

Every range taken from the file is checked against the buffer before it
is read. Any failure raises a CfgBinError subclass and no result is
returned.
"""

import logging
import struct
from types import MappingProxyType
from typing import Dict, List, Tuple

from cfgbin import BinaryCurator, Region, hex_dump_lines
from cfgbin.errors import InvalidSize, LengthCheckFail, ChecksumMismatch, InvalidOffset
from .cfg_records import (
    BIN_HEAD_LEN, BIN_VERSION_START_INDEX, CFG_BIN_HEAD_LEN, CFG_OFFSET_LEN,
    CFG_MAX_SIZE, CONST_INFO_LEN, REG_INFO_LEN, PKG_HEAD_LEN,
    BinHead, ConstInfo, RegInfo, IcConfig, Package, CfgBin,
)

log = logging.getLogger(__name__)


def _as_bytes(data) -> bytes:
    if isinstance(data, bytes):
        return data
    if isinstance(data, (bytearray, memoryview)):
        return bytes(data)
    raise TypeError(f"Input data must be bytes, not {type(data).__name__}.")


# --- Header Decoder ---

def decode_head(data: bytes) -> BinHead:
    """Decodes the fixed BinHead from the start of the buffer."""
    if len(data) < BIN_HEAD_LEN:
        raise InvalidSize(f"Buffer of {len(data)} bytes is shorter than the {BIN_HEAD_LEN} byte header")
    return BinHead.from_bytes(data[:BIN_HEAD_LEN])


# --- Checksum Validator ---

def compute_checksum(data: bytes) -> int:
    """8-bit wrapping sum of every byte from bin_version to the end."""
    return sum(data[BIN_VERSION_START_INDEX:]) & 0xFF


def verify_bin(data: bytes, head: BinHead):
    """Length check first, then checksum."""
    if head.bin_len != len(data):
        raise LengthCheckFail(head.bin_len, len(data))
    checksum = compute_checksum(data)
    if checksum != head.checksum:
        raise ChecksumMismatch(head.checksum, checksum)


# --- Offset Table Resolver ---

def read_offset(data: bytes, index: int) -> int:
    """Reads offset table entry `index` as an unsigned 16-bit little-endian value."""
    pos = CFG_BIN_HEAD_LEN + index * CFG_OFFSET_LEN
    if pos + CFG_OFFSET_LEN > len(data):
        raise InvalidSize(f"Offset table entry {index} at 0x{pos:x} is past the end of the buffer")
    return struct.unpack_from('<H', data, pos)[0]


def resolve_package_ranges(data: bytes, pkg_num: int) -> List[Tuple[int, int]]:
    """
    Turns the offset table into one (offset, length) pair per package.

    Raises InvalidOffset when consecutive offsets do not increase, and
    InvalidSize when the table or a package range falls outside the buffer.
    """
    table_end = CFG_BIN_HEAD_LEN + pkg_num * CFG_OFFSET_LEN
    if pkg_num and table_end > len(data):
        raise InvalidSize(
            f"Offset table for {pkg_num} packages ends at 0x{table_end:x}, "
            f"buffer is {len(data)} bytes")

    ranges = []
    for i in range(pkg_num):
        offset = read_offset(data, i)
        if i == pkg_num - 1:
            end = len(data)
        else:
            end = read_offset(data, i + 1)
            if end <= offset:
                raise InvalidOffset(i, offset, end)

        if offset > len(data) or end > len(data) or end < offset:
            raise InvalidSize(
                f"Package {i} range 0x{offset:x}..0x{end:x} is outside a {len(data)} byte buffer")

        ranges.append((offset, end - offset))
        log.debug("package %d: offset 0x%x, length %d", i, offset, end - offset)
    return ranges


# --- Package Decoder ---

class CfgBinParser:
    """
    Parser for a complete cfg bin.

    Uses BinaryCurator internally so that, besides the CfgBin record tree,
    a full list of claimed and unclaimed regions is available for reports.
    """

    def __init__(self, data: bytes):
        self.data = _as_bytes(data)
        self.curator = BinaryCurator(self.data)
        self.head = None

    def parse(self) -> CfgBin:
        """Decodes the whole buffer, raising a CfgBinError on any defect."""
        # Each call starts from scratch; regions describe the latest parse only
        self.curator = BinaryCurator(self.data)
        self.head = self._parse_head()
        verify_bin(self.data, self.head)

        ranges = resolve_package_ranges(self.data, self.head.pkg_num)
        self._claim_offset_table(self.head.pkg_num)

        packages: List[Package] = []
        ic_configs: Dict[int, IcConfig] = {}
        for index, (offset, length) in enumerate(ranges):
            package = self.decode_package(offset, length, index)
            self._register_ic_config(ic_configs, package)
            packages.append(package)

        log.debug("decoded %d packages, %d ic configs", len(packages), len(ic_configs))
        return CfgBin(head=self.head, packages=tuple(packages), ic_configs=MappingProxyType(ic_configs))

    def get_regions(self) -> List[Region]:
        return self.curator.get_regions()

    def _parse_head(self) -> BinHead:
        # decode_head gives the size error; the claim only records the region
        head = decode_head(self.data)
        self.curator.seek(0)
        self.curator.claim("BinHead", BIN_HEAD_LEN, BinHead.from_bytes)
        log.debug("head: %s", head)
        return head

    def _claim_offset_table(self, pkg_num: int):
        if not pkg_num:
            return
        # The 6 reserved bytes after BinHead stay unclaimed
        self.curator.seek(CFG_BIN_HEAD_LEN)
        for i in range(pkg_num):
            self.curator.claim(
                f"Offset[{i}]",
                CFG_OFFSET_LEN,
                lambda d: f"0x{struct.unpack('<H', d)[0]:04x}"
            )

    def decode_package(self, offset: int, length: int, index: int) -> Package:
        """Splits one package range into ConstInfo, RegInfo and its payload."""
        self.curator.check_range(offset, length)
        cfg_len = length - PKG_HEAD_LEN
        if cfg_len < 0:
            raise InvalidSize(
                f"Package {index} is {length} bytes, smaller than its {PKG_HEAD_LEN} byte head")
        if cfg_len > CFG_MAX_SIZE:
            raise InvalidSize(
                f"Package {index} carries {cfg_len} config bytes, more than {CFG_MAX_SIZE}")

        self.curator.seek(offset)
        const_info = self.curator.claim(f"Package[{index}] ConstInfo", CONST_INFO_LEN, ConstInfo.from_bytes)
        reg_info = self.curator.claim(f"Package[{index}] RegInfo", REG_INFO_LEN, RegInfo.from_bytes)
        cfg = self.curator.claim(f"Package[{index}] Config", cfg_len, IcConfigView)

        if const_info.pkg_len != length:
            log.warning("package %d: embedded pkg_len %d differs from table span %d",
                        index, const_info.pkg_len, length)

        return Package(
            const_info=const_info,
            reg_info=reg_info,
            pkg_len=length,
            offset=offset,
            cfg=cfg.data,
        )

    def _register_ic_config(self, ic_configs: Dict[int, IcConfig], package: Package):
        cfg_type = package.const_info.cfg_type
        if cfg_type in ic_configs:
            log.debug("cfg_type %d seen again at 0x%x; replacing earlier config", cfg_type, package.offset)
        ic_configs[cfg_type] = IcConfig(len=len(package.cfg), data=package.cfg)


class IcConfigView:
    """Region value for a package payload; prints the payload in full."""

    def __init__(self, raw: bytes):
        self.data = bytes(raw)

    def __str__(self):
        lines = [f"{len(self.data)} config bytes"]
        lines.extend(hex_dump_lines(self.data, indent=""))
        return "\n".join(lines)


def decode(data: bytes) -> CfgBin:
    """Decodes a cfg bin buffer into a CfgBin."""
    return CfgBinParser(data).parse()
