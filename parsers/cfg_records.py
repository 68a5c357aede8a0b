# cfg_records.py - Record types and fixed layout of a touch-controller cfg bin
"""
Record types decoded from a cfg bin.

File layout (all integers little-endian, no padding):

    0x00  bin_len      u32   total file length
    0x04  checksum     u8    sum of bytes[5:] modulo 256
    0x05  bin_version  4 bytes
    0x09  pkg_num      u8
    0x0a  reserved     6 bytes
    0x10  offset table pkg_num x u16, start of each package
    ...   packages     ConstInfo (56) + RegInfo (65) + config payload

Each record class decodes itself from exactly its own fixed-size slice with
struct; callers are responsible for handing over a slice of the right size
(the BinaryCurator does that).
"""

import struct
from dataclasses import dataclass, field
from typing import List, Mapping, Tuple

from cfgbin.errors import InvalidSize

BIN_VERSION_START_INDEX = 5
BIN_HEAD_RESERVED_LEN = 6
CFG_OFFSET_LEN = 2
IC_TYPE_NAME_MAX_LEN = 15
CFG_MAX_SIZE = 4096

BIN_HEAD_FORMAT = '<IB4sB'
CFG_REG_FORMAT = '<HBB'
CONST_INFO_FORMAT = '<I15sBB8s8s9s4sHHH'
REG_INFO_RESERVED_LEN = 9

REGISTER_NAMES = (
    'cfg_send_flag', 'version_base', 'pid', 'vid', 'sensor_id', 'fw_mask',
    'fw_status', 'cfg_addr', 'esd', 'command', 'coor', 'gesture',
    'fw_request', 'proximity',
)

BIN_HEAD_LEN = struct.calcsize(BIN_HEAD_FORMAT)                       # 10
CFG_BIN_HEAD_LEN = BIN_HEAD_LEN + BIN_HEAD_RESERVED_LEN               # 16
CFG_REG_LEN = struct.calcsize(CFG_REG_FORMAT)                         # 4
CONST_INFO_LEN = struct.calcsize(CONST_INFO_FORMAT)                   # 56
REG_INFO_LEN = CFG_REG_LEN * len(REGISTER_NAMES) + REG_INFO_RESERVED_LEN  # 65
PKG_HEAD_LEN = CONST_INFO_LEN + REG_INFO_LEN                          # 121


def format_int(value): return f"{value} (0x{value:x})"


def format_bytes(raw: bytes) -> str:
    return raw.hex(' ') if raw else "(empty)"


@dataclass(frozen=True)
class BinHead:
    bin_len: int
    checksum: int
    bin_version: bytes
    pkg_num: int

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'BinHead':
        bin_len, checksum, bin_version, pkg_num = struct.unpack(BIN_HEAD_FORMAT, raw)
        return cls(bin_len=bin_len, checksum=checksum, bin_version=bin_version, pkg_num=pkg_num)

    def __str__(self):
        return (f"bin_len: {format_int(self.bin_len)}, checksum: 0x{self.checksum:02x}, "
                f"bin_version: {format_bytes(self.bin_version)}, pkg_num: {self.pkg_num}")


@dataclass(frozen=True)
class CfgReg:
    """One register slot: a 16-bit address and two reserved bytes."""
    addr: int
    reserved1: int = 0
    reserved2: int = 0

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'CfgReg':
        addr, reserved1, reserved2 = struct.unpack(CFG_REG_FORMAT, raw)
        return cls(addr=addr, reserved1=reserved1, reserved2=reserved2)

    def __str__(self):
        return f"addr=0x{self.addr:04x} reserved=({self.reserved1:02x} {self.reserved2:02x})"


@dataclass(frozen=True)
class ConstInfo:
    pkg_len: int
    ic_type: bytes
    cfg_type: int
    sensor_id: int
    hw_pid: bytes
    hw_vid: bytes
    fw_mask: bytes
    fw_patch: bytes
    x_res_offset: int
    y_res_offset: int
    trigger_offset: int

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'ConstInfo':
        (pkg_len, ic_type, cfg_type, sensor_id, hw_pid, hw_vid, fw_mask, fw_patch,
         x_res_offset, y_res_offset, trigger_offset) = struct.unpack(CONST_INFO_FORMAT, raw)
        return cls(
            pkg_len=pkg_len,
            ic_type=ic_type,
            cfg_type=cfg_type,
            sensor_id=sensor_id,
            hw_pid=hw_pid,
            hw_vid=hw_vid,
            fw_mask=fw_mask,
            fw_patch=fw_patch,
            x_res_offset=x_res_offset,
            y_res_offset=y_res_offset,
            trigger_offset=trigger_offset,
        )

    @property
    def ic_type_name(self) -> str:
        """ic_type up to the first NUL, as printable text."""
        return self.ic_type.split(b'\0', 1)[0].decode('ascii', errors='replace')

    def __str__(self):
        return "\n".join([
            f"pkg_len: {format_int(self.pkg_len)}",
            f"ic_type: '{self.ic_type_name}' [{format_bytes(self.ic_type)}]",
            f"cfg_type: {format_int(self.cfg_type)}",
            f"sensor_id: {format_int(self.sensor_id)}",
            f"hw_pid: {format_bytes(self.hw_pid)}",
            f"hw_vid: {format_bytes(self.hw_vid)}",
            f"fw_mask: {format_bytes(self.fw_mask)}",
            f"fw_patch: {format_bytes(self.fw_patch)}",
            f"x_res_offset: {format_int(self.x_res_offset)}",
            f"y_res_offset: {format_int(self.y_res_offset)}",
            f"trigger_offset: {format_int(self.trigger_offset)}",
        ])


@dataclass(frozen=True)
class RegInfo:
    cfg_send_flag: CfgReg
    version_base: CfgReg
    pid: CfgReg
    vid: CfgReg
    sensor_id: CfgReg
    fw_mask: CfgReg
    fw_status: CfgReg
    cfg_addr: CfgReg
    esd: CfgReg
    command: CfgReg
    coor: CfgReg
    gesture: CfgReg
    fw_request: CfgReg
    proximity: CfgReg
    reserved: bytes

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'RegInfo':
        registers = {}
        for i, name in enumerate(REGISTER_NAMES):
            start = i * CFG_REG_LEN
            registers[name] = CfgReg.from_bytes(raw[start:start + CFG_REG_LEN])
        reserved = raw[len(REGISTER_NAMES) * CFG_REG_LEN:REG_INFO_LEN]
        return cls(reserved=bytes(reserved), **registers)

    def registers(self) -> List[tuple]:
        """(name, CfgReg) pairs in wire order."""
        return [(name, getattr(self, name)) for name in REGISTER_NAMES]

    def __str__(self):
        lines = [f"{name}: {reg}" for name, reg in self.registers()]
        lines.append(f"reserved: {format_bytes(self.reserved)}")
        return "\n".join(lines)


@dataclass(frozen=True)
class IcConfig:
    """A copied config payload, at most CFG_MAX_SIZE bytes."""
    len: int
    data: bytes

    def __post_init__(self):
        if self.len < 0 or self.len > CFG_MAX_SIZE:
            raise InvalidSize(f"Config payload of {self.len} bytes exceeds {CFG_MAX_SIZE}")
        if self.len != len(self.data):
            raise InvalidSize(f"Config length {self.len} does not match {len(self.data)} data bytes")


@dataclass(frozen=True)
class Package:
    const_info: ConstInfo
    reg_info: RegInfo
    pkg_len: int
    offset: int
    cfg: bytes = field(repr=False)


@dataclass(frozen=True)
class CfgBin:
    """Decoded file. packages is a tuple and ic_configs a read-only mapping."""
    head: BinHead
    packages: Tuple[Package, ...]
    ic_configs: Mapping[int, IcConfig]
