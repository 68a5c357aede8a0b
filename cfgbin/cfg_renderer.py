"""
Rendering module for decoded cfg bins.

This module is the "View" layer: it takes either the region list produced
by the BinaryCurator or a decoded CfgBin record tree and turns it into text
or JSON. Nothing here decodes bytes.
"""

import json
from typing import List

from .binary_curator import Region, UnclaimedRegion, ClaimedRegion

# A run is "long" if it's more than 2 full lines
LONG_RUN_THRESHOLD = 32


def hex_dump_lines(data: bytes, indent: str = "  ") -> List[str]:
    """
    Hex dump that collapses long runs of identical bytes into one line.

    Config payloads are often mostly 0x00 or 0xff padding; a collapsed run
    still states exactly how many bytes of which value it stands for.
    """
    lines = []
    i = 0
    while i < len(data):
        byte_val = data[i]
        run_length = 1
        while i + run_length < len(data) and data[i + run_length] == byte_val:
            run_length += 1

        if run_length >= LONG_RUN_THRESHOLD:
            lines.append(f"{indent}[... {run_length} bytes of 0x{byte_val:02x} ...]")
            i += run_length
        else:
            end = min(i + 16, len(data))
            chunk = data[i:end]
            hex_part = ' '.join(f'{b:02x}' for b in chunk)
            ascii_part = ''.join(chr(b) if 32 <= b <= 126 else '.' for b in chunk)
            lines.append(f"{indent}{i:04x}: {hex_part:<48} |{ascii_part}|")
            i += 16
    return lines


def render_regions_to_string(regions: List[Region], title: str = "Cfg Bin Layout") -> str:
    """
    Walks a region list in offset order. Claimed regions print their decoded
    value; unclaimed ones print a hex dump so no byte goes unshown.
    """
    lines = [f"\n{title}"]

    for region in regions:
        if isinstance(region, UnclaimedRegion):
            lines.append(f"[UNCLAIMED DATA]  Offset: 0x{region.start:x}, Size: {region.size} bytes")
            lines.extend(hex_dump_lines(region.raw_data, indent="  "))

        elif isinstance(region, ClaimedRegion):
            parsed_str = str(region.parsed_value) if region.parsed_value is not None else ""
            if "\n" in parsed_str:
                lines.append(f"[{region.name}]  Offset: 0x{region.start:x}, Size: {region.size} bytes")
                lines.extend(f"  {line}" for line in parsed_str.split("\n"))
            else:
                lines.append(f"[{region.name}]  Offset: 0x{region.start:x}, Size: {region.size} bytes  {parsed_str}")

    return "\n".join(lines)


# --- Record tree views ---

def _byte_list(raw: bytes) -> List[int]:
    return list(raw)


def _reg_to_dict(reg) -> dict:
    return {"addr": reg.addr, "reserved1": reg.reserved1, "reserved2": reg.reserved2}


def cfg_bin_to_dict(cfg_bin) -> dict:
    """
    Plain dict view of a CfgBin, ready for json.dumps.

    Byte arrays become lists of ints. Package payloads are left out; the
    same bytes appear once under ic_configs.
    """
    head = cfg_bin.head
    packages = []
    for package in cfg_bin.packages:
        info = package.const_info
        reg_info = {name: _reg_to_dict(reg) for name, reg in package.reg_info.registers()}
        reg_info["reserved"] = _byte_list(package.reg_info.reserved)
        packages.append({
            "const_info": {
                "pkg_len": info.pkg_len,
                "ic_type": _byte_list(info.ic_type),
                "cfg_type": info.cfg_type,
                "sensor_id": info.sensor_id,
                "hw_pid": _byte_list(info.hw_pid),
                "hw_vid": _byte_list(info.hw_vid),
                "fw_mask": _byte_list(info.fw_mask),
                "fw_patch": _byte_list(info.fw_patch),
                "x_res_offset": info.x_res_offset,
                "y_res_offset": info.y_res_offset,
                "trigger_offset": info.trigger_offset,
            },
            "reg_info": reg_info,
            "pkg_len": package.pkg_len,
        })

    return {
        "head": {
            "bin_len": head.bin_len,
            "checksum": head.checksum,
            "bin_version": _byte_list(head.bin_version),
            "pkg_num": head.pkg_num,
        },
        "packages": packages,
        "ic_configs": {
            cfg_type: {"len": ic_config.len, "data": _byte_list(ic_config.data)}
            for cfg_type, ic_config in sorted(cfg_bin.ic_configs.items())
        },
    }


def render_json(cfg_bin, indent: int = 2) -> str:
    return json.dumps(cfg_bin_to_dict(cfg_bin), indent=indent)


def render_cfg_bin(cfg_bin, title: str = "Cfg Bin") -> str:
    """Human-readable report of every decoded field."""
    head = cfg_bin.head
    lines = [f"\n{title}", "=" * 60]
    lines.append(f"Head: {head}")

    for i, package in enumerate(cfg_bin.packages):
        lines.append("")
        lines.append(f"--- Package {i} @ 0x{package.offset:x}, pkg_len {package.pkg_len} ---")
        lines.append("  Const Info:")
        lines.extend(f"    {line}" for line in str(package.const_info).split("\n"))
        lines.append("  Reg Info:")
        lines.extend(f"    {line}" for line in str(package.reg_info).split("\n"))

    lines.append("")
    lines.append(f"IC Configs ({len(cfg_bin.ic_configs)}):")
    for cfg_type, ic_config in sorted(cfg_bin.ic_configs.items()):
        lines.append(f"  cfg_type {cfg_type}: {ic_config.len} bytes")
        lines.extend(hex_dump_lines(ic_config.data, indent="    "))

    return "\n".join(lines)
