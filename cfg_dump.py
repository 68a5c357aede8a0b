#!/usr/bin/env python3
"""
Dump a touch-controller cfg bin file.

Usage:
  python3 cfg_dump.py <cfg.bin> [--json] [--regions] [--verbose]

  (default)   field-by-field text report of header, packages and configs
  --json      the whole decoded record tree as pretty JSON
  --regions   byte layout of the file: every decoded structure plus
              every byte nothing claimed
  --verbose   debug logging on stderr
"""

import logging
import sys

from cfgbin import CfgBinError, render_cfg_bin, render_json, render_regions_to_string
from parsers import CfgBinParser

log = logging.getLogger("cfg_dump")

USAGE = "Usage: python3 cfg_dump.py <cfg.bin> [--json] [--regions] [--verbose]"


def dump_cfg_bin(filepath, as_json=False, show_regions=False):
    """Reads and decodes `filepath`, returning the rendered report."""
    with open(filepath, 'rb') as f:
        data = f.read()
    log.info("read %d bytes from %s", len(data), filepath)

    parser = CfgBinParser(data)
    cfg_bin = parser.parse()

    if as_json:
        return render_json(cfg_bin)
    if show_regions:
        return render_regions_to_string(parser.get_regions(), f"Cfg Bin Layout: {filepath}")
    return render_cfg_bin(cfg_bin, f"Cfg Bin: {filepath}")


def main(argv=None):
    args = list(sys.argv[1:] if argv is None else argv)
    as_json = '--json' in args
    show_regions = '--regions' in args
    verbose = '--verbose' in args
    args = [a for a in args if a not in ('--json', '--regions', '--verbose')]

    if len(args) != 1 or args[0].startswith('--') or (as_json and show_regions):
        print(USAGE, file=sys.stderr)
        return 1

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        print(dump_cfg_bin(args[0], as_json, show_regions))
    except OSError as e:
        print(f"ERROR: cannot read {args[0]}: {e}", file=sys.stderr)
        return 1
    except CfgBinError as e:
        print(f"ERROR: {args[0]} is not a valid cfg bin ({type(e).__name__}): {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
