#!/usr/bin/env python3
"""
gfx_options.py - Resolved encoding options for spritec.py / ldtkc.py.

Options come from three places, later ones win:
  1. defaults (hires, background from the image's transparent index, sprite mode)
  2. tokens embedded in the file name, e.g. "ship-mc12-sy10.png"
  3. command line flags

Filename tokens (all values hex):
  -bgX      background color, forces hires
  -fgX      foreground color, forces hires ('1' = fg, anything else '0')
  -mcXY     multicolor 1 and 2, forces multicolor
  -mc       multicolor with learned roles
  -chXX     charset mode, character indices start at XX
  -chXXYY   as -chXX, and the empty character is placed at YY
  -syXX     first sprite row starts at y=XX
  -clX      emit attribute planes, X is the color used when none was found
"""

from __future__ import annotations

import argparse
import dataclasses
import enum
import re
from dataclasses import dataclass
from typing import List, Optional

BG_RE = re.compile(r"-bg([0-9a-fA-F])")
FG_RE = re.compile(r"-fg([0-9a-fA-F])")
MC_RE = re.compile(r"-mc(?:([0-9a-fA-F])([0-9a-fA-F]))?(?![0-9a-zA-Z])")
CH_RE = re.compile(r"-ch([0-9a-fA-F]{2})([0-9a-fA-F]{2})?")
SY_RE = re.compile(r"-sy([0-9a-fA-F]{2})")
CL_RE = re.compile(r"-cl([0-9a-fA-F])")


class EmptyPolicy(enum.Enum):
    MERGE = "merge"
    EXPLICIT_SLOT = "explicit-slot"


@dataclass
class EncodeOptions:
    pixel_width: int = 1            # 1 hires, 2 multicolor
    bg: Optional[int] = None        # None: transparent index, else first pixel
    fg: Optional[int] = None
    mc1: Optional[int] = None
    mc2: Optional[int] = None
    char_offset: Optional[int] = None   # None: sprite mode
    empty_slot: Optional[int] = None
    sprite_y: int = 0
    attributes: bool = False
    default_color: int = 0

    @property
    def multicolor(self) -> bool:
        return self.pixel_width == 2

    @property
    def charset_mode(self) -> bool:
        return self.char_offset is not None

    @property
    def offset(self) -> int:
        return self.char_offset or 0

    @property
    def empty_policy(self) -> EmptyPolicy:
        if self.empty_slot is None:
            return EmptyPolicy.MERGE
        return EmptyPolicy.EXPLICIT_SLOT

    def copy(self, **changes) -> "EncodeOptions":
        return dataclasses.replace(self, **changes)


def parse_num(s: str) -> int:
    s = s.strip()
    if s.startswith("$"):
        return int(s[1:], 16)
    return int(s, 0)


def parse_int_list(s: str, count: int) -> List[int]:
    parts = [p.strip() for p in s.split(",")]
    if len(parts) != count:
        raise ValueError(f"Expected {count} values, got {len(parts)}: {s}")
    return [parse_num(p) for p in parts]


def options_from_name(name: str, base: Optional[EncodeOptions] = None) -> EncodeOptions:
    opts = (base or EncodeOptions()).copy()

    m = BG_RE.search(name)
    if m:
        opts.bg = int(m.group(1), 16)
        opts.pixel_width = 1
    m = FG_RE.search(name)
    if m:
        opts.fg = int(m.group(1), 16)
        opts.pixel_width = 1
    m = MC_RE.search(name)
    if m:
        if m.group(1) is not None:
            opts.mc1 = int(m.group(1), 16)
            opts.mc2 = int(m.group(2), 16)
        opts.pixel_width = 2
    m = CH_RE.search(name)
    if m:
        opts.char_offset = int(m.group(1), 16)
        if m.group(2) is not None:
            opts.empty_slot = int(m.group(2), 16)
    m = SY_RE.search(name)
    if m:
        opts.sprite_y = int(m.group(1), 16)
    m = CL_RE.search(name)
    if m:
        opts.attributes = True
        opts.default_color = int(m.group(1), 16)
    return opts


def add_option_args(ap: argparse.ArgumentParser) -> None:
    g = ap.add_argument_group("encoding options (override filename tokens)")
    g.add_argument("--bg", default="", help="Background color index, forces hires")
    g.add_argument("--fg", default="", help="Foreground color index, forces hires")
    g.add_argument("--mc", default="", help="Multicolor pair MC1,MC2, forces multicolor")
    g.add_argument("--multicolor", action="store_true", help="Multicolor with learned color roles")
    g.add_argument("--charset", default="", help="Build a charset; value is the first character index")
    g.add_argument("--empty-slot", default="", help="Character index reserved for the empty character")
    g.add_argument("--sprite-y", default="", help="Y start of the first sprite row")
    g.add_argument("--colors", action="store_true", help="Emit attribute (color) planes")
    g.add_argument("--default-color", default="", help="Attribute color when a cell has none")


def options_from_args(args: argparse.Namespace, base: EncodeOptions) -> EncodeOptions:
    opts = base.copy()
    if args.bg:
        opts.bg = parse_num(args.bg)
        opts.pixel_width = 1
    if args.fg:
        opts.fg = parse_num(args.fg)
        opts.pixel_width = 1
    if args.multicolor:
        opts.pixel_width = 2
    if args.mc:
        opts.mc1, opts.mc2 = parse_int_list(args.mc, 2)
        opts.pixel_width = 2
    if args.charset:
        opts.char_offset = parse_num(args.charset)
    if args.empty_slot:
        opts.empty_slot = parse_num(args.empty_slot)
        if opts.char_offset is None:
            opts.char_offset = 0
    if args.sprite_y:
        opts.sprite_y = parse_num(args.sprite_y)
    if args.colors:
        opts.attributes = True
    if args.default_color:
        opts.attributes = True
        opts.default_color = parse_num(args.default_color)
    return opts
