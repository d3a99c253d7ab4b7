#!/usr/bin/env python3
"""
spritec.py - Indexed image -> C64 sprites, or charset + charmap (+ colormap), as assembler source.

Usage:
  python tools/spritec.py ship-mc12.png > ship.asm
  python tools/spritec.py font-ch40.png -o gen/font.asm --bin-dir gen/assets
  python tools/spritec.py level-mc1b-ch00.png --colors --preview-dir debug/preview

Encoding options are read from tokens in the file name (see gfx_options.py) and
can be overridden on the command line. Each input is converted independently;
a failing input is reported and the remaining inputs are still converted.
"""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from asm_emit import DEFAULT_PREFIX, charmap_sections, emit_charmap, emit_sprites, header
from charmap import CharmapBuilder, extract_sprites, initial_roles
from gfx_encode import load_indexed_image
from gfx_errors import ErrorCollector, GfxError, describe, recording_warnings
from gfx_options import EncodeOptions, add_option_args, options_from_args, options_from_name
from gfx_preview import render_charmap, save_preview

TOOL_NAME = "spritec"


@dataclass
class Conversion:
    path: str
    text: str
    sections: Dict[str, bytes] = field(default_factory=dict)
    preview: Optional[np.ndarray] = None
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)    # failures that did not abort the whole input


def resolve_options(path: str, args: Optional[argparse.Namespace] = None) -> EncodeOptions:
    opts = options_from_name(os.path.basename(path))
    if args is not None:
        opts = options_from_args(args, opts)
    return opts


def convert_file(
    path: str,
    opts: EncodeOptions,
    prefix: str = DEFAULT_PREFIX,
    now: Optional[datetime] = None,
) -> Conversion:
    raster = load_indexed_image(path)
    conv = Conversion(path=path, text=header(TOOL_NAME, path, now))

    if not opts.charset_mode:
        sprites = extract_sprites(raster, opts)
        conv.text += emit_sprites(sprites, prefix)
        conv.sections["sprites"] = b"".join(s.data for s in sprites)
        return conv

    with recording_warnings(conv.warnings):
        res = CharmapBuilder(opts).build(raster)
    conv.text += emit_charmap(res, opts.attributes, prefix)
    conv.sections.update(charmap_sections(res, opts.attributes))
    roles = initial_roles(opts, raster)
    conv.preview = render_charmap(res, opts.multicolor, roles.bg, roles.mc1, roles.mc2)
    return conv


def write_side_outputs(conv: Conversion, bin_dir: str, preview_dir: str) -> None:
    stem = os.path.splitext(os.path.basename(conv.path))[0]
    if bin_dir:
        os.makedirs(bin_dir, exist_ok=True)
        for name, data in conv.sections.items():
            out = os.path.join(bin_dir, f"{stem}_{name}.bin")
            with open(out, "wb") as f:
                f.write(data)
            print(f"Wrote {out} ({len(data)} bytes)", file=sys.stderr)
    if preview_dir and conv.preview is not None:
        os.makedirs(preview_dir, exist_ok=True)
        out = os.path.join(preview_dir, f"{stem}_preview.png")
        save_preview(out, conv.preview)
        print(f"Wrote {out}", file=sys.stderr)


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Convert indexed images to C64 sprites or charsets")
    ap.add_argument("inputs", nargs="+", help="Indexed (palette) PNG/GIF images")
    ap.add_argument("-o", "--output", default="", help="Output .asm (default: stdout)")
    ap.add_argument("--bin-dir", default="", help="Also write each section as <image>_<section>.bin")
    ap.add_argument("--preview-dir", default="", help="Write <image>_preview.png for charset conversions")
    ap.add_argument("--prefix", default=DEFAULT_PREFIX, help="Byte directive, e.g. '.byte ' for KickAssembler")
    add_option_args(ap)
    args = ap.parse_args(argv)

    try:
        options_from_args(args, EncodeOptions())
    except ValueError as e:
        ap.error(str(e))

    errors = ErrorCollector()
    chunks: List[str] = []
    for path in args.inputs:
        try:
            conv = convert_file(path, resolve_options(path, args), args.prefix)
        except GfxError as e:
            errors.add_error(describe(path, e))
            continue
        for err in conv.errors:
            errors.add_error(err)
        for w in conv.warnings:
            print(f"{path}: warning: {w}", file=sys.stderr)
        chunks.append(conv.text)
        write_side_outputs(conv, args.bin_dir, args.preview_dir)

    text = "".join(chunks)
    if args.output:
        out_dir = os.path.dirname(args.output)
        if out_dir:
            os.makedirs(out_dir, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            f.write(text)
        print(f"Wrote {args.output}")
    else:
        sys.stdout.write(text)

    errors.report_and_exit(f"{TOOL_NAME}: ")


if __name__ == "__main__":
    main()
