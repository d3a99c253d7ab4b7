#!/usr/bin/env python3
"""
build_assets.py - Convert every image and LDtk project in a directory in one pass.

Usage:
  python tools/build_assets.py
  python tools/build_assets.py --assets art --out gen
  python tools/build_assets.py --stamp debug/assets.stamp --depfile debug/assets.d

*.png / *.gif go through spritec, *.ldtk through ldtkc. Images that an LDtk
project in the same directory uses as its tileset are converted as part of
that project only. Each input gets <out>/<name>.asm plus raw sections under
<out>/assets; a failing input is reported and the rest are still built.
"""

from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path
from typing import List, Optional, Set

import ldtkc
import spritec
from asm_emit import DEFAULT_PREFIX
from gen_paths import ANALYSIS_ROOT, GEN_ROOT
from gfx_errors import ErrorCollector, GfxError, describe
from ldtk_parser import parse_ldtk

IMAGE_SUFFIXES = (".png", ".gif")
LDTK_SUFFIX = ".ldtk"


def referenced_tilesets(projects: List[Path]) -> Set[Path]:
    used: Set[Path] = set()
    for path in projects:
        try:
            project = parse_ldtk(str(path))
        except GfxError:
            # reported when the project itself is converted
            continue
        for level in project.levels:
            for layer in level.tile_layers:
                used.add(Path(layer.tileset_path).resolve())
    return used


def collect_inputs(assets_dir: Path) -> List[Path]:
    files = sorted(p for p in assets_dir.iterdir() if p.is_file())
    projects = [p for p in files if p.suffix.lower() == LDTK_SUFFIX]
    tilesets = referenced_tilesets(projects)
    images = [p for p in files if p.suffix.lower() in IMAGE_SUFFIXES and p.resolve() not in tilesets]
    return images + projects


def convert(path: Path, prefix: str = DEFAULT_PREFIX) -> spritec.Conversion:
    if path.suffix.lower() == LDTK_SUFFIX:
        return ldtkc.convert_file(str(path), prefix=prefix)
    return spritec.convert_file(str(path), spritec.resolve_options(str(path)), prefix)


def build_assets(
    assets_dir: Path,
    out_dir: Path,
    preview_dir: Optional[Path],
    errors: ErrorCollector,
    prefix: str = DEFAULT_PREFIX,
) -> List[Path]:
    """Returns the inputs that were converted, failed ones included."""
    inputs = collect_inputs(assets_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    for path in inputs:
        try:
            conv = convert(path, prefix)
        except GfxError as e:
            errors.add_error(describe(str(path), e))
            continue
        for err in conv.errors:
            errors.add_error(err)
        for w in conv.warnings:
            print(f"{path}: warning: {w}", file=sys.stderr)

        asm_path = out_dir / f"{path.stem}.asm"
        asm_path.write_text(conv.text, encoding="utf-8")
        print(f"Wrote {asm_path}")
        spritec.write_side_outputs(conv, str(out_dir / "assets"), str(preview_dir) if preview_dir else "")
    return inputs


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Convert all images and LDtk projects in a directory")
    ap.add_argument("--assets", default="assets", help="Directory containing .png/.gif/.ldtk inputs")
    ap.add_argument("--out", default=GEN_ROOT, help="Output directory for .asm and .bin files")
    ap.add_argument(
        "--preview-dir",
        default=os.path.join(ANALYSIS_ROOT, "preview"),
        help="Directory for charset previews ('' disables)",
    )
    ap.add_argument("--prefix", default=DEFAULT_PREFIX, help="Byte directive, e.g. '.byte ' for KickAssembler")
    ap.add_argument("--stamp", default="", help="Stamp file written after a successful build")
    ap.add_argument("--depfile", default="", help="Depfile listing every input (for ninja/make)")
    args = ap.parse_args(argv)

    assets_dir = Path(args.assets)
    if not assets_dir.is_dir():
        print(f"Assets dir not found: {assets_dir}", file=sys.stderr)
        sys.exit(1)

    errors = ErrorCollector()
    preview_dir = Path(args.preview_dir) if args.preview_dir else None
    inputs = build_assets(assets_dir, Path(args.out), preview_dir, errors, args.prefix)
    if not inputs:
        print(f"No .png/.gif/.ldtk files found in {assets_dir}", file=sys.stderr)
        sys.exit(1)

    errors.report_and_exit("build_assets: ")

    if args.stamp:
        stamp_path = Path(args.stamp)
        stamp_path.parent.mkdir(parents=True, exist_ok=True)
        stamp_path.write_text("ok\n", encoding="utf-8")
        if args.depfile:
            dep_path = Path(args.depfile)
            dep_path.parent.mkdir(parents=True, exist_ok=True)
            deps = " ".join(str(p) for p in inputs)
            dep_path.write_text(f"{stamp_path}: {deps}\n", encoding="utf-8")


if __name__ == "__main__":
    main()
