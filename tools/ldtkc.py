#!/usr/bin/env python3
"""
ldtkc.py - LDtk project -> per level/layer tilemap, SoA tiles, optimized charset and entity rows.

Usage:
  python tools/ldtkc.py world-ch40.ldtk > world.asm
  python tools/ldtkc.py world-ch4001.ldtk -o gen/world.asm --bin-dir gen/assets

Every tile layer references a tileset image. The image is converted to a
charset + charmap with the options found in its own file name (always charset
mode, offset 0). The tile grid is then assembled from that charmap; the
offset and empty character slot of the resulting charset come from the
.ldtk file name (-chXX / -chXXYY) or --charset / --empty-slot.

A broken project file aborts that file. A broken layer (missing tileset,
incomplete grid, too many tiles) is reported and the next layer is converted.
"""

from __future__ import annotations

import argparse
import os
import sys
from datetime import datetime
from typing import Dict, List, Optional

from asm_emit import DEFAULT_PREFIX, emit_entities, emit_tiles, header, tile_sections
from charmap import CharmapBuilder, CharmapResult
from gfx_encode import CHAR_W, load_indexed_image
from gfx_errors import (
    ErrorCollector,
    FormatError,
    GfxError,
    IncompleteDataError,
    describe,
    recording_warnings,
)
from gfx_options import EncodeOptions, add_option_args, options_from_args, options_from_name
from ldtk_parser import EntityLayerDef, LevelDef, TileLayerDef, parse_ldtk
from spritec import Conversion, resolve_options, write_side_outputs
from tile_assembler import TileAssembler, order_entities

TOOL_NAME = "ldtkc"


def tileset_options(path: str, args: Optional[argparse.Namespace] = None) -> EncodeOptions:
    opts = options_from_name(os.path.basename(path))
    if args is not None:
        opts = options_from_args(args, opts)
    return opts.copy(char_offset=0, empty_slot=None)


class TilesetCache:
    """Tileset images converted once per run, keyed by path."""

    def __init__(self, args: Optional[argparse.Namespace] = None):
        self.args = args
        self._built: Dict[str, CharmapResult] = {}
        self._options: Dict[str, EncodeOptions] = {}

    def options(self, path: str) -> EncodeOptions:
        if path not in self._options:
            self._options[path] = tileset_options(path, self.args)
        return self._options[path]

    def charmap(self, path: str) -> CharmapResult:
        if path not in self._built:
            builder = CharmapBuilder(self.options(path), check_address_space=False)
            self._built[path] = builder.build(load_indexed_image(path))
        return self._built[path]


def convert_tile_layer(
    source: str,
    level: LevelDef,
    layer: TileLayerDef,
    level_opts: EncodeOptions,
    tilesets: TilesetCache,
    conv: Conversion,
    prefix: str = DEFAULT_PREFIX,
) -> None:
    if layer.grid_size <= 0 or layer.grid_size % CHAR_W:
        raise FormatError(
            source,
            f"level '{level.identifier}' layer '{layer.identifier}': "
            f"grid size {layer.grid_size} is not a multiple of {CHAR_W}",
        )
    opts = tilesets.options(layer.tileset_path)
    assembler = TileAssembler(
        tilesets.charmap(layer.tileset_path),
        layer.grid_size // CHAR_W,
        policy=level_opts.empty_policy,
        offset=level_opts.offset,
        empty_slot=level_opts.empty_slot,
        source=layer.tileset_path,
    )
    with recording_warnings(conv.warnings):
        res = assembler.assemble(layer.cells, layer.width, layer.height, level.identifier, layer.identifier)

    conv.text += emit_tiles(res, level.identifier, layer.identifier, layer.tileset_path, opts.attributes, prefix)
    for name, data in tile_sections(res, opts.attributes).items():
        conv.sections[f"{level.identifier}_{layer.identifier}_{name}"] = data


def convert_entity_layer(level: LevelDef, layer: EntityLayerDef, conv: Conversion, prefix: str = DEFAULT_PREFIX) -> None:
    entities = order_entities(layer.entities)
    conv.text += emit_entities(entities, layer.identifier, prefix)
    conv.sections[f"{level.identifier}_{layer.identifier}_entities"] = b"".join(
        bytes([e.x & 0xFF, e.y & 0xFF, e.width & 0xFF, e.value & 0xFF]) for e in entities
    )


def convert_file(
    path: str,
    args: Optional[argparse.Namespace] = None,
    prefix: str = DEFAULT_PREFIX,
    now: Optional[datetime] = None,
) -> Conversion:
    project = parse_ldtk(path)
    level_opts = resolve_options(path, args)
    tilesets = TilesetCache(args)
    conv = Conversion(path=path, text=header(TOOL_NAME, path, now))

    for level in project.levels:
        for layer in level.tile_layers:
            try:
                convert_tile_layer(path, level, layer, level_opts, tilesets, conv, prefix)
            except GfxError as e:
                msg = describe(path, e)
                if not isinstance(e, IncompleteDataError):
                    msg += f" (level '{level.identifier}', layer '{layer.identifier}')"
                conv.errors.append(msg)
        for layer in level.entity_layers:
            convert_entity_layer(level, layer, conv, prefix)
    return conv


def main(argv: Optional[List[str]] = None) -> None:
    ap = argparse.ArgumentParser(description="Convert LDtk projects to C64 tilemaps, tiles and charsets")
    ap.add_argument("inputs", nargs="+", help="LDtk project files (.ldtk)")
    ap.add_argument("-o", "--output", default="", help="Output .asm (default: stdout)")
    ap.add_argument("--bin-dir", default="", help="Also write each section as <project>_<level>_<layer>_<section>.bin")
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
            conv = convert_file(path, args, args.prefix)
        except GfxError as e:
            errors.add_error(describe(path, e))
            continue
        for err in conv.errors:
            errors.add_error(err)
        for w in conv.warnings:
            print(f"{path}: warning: {w}", file=sys.stderr)
        chunks.append(conv.text)
        write_side_outputs(conv, args.bin_dir, "")

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
