#!/usr/bin/env python3
"""
asm_emit.py - Render encoded sections as assembler byte rows.

ACME style uses "!byte ", KickAssembler expects ".byte ", DreamAss uses ".db ".
"""

from __future__ import annotations

import os
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from charmap import CharmapResult, SpriteRecord
from gfx_encode import CHAR_H, SPRITE_W
from ldtk_parser import EntityDef
from tile_assembler import TileSetResult

DEFAULT_PREFIX = "!byte "


def byte_rows(data: bytes, wrap: int, prefix: str = DEFAULT_PREFIX) -> str:
    wrap = max(1, wrap)
    lines: List[str] = []
    for i in range(0, len(data), wrap):
        chunk = data[i:i + wrap]
        lines.append(prefix + ",".join(f"${b:02x}" for b in chunk) + "\n")
    return "".join(lines)


def header(tool: str, path: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"; {tool} '{os.path.basename(path)}' on {now.strftime('%d-%b-%Y %H:%M:%S')}\n"


def emit_charmap(res: CharmapResult, attributes: bool, prefix: str = DEFAULT_PREFIX) -> str:
    out: List[str] = []
    count = len(res.charset)
    out.append(f"; charset {count * CHAR_H} bytes ({count} uniques)\n")
    out.append(byte_rows(res.charset_bytes(), CHAR_H, prefix))
    out.append(f"; charmap {res.cols * res.rows} bytes ({res.cols} x {res.rows})\n")
    out.append(byte_rows(res.charmap_bytes(), res.cols, prefix))
    if attributes:
        out.append(f"; colormap {res.cols * res.rows} bytes ({res.cols} x {res.rows})\n")
        out.append(byte_rows(res.colormap_bytes(), res.cols, prefix))
    return "".join(out)


def emit_sprites(sprites: Sequence[SpriteRecord], prefix: str = DEFAULT_PREFIX) -> str:
    out: List[str] = []
    for s in sprites:
        out.append(f"; {s.nr} ({s.x},{s.y})\n")
        out.append(byte_rows(s.data, SPRITE_W, prefix))
    return "".join(out)


def emit_tiles(
    res: TileSetResult,
    level: str,
    layer: str,
    tileset_path: str,
    attributes: bool,
    prefix: str = DEFAULT_PREFIX,
) -> str:
    t = res.tile_size
    n = t * t
    h, w = res.tilemap.shape
    out: List[str] = []
    out.append(f"; level: '{level}', layer '{layer}', tileset '{os.path.basename(tileset_path)}'\n")
    out.append(f"; tilemap {w * h} bytes ({w} x {h})\n")
    out.append(byte_rows(res.tilemap_bytes(), w, prefix))

    out.append(f"; tiles {res.count * n} bytes {t}x{t} SoA {res.count} x {n} ({res.count} uniques)\n")
    for plane in res.char_planes():
        out.append(byte_rows(plane, max(1, res.count), prefix))
    if attributes:
        out.append(f"; tile colors {res.count * n} bytes {t}x{t} SoA {res.count} x {n}\n")
        for plane in res.color_planes():
            out.append(byte_rows(plane, max(1, res.count), prefix))

    cs = res.charset
    out.append(f"; charset {len(cs.chars) * CHAR_H} bytes ({cs.count} uniques)\n")
    if cs.first != 0:
        out.append(f"; NOTE chars start at index {cs.first} (byteoffset {cs.first * CHAR_H})\n")
    if cs.empty_slot is not None:
        last = cs.first + len(cs.chars)
        if cs.first <= cs.empty_slot < last:
            out.append(f"; NOTE empty char is kept at place {cs.empty_slot} inside this charset\n")
        else:
            out.append(
                f"; NOTE empty char needs to be put at place {cs.empty_slot} "
                f"(offset {cs.empty_slot * CHAR_H})!\n"
            )
    out.append(byte_rows(cs.to_bytes(), CHAR_H, prefix))
    return "".join(out)


def emit_entities(entities: Sequence[EntityDef], layer: str, prefix: str = DEFAULT_PREFIX) -> str:
    out: List[str] = [f"; entities layer '{layer}' {len(entities)} x 4 bytes (x, y, width, value)\n"]
    for e in entities:
        row = bytes([e.x & 0xFF, e.y & 0xFF, e.width & 0xFF, e.value & 0xFF])
        out.append(byte_rows(row, 4, prefix).rstrip("\n") + f" ; {e.identifier}\n")
    return "".join(out)


def charmap_sections(res: CharmapResult, attributes: bool) -> Dict[str, bytes]:
    sections = {
        "charset": res.charset_bytes(),
        "charmap": res.charmap_bytes(),
    }
    if attributes:
        sections["colormap"] = res.colormap_bytes()
    return sections


def tile_sections(res: TileSetResult, attributes: bool) -> Dict[str, bytes]:
    sections = {
        "tilemap": res.tilemap_bytes(),
        "tiles": b"".join(res.char_planes()),
        "charset": res.charset.to_bytes(),
    }
    if attributes:
        sections["tilecolors"] = b"".join(res.color_planes())
    return sections
