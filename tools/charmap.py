#!/usr/bin/env python3
"""
charmap.py - Build charset + charmap + colormap from an indexed raster, or cut it into sprites.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import List, Optional

import numpy as np

from block_dict import BlockDictionary
from gfx_encode import (
    CHAR_H,
    CHAR_W,
    SPRITE_H,
    SPRITE_W,
    ColorRoles,
    Raster,
    detect_hires,
    encode_block,
    is_empty,
)
from gfx_errors import AddressSpaceWarning
from gfx_options import EncodeOptions

ADDRESS_SPACE = 256

# attribute bit 3 flags cells encoded at hires width inside a multicolor image
HIRES_MARKER = 0x08
SPRITE_MC_FLAG = 0x80


def initial_roles(opts: EncodeOptions, raster: Raster) -> ColorRoles:
    bg = opts.bg if opts.bg is not None else raster.transparent
    return ColorRoles(bg=bg, mc1=opts.mc1, mc2=opts.mc2, fg=opts.fg)


def pick_pixel_width(
    opts: EncodeOptions, raster: Raster, x: int, y: int, w: int, h: int, bg: Optional[int]
) -> int:
    if opts.multicolor and detect_hires(raster, x, y, w, h, bg):
        return 1
    return opts.pixel_width


def attribute_byte(roles: ColorRoles, opts: EncodeOptions, hires_block: bool) -> int:
    color = roles.unique if roles.unique is not None else opts.default_color
    if not opts.multicolor:
        return color & 0x0F
    attr = color & 0x07
    if hires_block:
        attr |= HIRES_MARKER
    return attr


@dataclass
class CharmapResult:
    charset: BlockDictionary
    charmap: np.ndarray         # (rows, cols) charset indices, offset not applied
    colormap: np.ndarray        # (rows, cols) attribute bytes
    hires_mask: np.ndarray      # (rows, cols) hires cells inside a multicolor image
    offset: int = 0

    @property
    def cols(self) -> int:
        return int(self.charmap.shape[1])

    @property
    def rows(self) -> int:
        return int(self.charmap.shape[0])

    def charset_bytes(self) -> bytes:
        return b"".join(bytes(c) for c in self.charset)

    def charmap_bytes(self) -> bytes:
        return ((self.charmap + self.offset) & 0xFF).astype(np.uint8).tobytes()

    def colormap_bytes(self) -> bytes:
        return self.colormap.astype(np.uint8).tobytes()


class CharmapBuilder:
    def __init__(self, opts: EncodeOptions, capacity: Optional[int] = None, check_address_space: bool = True):
        self.opts = opts
        self.capacity = capacity
        self.check_address_space = check_address_space

    def build(self, raster: Raster) -> CharmapResult:
        cols = raster.width // CHAR_W
        rows = raster.height // CHAR_H
        capacity = self.capacity if self.capacity is not None else max(1, cols * rows)
        charset = BlockDictionary(capacity, "characters")
        charmap = np.zeros((rows, cols), dtype=np.int32)
        colormap = np.zeros((rows, cols), dtype=np.uint8)
        hires_mask = np.zeros((rows, cols), dtype=bool)
        defaults = initial_roles(self.opts, raster)

        for cy in range(rows):
            for cx in range(cols):
                x = cx * CHAR_W
                y = cy * CHAR_H
                width = pick_pixel_width(self.opts, raster, x, y, CHAR_W, CHAR_H, defaults.bg)
                block, roles = encode_block(raster, x, y, CHAR_W, CHAR_H, width, defaults)
                charmap[cy, cx] = charset.lookup_or_insert(block)
                hires = self.opts.multicolor and width == 1
                colormap[cy, cx] = attribute_byte(roles, self.opts, hires)
                hires_mask[cy, cx] = hires

        charset.promote_empty_to_front(charmap)

        offset = self.opts.offset
        overflow = len(charset) + offset - ADDRESS_SPACE
        if self.check_address_space and overflow > 0:
            warnings.warn(
                AddressSpaceWarning(
                    f"charmap overflows with {overflow} characters; "
                    f"use offset ${max(0, ADDRESS_SPACE - len(charset)):02X} instead"
                ),
                stacklevel=2,
            )
        return CharmapResult(
            charset=charset,
            charmap=charmap,
            colormap=colormap,
            hires_mask=hires_mask,
            offset=offset,
        )


@dataclass
class SpriteRecord:
    nr: int
    x: int
    y: int
    data: bytes                 # 63 pixel bytes + attribute byte
    hires: bool


def extract_sprites(raster: Raster, opts: EncodeOptions) -> List[SpriteRecord]:
    """Cut the raster into 24x21 sprites; blank ones are skipped."""
    defaults = initial_roles(opts, raster)
    sprites: List[SpriteRecord] = []
    for sy in range(opts.sprite_y, raster.height - SPRITE_H + 1, SPRITE_H):
        for sx in range(0, raster.width - SPRITE_W + 1, SPRITE_W):
            width = pick_pixel_width(opts, raster, sx, sy, SPRITE_W, SPRITE_H, defaults.bg)
            data, roles = encode_block(raster, sx, sy, SPRITE_W, SPRITE_H, width, defaults, sprite=True)
            if is_empty(data):
                continue
            attr = 0
            if opts.attributes:
                color = roles.unique if roles.unique is not None else opts.default_color
                attr = color & 0x0F
                if width == 2:
                    attr |= SPRITE_MC_FLAG
            sprites.append(SpriteRecord(nr=len(sprites), x=sx, y=sy, data=data + bytes([attr]), hires=width == 1))
    return sprites
