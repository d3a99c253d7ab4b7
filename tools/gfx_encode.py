#!/usr/bin/env python3
"""
gfx_encode.py - Indexed raster access and C64 pixel packing.

Pixel codes:
  hires       fg set:   fg is '1', any other color '0'
              otherwise: bg is '0', any other color '1'
  multicolor  char:   bg '00', mc1 '01', mc2 '10', other '11'
              sprite: bg '00', mc1 '01', mc2 '11', other '10'

The char/sprite difference in the multicolor codes follows the VIC-II: color RAM
drives '11' for characters, the sprite color register drives '10' for sprites.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np
from PIL import Image

from gfx_errors import FormatError

CHAR_W = 8
CHAR_H = 8
SPRITE_W = 24
SPRITE_H = 21
SPRITE_BYTES = 64

HIRES_ROLES = (("bg", 0b0), ("unique", 0b1))
CHAR_MC_ROLES = (("bg", 0b00), ("mc1", 0b01), ("mc2", 0b10), ("unique", 0b11))
SPRITE_MC_ROLES = (("bg", 0b00), ("mc1", 0b01), ("mc2", 0b11), ("unique", 0b10))


@dataclass
class Raster:
    pixels: np.ndarray              # (height, width) palette indices
    transparent: Optional[int] = None
    path: str = ""

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def sample(self, x: int, y: int) -> int:
        return int(self.pixels[y, x])


def _transparent_index(info: dict) -> Optional[int]:
    t = info.get("transparency")
    if isinstance(t, int):
        return t
    if isinstance(t, (bytes, bytearray)):
        # tRNS alpha table: first fully transparent entry
        for i, alpha in enumerate(t):
            if alpha == 0:
                return i
    return None


def load_indexed_image(path: str) -> Raster:
    try:
        with Image.open(path) as img:
            img.load()
            if img.mode != "P":
                raise FormatError(path, "image should have palette")
            pixels = np.array(img, dtype=np.uint8)
            transparent = _transparent_index(img.info)
    except OSError as e:
        raise FormatError(path, f"cannot read image: {e}") from e
    return Raster(pixels=pixels, transparent=transparent, path=path)


@dataclass
class ColorRoles:
    """Color role bindings for one block; None means learn from the next new pixel."""

    bg: Optional[int] = None
    mc1: Optional[int] = None
    mc2: Optional[int] = None
    unique: Optional[int] = None
    fg: Optional[int] = None

    def copy(self) -> "ColorRoles":
        return dataclasses.replace(self)

    def resolve(self, pixel: int, pixel_width: int, sprite: bool = False) -> int:
        if pixel_width == 1 and self.fg is not None:
            if pixel != self.fg:
                return 0
            if self.unique is None:
                self.unique = pixel
            return 1

        if pixel_width == 1:
            roles = HIRES_ROLES
        elif sprite:
            roles = SPRITE_MC_ROLES
        else:
            roles = CHAR_MC_ROLES

        for name, code in roles:
            if getattr(self, name) == pixel:
                return code
        for name, code in roles:
            if getattr(self, name) is None:
                setattr(self, name, pixel)
                return code
        # all roles bound: the first unique color stays, no conflict is reported
        return roles[-1][1]


def encode_block(
    raster: Raster,
    x0: int,
    y0: int,
    w: int,
    h: int,
    pixel_width: int,
    roles: ColorRoles,
    sprite: bool = False,
) -> Tuple[bytes, ColorRoles]:
    """Pack a w x h region MSB first; returns the bytes and the roles bound while scanning."""
    roles = roles.copy()
    px = raster.pixels
    out = bytearray()
    b = 0
    bits = 0
    for y in range(y0, y0 + h):
        for x in range(x0, x0 + w, pixel_width):
            b = (b << pixel_width) | roles.resolve(int(px[y, x]), pixel_width, sprite)
            bits += pixel_width
            if bits == 8:
                out.append(b)
                b = 0
                bits = 0
    return bytes(out), roles


def detect_hires(raster: Raster, x0: int, y0: int, w: int, h: int, bg: Optional[int]) -> bool:
    """True if a region of a multicolor image holds only bg plus one color in hires detail."""
    px = raster.pixels
    fg = None
    pixels_differ = False
    for y in range(y0, y0 + h):
        for x in range(x0, x0 + w, 2):
            a = int(px[y, x])
            b = int(px[y, x + 1])
            if bg is None:
                bg = a
            for p in (a, b):
                if p == bg:
                    continue
                if fg is None:
                    fg = p
                elif p != fg:
                    return False
            if a != b:
                pixels_differ = True
    return pixels_differ


def is_empty(block: Sequence[int]) -> bool:
    return not any(block)
