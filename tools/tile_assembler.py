#!/usr/bin/env python3
"""
tile_assembler.py - Compose square tiles out of a prebuilt charmap and deduplicate them.

A tile of T x T characters is the composite block
    T*T charmap indices (row-major)  +  T*T colormap bytes
and tiles are deduplicated in their own BlockDictionary. Afterwards only the
characters referenced by some tile are kept, renumbered densely in first-seen
order. Where the empty character lands depends on EmptyPolicy:
  MERGE          character 0 always takes the first position
  EXPLICIT_SLOT  the empty character goes to the reserved slot, which the
                 dense numbering skips
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from block_dict import BlockDictionary
from charmap import ADDRESS_SPACE, CharmapResult
from gfx_encode import CHAR_H, CHAR_W
from gfx_errors import AddressSpaceWarning, FormatError, IncompleteDataError
from gfx_options import EmptyPolicy

MAX_TILES = 256


@dataclass
class OptimizedCharset:
    first: int                          # position of chars[0]
    chars: List[Optional[bytes]]        # None marks the reserved empty slot
    positions: Dict[int, int] = field(default_factory=dict)   # charmap index -> position
    empty_slot: Optional[int] = None

    @property
    def count(self) -> int:
        return sum(1 for c in self.chars if c is not None)

    def to_bytes(self) -> bytes:
        return b"".join(c if c is not None else bytes(CHAR_H) for c in self.chars)


@dataclass
class TileSetResult:
    tile_size: int                      # characters per tile edge
    tilemap: np.ndarray                 # (grid_h, grid_w) tile numbers
    tile_chars: List[Tuple[int, ...]]   # per tile, optimized charset positions
    tile_colors: List[Tuple[int, ...]]  # per tile, attribute bytes
    charset: OptimizedCharset

    @property
    def count(self) -> int:
        return len(self.tile_chars)

    def tilemap_bytes(self) -> bytes:
        return self.tilemap.astype(np.uint8).tobytes()

    def char_planes(self) -> List[bytes]:
        """One plane per character position in the tile, each plane one byte per tile."""
        n = self.tile_size * self.tile_size
        return [bytes(t[c] & 0xFF for t in self.tile_chars) for c in range(n)]

    def color_planes(self) -> List[bytes]:
        n = self.tile_size * self.tile_size
        return [bytes(t[c] & 0xFF for t in self.tile_colors) for c in range(n)]


class TileAssembler:
    def __init__(
        self,
        charmap: CharmapResult,
        tile_size: int,
        policy: EmptyPolicy = EmptyPolicy.MERGE,
        offset: int = 0,
        empty_slot: Optional[int] = None,
        capacity: int = MAX_TILES,
        source: str = "",
    ):
        if policy == EmptyPolicy.EXPLICIT_SLOT and empty_slot is None:
            raise ValueError("explicit-slot policy needs an empty slot index")
        self.charmap = charmap
        self.tile_size = tile_size
        self.policy = policy
        self.offset = offset
        self.empty_slot = empty_slot
        self.capacity = capacity
        self.source = source

    def extract_tile(self, cx: int, cy: int) -> Tuple[int, ...]:
        t = self.tile_size
        chars = self.charmap.charmap[cy:cy + t, cx:cx + t]
        colors = self.charmap.colormap[cy:cy + t, cx:cx + t]
        if chars.shape != (t, t):
            raise FormatError(
                self.source,
                f"tile at ({cx * CHAR_W},{cy * CHAR_H}) reaches outside the "
                f"{self.charmap.cols * CHAR_W}x{self.charmap.rows * CHAR_H} tileset image",
            )
        return tuple(int(v) for v in chars.flat) + tuple(int(v) for v in colors.flat)

    def assemble(
        self,
        cells: Sequence[Optional[Tuple[int, int]]],
        grid_w: int,
        grid_h: int,
        level: str = "",
        layer: str = "",
    ) -> TileSetResult:
        """cells: top-left source pixel of each grid cell, row-major; None for holes."""
        expected = grid_w * grid_h
        populated = sum(1 for c in cells[:expected] if c is not None)
        if populated < expected:
            raise IncompleteDataError(level, layer, populated, expected)

        tileset = BlockDictionary(self.capacity, "tiles")
        tilemap = np.zeros((grid_h, grid_w), dtype=np.uint8)
        for i in range(expected):
            sx, sy = cells[i]
            tile = self.extract_tile(sx // CHAR_W, sy // CHAR_H)
            tilemap[i // grid_w, i % grid_w] = tileset.lookup_or_insert(tile)

        charset = self.optimize_charset(tileset)
        top = max(charset.first + len(charset.chars) - 1, charset.empty_slot or 0)
        if top >= ADDRESS_SPACE:
            warnings.warn(
                AddressSpaceWarning(
                    f"level '{level}' layer '{layer}': charset reaches index {top}, "
                    f"only {ADDRESS_SPACE} characters are addressable"
                ),
                stacklevel=2,
            )
        n = self.tile_size * self.tile_size
        tile_chars = [tuple(charset.positions[c] for c in tile[:n]) for tile in tileset]
        tile_colors = [tuple(tile[n:]) for tile in tileset]
        return TileSetResult(
            tile_size=self.tile_size,
            tilemap=tilemap,
            tile_chars=tile_chars,
            tile_colors=tile_colors,
            charset=charset,
        )

    def used_chars(self, tileset: BlockDictionary) -> List[int]:
        n = self.tile_size * self.tile_size
        seen: Dict[int, None] = {}
        for tile in tileset:
            for c in tile[:n]:
                seen.setdefault(c, None)
        return list(seen)

    def optimize_charset(self, tileset: BlockDictionary) -> OptimizedCharset:
        source = self.charmap.charset
        used = self.used_chars(tileset)

        if self.policy == EmptyPolicy.MERGE:
            positions = {0: self.offset}
            chars: List[Optional[bytes]] = [bytes(source[0])] if len(source) else []
            for c in used:
                if c in positions:
                    continue
                positions[c] = self.offset + len(chars)
                chars.append(bytes(source[c]))
            return OptimizedCharset(first=self.offset, chars=chars, positions=positions)

        slot = self.empty_slot
        empty = source.empty_index
        positions = {}
        placed: Dict[int, bytes] = {}
        pos = self.offset
        for c in used:
            if c == empty:
                positions[c] = slot
                continue
            if pos == slot:
                pos += 1
            positions[c] = pos
            placed[pos] = bytes(source[c])
            pos += 1
        chars = [placed.get(p) for p in range(self.offset, pos)]
        return OptimizedCharset(first=self.offset, chars=chars, positions=positions, empty_slot=slot)


def order_entities(entities: Sequence) -> list:
    """Entities by ascending horizontal tile coordinate; ties keep their order."""
    return sorted(entities, key=lambda e: e.x)
