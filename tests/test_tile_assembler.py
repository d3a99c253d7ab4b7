"""
Tests for TileAssembler: tile deduplication, charset optimization and empty slot placement
"""

import numpy as np
import pytest

from block_dict import BlockDictionary
from charmap import CharmapResult
from gfx_errors import AddressSpaceWarning, CapacityError, FormatError, IncompleteDataError
from gfx_options import EmptyPolicy
from ldtk_parser import EntityDef
from tile_assembler import TileAssembler, order_entities

EMPTY = bytes(8)
A = bytes([0x80] + [0] * 7)
B = bytes([0xFF] * 8)
C = bytes([0x18] * 8)


def charmap_result(chars, charmap, colormap=None):
    charset = BlockDictionary(256, "characters")
    for c in chars:
        charset.lookup_or_insert(c)
    charmap = np.array(charmap, dtype=np.int32)
    if colormap is None:
        colormap = np.zeros(charmap.shape, dtype=np.uint8)
    return CharmapResult(
        charset=charset,
        charmap=charmap,
        colormap=np.array(colormap, dtype=np.uint8),
        hires_mask=np.zeros(charmap.shape, dtype=bool),
    )


@pytest.fixture
def two_tiles():
    """Two 2x2 tiles side by side using characters 0 (empty), 1 and 2"""
    return charmap_result([EMPTY, A, B], [[0, 1, 1, 2], [1, 0, 2, 2]])


@pytest.mark.unit
class TestAssemble:
    def test_complete_grid(self, two_tiles):
        res = TileAssembler(two_tiles, 2).assemble([(0, 0), (16, 0), (0, 0), (16, 0)], 2, 2)
        assert res.tilemap.tolist() == [[0, 1], [0, 1]]
        assert res.count == 2
        assert res.tile_chars == [(0, 1, 1, 0), (1, 2, 2, 2)]
        assert res.tile_colors == [(0, 0, 0, 0), (0, 0, 0, 0)]

    def test_tiles_not_more_than_distinct_combinations(self, two_tiles):
        cells = [(0, 0), (16, 0), (16, 0), (0, 0)]
        res = TileAssembler(two_tiles, 2).assemble(cells, 2, 2)
        distinct = {TileAssembler(two_tiles, 2).extract_tile(x // 8, y // 8) for x, y in cells}
        assert res.count <= len(distinct)

    def test_attributes_split_tiles(self):
        cm = charmap_result([EMPTY, A], [[1, 1]], colormap=[[2, 5]])
        res = TileAssembler(cm, 1).assemble([(0, 0), (8, 0)], 2, 1)
        assert res.count == 2
        assert res.tile_chars == [(1,), (1,)]
        assert res.tile_colors == [(2,), (5,)]

    def test_soa_planes(self, two_tiles):
        res = TileAssembler(two_tiles, 2).assemble([(0, 0), (16, 0), (0, 0), (16, 0)], 2, 2)
        assert res.char_planes() == [bytes([0, 1]), bytes([1, 2]), bytes([1, 2]), bytes([0, 2])]
        assert res.color_planes() == [bytes(2)] * 4
        assert res.tilemap_bytes() == bytes([0, 1, 0, 1])

    def test_sparse_grid(self, two_tiles):
        with pytest.raises(IncompleteDataError) as exc:
            TileAssembler(two_tiles, 2).assemble([(0, 0), None, (0, 0), (16, 0)], 2, 2, "L0", "Bg")
        assert (exc.value.populated, exc.value.expected) == (3, 4)
        assert "level 'L0', layer 'Bg'" in str(exc.value)

    def test_short_cell_list(self, two_tiles):
        with pytest.raises(IncompleteDataError):
            TileAssembler(two_tiles, 2).assemble([(0, 0), (16, 0), (0, 0)], 2, 2)

    def test_tile_outside_tileset(self, two_tiles):
        with pytest.raises(FormatError, match="reaches outside"):
            TileAssembler(two_tiles, 2, source="t.png").assemble([(24, 0)], 1, 1)

    def test_too_many_tiles(self, two_tiles):
        with pytest.raises(CapacityError, match="more than 1 unique tiles"):
            TileAssembler(two_tiles, 2, capacity=1).assemble([(0, 0), (16, 0)], 2, 1)

    def test_explicit_slot_needs_slot(self, two_tiles):
        with pytest.raises(ValueError):
            TileAssembler(two_tiles, 2, policy=EmptyPolicy.EXPLICIT_SLOT)


@pytest.mark.unit
class TestOptimizedCharset:
    def test_merge_keeps_char_zero_first(self):
        cm = charmap_result([EMPTY, A, B, C], [[2, 0, 3]])
        res = TileAssembler(cm, 1).assemble([(0, 0), (16, 0)], 2, 1)
        cs = res.charset
        assert cs.first == 0
        assert cs.chars == [EMPTY, B, C]
        assert cs.positions == {0: 0, 2: 1, 3: 2}
        assert res.tile_chars == [(1,), (2,)]

    def test_merge_with_offset(self, two_tiles):
        res = TileAssembler(two_tiles, 2, offset=0x40).assemble([(0, 0)], 1, 1)
        assert res.charset.first == 0x40
        assert res.tile_chars == [(0x40, 0x41, 0x41, 0x40)]
        assert res.charset.to_bytes() == EMPTY + A

    def test_explicit_slot_relocates_empty(self):
        cm = charmap_result([A, B, C, EMPTY], [[0, 1, 2, 3]])
        assert cm.charset.empty_index == 3
        asm = TileAssembler(cm, 1, policy=EmptyPolicy.EXPLICIT_SLOT, empty_slot=1)
        res = asm.assemble([(0, 0), (8, 0), (16, 0), (24, 0)], 4, 1)

        cs = res.charset
        assert cs.positions == {0: 0, 1: 2, 2: 3, 3: 1}
        assert res.tile_chars == [(0,), (2,), (3,), (1,)]
        assert cs.chars == [A, None, B, C]
        assert cs.count == 3
        assert cs.to_bytes() == A + EMPTY + B + C
        others = [p for c, p in cs.positions.items() if c != 3]
        assert 1 not in others

    def test_explicit_slot_outside_charset(self, two_tiles):
        asm = TileAssembler(two_tiles, 2, policy=EmptyPolicy.EXPLICIT_SLOT, offset=0x40, empty_slot=0)
        res = asm.assemble([(0, 0), (16, 0)], 2, 1)
        cs = res.charset
        assert cs.first == 0x40
        assert cs.chars == [A, B]
        assert cs.empty_slot == 0
        assert res.tile_chars == [(0, 0x40, 0x40, 0), (0x40, 0x41, 0x41, 0x41)]

    def test_overflowing_charset_warns(self, two_tiles):
        asm = TileAssembler(two_tiles, 2, offset=0xFF)
        with pytest.warns(AddressSpaceWarning, match="only 256 characters"):
            asm.assemble([(0, 0)], 1, 1, "L0", "Bg")


def test_order_entities_stable_by_x():
    entities = [
        EntityDef("a", 5, 0, 1),
        EntityDef("b", 1, 3, 1),
        EntityDef("c", 5, 1, 1),
        EntityDef("d", 0, 9, 1),
    ]
    assert [e.identifier for e in order_entities(entities)] == ["d", "b", "a", "c"]
