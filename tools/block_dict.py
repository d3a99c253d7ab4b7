#!/usr/bin/env python3
"""
block_dict.py - First-seen ordered dictionary of unique encoded blocks.

Blocks are compared element by element (bytes for characters and sprites,
int tuples for composite tiles). Lookup is a linear scan; the first match wins.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from gfx_errors import CapacityError
from gfx_encode import is_empty


class BlockDictionary:
    def __init__(self, capacity: int, what: str = "blocks"):
        self.capacity = capacity
        self.what = what
        self.entries: List[Sequence[int]] = []
        self.empty_index: Optional[int] = None

    def __len__(self) -> int:
        return len(self.entries)

    def __getitem__(self, index: int) -> Sequence[int]:
        return self.entries[index]

    def __iter__(self):
        return iter(self.entries)

    def find(self, block: Sequence[int]) -> int:
        """Index of block, or len(self) if it is not present."""
        for i, entry in enumerate(self.entries):
            if entry == block:
                return i
        return len(self.entries)

    def lookup_or_insert(self, block: Sequence[int]) -> int:
        i = self.find(block)
        if i < len(self.entries):
            return i
        if len(self.entries) >= self.capacity:
            raise CapacityError(self.capacity, self.what)
        if self.empty_index is None and is_empty(block):
            self.empty_index = i
        self.entries.append(block)
        return i

    def promote_empty_to_front(self, *maps: np.ndarray) -> None:
        """Swap the first empty block into slot 0 and relabel 0 <-> e in every map."""
        e = self.empty_index
        if e is None or e == 0:
            return
        for m in maps:
            was_zero = m == 0
            was_e = m == e
            m[was_zero] = e
            m[was_e] = 0
        self.entries[0], self.entries[e] = self.entries[e], self.entries[0]
        self.empty_index = 0
