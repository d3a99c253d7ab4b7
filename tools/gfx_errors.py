#!/usr/bin/env python3
"""
gfx_errors.py - Error taxonomy shared by spritec.py, ldtkc.py and build_assets.py.
"""

from __future__ import annotations

import sys
import warnings
from contextlib import contextmanager
from typing import List


class GfxError(Exception):
    """Base for fatal conversion errors; aborts the current input only."""


class FormatError(GfxError):
    def __init__(self, path: str, message: str):
        super().__init__(message)
        self.path = path
        self.message = message


class CapacityError(GfxError):
    def __init__(self, capacity: int, what: str = "blocks"):
        super().__init__(f"aborting, more than {capacity} unique {what} is not supported")
        self.capacity = capacity
        self.what = what


class IncompleteDataError(GfxError):
    def __init__(self, level: str, layer: str, populated: int, expected: int):
        super().__init__(
            f"incomplete level data in level '{level}', layer '{layer}': "
            f"{populated} of {expected} cells populated"
        )
        self.level = level
        self.layer = layer
        self.populated = populated
        self.expected = expected


class AddressSpaceWarning(UserWarning):
    """Unique count plus offset does not fit the 256 entry index space."""


@contextmanager
def recording_warnings(messages: List[str]):
    """Move AddressSpaceWarnings raised inside the block into messages."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always", AddressSpaceWarning)
        yield messages
    for w in caught:
        if issubclass(w.category, AddressSpaceWarning):
            messages.append(str(w.message))
        else:
            warnings.warn_explicit(w.message, w.category, w.filename, w.lineno)


def describe(path: str, e: GfxError) -> str:
    if isinstance(e, FormatError) and e.path:
        return f"{e.path}: {e.message}"
    return f"{path}: {e}"


class ErrorCollector:
    """Collects per-input errors so a batch can continue past a bad input."""

    def __init__(self):
        self.errors: List[str] = []

    def add_error(self, error: str):
        self.errors.append(error)

    def has_errors(self) -> bool:
        return len(self.errors) > 0

    def report_and_exit(self, prefix: str = ""):
        if not self.has_errors():
            return

        print(f"\n{prefix}Found {len(self.errors)} error(s):", file=sys.stderr)
        for i, error in enumerate(self.errors, 1):
            print(f"  {i}. {error}", file=sys.stderr)
        print("", file=sys.stderr)
        sys.exit(1)
