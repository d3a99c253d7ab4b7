#!/usr/bin/env python3
"""
ldtk_parser.py - Read the parts of an LDtk project JSON that ldtkc.py needs.

Levels -> layer instances:
  Tiles / AutoLayer   grid size, cell count, tileset image path, top-left
                      source pixel of every placed tile
  Entities            grid position, width, identifier, first field value
Other layer types are ignored.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from gfx_errors import FormatError

LDTK_FILE_TYPE = "LDtk Project JSON"


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)


@dataclass
class EntityDef:
    identifier: str
    x: int                  # grid cell
    y: int
    width: int              # grid cells
    value: int = 0


@dataclass
class TileLayerDef:
    identifier: str
    width: int              # cells
    height: int
    grid_size: int          # pixels
    tileset_path: str
    cells: List[Optional[Tuple[int, int]]] = field(default_factory=list)

    @property
    def populated(self) -> int:
        return sum(1 for c in self.cells if c is not None)


@dataclass
class EntityLayerDef:
    identifier: str
    grid_size: int
    entities: List[EntityDef] = field(default_factory=list)


@dataclass
class LevelDef:
    identifier: str
    tile_layers: List[TileLayerDef] = field(default_factory=list)
    entity_layers: List[EntityLayerDef] = field(default_factory=list)


@dataclass
class LdtkProject:
    path: str
    levels: List[LevelDef] = field(default_factory=list)


class _Reader:
    def __init__(self, path: str):
        self.path = path

    def err(self, message: str) -> None:
        raise FormatError(self.path, message)

    def get(self, obj: Any, key: str, what: str) -> Any:
        if not isinstance(obj, dict) or key not in obj:
            self.err(f"missing '{key}' in {what}")
        return obj[key]

    def integer(self, obj: Any, key: str, what: str) -> int:
        v = self.get(obj, key, what)
        if not _is_number(v):
            self.err(f"'{key}' in {what} must be a number, got {v!r}")
        return int(v)

    def string(self, obj: Any, key: str, what: str) -> str:
        v = self.get(obj, key, what)
        if not isinstance(v, str):
            self.err(f"'{key}' in {what} must be a string, got {v!r}")
        return v

    def array(self, obj: Any, key: str, what: str) -> list:
        v = self.get(obj, key, what)
        if not isinstance(v, list):
            self.err(f"'{key}' in {what} must be an array")
        return v

    def point(self, obj: Any, key: str, what: str) -> Tuple[int, int]:
        v = self.get(obj, key, what)
        if not isinstance(v, list) or len(v) < 2 or not all(_is_number(n) for n in v[:2]):
            self.err(f"'{key}' in {what} must be an [x, y] pair of numbers, got {v!r}")
        return int(v[0]), int(v[1])

    def grid_size(self, obj: Any, what: str) -> int:
        grid = self.integer(obj, "__gridSize", what)
        if grid <= 0:
            self.err(f"'__gridSize' in {what} must be positive, got {grid}")
        return grid


def _first_field_value(entity: dict) -> int:
    fields = entity.get("fieldInstances")
    if not isinstance(fields, list) or not fields or not isinstance(fields[0], dict):
        return 0
    v = fields[0].get("__value")
    if isinstance(v, bool) or _is_number(v):
        return int(v)
    return 0


def _parse_tile_layer(r: _Reader, layer: dict, base_dir: str, what: str) -> TileLayerDef:
    ident = r.string(layer, "__identifier", what)
    width = r.integer(layer, "__cWid", what)
    height = r.integer(layer, "__cHei", what)
    grid = r.grid_size(layer, what)
    rel = layer.get("__tilesetRelPath")
    if not rel or not isinstance(rel, str):
        r.err(f"{what} has no tileset")
    key = "gridTiles" if r.string(layer, "__type", what) == "Tiles" else "autoLayerTiles"
    tiles = r.array(layer, key, what)

    cells: List[Optional[Tuple[int, int]]] = [None] * (width * height)
    for i, t in enumerate(tiles):
        src = r.point(t, "src", f"{what} tile {i}")
        if "px" in t:
            px, py = r.point(t, "px", f"{what} tile {i}")
            cx = px // grid
            cy = py // grid
            if not (0 <= cx < width and 0 <= cy < height):
                r.err(f"{what} tile {i} at ({px},{py}) is outside the {width}x{height} grid")
            idx = cy * width + cx
        else:
            idx = i
            if idx >= len(cells):
                r.err(f"{what} has more tiles than cells")
        cells[idx] = src

    return TileLayerDef(
        identifier=ident,
        width=width,
        height=height,
        grid_size=grid,
        tileset_path=os.path.normpath(os.path.join(base_dir, rel)),
        cells=cells,
    )


def _parse_entity_layer(r: _Reader, layer: dict, what: str) -> EntityLayerDef:
    ident = r.string(layer, "__identifier", what)
    grid = r.grid_size(layer, what)
    out = EntityLayerDef(identifier=ident, grid_size=grid)
    for i, e in enumerate(r.array(layer, "entityInstances", what)):
        ewhat = f"{what} entity {i}"
        gx, gy = r.point(e, "__grid", ewhat)
        width = r.integer(e, "width", ewhat)
        out.entities.append(
            EntityDef(
                identifier=r.string(e, "__identifier", ewhat),
                x=gx,
                y=gy,
                width=max(1, width // grid),
                value=_first_field_value(e),
            )
        )
    return out


def parse_ldtk(path: str) -> LdtkProject:
    r = _Reader(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise FormatError(path, f"invalid JSON: {e}") from e
    except OSError as e:
        raise FormatError(path, f"cannot read file: {e}") from e

    head = r.get(data, "__header__", "project")
    if r.get(head, "fileType", "__header__") != LDTK_FILE_TYPE:
        r.err(f"Not a {LDTK_FILE_TYPE}")

    base_dir = os.path.dirname(os.path.abspath(path))
    project = LdtkProject(path=path)
    for level in r.array(data, "levels", "project"):
        lid = r.string(level, "identifier", "level")
        layers = level.get("layerInstances")
        if layers is None:
            r.err(f"level '{lid}' has no layerInstances (external level files are not supported)")
        if not isinstance(layers, list):
            r.err(f"'layerInstances' in level '{lid}' must be an array")
        ldef = LevelDef(identifier=lid)
        for layer in layers:
            ltype = r.string(layer, "__type", f"level '{lid}' layer")
            what = f"level '{lid}' layer '{layer.get('__identifier', '?')}'"
            if ltype == "Tiles" or (ltype == "AutoLayer" and layer.get("autoLayerTiles")):
                ldef.tile_layers.append(_parse_tile_layer(r, layer, base_dir, what))
            elif ltype == "Entities":
                ldef.entity_layers.append(_parse_entity_layer(r, layer, what))
        project.levels.append(ldef)
    return project
