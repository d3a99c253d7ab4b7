"""
Shared pytest fixtures for the C64 graphics tools tests
"""

import argparse
import json

import numpy as np
import pytest
from PIL import Image

from gfx_encode import Raster
from gfx_options import add_option_args


@pytest.fixture
def make_raster():
    """Build a Raster from nested lists or an array of palette indices"""

    def make(pixels, transparent=None):
        return Raster(pixels=np.asarray(pixels, dtype=np.uint8), transparent=transparent)

    return make


@pytest.fixture
def write_png(tmp_path):
    """Write an indexed PNG into tmp_path and return its path as a string"""
    palette = []
    for i in range(16):
        palette.extend([i * 16, i * 16, i * 16])
    palette.extend([0, 0, 0] * 240)

    def write(name, pixels, transparency=None):
        arr = np.asarray(pixels, dtype=np.uint8)
        h, w = arr.shape
        img = Image.new("P", (w, h))
        img.putdata([int(v) for v in arr.flatten()])
        img.putpalette(palette)
        path = tmp_path / name
        if transparency is None:
            img.save(path)
        else:
            img.save(path, transparency=transparency)
        return str(path)

    return write


@pytest.fixture
def write_rgb_png(tmp_path):
    def write(name, size=(16, 8)):
        path = tmp_path / name
        Image.new("RGB", size, (10, 20, 30)).save(path)
        return str(path)

    return write


@pytest.fixture
def option_args():
    """Parse encoding option flags exactly as the command line tools do"""

    def parse(*argv):
        ap = argparse.ArgumentParser()
        add_option_args(ap)
        return ap.parse_args(list(argv))

    return parse


@pytest.fixture
def tileset_pixels():
    """32x16 tileset: left 16x16 tile has one set pixel, right tile is blank"""
    pixels = np.zeros((16, 32), dtype=np.uint8)
    pixels[0, 0] = 1
    return pixels


def tile_layer(identifier, tileset, cells, width=2, height=2, grid=16):
    """LDtk 'Tiles' layer instance; cells are (px, src) pairs"""
    return {
        "__identifier": identifier,
        "__type": "Tiles",
        "__cWid": width,
        "__cHei": height,
        "__gridSize": grid,
        "__tilesetRelPath": tileset,
        "gridTiles": [{"px": list(px), "src": list(src)} for px, src in cells],
    }


def entity_layer(identifier, entities, grid=16):
    """LDtk 'Entities' layer instance; entities are (name, gx, gy, width_px, value)"""
    instances = []
    for name, gx, gy, width, value in entities:
        fields = [] if value is None else [{"__identifier": "value", "__value": value}]
        instances.append({"__identifier": name, "__grid": [gx, gy], "width": width, "fieldInstances": fields})
    return {
        "__identifier": identifier,
        "__type": "Entities",
        "__gridSize": grid,
        "entityInstances": instances,
    }


@pytest.fixture
def ldtk_layers():
    """Layer builders for LDtk project fixtures"""
    return {"tiles": tile_layer, "entities": entity_layer}


@pytest.fixture
def write_ldtk(tmp_path):
    """Write an LDtk project with the given {level: [layers]} and return its path"""

    def write(name, levels, file_type="LDtk Project JSON"):
        data = {
            "__header__": {"fileType": file_type, "app": "LDtk"},
            "levels": [
                {"identifier": ident, "layerInstances": layers} for ident, layers in levels.items()
            ],
        }
        path = tmp_path / name
        path.write_text(json.dumps(data), encoding="utf-8")
        return str(path)

    return write


@pytest.fixture
def world(write_png, write_ldtk, tileset_pixels, ldtk_layers):
    """Factory for a one level project over tiles-bg0.png; returns the .ldtk path"""

    def make(name="world.ldtk", extra_layers=()):
        write_png("tiles-bg0.png", tileset_pixels)
        layers = [
            ldtk_layers["entities"](
                "Entities",
                [("Door", 3, 1, 32, 7), ("Key", 1, 0, 16, None)],
            ),
            ldtk_layers["tiles"](
                "Tiles",
                "tiles-bg0.png",
                [((0, 0), (0, 0)), ((16, 0), (16, 0)), ((0, 16), (16, 0)), ((16, 16), (0, 0))],
            ),
        ]
        layers.extend(extra_layers)
        return write_ldtk(name, {"Level_0": layers})

    return make
