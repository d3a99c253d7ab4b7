#!/usr/bin/env python3
"""
gfx_preview.py - Decode an encoded charmap back to pixels and save it as a PNG.

Global colors that were learned per cell are not recorded anywhere, so the
preview uses the configured bg/mc1/mc2 (or bg=0, mc1=1, mc2=2) for every cell.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from PIL import Image

from charmap import CharmapResult
from gfx_encode import CHAR_H, CHAR_W

C64 = {
    0: ("black", (0, 0, 0)),
    1: ("white", (255, 255, 255)),
    2: ("red", (136, 0, 0)),
    3: ("cyan", (170, 255, 238)),
    4: ("purple", (204, 68, 204)),
    5: ("green", (0, 204, 85)),
    6: ("blue", (0, 0, 170)),
    7: ("yellow", (238, 238, 119)),
    8: ("orange", (221, 136, 85)),
    9: ("brown", (102, 68, 0)),
    10: ("light_red", (255, 119, 119)),
    11: ("dark_grey", (51, 51, 51)),
    12: ("grey", (119, 119, 119)),
    13: ("light_green", (170, 255, 102)),
    14: ("light_blue", (0, 136, 255)),
    15: ("light_grey", (187, 187, 187)),
}
PAL = np.array([C64[i][1] for i in range(16)], dtype=np.uint8)


def idx_to_rgb(idx_img: np.ndarray) -> Image.Image:
    rgb = PAL[idx_img & 0x0F].astype(np.uint8)
    return Image.fromarray(rgb)


def render_hires_char(char8: bytes, fg: int, bg: int) -> np.ndarray:
    out = np.full((CHAR_H, CHAR_W), bg, dtype=np.uint8)
    for y in range(CHAR_H):
        b = char8[y]
        for x in range(CHAR_W):
            if (b >> (7 - x)) & 1:
                out[y, x] = fg
    return out


def render_mc_char(char8: bytes, lc: int, bg: int, mc1: int, mc2: int) -> np.ndarray:
    out = np.full((CHAR_H, CHAR_W), bg, dtype=np.uint8)
    mapping = {0: bg, 1: mc1, 2: mc2, 3: lc}
    for y in range(CHAR_H):
        b = char8[y]
        for xmc in range(4):
            code = (b >> (6 - 2 * xmc)) & 3
            col = mapping[int(code)]
            out[y, 2 * xmc] = col
            out[y, 2 * xmc + 1] = col
    return out


def render_charmap(
    res: CharmapResult,
    multicolor: bool,
    bg: Optional[int] = None,
    mc1: Optional[int] = None,
    mc2: Optional[int] = None,
) -> np.ndarray:
    bg = 0 if bg is None else bg
    mc1 = 1 if mc1 is None else mc1
    mc2 = 2 if mc2 is None else mc2
    idx = np.full((res.rows * CHAR_H, res.cols * CHAR_W), bg, dtype=np.uint8)
    for cy in range(res.rows):
        for cx in range(res.cols):
            char8 = bytes(res.charset[int(res.charmap[cy, cx])])
            attr = int(res.colormap[cy, cx])
            if not multicolor:
                cell = render_hires_char(char8, attr & 0x0F, bg)
            elif res.hires_mask[cy, cx]:
                cell = render_hires_char(char8, attr & 0x07, bg)
            else:
                cell = render_mc_char(char8, attr & 0x07, bg, mc1, mc2)
            idx[cy * CHAR_H:(cy + 1) * CHAR_H, cx * CHAR_W:(cx + 1) * CHAR_W] = cell
    return idx


def save_preview(path: str, idx: np.ndarray, scale: int = 2) -> None:
    img = idx_to_rgb(idx)
    if scale != 1:
        h, w = idx.shape
        img = img.resize((w * scale, h * scale), resample=Image.NEAREST)
    img.save(path)
