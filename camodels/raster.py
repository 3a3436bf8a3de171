"""Colour maps, depth colouring and raster line/circle cells."""

from __future__ import annotations

import numpy as np

_MAP_SIZE = 128


def _autumn_table() -> np.ndarray:
    return np.array(
        [(1.0, float(f"{i / 127:.5g}"), 0.0) for i in range(_MAP_SIZE)],
        dtype=np.float32,
    )


def _jet_entry(i: int) -> tuple[float, float, float]:
    if i < 16:
        return 0.0, 0.0, (17 + i) / 32
    if i < 48:
        return 0.0, (i - 15) / 32, 1.0
    if i < 80:
        step = (i - 47) / 32
        return step, 1.0, 1.0 - step
    if i < 112:
        return 1.0, 1.0 - (i - 79) / 32, 0.0
    return 1.0 - (i - 111) / 32, 0.0, 0.0


_AUTUMN = _autumn_table()
_JET = np.array([_jet_entry(i) for i in range(_MAP_SIZE)], dtype=np.float32)
_COLORMAPS = {"jet": _JET, "autumn": _AUTUMN}


def colormap(name: str, idx: int) -> tuple[float, float, float]:
    """RGB colour, each channel in ``[0, 1]``, of entry ``idx`` of a colour map.

    Known maps are ``"jet"`` and ``"autumn"``, each with 128 entries.
    """
    try:
        table = _COLORMAPS[name]
    except KeyError:
        raise ValueError(f"unknown colour map {name!r}") from None
    if not 0 <= idx < _MAP_SIZE:
        raise IndexError(f"colour map index {idx} out of range 0..{_MAP_SIZE - 1}")
    r, g, b = table[idx]
    return float(r), float(g), float(b)


def color_depth_image(depth, min_range: float, max_range: float) -> np.ndarray:
    """Colour a depth image with the jet map, near red and far blue.

    Returns an ``(H, W, 3)`` ``uint8`` image in BGR order; pixels with zero
    depth stay black.
    """
    d = np.asarray(depth, dtype=np.float32)
    if d.ndim != 2:
        raise ValueError("depth image must be two-dimensional")
    if not max_range > min_range:
        raise ValueError("max_range must exceed min_range")

    lo = np.float32(min_range)
    span = np.float32(max_range) - lo
    scaled = np.minimum(d - lo, span) / span * np.float32(127.0)
    idx = 127 - np.trunc(scaled).astype(np.int64)
    idx = np.clip(idx, 0, _MAP_SIZE - 1)

    out = np.zeros(d.shape + (3,), dtype=np.uint8)
    mask = d != 0
    colors = _JET[idx[mask]][:, ::-1] * np.float32(255.0)
    out[mask] = colors.astype(np.uint8)
    return out


def bres_line(x0: int, y0: int, x1: int, y1: int) -> list[tuple[int, int]]:
    """Cells crossed by the line from ``(x0, y0)`` to ``(x1, y1)``, ends included."""
    cells = []
    dx = abs(x1 - x0)
    dy = abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx - dy

    while True:
        cells.append((x0, y0))
        if x0 == x1 and y0 == y1:
            break
        e2 = 2 * err
        if e2 > -dy:
            err -= dy
            x0 += sx
        if e2 < dx:
            err += dx
            y0 += sy
    return cells


def bres_circle(x0: int, y0: int, r: int) -> list[tuple[int, int]]:
    """Cells of the filled circle of radius ``r`` about ``(x0, y0)``.

    Cells are listed by increasing x, then increasing y.
    """
    if r < 0:
        raise ValueError("radius must be non-negative")

    filled: set[tuple[int, int]] = set()

    def fill(line):
        filled.update(line)

    fill(bres_line(x0, y0 - r, x0, y0 + r))
    fill(bres_line(x0 - r, y0, x0 + r, y0))

    f = 1 - r
    ddf_x = 1
    ddf_y = -2 * r
    x = 0
    y = r
    while x < y:
        if f >= 0:
            y -= 1
            ddf_y += 2
            f += ddf_y
        x += 1
        ddf_x += 2
        f += ddf_x

        fill(bres_line(x0 - x, y0 + y, x0 + x, y0 + y))
        fill(bres_line(x0 - x, y0 - y, x0 + x, y0 - y))
        fill(bres_line(x0 - y, y0 + x, x0 + y, y0 + x))
        fill(bres_line(x0 - y, y0 - x, x0 + y, y0 - x))

    return sorted(filled)