# docscan/geometry/affine.py
from __future__ import annotations
import math
import numpy as np

from docscan.core.contracts import Rect, Size

# Affine transforms are 3x3 float64 matrices acting on column vectors [x, y, 1].


def identity() -> np.ndarray:
    return np.eye(3, dtype=np.float64)


def scale(sx: float, sy: float) -> np.ndarray:
    m = identity()
    m[0, 0] = sx
    m[1, 1] = sy
    return m


def rotation(angle: float) -> np.ndarray:
    """Counter-clockwise rotation about the origin, angle in radians."""
    c, s = math.cos(angle), math.sin(angle)
    m = identity()
    m[:2, :2] = [[c, -s], [s, c]]
    return m


def translation(tx: float, ty: float) -> np.ndarray:
    m = identity()
    m[0, 2] = tx
    m[1, 2] = ty
    return m


def compose(*transforms: np.ndarray) -> np.ndarray:
    """Single matrix equivalent to applying `transforms` left to right."""
    out = identity()
    for t in transforms:
        out = t @ out
    return out


def scale_transform(from_size: Size, to_size: Size) -> np.ndarray:
    """
    Uniform scale making `from_size` aspect-fill `to_size`: the larger axis ratio
    wins, so the destination is fully covered and the other axis may overflow.
    A zero source dimension is clamped to the smallest positive float.
    """
    src = from_size.clamped()
    with np.errstate(over="ignore"):
        s = float(np.max(np.divide([to_size.width, to_size.height], [src.width, src.height])))
    return scale(s, s)


def translate_transform(from_rect: Rect, to_rect: Rect) -> np.ndarray:
    """Translation moving the centre of `from_rect` onto the centre of `to_rect`."""
    return translation(to_rect.mid_x - from_rect.mid_x, to_rect.mid_y - from_rect.mid_y)


def apply_to_points(matrix: np.ndarray, pts: np.ndarray) -> np.ndarray:
    pts = np.asarray(pts, dtype=np.float64).reshape(-1, 2)
    return pts @ matrix[:2, :2].T + matrix[:2, 2]


def apply_to_size(matrix: np.ndarray, size: Size) -> Size:
    """Linear part applied to a size vector; translation ignored."""
    w, h = matrix[:2, :2] @ np.array([size.width, size.height], dtype=np.float64)
    return Size(float(w), float(h))
