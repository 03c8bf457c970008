# docscan/geometry/quad.py
from __future__ import annotations
import math
from typing import Iterable, Optional, Tuple
import numpy as np

from docscan.core.contracts import Corner, Quadrilateral, Rect, Size
from docscan.geometry import affine


def apply(matrix: np.ndarray, quad: Quadrilateral) -> Quadrilateral:
    """Apply one affine transform to each corner independently."""
    return Quadrilateral(affine.apply_to_points(matrix, quad.pts))


def perimeter(quad: Quadrilateral) -> float:
    """Sum of the four edge lengths in stored order TL -> TR -> BR -> BL -> TL."""
    edges = np.diff(quad.path(), axis=0)
    return float(np.hypot(edges[:, 0], edges[:, 1]).sum())


def is_within(threshold: float, quad: Quadrilateral, other: Quadrilateral) -> bool:
    """
    True when every corner of `other` lies inside the square of side `threshold`
    centred on the matching corner of `quad`. Bounds are closed, so identical
    quads match for any threshold >= 0.
    """
    half = threshold / 2.0
    return bool(np.all(np.abs(other.pts - quad.pts) <= half))


def to_coordinate_system(quad: Quadrilateral, height: float) -> Quadrilateral:
    """
    Flip Y about `height`: image space (origin top-left, Y down) to Cartesian
    (origin bottom-left, Y up), or back.
    """
    pts = np.array(quad.pts)
    pts[:, 1] = height - pts[:, 1]
    return Quadrilateral(pts)


def scale_and_rotate(
    quad: Quadrilateral,
    from_size: Size,
    to_size: Size,
    angle: float = 0.0,
) -> Quadrilateral:
    """
    Map a quad measured against `from_size` onto `to_size`, optionally rotating.

    Quarter turns swap which source axis lands on which target axis, so the source
    width/height are swapped before the per-axis scale factors are taken (a half
    turn keeps the axes). After scaling, a rotation about the origin is applied and
    the rotated source bounds are re-centred on the target rectangle.
    """
    rotated = angle != 0.0
    src = from_size.clamped()
    if rotated and angle != math.pi:
        src = src.swapped()

    with np.errstate(over="ignore"):
        fx, fy = np.divide([to_size.width, to_size.height], [src.width, src.height])
    scaled = affine.scale(float(fx), float(fy))
    out = apply(scaled, quad)

    if rotated:
        rotate = affine.rotation(angle)
        from_bounds = Rect.from_size(from_size).applying(scaled).applying(rotate)
        to_bounds = Rect.from_size(to_size)
        shift = affine.translate_transform(from_bounds, to_bounds)
        out = apply(affine.compose(rotate, shift), out)

    return out


def with_corner(quad: Quadrilateral, corner: Corner, point) -> Quadrilateral:
    pts = np.array(quad.pts)
    pts[corner.value] = np.asarray(point, dtype=np.float64).reshape(2)
    return Quadrilateral(pts)


def clamp_point(point, bounds: Size) -> Tuple[float, float]:
    """Keep a point inside [0, width] x [0, height]."""
    x, y = point
    return (
        float(min(max(x, 0.0), bounds.width)),
        float(min(max(y, 0.0), bounds.height)),
    )


def move_corner(quad: Quadrilateral, corner: Corner, point, bounds: Size) -> Quadrilateral:
    """Drag one corner to `point`, clamped to the overlay bounds."""
    return with_corner(quad, corner, clamp_point(point, bounds))


def denormalize(quad: Quadrilateral, image_size: Size) -> Quadrilateral:
    """Unit-square detector output -> pixel coordinates of `image_size`."""
    return apply(affine.scale(image_size.width, image_size.height), quad)


def select_largest(quads: Iterable[Quadrilateral]) -> Optional[Quadrilateral]:
    """Largest candidate by perimeter; the first one wins on equal perimeter."""
    best, best_peri = None, -1.0
    for q in quads:
        p = perimeter(q)
        if p > best_peri:
            best, best_peri = q, p
    return best
