"""
Coordinate mapping between detector space, the display overlay and the
captured photo.

Detector quads arrive in raw pixel space of a landscape sensor frame (Y down).
The overlay is a portrait display area; the captured photo has its own,
usually much larger, pixel size.
"""

from __future__ import annotations
import math

from docscan.core.contracts import DetectionResult, Quadrilateral, Rect, Size
from docscan.geometry import affine
from docscan.geometry.quad import apply, scale_and_rotate, to_coordinate_system

# Photo orientation reported by the capture side -> rotation needed on the quad.
_ORIENTATION_ANGLES = {
    "right": math.pi / 2,
}


def orientation_angle(orientation: str) -> float:
    """Rotation (radians) for a captured photo's orientation tag; 0 when upright."""
    return _ORIENTATION_ANGLES.get(str(orientation).lower(), 0.0)


def to_display(result: DetectionResult, display_size: Size) -> Quadrilateral:
    """
    Map a detection into overlay coordinates.

    The frame is read as portrait (sensor is landscape, display is portrait),
    aspect-filled into the display, turned a quarter and re-centred.
    """
    image_size = result.image_size
    quad = to_coordinate_system(result.quad, image_size.height)

    scale_t = affine.scale_transform(image_size.swapped(), display_size)
    scaled_size = affine.apply_to_size(scale_t, image_size)
    rotate_t = affine.rotation(math.pi / 2)
    image_bounds = Rect.from_size(scaled_size).applying(rotate_t)
    shift_t = affine.translate_transform(image_bounds, Rect.from_size(display_size))

    return apply(affine.compose(scale_t, rotate_t, shift_t), quad)


def to_capture(result: DetectionResult, captured_size: Size, angle: float = 0.0) -> Quadrilateral:
    """Rescale a stabilized detection into the captured photo's pixel space."""
    return scale_and_rotate(result.quad, result.image_size, captured_size, angle)
