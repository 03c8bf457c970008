"""
Core contracts and simple data types shared across stages.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
import sys
from typing import Tuple
import numpy as np

# Stand-in for a zero dimension so scale factors never divide by zero.
_LEAST_POSITIVE = sys.float_info.min


@dataclass(frozen=True)
class Size:
    width: float
    height: float

    def swapped(self) -> "Size":
        return Size(self.height, self.width)

    def clamped(self) -> "Size":
        """Replace zero dimensions with the smallest positive float."""
        return Size(
            self.width if self.width != 0 else _LEAST_POSITIVE,
            self.height if self.height != 0 else _LEAST_POSITIVE,
        )


@dataclass(frozen=True)
class Rect:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def from_size(cls, size: Size) -> "Rect":
        return cls(0.0, 0.0, float(size.width), float(size.height))

    @property
    def size(self) -> Size:
        return Size(self.width, self.height)

    @property
    def mid_x(self) -> float:
        return self.x + self.width / 2.0

    @property
    def mid_y(self) -> float:
        return self.y + self.height / 2.0

    def corners(self) -> np.ndarray:
        return np.array([
            [self.x, self.y],
            [self.x + self.width, self.y],
            [self.x + self.width, self.y + self.height],
            [self.x, self.y + self.height],
        ], dtype=np.float64)

    def applying(self, matrix: np.ndarray) -> "Rect":
        """Axis-aligned bounding box of this rect after an affine transform."""
        pts = self.corners() @ matrix[:2, :2].T + matrix[:2, 2]
        x0, y0 = pts.min(axis=0)
        x1, y1 = pts.max(axis=0)
        return Rect(float(x0), float(y0), float(x1 - x0), float(y1 - y0))


class Corner(Enum):
    """Corner names; the value is the row index inside Quadrilateral.pts."""
    TOP_LEFT = 0
    TOP_RIGHT = 1
    BOTTOM_RIGHT = 2
    BOTTOM_LEFT = 3


class Quadrilateral:
    """
    Four corners in some coordinate space, stored clockwise:
    [top-left, top-right, bottom-right, bottom-left].

    pts: np.ndarray with shape (4, 2), dtype float64. The order is a convention;
    convexity is not checked.
    """

    __slots__ = ("pts",)

    def __init__(self, pts) -> None:
        arr = np.asarray(pts, dtype=np.float64)
        if arr.size != 8:
            raise ValueError(f"Quadrilateral needs 4 (x, y) corners, got shape {arr.shape}")
        arr = arr.reshape(4, 2).copy()
        arr.setflags(write=False)
        self.pts = arr

    @classmethod
    def from_points(cls, top_left, top_right, bottom_right, bottom_left) -> "Quadrilateral":
        return cls([top_left, top_right, bottom_right, bottom_left])

    @property
    def top_left(self) -> Tuple[float, float]:
        return self._corner(Corner.TOP_LEFT)

    @property
    def top_right(self) -> Tuple[float, float]:
        return self._corner(Corner.TOP_RIGHT)

    @property
    def bottom_right(self) -> Tuple[float, float]:
        return self._corner(Corner.BOTTOM_RIGHT)

    @property
    def bottom_left(self) -> Tuple[float, float]:
        return self._corner(Corner.BOTTOM_LEFT)

    def _corner(self, corner: Corner) -> Tuple[float, float]:
        x, y = self.pts[corner.value]
        return float(x), float(y)

    def path(self) -> np.ndarray:
        """Closed outline TL -> TR -> BR -> BL -> TL, shape (5, 2)."""
        return np.vstack([self.pts, self.pts[:1]])

    def as_polyline(self) -> np.ndarray:
        """int32 points shaped for cv2.polylines / cv2.fillConvexPoly."""
        return np.round(self.pts).astype(np.int32).reshape(4, 1, 2)

    def as_tuple(self) -> Tuple[Tuple[float, float], Tuple[float, float], Tuple[float, float], Tuple[float, float]]:
        return tuple(map(tuple, self.pts.tolist()))  # type: ignore[return-value]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Quadrilateral):
            return NotImplemented
        return bool(np.array_equal(self.pts, other.pts))

    def __hash__(self) -> int:
        # -0.0 == 0.0 under __eq__, so normalize signed zeros before hashing
        return hash((self.pts + 0.0).tobytes())

    def __repr__(self) -> str:
        tl, tr, br, bl = self.as_tuple()
        return f"Quadrilateral(top_left={tl}, top_right={tr}, bottom_right={br}, bottom_left={bl})"


@dataclass(frozen=True)
class DetectionResult:
    """
    One accepted quad together with the pixel size of the frame it came from.
    Later mappings are relative to that frame, not to the current one.
    """
    quad: Quadrilateral
    image_size: Size


class CaptureError(RuntimeError):
    """Raised when a capture cannot be mapped or completed."""

    def __init__(self, reason: str, message: str = "") -> None:
        self.reason = reason
        super().__init__(message or f"Capture failed: {reason}")
