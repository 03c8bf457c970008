"""
I/O helpers: recorded detection streams (JSON) and images (BGR, as OpenCV expects).
"""

from __future__ import annotations
import json
from pathlib import Path
from typing import List, Optional, Tuple
import cv2
import numpy as np

from docscan.core.contracts import Quadrilateral, Size

Frame = Tuple[Optional[Quadrilateral], Size]


def load_image(path: str | Path) -> np.ndarray:
    """
    Load an image from disk (BGR).
    Raises FileNotFoundError if not found.
    """
    img = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if img is None:
        raise FileNotFoundError(f"Could not read image at: {path}")
    return img


def parse_frame(entry: dict, index: int = 0) -> Frame:
    """One recorded frame: {"quad": [[x, y] x4] | null, "size": [w, h]}."""
    try:
        w, h = entry["size"]
        size = Size(float(w), float(h))
    except (KeyError, TypeError, ValueError) as e:
        raise ValueError(f"Frame {index}: bad or missing 'size' ({e})") from e

    raw = entry.get("quad")
    if raw is None:
        return None, size
    return Quadrilateral(raw), size


def load_detections(path: str | Path) -> List[Frame]:
    """
    Load a recorded detection stream, one entry per video frame, in order.
    Frames where the detector found nothing carry "quad": null.
    """
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Could not read detections at: {path}")
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("frames", [])
    if not isinstance(data, list):
        raise ValueError("Detections file must hold a list of frames")
    return [parse_frame(entry, i) for i, entry in enumerate(data)]


def dump_detections(frames: List[Frame], path: str | Path) -> None:
    out = [
        {"quad": q.pts.tolist() if q is not None else None, "size": [s.width, s.height]}
        for q, s in frames
    ]
    with open(path, "w") as f:
        json.dump(out, f, indent=1)
