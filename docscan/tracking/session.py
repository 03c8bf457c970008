"""
Per-session driver around the funnel: miss handling, lifecycle and the
auto-capture trigger. Everything here runs on the single frame stream; the
returned outcomes are plain values the caller may hand to a UI thread.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from docscan.core.contracts import CaptureError, DetectionResult, Quadrilateral, Size
from docscan.geometry.mapping import orientation_angle, to_capture, to_display
from docscan.io.config import merge_cfg, validate_cfg
from docscan.tracking.funnel import DecisionKind, RectangleFunnel


class OutcomeKind(Enum):
    IGNORED = "ignored"          # session not detecting
    NONE = "none"                # keep showing whatever is on screen
    PROVISIONAL = "provisional"
    FINAL = "final"
    LOST = "lost"                # too many empty frames, remove the overlay


@dataclass
class FrameOutcome:
    kind: OutcomeKind
    display_quad: Optional[Quadrilateral] = None
    result: Optional[DetectionResult] = None
    trigger_capture: bool = False

    @property
    def tracking_lost(self) -> bool:
        return self.kind is OutcomeKind.LOST


class ScanSession:
    """
    One capture session: owns a RectangleFunnel, tracks consecutive empty frames
    and the last accepted detection, and decides when to fire a capture.
    """

    def __init__(self, cfg: Optional[Dict] = None, display_size: Optional[Size] = None) -> None:
        self.cfg = validate_cfg(merge_cfg(cfg))
        disp = self.cfg["display"]
        self.display_size = display_size or Size(float(disp["width"]), float(disp["height"]))
        self.miss_threshold = int(self.cfg["session"]["miss_threshold"])
        self.auto_capture = bool(self.cfg["session"]["auto_capture"])
        self.debug = bool(self.cfg.get("debug"))

        self.funnel = RectangleFunnel(self.cfg)
        self.misses = 0
        self.last_result: Optional[DetectionResult] = None
        self._detecting = False
        self._capturing = False
        self._started = False

    @property
    def is_detecting(self) -> bool:
        return self._detecting

    @property
    def is_capturing(self) -> bool:
        return self._capturing

    def start(self) -> None:
        self.funnel.reset()
        self.misses = 0
        self.last_result = None
        self._capturing = False
        self._detecting = True
        self._started = True
        self._log("started")

    def stop(self) -> None:
        """Stop detecting; no consensus survives into the next start()."""
        self._detecting = False
        self.funnel.reset()
        self.misses = 0
        self.last_result = None
        self._log("stopped")

    def process_frame(self, quad: Optional[Quadrilateral], image_size: Size) -> FrameOutcome:
        if not self._detecting:
            return FrameOutcome(OutcomeKind.IGNORED)

        if quad is None:
            return self._on_miss()

        self.misses = 0
        last = self.last_result.quad if self.last_result is not None else None
        decision = self.funnel.add(quad, last)
        if decision.kind is DecisionKind.NONE:
            return FrameOutcome(OutcomeKind.NONE)

        result = DetectionResult(decision.quad, image_size)
        self.last_result = result
        display_quad = to_display(result, self.display_size)

        if decision.is_final:
            fire = self.auto_capture and not self._capturing
            if fire:
                self._capturing = True
                self._log("final result, triggering capture")
            return FrameOutcome(OutcomeKind.FINAL, display_quad, result, trigger_capture=fire)
        return FrameOutcome(OutcomeKind.PROVISIONAL, display_quad, result)

    def request_capture(self) -> bool:
        """Manual shutter. False while another capture is still in flight."""
        if self._capturing:
            return False
        self._capturing = True
        return True

    def capture(self, captured_size: Size, orientation: str = "up") -> Optional[Quadrilateral]:
        """
        Finish a capture: stop detecting and map the last stabilized detection into
        the captured photo's pixel space. None when nothing was stabilized.
        """
        if not self._started:
            raise CaptureError("invalid_capture", "Capture requested before the session was started")
        result = self.last_result
        self.stop()
        self._capturing = False

        if result is None:
            self._log("capture without a stabilized result")
            return None
        quad = to_capture(result, captured_size, orientation_angle(orientation))
        self._log(f"captured quad in {captured_size.width:.0f}x{captured_size.height:.0f}: {quad}")
        return quad

    def _on_miss(self) -> FrameOutcome:
        self.misses += 1
        if self.misses > self.miss_threshold:
            # Tracking lost: a later rectangle must not finish a stale count.
            self.funnel.reset_similar_count()
            self.last_result = None
            self._log(f"no quad for {self.misses} frames, tracking lost")
            return FrameOutcome(OutcomeKind.LOST)
        return FrameOutcome(OutcomeKind.NONE)

    def _log(self, msg: str) -> None:
        if self.debug:
            print(f"[session] {msg}")
