# docscan/tracking/funnel.py
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple
import numpy as np

from docscan.core.contracts import Quadrilateral
from docscan.geometry.quad import is_within
from docscan.io.config import merge_cfg, validate_cfg


@dataclass
class Match:
    """A windowed candidate and how many other window entries it agrees with."""
    quad: Quadrilateral
    score: int = 0


class DecisionKind(Enum):
    NONE = "none"
    PROVISIONAL = "provisional"
    FINAL = "final"


@dataclass(frozen=True)
class FunnelDecision:
    kind: DecisionKind
    quad: Optional[Quadrilateral] = None

    @classmethod
    def none(cls) -> "FunnelDecision":
        return cls(DecisionKind.NONE)

    @classmethod
    def provisional(cls, quad: Quadrilateral) -> "FunnelDecision":
        return cls(DecisionKind.PROVISIONAL, quad)

    @classmethod
    def final(cls, quad: Quadrilateral) -> "FunnelDecision":
        return cls(DecisionKind.FINAL, quad)

    @property
    def has_result(self) -> bool:
        return self.kind is not DecisionKind.NONE

    @property
    def is_final(self) -> bool:
        return self.kind is DecisionKind.FINAL


class RectangleFunnel:
    """
    Temporal filter over noisy per-frame quads.

    Each frame's candidate joins a bounded window; every entry is scored by how
    many other entries sit within `matching_threshold` of it and the best one is
    reported. A result only becomes final after `efficient_match_count`
    consecutive frames in which the best match stays within the much tighter
    `result_matching_threshold` of the last accepted quad.

    Not thread-safe: feed it from one serialized frame stream.
    """

    def __init__(self, cfg: Optional[Dict] = None) -> None:
        cfg = validate_cfg(merge_cfg(cfg))
        f = cfg["funnel"]
        self.max_rectangle_count = int(f["max_rectangle_count"])
        self.min_rectangle_count = int(f["min_rectangle_count"])
        self.matching_threshold = float(f["matching_threshold"])
        self.result_matching_threshold = float(f["result_matching_threshold"])
        self.efficient_match_count = int(f["efficient_match_count"])
        self.debug = bool(cfg.get("debug"))

        self._matches: List[Match] = []
        self.similar_match_count = 0

    def __len__(self) -> int:
        return len(self._matches)

    @property
    def window(self) -> Tuple[Match, ...]:
        return tuple(self._matches)

    def add(self, candidate: Quadrilateral, last_accepted: Optional[Quadrilateral] = None) -> FunnelDecision:
        self._matches.append(Match(candidate))

        if len(self._matches) < self.min_rectangle_count:
            return FunnelDecision.none()
        if len(self._matches) > self.max_rectangle_count:
            self._matches.pop(0)

        self._update_scores()
        best = self._best_match(last_accepted)

        if last_accepted is not None and is_within(self.result_matching_threshold, best.quad, last_accepted):
            if not is_within(self.matching_threshold, candidate, last_accepted):
                # this frame saw something else; agreement must be consecutive
                self.similar_match_count = 0
                return FunnelDecision.none()
            self.similar_match_count += 1
            if self.similar_match_count >= self.efficient_match_count:
                self.similar_match_count = 0
                if self.debug:
                    print(f"[funnel] final after {self.efficient_match_count} agreeing frames: {best.quad}")
                return FunnelDecision.final(best.quad)
            return FunnelDecision.none()

        self.similar_match_count = 0
        if self.debug:
            print(f"[funnel] provisional score={best.score} window={len(self._matches)}")
        return FunnelDecision.provisional(best.quad)

    def reset_similar_count(self) -> None:
        self.similar_match_count = 0

    def reset(self) -> None:
        self._matches.clear()
        self.similar_match_count = 0

    # ------------------------------------------------------------------ #

    def _update_scores(self) -> None:
        # Full O(n^2) rescoring; n <= max_rectangle_count.
        pts = np.stack([m.quad.pts for m in self._matches])
        diff = np.abs(pts[:, None] - pts[None, :])
        close = np.all(diff <= self.matching_threshold / 2.0, axis=(2, 3))
        np.fill_diagonal(close, False)
        for m, s in zip(self._matches, close.sum(axis=1)):
            m.score = int(s)

    def _best_match(self, last_accepted: Optional[Quadrilateral]) -> Match:
        best = self._matches[0]
        for m in self._matches[1:]:
            if m.score > best.score:
                best = m
            elif m.score == best.score and last_accepted is not None:
                best = self._break_tie(best, m, last_accepted)
        return best

    def _break_tie(self, current: Match, challenger: Match, last_accepted: Quadrilateral) -> Match:
        # Earlier window entries keep precedence.
        if is_within(self.matching_threshold, current.quad, last_accepted):
            return current
        if is_within(self.matching_threshold, challenger.quad, last_accepted):
            return challenger
        return current
