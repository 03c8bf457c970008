#!/usr/bin/env python3
from __future__ import annotations
import argparse, os
import cv2
import numpy as np

from docscan.core.contracts import Size
from docscan.io.config import load_cfg, merge_cfg, validate_cfg
from docscan.io.ingest import load_detections, load_image
from docscan.tracking.session import OutcomeKind, ScanSession


def draw_quad(img, quad, color, thickness=2):
    cv2.polylines(img, [quad.as_polyline()], True, color, thickness, lineType=cv2.LINE_AA)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Replay recorded per-frame detections through a scan session.")
    ap.add_argument("detections", help="JSON list of frames: {\"quad\": [[x,y]x4] | null, \"size\": [w,h]}.")
    ap.add_argument("--config", default=None, help="YAML config (defaults are used when omitted).")
    ap.add_argument("--capture", nargs=2, type=float, metavar=("W", "H"), default=None,
                    help="Captured photo size; maps the last stabilized quad into it at the end.")
    ap.add_argument("--orientation", choices=["up", "right"], default="up",
                    help='Orientation reported for the captured photo ("right" rotates 90°).')
    ap.add_argument("--out", default=None, help="Write a PNG of the display overlay with the last quad.")
    ap.add_argument("--background", default=None, help="Image drawn under the overlay (resized to the display).")
    ap.add_argument("--quiet", action="store_true", help="Only print final results and the summary.")
    ap.add_argument("--debug", action="store_true", help="Enable debug prints in the session and funnel.")
    return ap


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    cfg = load_cfg(args.config) if args.config else validate_cfg(merge_cfg(None))
    if args.debug:
        cfg["debug"] = True

    frames = load_detections(args.detections)
    session = ScanSession(cfg)
    session.start()

    counts = {k: 0 for k in OutcomeKind}
    last_display = None
    for i, (quad, size) in enumerate(frames):
        out = session.process_frame(quad, size)
        counts[out.kind] += 1
        if out.display_quad is not None:
            last_display = out.display_quad
        elif out.tracking_lost:
            last_display = None

        if out.kind is OutcomeKind.FINAL:
            print(f"[PIPELINE] frame {i}: FINAL {out.display_quad} trigger_capture={out.trigger_capture}")
        elif out.kind is OutcomeKind.LOST:
            print(f"[PIPELINE] frame {i}: tracking lost after {session.misses} empty frames")
        elif out.kind is OutcomeKind.PROVISIONAL and not args.quiet:
            print(f"[PREVIEW] frame {i}: {out.display_quad}")

    summary = ", ".join(f"{k.value}={v}" for k, v in counts.items())
    print(f"[PIPELINE] {len(frames)} frames replayed ({summary})")

    if args.capture is not None:
        captured = session.capture(Size(*args.capture), args.orientation)
        if captured is None:
            print("[CAPTURE] No stabilized result to map.")
        else:
            print(f"[CAPTURE] Quad in photo space: {captured}")

    if args.out:
        W, H = int(round(session.display_size.width)), int(round(session.display_size.height))
        if args.background:
            canvas = cv2.resize(load_image(args.background), (W, H), interpolation=cv2.INTER_AREA)
        else:
            canvas = np.full((H, W, 3), 30, np.uint8)
        if last_display is not None:
            draw_quad(canvas, last_display, (0, 255, 0), 3)
        else:
            cv2.putText(canvas, "NO RESULT", (20, 40),
                        cv2.FONT_HERSHEY_SIMPLEX, 1.0, (0, 0, 255), 2, cv2.LINE_AA)
        os.makedirs(os.path.dirname(os.path.abspath(args.out)), exist_ok=True)
        cv2.imwrite(args.out, canvas)
        print(f"Saved overlay → {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
