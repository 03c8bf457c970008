# docscan/io/config.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional
import yaml

# Defaults tuned for 30 fps preview frames on a phone-sized overlay
_DEFAULT_CFG: Dict = {
    "funnel": {
        "max_rectangle_count": 8,        # window size; comparisons grow n^2
        "min_rectangle_count": 3,        # frames needed before the first decision
        "matching_threshold": 40.0,      # px, clusters similar quads inside the window
        "result_matching_threshold": 6.0,  # px, best match vs last shown result
        "efficient_match_count": 35,     # tight agreements before a final result
    },
    "session": {
        "miss_threshold": 5,             # empty frames tolerated before tracking is lost
        "auto_capture": True,
    },
    "display": {"width": 375.0, "height": 812.0},
    "debug": False,
}


def merge_cfg(cfg: Optional[Dict]) -> Dict:
    merged = {k: (dict(v) if isinstance(v, dict) else v) for k, v in _DEFAULT_CFG.items()}
    if not cfg:
        return merged
    for k, v in cfg.items():
        if v is None and isinstance(merged.get(k), dict):
            continue  # empty YAML section
        if isinstance(merged.get(k), dict) and not isinstance(v, dict):
            raise ValueError(f"Config section '{k}' must be a mapping, got {type(v).__name__}")
        if isinstance(v, dict) and k in merged and isinstance(merged[k], dict):
            merged[k] = {**merged[k], **v}
        else:
            merged[k] = v
    return merged


def validate_cfg(cfg: Dict) -> Dict:
    f = cfg["funnel"]
    if int(f["min_rectangle_count"]) < 1:
        raise ValueError("funnel.min_rectangle_count must be >= 1")
    if int(f["max_rectangle_count"]) < int(f["min_rectangle_count"]):
        raise ValueError("funnel.max_rectangle_count must be >= min_rectangle_count")
    if float(f["matching_threshold"]) < 0 or float(f["result_matching_threshold"]) < 0:
        raise ValueError("funnel matching thresholds must be >= 0")
    if int(f["efficient_match_count"]) < 1:
        raise ValueError("funnel.efficient_match_count must be >= 1")
    if int(cfg["session"]["miss_threshold"]) < 0:
        raise ValueError("session.miss_threshold must be >= 0")
    return cfg


def load_cfg(path: str | Path) -> Dict:
    """Read a YAML config and merge it over the defaults."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Could not read config at: {path}")
    with open(path, "r") as f:
        raw = yaml.safe_load(f) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Config root must be a mapping, got {type(raw).__name__}")
    return validate_cfg(merge_cfg(raw))
