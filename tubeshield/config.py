"""
TubeShield Config — Tunable thresholds, loaded from config.json over built-in
defaults, plus the logging setup shared by hosts.
"""

import copy
import json
import logging
from datetime import datetime
from pathlib import Path

PACKAGE_DIR = Path(__file__).parent
CONFIG_PATH = PACKAGE_DIR / "config.json"

log = logging.getLogger("tubeshield.config")

# Confirmation count, persistence timeout and safe-skip cutoff have no single
# authoritative value; all of them can be overridden from config.json.
DEFAULTS = {
    "player": {
        "poll_interval": 0.1,
        "confirmations_required": 1,
        "max_playback_rate": 16,
        "safe_skip_max_duration": 30,
        "end_epsilon": 0.3,
        "resume_delay": 0.05,
        "fallback_enabled": False,
        "fallback_after": 2.0,
        "player_wait_interval": 0.1,
    },
    "feed": {
        "removal_delay": 0.05,
        "reflow_debounce": 0.15,
    },
    "sanitizer": {
        "max_depth": 15,
    },
    "hooks": {
        "fast_exit_on_blocked": True,
    },
}


def merge(base: dict, overrides: dict) -> dict:
    """Deep-merge `overrides` into a copy of `base`."""
    merged = copy.deepcopy(base)
    for key, value in (overrides or {}).items():
        if key not in merged:
            log.warning(f"Unknown config key ignored: {key}")
            continue
        if isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path=None, overrides: dict | None = None) -> dict:
    """Load config.json (or `path`) over the defaults. A missing file means defaults."""
    path = Path(path) if path else CONFIG_PATH
    data = {}
    if path.exists():
        with open(path) as f:
            data = json.load(f)
    return merge(merge(DEFAULTS, data), overrides or {})


def setup_logging(level=logging.INFO, log_dir=None):
    """Log to stderr and, when `log_dir` is given, to a dated file inside it."""
    handlers = [logging.StreamHandler()]
    if log_dir:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            logging.FileHandler(log_dir / f"tubeshield-{datetime.now().strftime('%Y-%m-%d')}.log")
        )
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
    )
    return logging.getLogger("tubeshield")
