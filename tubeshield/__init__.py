"""TubeShield — keeps ads out of YouTube pages from inside the page."""

from .agent import TubeShield
from .config import load_config, setup_logging
from .dom import Document, PageGlobals
from .feed import FeedClass, FeedMonitor, classify
from .hooks import NetworkHooks, sanitize_inline_payload
from .media import MediaElement, PlaybackRejected
from .patterns import export_patterns, is_blocked, matches
from .player import AdPresenceDetector, PlayerState
from .sanitizer import sanitize
from .scheduler import Debouncer, LoopScheduler, ManualScheduler
from .styles import ensure_styles, inject_styles

__version__ = "1.0.0"

__all__ = [
    "AdPresenceDetector",
    "Debouncer",
    "Document",
    "FeedClass",
    "FeedMonitor",
    "LoopScheduler",
    "ManualScheduler",
    "MediaElement",
    "NetworkHooks",
    "PageGlobals",
    "PlaybackRejected",
    "PlayerState",
    "TubeShield",
    "classify",
    "ensure_styles",
    "export_patterns",
    "inject_styles",
    "is_blocked",
    "load_config",
    "matches",
    "sanitize",
    "sanitize_inline_payload",
    "setup_logging",
]
