"""
TubeShield Agent — Owns the hooks, the player state machine and the feed
monitor for one document, and re-drives them as the single-page app navigates.

The host calls `install()` once, then forwards its lifecycle signals:
`on_document_ready()`, `on_navigate_finish(url)` and `on_popstate(url)`.
"""

import functools
import logging

from .config import load_config
from .dom import is_watch_page, is_youtube_page
from .feed import FeedMonitor
from .hooks import NetworkHooks
from .patterns import export_patterns
from .player import AdPresenceDetector
from .signatures import AGENT_GLOBAL, INITIALIZED_GLOBAL
from .styles import ensure_styles, inject_styles

log = logging.getLogger("tubeshield.agent")


def contained(method):
    """Entry points called by the host never raise into it."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        try:
            return method(self, *args, **kwargs)
        except Exception as e:
            log.error(f"{method.__name__} failed: {e}", exc_info=True)
            return None

    return wrapper


class TubeShield:
    def __init__(self, document, scheduler, config: dict | None = None,
                 session=None, event_target=None):
        self.document = document
        self.scheduler = scheduler
        self.config = config if config is not None else load_config()
        self.session = session
        self.event_target = event_target

        self.hooks = NetworkHooks(self.config)
        self.detector = AdPresenceDetector(document, scheduler, self.config)
        self.feed = FeedMonitor(document, scheduler, self.config)
        self.installed = False
        self.initialized = False

    @contained
    def install(self) -> bool:
        """Export the blocked patterns and install the network hooks, once per document."""
        window = self.document.window
        if self.installed:
            return False
        if window.get(INITIALIZED_GLOBAL):
            log.info("TubeShield already installed in this document, skipping")
            return False
        window[INITIALIZED_GLOBAL] = True
        self.installed = True

        try:
            export_patterns(window)
        except Exception as e:
            log.error(f"Failed to export blocked patterns: {e}")

        installed = self.hooks.install(
            window=window, session=self.session, event_target=self.event_target
        )
        window[AGENT_GLOBAL] = self
        log.info(f"TubeShield installed, hooks: {installed}")
        return True

    @contained
    def init(self):
        if self.initialized:
            return
        url = self.document.url
        if not is_youtube_page(url):
            log.debug(f"Not a YouTube page, staying idle: {url}")
            return
        self.initialized = True

        inject_styles(self.document)
        self.feed.start()
        if is_watch_page(url):
            self.detector.wait_for_player(self._on_player_ready)
        log.debug(f"Initialized for {url}")

    def _on_player_ready(self):
        if self.detector.start():
            log.info("Player found, ad detection running")

    @contained
    def cleanup(self):
        """Stop observers and timers of both reactive components. Idempotent."""
        self.detector.stop()
        self.feed.stop()

    @contained
    def destroy(self):
        self.cleanup()
        self.initialized = False

    @contained
    def ensure_styles(self) -> bool:
        return ensure_styles(self.document)

    # Host lifecycle signals

    @contained
    def on_document_ready(self):
        self.init()

    @contained
    def on_navigate_finish(self, url: str | None = None):
        self._reinit(url)

    @contained
    def on_popstate(self, url: str | None = None):
        self._reinit(url)

    def _reinit(self, url: str | None):
        if url:
            self.document.url = url
        if not is_youtube_page(self.document.url):
            return
        self.cleanup()
        # A new page never inherits the previous page's ad state
        self.detector.reset()
        self.initialized = False
        self.init()
