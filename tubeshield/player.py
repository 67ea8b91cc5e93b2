"""
TubeShield Player — Ad-presence state machine for the watch-page player.

Samples a confirmed-ad signal on every class change of the player container
and on a fixed poll, and drives mute, skip, speed-up and restore actions on
state transitions. A sample only counts as an ad when a state class on the
container is backed by at least one ad element, which filters out transient
class churn.
"""

import enum
import logging
import re
from urllib.parse import urlencode

from .config import DEFAULTS
from .dom import query_param
from .media import has_duration
from .signatures import (
    AD_OVERLAY_SELECTORS,
    AD_STATE_CLASSES,
    CORROBORATING_SELECTORS,
    FALLBACK_EMBED_URL,
    FALLBACK_PLAYER_ID,
    PLAYER_ID,
    SKIP_BUTTON_SELECTORS,
    VIDEO_SELECTOR,
)

log = logging.getLogger("tubeshield.player")

START_OFFSET = re.compile(r"^(?:(\d+)h)?(?:(\d+)m)?(?:(\d+)s?)?$")


class PlayerState(enum.Enum):
    CONTENT = "content"
    ENTERING_AD = "entering_ad"
    IN_AD = "in_ad"
    EXITING_AD = "exiting_ad"


def parse_start_offset(value: str | None) -> int:
    """`t=` query values: "90", "90s" or "1m30s"."""
    if not value:
        return 0
    match = START_OFFSET.match(value.strip())
    if not match:
        return 0
    hours, minutes, seconds = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + seconds


class AdPresenceDetector:
    def __init__(self, document, scheduler, config: dict | None = None):
        self.document = document
        self.scheduler = scheduler
        settings = dict(DEFAULTS["player"])
        settings.update((config or {}).get("player", {}))
        self.settings = settings

        self.running = False
        self.samples = 0
        self._listeners = []
        self._observer = None
        self._poll = None
        self._wait = None
        self._resume = None
        self._reset_fields()

    def _reset_fields(self):
        self.state = PlayerState.CONTENT
        self.positive_samples = 0
        self.saved_muted = False
        self.saved_rate = 1.0
        self.ad_started_at = None
        self.fallback_triggered = False

    # Elements

    def player(self):
        return self.document.get_element_by_id(PLAYER_ID)

    def media(self):
        video = self.document.select_one(VIDEO_SELECTOR)
        if video is None:
            return None
        return self.document.media_for(video)

    def is_ready(self) -> bool:
        return self.player() is not None and self.media() is not None

    # Lifecycle

    def on_transition(self, listener):
        """Register `listener(old_state, new_state)`."""
        self._listeners.append(listener)

    def wait_for_player(self, callback):
        """Call `callback` once, as soon as both the player and its media exist."""
        if self.is_ready():
            callback()
            return

        def check():
            if not self.is_ready():
                return
            self._wait.cancel()
            self._wait = None
            callback()

        if self._wait is not None:
            self._wait.cancel()
        self._wait = self.scheduler.call_every(self.settings["player_wait_interval"], check)

    def start(self) -> bool:
        if self.running:
            return True
        player = self.player()
        if player is None:
            return False
        self._observer = self.document.observe(
            player, self._on_mutations, child_list=False,
            attributes=True, attribute_filter=["class"],
        )
        self._poll = self.scheduler.call_every(self.settings["poll_interval"], self.sample)
        self.running = True
        log.debug("Ad detection started")
        return True

    def stop(self):
        """Tear down the observer and every pending timer. Safe to call repeatedly."""
        if self._observer is not None:
            self._observer.disconnect()
            self._observer = None
        for name in ("_poll", "_wait", "_resume"):
            handle = getattr(self, name)
            if handle is not None:
                handle.cancel()
                setattr(self, name, None)
        self.running = False

    def reset(self):
        """Stop and return to the initial state; used when a new watch page loads."""
        self.stop()
        self._reset_fields()

    def _on_mutations(self, records):
        self.sample()

    # Detection

    def is_ad_confirmed(self) -> bool:
        player = self.player()
        if player is None:
            return False
        if not any(self.document.has_class(player, cls) for cls in AD_STATE_CLASSES):
            return False
        return any(self.document.select_one(s) is not None for s in CORROBORATING_SELECTORS)

    def sample(self, signal: bool | None = None) -> PlayerState:
        """One detection step. `signal` overrides the document-derived ad signal."""
        media = self.media()
        if self.player() is None or media is None:
            return self.state
        if signal is None:
            signal = self.is_ad_confirmed()
        self.samples += 1

        if self.state in (PlayerState.CONTENT, PlayerState.EXITING_AD):
            if not signal:
                self.positive_samples = 0
                return self.state
            self.positive_samples += 1
            if self.positive_samples >= self.settings["confirmations_required"]:
                self._enter_ad(media)
        elif signal:
            if self.state is PlayerState.ENTERING_AD:
                self._set_state(PlayerState.IN_AD)
            self._continue_ad(media)
        else:
            self._exit_ad(media)
        return self.state

    def _set_state(self, state: PlayerState):
        old, self.state = self.state, state
        log.debug(f"Player state {old.value} -> {state.value}")
        for listener in list(self._listeners):
            listener(old, state)

    # Transitions

    def _enter_ad(self, media):
        self.positive_samples = 0
        self.saved_muted = media.muted
        self.saved_rate = media.playback_rate
        self.ad_started_at = self.scheduler.now()
        self._set_state(PlayerState.ENTERING_AD)
        log.info("Ad playback detected")

        media.muted = True
        self.skip(media)
        self.remove_overlays()

    def _continue_ad(self, media):
        self.skip(media)
        self.remove_overlays()

        elapsed = self.scheduler.now() - (self.ad_started_at or self.scheduler.now())
        if (self.settings["fallback_enabled"] and not self.fallback_triggered
                and elapsed >= self.settings["fallback_after"]):
            self.trigger_fallback(media)

    def _exit_ad(self, media):
        self._set_state(PlayerState.EXITING_AD)
        media.muted = self.saved_muted
        media.playback_rate = self.saved_rate
        self.ad_started_at = None

        if self._resume is not None:
            self._resume.cancel()
        self._resume = self.scheduler.call_later(
            self.settings["resume_delay"], lambda: self._resume_playback(media)
        )
        self._set_state(PlayerState.CONTENT)
        log.info("Ad finished, playback restored")

    def _resume_playback(self, media):
        self._resume = None
        if not media.paused:
            return
        try:
            media.play()
        except Exception as e:
            # Autoplay refusals are expected here
            log.debug(f"Resume after ad was rejected: {e}")

    # Actions

    def skip(self, media) -> str:
        """Skip button first; otherwise speed up, and seek to the end only for short ads."""
        if self.click_skip_button():
            return "clicked"

        max_rate = self.settings["max_playback_rate"]
        if media.playback_rate < max_rate:
            media.playback_rate = max_rate

        if (has_duration(media) and media.duration < self.settings["safe_skip_max_duration"]
                and media.current_time < media.duration - self.settings["end_epsilon"]):
            media.current_time = media.duration
            return "seeked"
        return "accelerated"

    def click_skip_button(self) -> bool:
        for selector in SKIP_BUTTON_SELECTORS:
            button = self.document.select_one(selector)
            if button is None or not self.document.is_visible(button):
                continue
            try:
                self.document.click(button)
            except Exception as e:
                log.error(f"Skip button click failed: {e}")
                return False
            log.debug(f"Clicked skip button {selector}")
            return True
        return False

    def remove_overlays(self) -> int:
        removed = 0
        for selector in AD_OVERLAY_SELECTORS:
            for element in self.document.select(selector):
                if self.document.remove(element):
                    removed += 1
        return removed

    def trigger_fallback(self, media) -> bool:
        """
        Replace the player with a minimal embed of the same video. Used when an
        ad persists past `fallback_after`, which means it is stitched into the
        main stream and cannot be skipped client-side. Runs at most once.
        """
        self.fallback_triggered = True
        url = self.document.url
        video_id = query_param(url, "v")
        player = self.player()
        if not video_id or player is None:
            log.warning("Fallback player skipped: no video id or player")
            return False

        params = {"autoplay": "1", "start": str(parse_start_offset(query_param(url, "t")))}
        playlist = query_param(url, "list")
        if playlist:
            params["list"] = playlist

        media.pause()
        media.muted = True
        iframe = self.document.soup.new_tag("iframe", attrs={
            "id": FALLBACK_PLAYER_ID,
            "src": f"{FALLBACK_EMBED_URL}{video_id}?{urlencode(params)}",
            "allow": "autoplay; encrypted-media; picture-in-picture",
            "allowfullscreen": "",
            "frameborder": "0",
            "style": "width: 100%; height: 100%",
        })
        self.document.replace(player, iframe)
        self.stop()
        log.warning(f"Unskippable ad on {video_id}, switched to fallback player")
        return True
