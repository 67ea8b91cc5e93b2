"""
TubeShield Media — Playback state of the page's video element.

Hosts bridge their real player through any object exposing the same
attributes; this class is the reference shape.
"""

import math


class PlaybackRejected(Exception):
    """Raised by `play()` when the host's autoplay policy refuses to resume."""


class MediaElement:
    def __init__(self, duration: float = math.nan, current_time: float = 0.0,
                 muted: bool = False, playback_rate: float = 1.0,
                 paused: bool = False, autoplay_allowed: bool = True):
        self.duration = duration
        self.current_time = current_time
        self.muted = muted
        self.playback_rate = playback_rate
        self.paused = paused
        self.autoplay_allowed = autoplay_allowed
        self.play_attempts = 0

    def play(self):
        self.play_attempts += 1
        if not self.autoplay_allowed:
            raise PlaybackRejected("play() request was rejected by autoplay policy")
        self.paused = False

    def pause(self):
        self.paused = True

    def __repr__(self):
        return (
            f"MediaElement(t={self.current_time}/{self.duration}, "
            f"rate={self.playback_rate}, muted={self.muted}, paused={self.paused})"
        )


def has_duration(media) -> bool:
    """True when the media reports a finite, positive duration."""
    duration = getattr(media, "duration", None)
    return isinstance(duration, (int, float)) and math.isfinite(duration) and duration > 0
